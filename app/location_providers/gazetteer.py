"""Offline reverse geocoder that snaps to the nearest reference city."""

from __future__ import annotations

from typing import Iterable, Optional

from app.domain import Coordinate, UserLocation
from app.geo import DEFAULT_LOCATIONS, calculate_distance
from app.location_providers.base import GeocodedPlace, ReverseGeocoder
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="gazetteer_geocoder")


class ReferenceCityGeocoder(ReverseGeocoder):
    """Lower-accuracy fallback that needs no network.

    Only the city and country are reported; neighbourhood names from the
    reference table would be wrong for most points in a city.
    """

    name = "gazetteer"

    def __init__(
        self,
        cities: Iterable[UserLocation] | None = None,
        *,
        max_distance_km: float = 50.0,
    ) -> None:
        self.cities = list(cities if cities is not None else DEFAULT_LOCATIONS.values())
        self.max_distance_km = max_distance_km

    def reverse(self, latitude: float, longitude: float) -> Optional[GeocodedPlace]:
        if not self.cities:
            return None
        point = Coordinate(latitude=latitude, longitude=longitude)
        nearest = min(self.cities, key=lambda city: calculate_distance(point, city))
        distance = calculate_distance(point, nearest)
        if distance > self.max_distance_km:
            logger.debug(
                "No reference city in range",
                extra={"nearest": nearest.city, "distance_km": distance},
            )
            return None
        return GeocodedPlace(city=nearest.city, country=nearest.country)
