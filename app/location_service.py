"""Resolve the user's real-world position into a `UserLocation`.

Permission, the position fix and each reverse geocoder are awaited in turn.
Geocoders form an ordered chain: the first usable answer wins and a failing
tier hands over to the next one only after it has definitively failed.
Nothing here raises to the caller; failures degrade to `None` (no position)
or to an "Unknown" place (position without names).
"""
from __future__ import annotations

import asyncio
from typing import Optional, Sequence

from app.domain import Coordinate, UserLocation
from app.location_providers.base import DeviceLocationProvider, GeocodedPlace, LocationError, ReverseGeocoder
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="location_service")

UNKNOWN_CITY = "Unknown"


class LocationService:
    """Permission handling, position acquisition and reverse geocoding."""

    def __init__(
        self,
        device: DeviceLocationProvider,
        geocoders: Sequence[ReverseGeocoder] = (),
        *,
        default_country: str = "India",
    ) -> None:
        self.device = device
        self.geocoders = list(geocoders)
        self.default_country = default_country

    async def check_permission(self) -> bool:
        """Return whether location access is already granted, without prompting."""
        try:
            return bool(await self.device.get_foreground_permission())
        except Exception as exc:
            logger.error("Error checking location permission: %s", exc)
            return False

    async def request_permission(self) -> bool:
        """Ask for foreground location access; errors count as denial."""
        try:
            granted = bool(await self.device.request_foreground_permission())
        except Exception as exc:
            logger.error("Error requesting location permission: %s", exc)
            return False
        if not granted:
            logger.info("Location permission denied")
        return granted

    async def get_current_location(self) -> Optional[UserLocation]:
        """Return the resolved user location, or None when no fix is possible."""
        if not await self.check_permission():
            if not await self.request_permission():
                return None

        try:
            position = await self.device.get_current_position()
        except LocationError as exc:
            logger.warning("Could not obtain a position fix: %s", exc)
            return None
        except Exception as exc:
            logger.error("Unexpected error obtaining a position fix: %s", exc)
            return None

        logger.debug(f"GPS coordinates: {position.latitude}, {position.longitude}")
        place = await self.resolve_place(position)
        return self._to_user_location(position, place)

    async def resolve_place(self, position: Coordinate) -> Optional[GeocodedPlace]:
        """Walk the geocoder chain in order; return the first usable place."""
        for geocoder in self.geocoders:
            name = getattr(geocoder, "name", type(geocoder).__name__)
            try:
                place = await asyncio.to_thread(geocoder.reverse, position.latitude, position.longitude)
            except Exception as exc:
                logger.info("Reverse geocoder failed, trying next", extra={"geocoder": name, "error": str(exc)})
                continue
            if place is None or place.is_empty():
                logger.info("Reverse geocoder returned no result, trying next", extra={"geocoder": name})
                continue
            logger.debug(f"Resolved place via {name}: {place}")
            return place
        logger.warning("All reverse geocoders failed; using placeholder place name")
        return None

    def _to_user_location(self, position: Coordinate, place: Optional[GeocodedPlace]) -> UserLocation:
        if place is None:
            return UserLocation(
                latitude=position.latitude,
                longitude=position.longitude,
                city=UNKNOWN_CITY,
                area="",
                country=self.default_country,
            )
        return UserLocation(
            latitude=position.latitude,
            longitude=position.longitude,
            city=place.city or UNKNOWN_CITY,
            area=place.area or place.city or "",
            country=place.country or self.default_country,
        )
