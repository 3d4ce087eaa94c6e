"""Distance, radius and formatting helpers over locatable entities.

Anything with a `location` (attribute or mapping key) holding a coordinate
is locatable: a `Coordinate`, any object with `latitude`/`longitude`, or a
mapping with `latitude`/`longitude` (or `lat`/`lon`) keys. Helpers never
mutate the entities they are given; they return `Located` wrappers that carry
the entity together with its distance in kilometers.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Dict, Generic, Iterable, List, Mapping, Optional, TypeVar

from app.domain import Coordinate, UserLocation

EARTH_RADIUS_KM = 6371.0

T = TypeVar("T")


@dataclass(frozen=True)
class Located(Generic[T]):
    """An entity annotated with its distance (km) from an origin."""
    item: T
    distance: float


DEFAULT_LOCATIONS: Dict[str, UserLocation] = {
    "mumbai": UserLocation(latitude=19.0760, longitude=72.8777, city="Mumbai", area="Andheri", country="India"),
    "delhi": UserLocation(latitude=28.7041, longitude=77.1025, city="Delhi", area="Connaught Place", country="India"),
    "bangalore": UserLocation(latitude=12.9716, longitude=77.5946, city="Bangalore", area="Koramangala",
                              country="India"),
    "hyderabad": UserLocation(latitude=17.3850, longitude=78.4867, city="Hyderabad", area="Banjara Hills",
                              country="India"),
    "chennai": UserLocation(latitude=13.0827, longitude=80.2707, city="Chennai", area="T. Nagar", country="India"),
}

# Alternate spellings matched by get_city_coordinates.
_CITY_ALIASES = {
    "bengaluru": "bangalore",
}


def _round_half_up(value: float, ndigits: int = 0) -> float:
    factor = 10 ** ndigits
    return math.floor(value * factor + 0.5) / factor


def as_coordinate(value: Any) -> Coordinate:
    """Coerce a coordinate-like value into a `Coordinate`."""
    if isinstance(value, Coordinate):
        return value
    if isinstance(value, Mapping):
        if "latitude" in value:
            return Coordinate(latitude=value["latitude"], longitude=value["longitude"])
        return Coordinate(latitude=value["lat"], longitude=value["lon"])
    if hasattr(value, "latitude") and hasattr(value, "longitude"):
        return Coordinate(latitude=value.latitude, longitude=value.longitude)
    raise TypeError(f"Not a coordinate: {value!r}")


def location_of(item: Any) -> Coordinate:
    """Return the coordinate of a locatable entity."""
    if isinstance(item, Mapping):
        return as_coordinate(item["location"])
    return as_coordinate(item.location)


def haversine_km(a: Any, b: Any) -> float:
    """Unrounded great-circle distance in km, for threshold checks and scoring."""
    p1 = as_coordinate(a)
    p2 = as_coordinate(b)

    d_lat = math.radians(p2.latitude - p1.latitude)
    d_lon = math.radians(p2.longitude - p1.longitude)

    h = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(p1.latitude)) * math.cos(math.radians(p2.latitude)) * math.sin(d_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))
    return EARTH_RADIUS_KM * c


def calculate_distance(a: Any, b: Any) -> float:
    """Great-circle (Haversine) distance in km, rounded half-up to 0.1 km."""
    return _round_half_up(haversine_km(a, b), 1)


def annotate_distances(items: Iterable[T], origin: Any) -> List[Located[T]]:
    """Wrap every item with its distance from `origin`, keeping input order."""
    origin_point = as_coordinate(origin)
    return [Located(item=item, distance=calculate_distance(origin_point, location_of(item))) for item in items]


def sort_by_distance(items: Iterable[T], origin: Any) -> List[Located[T]]:
    """Annotate items and return them nearest first (stable for ties)."""
    return sorted(annotate_distances(items, origin), key=lambda located: located.distance)


def filter_by_radius(items: Iterable[T], origin: Any, radius_km: float) -> List[Located[T]]:
    """Annotate items and keep those within `radius_km` (inclusive), in input order."""
    return [located for located in annotate_distances(items, origin) if located.distance <= radius_km]


def format_distance(distance: float) -> str:
    """Render a distance for display: meters below 1 km, else km with one decimal."""
    if distance < 1:
        return f"{int(_round_half_up(distance * 1000))} m away"
    return f"{distance:.1f} km away"


def get_city_coordinates(city_name: str) -> Optional[UserLocation]:
    """Look up a reference city by (partial, case-insensitive) name."""
    normalized = (city_name or "").strip().lower()
    if not normalized:
        return None
    for alias, key in _CITY_ALIASES.items():
        if alias in normalized:
            return DEFAULT_LOCATIONS[key]
    for key, location in DEFAULT_LOCATIONS.items():
        if key in normalized:
            return location
    return None
