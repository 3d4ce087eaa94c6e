"""Interfaces, result types and errors for location collaborators."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol

from app.domain import Coordinate


class LocationError(Exception):
    """Base class for recoverable location failures."""


class PermissionDeniedError(LocationError):
    """The user declined (or the platform refused) location access."""


class LocationUnavailableError(LocationError):
    """A position fix could not be obtained."""


class GeocodingError(LocationError):
    """A reverse geocoder failed to answer."""


@dataclass(frozen=True)
class GeocodedPlace:
    """Place names resolved for a coordinate; empty string when unknown."""
    city: str = ""
    area: str = ""
    state: str = ""
    country: str = ""

    def is_empty(self) -> bool:
        """True when the resolver produced no usable names."""
        return not (self.city or self.area or self.country)


class DeviceLocationProvider(Protocol):
    """Permission and position access for the current device."""

    async def get_foreground_permission(self) -> bool:
        """Return whether foreground location access is already granted."""
        ...

    async def request_foreground_permission(self) -> bool:
        """Prompt for foreground location access and return whether it was granted."""
        ...

    async def get_current_position(self) -> Coordinate:
        """Return the current position or raise `LocationError`."""
        ...


class ReverseGeocoder(Protocol):
    """Anything that can turn a coordinate into place names."""

    name: str

    def reverse(self, latitude: float, longitude: float) -> Optional[GeocodedPlace]:
        """Return a place, or None when there is no usable result."""
        ...
