"""Device location provider backed by configured coordinates."""

from __future__ import annotations

from typing import Optional

from app.domain import Coordinate
from app.location_providers.base import DeviceLocationProvider, LocationUnavailableError, PermissionDeniedError
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="location_providers/static_device")


class StaticDeviceLocationProvider(DeviceLocationProvider):
    """A "device" whose fix and permission answer are fixed at construction.

    Used where the service itself has no GPS: a deployment pins its position
    through settings, and tests script denial or a missing fix.
    """

    def __init__(
        self,
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
        *,
        permission_granted: bool = True,
        already_granted: bool = False,
    ) -> None:
        self.latitude = latitude
        self.longitude = longitude
        self.permission_granted = permission_granted
        self._granted = already_granted and permission_granted

    async def get_foreground_permission(self) -> bool:
        return self._granted

    async def request_foreground_permission(self) -> bool:
        self._granted = self.permission_granted
        logger.debug("Foreground permission requested", extra={"granted": self._granted})
        return self._granted

    async def get_current_position(self) -> Coordinate:
        if not self._granted:
            raise PermissionDeniedError("Location permission not granted")
        if self.latitude is None or self.longitude is None:
            raise LocationUnavailableError("No device position configured")
        return Coordinate(latitude=self.latitude, longitude=self.longitude)
