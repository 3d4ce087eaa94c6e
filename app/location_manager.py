"""Session owner of the user's location, permission flag and nearby radius."""
from __future__ import annotations

from typing import Iterable, List, Optional, TypeVar

from pydantic import ValidationError

from app.domain import UserLocation
from app.geo import DEFAULT_LOCATIONS, Located, filter_by_radius
from app.kv_store.base import KeyValueStore
from app.location_service import LocationService
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="location_manager")

T = TypeVar("T")

LOCATION_KEY = "user_location"
PERMISSION_KEY = "location_permission"
NEARBY_RADIUS_KEY = "nearby_radius"

DEFAULT_NEARBY_RADIUS_KM = 5.0


class LocationManager:
    """Keeps the current `UserLocation` and persists it in the key-value store.

    A location that came from the device or a manual choice is persisted; the
    default reference city is only ever a stand-in and is not saved, so a later
    permission grant still fetches the real position.
    """

    def __init__(
        self,
        service: LocationService,
        store: KeyValueStore,
        *,
        default_location: UserLocation = DEFAULT_LOCATIONS["mumbai"],
        default_radius_km: float = DEFAULT_NEARBY_RADIUS_KM,
    ) -> None:
        self.service = service
        self.store = store
        self.default_location = default_location
        self.user_location: Optional[UserLocation] = None
        self.permission_granted = False
        self.nearby_radius_km = default_radius_km
        self.loaded = False

    @property
    def current_location(self) -> UserLocation:
        """The stored location, or the default reference city."""
        return self.user_location or self.default_location

    def _read_saved_location(self) -> Optional[UserLocation]:
        raw = self.store.get(LOCATION_KEY)
        if not raw:
            return None
        try:
            return UserLocation.model_validate_json(raw)
        except ValidationError as exc:
            logger.error("Ignoring corrupt saved location: %s", exc)
            return None

    def _save_location(self, location: UserLocation) -> None:
        self.user_location = location
        self.store.set(LOCATION_KEY, location.model_dump_json())

    async def load_saved(self) -> UserLocation:
        """Restore saved state; fetch a fresh fix only when permission was given before."""
        saved_permission = self.store.get(PERMISSION_KEY)
        self.permission_granted = saved_permission == "true"

        saved = self._read_saved_location()
        if saved is not None:
            self.user_location = saved
        elif self.permission_granted:
            logger.info("No saved location, attempting to fetch GPS location")
            location = await self.service.get_current_location()
            if location is not None:
                self._save_location(location)
            else:
                logger.info(f"GPS fetch failed, using default {self.default_location.city} location")
                self.user_location = self.default_location
        else:
            logger.info("No location permission, using temporary default")
            self.user_location = self.default_location

        saved_radius = self.store.get(NEARBY_RADIUS_KEY)
        if saved_radius:
            try:
                self.nearby_radius_km = float(saved_radius)
            except ValueError:
                logger.error("Ignoring corrupt saved radius", extra={"value": saved_radius})

        self.loaded = True
        return self.current_location

    async def ensure_loaded(self) -> None:
        if not self.loaded:
            await self.load_saved()

    def _remember_permission(self, granted: bool) -> None:
        self.permission_granted = granted
        self.store.set(PERMISSION_KEY, "true" if granted else "false")

    async def request_permission(self) -> bool:
        """Ask for permission, remember the answer and refresh the location on grant."""
        granted = await self.service.request_permission()
        self._remember_permission(granted)
        if granted:
            await self.update_location()
        return granted

    async def refresh(self) -> Optional[UserLocation]:
        """Ask for permission if needed, then fetch a fix.

        Returns the new location, or None when permission is denied or the
        device has no position; in both cases the current location is kept.
        """
        if not self.permission_granted:
            granted = await self.service.request_permission()
            self._remember_permission(granted)
            if not granted:
                return None
        return await self.update_location()

    async def update_location(self) -> Optional[UserLocation]:
        """Fetch a new fix; a result replaces the stored location, None keeps it."""
        location = await self.service.get_current_location()
        if location is not None:
            self._save_location(location)
        return location

    def set_manual_location(self, location: UserLocation) -> None:
        self._save_location(location)

    def get_nearby_radius(self) -> float:
        return self.nearby_radius_km

    def set_nearby_radius(self, radius_km: float) -> None:
        if radius_km <= 0:
            raise ValueError("Nearby radius must be positive")
        self.nearby_radius_km = radius_km
        self.store.set(NEARBY_RADIUS_KEY, str(radius_km))

    def find_nearby(self, items: Iterable[T], radius_km: Optional[float] = None) -> List[Located[T]]:
        """Items within the radius of the current location, nearest first."""
        radius = radius_km if radius_km is not None else self.nearby_radius_km
        nearby = filter_by_radius(items, self.current_location, radius)
        return sorted(nearby, key=lambda located: located.distance)
