"""Explicitly owned session state, built once from configuration.

The API resolves every collaborator through `get_app_state()`; tests swap the
whole container with `use_in_memory_state_for_tests()` or `set_app_state()`.
"""
from dataclasses import dataclass
from typing import Optional

import redis

from app import config
from app.geo import DEFAULT_LOCATIONS
from app.kv_store import InMemoryKeyValueStore, KeyValueStore, RedisKeyValueStore
from app.location_manager import LocationManager
from app.location_providers import (
    DeviceLocationProvider,
    StaticDeviceLocationProvider,
    build_device_provider,
    build_reverse_geocoders,
)
from app.location_service import LocationService
from app.notify import LoggingDelivery, NotificationDelivery, NotifyCooldown, build_delivery
from app.worker_sources import InMemoryWorkerDirectory, WorkerDirectory, build_worker_directory
from utils.logging_utils import get_tagged_logger, mask_url

logger = get_tagged_logger(__name__, tag="app_state")


@dataclass
class AppState:
    """Every stateful collaborator of one running service."""
    store: KeyValueStore
    location_service: LocationService
    location_manager: LocationManager
    notify: NotifyCooldown
    workers: WorkerDirectory


def _init_store(settings: config.Settings) -> KeyValueStore:
    """Initialize the backing key-value store based on configuration."""
    if settings.store_redis_url:
        try:
            client = redis.Redis.from_url(settings.store_redis_url)
            client.ping()
            logger.info("Using RedisKeyValueStore", extra={"redis_url": mask_url(settings.store_redis_url)})
            return RedisKeyValueStore(client, prefix=settings.store_prefix)
        except redis.RedisError as exc:
            logger.warning("Falling back to InMemoryKeyValueStore (Redis unavailable)", extra={"error": str(exc)})
    return InMemoryKeyValueStore()


def _default_location(settings: config.Settings):
    location = DEFAULT_LOCATIONS.get(settings.default_city)
    if location is None:
        logger.warning(f"Unknown default city '{settings.default_city}', using Mumbai")
        location = DEFAULT_LOCATIONS["mumbai"]
    return location


def build_app_state(
    settings: Optional[config.Settings] = None,
    *,
    store: Optional[KeyValueStore] = None,
    device: Optional[DeviceLocationProvider] = None,
    delivery: Optional[NotificationDelivery] = None,
    workers: Optional[WorkerDirectory] = None,
) -> AppState:
    """Wire the services; explicit arguments override configured backends."""
    settings = settings or config.settings
    store = store if store is not None else _init_store(settings)
    service = LocationService(
        device if device is not None else build_device_provider(settings),
        build_reverse_geocoders(settings),
        default_country=settings.default_country,
    )
    manager = LocationManager(
        service,
        store,
        default_location=_default_location(settings),
        default_radius_km=settings.nearby_radius_km,
    )
    notify = NotifyCooldown(
        store,
        delivery if delivery is not None else build_delivery(settings),
        cooldown_seconds=settings.notify_cooldown_seconds,
        max_per_hour=settings.notify_max_per_hour,
        history_per_customer=settings.notify_history_per_customer,
    )
    return AppState(
        store=store,
        location_service=service,
        location_manager=manager,
        notify=notify,
        workers=workers if workers is not None else build_worker_directory(settings),
    )


_state: Optional[AppState] = None


def get_app_state() -> AppState:
    """Return the process-wide state, building it on first use."""
    global _state
    if _state is None:
        _state = build_app_state()
    return _state


def set_app_state(state: Optional[AppState]) -> None:
    global _state
    _state = state


def use_in_memory_state_for_tests(**overrides) -> AppState:
    """Install an isolated, network-free state for tests."""
    settings = config.Settings(reverse_geocoders="gazetteer", worker_source="memory")
    state = build_app_state(
        settings,
        store=overrides.pop("store", InMemoryKeyValueStore()),
        device=overrides.pop("device", StaticDeviceLocationProvider(permission_granted=False)),
        delivery=overrides.pop("delivery", LoggingDelivery()),
        workers=overrides.pop("workers", InMemoryWorkerDirectory()),
    )
    set_app_state(state)
    return state
