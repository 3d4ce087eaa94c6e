"""Factory helpers for building location collaborators at startup."""

from __future__ import annotations

from typing import List

from app import config
from app.location_providers.base import DeviceLocationProvider, ReverseGeocoder
from app.location_providers.device import StaticDeviceLocationProvider
from app.location_providers.gazetteer import ReferenceCityGeocoder
from app.location_providers.google_geocoder import GoogleReverseGeocoder
from utils.logging_utils import get_tagged_logger, mask_url

logger = get_tagged_logger(__name__, tag="location_providers/factory")


DEFAULT_GEOCODER_CHAIN = "google,gazetteer"


def build_reverse_geocoders(settings: config.Settings | None = None) -> List[ReverseGeocoder]:
    """Instantiate the configured resolver chain, most accurate first."""
    settings = settings or config.settings
    names = [n.strip().lower() for n in (settings.reverse_geocoders or DEFAULT_GEOCODER_CHAIN).split(",")]

    chain: List[ReverseGeocoder] = []
    for name in names:
        if not name:
            continue
        if name == "google":
            if not settings.google_maps_api_key:
                logger.warning("Skipping Google geocoder (google_maps_api_key not set)")
                continue
            logger.info("Using Google geocoder", extra={"url": mask_url(settings.geocoding_url)})
            chain.append(
                GoogleReverseGeocoder(
                    settings.google_maps_api_key,
                    url=settings.geocoding_url,
                    timeout=settings.geocoding_timeout_seconds,
                )
            )
        elif name == "gazetteer":
            logger.info("Using reference-city geocoder")
            chain.append(ReferenceCityGeocoder(max_distance_km=settings.gazetteer_max_distance_km))
        else:
            raise ValueError(f"Unknown reverse geocoder '{name}'")
    return chain


def build_device_provider(settings: config.Settings | None = None) -> DeviceLocationProvider:
    """Instantiate the device provider from configured coordinates."""
    settings = settings or config.settings
    return StaticDeviceLocationProvider(
        settings.device_latitude,
        settings.device_longitude,
        permission_granted=settings.device_permission_granted,
    )
