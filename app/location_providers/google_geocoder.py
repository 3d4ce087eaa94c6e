"""Reverse geocoding through the Google Maps Geocoding API."""
from __future__ import annotations

from typing import List, Optional

import requests
import requests_cache
from retry_requests import retry

from app.config import settings
from app.location_providers.base import GeocodedPlace, GeocodingError, ReverseGeocoder
from utils.logging_utils import get_tagged_logger, mask_url

logger = get_tagged_logger(__name__, tag="google_geocoder")

# Built on first use so importing this module never touches the cache backend.
session: requests.Session | None = None

_CITY_TYPES = ("locality",)
_AREA_TYPES = ("sublocality", "sublocality_level_1")
_FALLBACK_CITY_TYPES = ("administrative_area_level_2",)
_STATE_TYPES = ("administrative_area_level_1",)
_COUNTRY_TYPES = ("country",)
_FALLBACK_AREA_TYPES = ("neighborhood", "political")


def _get_session() -> requests.Session:
    """Return the shared cached, retrying HTTP session."""
    global session
    if session is None:
        cache_session = requests_cache.CachedSession(
            settings.geocoding_cache_name,
            backend=settings.geocoding_cache_backend,
            expire_after=settings.geocoding_cache_ttl_seconds,
            ignored_parameters=["key"],
        )
        session = retry(cache_session, retries=settings.geocoding_retries, backoff_factor=0.2)
        logger.info("Using requests_cache and retry_requests for geocoding")
    return session


def parse_address_components(components: List[dict]) -> GeocodedPlace:
    """Map Google address components onto city/area/state/country."""
    city = ""
    area = ""
    state = ""
    country = ""

    for component in components:
        types = component.get("types") or []
        name = component.get("long_name") or ""
        if any(t in types for t in _CITY_TYPES):
            city = name
        elif any(t in types for t in _AREA_TYPES):
            area = name
        elif any(t in types for t in _FALLBACK_CITY_TYPES) and not city:
            city = name
        elif any(t in types for t in _STATE_TYPES):
            state = name
        elif any(t in types for t in _COUNTRY_TYPES):
            country = name

    if not area:
        for component in components:
            types = component.get("types") or []
            if any(t in types for t in _FALLBACK_AREA_TYPES):
                area = component.get("long_name") or ""
                break

    return GeocodedPlace(city=city, area=area, state=state, country=country)


def reverse_geocode(
    latitude: float,
    longitude: float,
    *,
    api_key: str,
    url: str | None = None,
    timeout: float | None = None,
) -> Optional[GeocodedPlace]:
    """Resolve a coordinate to place names; None when Google has no result.

    Raises:
        requests.RequestException: On transport errors or non-2xx responses.
        GeocodingError: When the API answers with an error status.
    """
    params = {
        "latlng": f"{latitude},{longitude}",
        "key": api_key,
    }
    endpoint = url or settings.geocoding_url
    resp = _get_session().get(endpoint, params=params, timeout=timeout or settings.geocoding_timeout_seconds)
    resp.raise_for_status()
    data = resp.json()

    status = data.get("status")
    if status == "ZERO_RESULTS":
        return None
    if status != "OK":
        logger.warning(
            "Google geocoding returned an error status",
            extra={"status": status, "url": mask_url(endpoint), "error": data.get("error_message")},
        )
        raise GeocodingError(f"Google geocoding status {status}")

    results = data.get("results") or []
    if not results:
        return None

    place = parse_address_components(results[0].get("address_components") or [])
    logger.debug(f"Google geocoding result: {place}")
    return None if place.is_empty() else place


class GoogleReverseGeocoder(ReverseGeocoder):
    """Network reverse geocoder; the accurate first tier."""

    name = "google"

    def __init__(self, api_key: str, *, url: str | None = None, timeout: float | None = None) -> None:
        if not api_key:
            raise ValueError("google_maps_api_key must be set for the Google geocoder")
        self.api_key = api_key
        self.url = url
        self.timeout = timeout

    def reverse(self, latitude: float, longitude: float) -> Optional[GeocodedPlace]:
        return reverse_geocode(latitude, longitude, api_key=self.api_key, url=self.url, timeout=self.timeout)
