"""Location collaborators: device position and reverse geocoding."""

from .base import (
    DeviceLocationProvider,
    GeocodedPlace,
    GeocodingError,
    LocationError,
    LocationUnavailableError,
    PermissionDeniedError,
    ReverseGeocoder,
)
from .device import StaticDeviceLocationProvider
from .factory import build_device_provider, build_reverse_geocoders
from .gazetteer import ReferenceCityGeocoder
from .google_geocoder import GoogleReverseGeocoder

__all__ = [
    "DeviceLocationProvider",
    "GeocodedPlace",
    "GeocodingError",
    "LocationError",
    "LocationUnavailableError",
    "PermissionDeniedError",
    "ReverseGeocoder",
    "StaticDeviceLocationProvider",
    "build_device_provider",
    "build_reverse_geocoders",
    "ReferenceCityGeocoder",
    "GoogleReverseGeocoder",
]
