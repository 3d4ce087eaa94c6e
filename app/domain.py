"""Domain vocabulary and strict schemas for location-aware worker discovery.

This module defines the value types that flow between the location service,
the search/ranking helpers and the HTTP API: coordinates, the resolved user
location and worker profiles. No distance or ranking logic lives here.
"""

from __future__ import annotations

from enum import Enum
from typing import List

from pydantic import BaseModel, ConfigDict, Field


class _StrictBaseModel(BaseModel):
    """Base model with strict extra handling."""

    model_config = ConfigDict(extra="forbid")


class _FrozenBaseModel(BaseModel):
    """Immutable, hashable value object."""

    model_config = ConfigDict(extra="forbid", frozen=True)


class Coordinate(_FrozenBaseModel):
    """A latitude/longitude pair in decimal degrees."""
    latitude: float = Field(ge=-90.0, le=90.0)
    longitude: float = Field(ge=-180.0, le=180.0)


class UserLocation(Coordinate):
    """Resolved, human-readable position of the current user."""
    city: str
    area: str = ""
    country: str = ""

    def coordinate(self) -> Coordinate:
        """Drop the place names and keep only the point."""
        return Coordinate(latitude=self.latitude, longitude=self.longitude)


class AvailabilityStatus(str, Enum):
    """Worker availability as shown to customers."""
    ONLINE = "ONLINE"
    BUSY = "BUSY"
    OFFLINE = "OFFLINE"


class PriceType(str, Enum):
    """How a worker quotes their starting price."""
    HOURLY = "HOURLY"
    FIXED = "FIXED"


class WorkerProfile(_StrictBaseModel):
    """Searchable worker record; `location` makes it locatable."""
    id: str
    name: str = ""
    primary_skill: str
    skills: List[str] = Field(default_factory=list)
    location: Coordinate
    service_radius_km: float = 10.0
    availability_status: AvailabilityStatus = AvailabilityStatus.OFFLINE
    years_of_experience: float = 0.0
    starting_price: float = 0.0
    price_type: PriceType = PriceType.HOURLY
    rating: float = Field(default=0.0, ge=0.0, le=5.0)
    is_verified: bool = False
    is_active: bool = True
    profile_completeness: float = Field(default=100.0, ge=0.0, le=100.0)
    response_time_minutes: float = 60.0
    completion_rate: float = 0.0
    hours_since_active: float = 0.0
    total_jobs_completed: int = 0
