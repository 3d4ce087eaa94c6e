"""Eligibility and user filters applied to worker search results."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from app.domain import AvailabilityStatus, Coordinate, PriceType, WorkerProfile
from app.geo import haversine_km

MIN_PROFILE_COMPLETENESS = 60
MAX_SEARCH_RADIUS_KM = 100


class SearchFilters(BaseModel):
    """Core search parameters plus optional user-selected filters."""
    model_config = ConfigDict(extra="forbid")

    skill: str
    location: Coordinate
    radius: float

    online_only: bool = False
    available_today: bool = False
    min_experience: Optional[float] = None
    max_experience: Optional[float] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    price_type: Optional[PriceType] = None
    min_rating: Optional[float] = None
    verified_only: bool = False


class ValidationResult(BaseModel):
    valid: bool
    errors: List[str] = Field(default_factory=list)


def _has_skill(worker: WorkerProfile, skill: str) -> bool:
    wanted = skill.strip().lower()
    return worker.primary_skill.lower() == wanted or any(s.lower() == wanted for s in worker.skills)


def apply_eligibility_filters(workers: List[WorkerProfile], filters: SearchFilters) -> List[WorkerProfile]:
    """Hard filters: a worker must pass all of them to appear at all."""
    eligible = []
    for worker in workers:
        if not worker.is_active:
            continue
        if not _has_skill(worker, filters.skill):
            continue
        distance = haversine_km(filters.location, worker.location)
        # customer inside the worker's service area, worker inside the search radius
        if distance > worker.service_radius_km or distance > filters.radius:
            continue
        if worker.availability_status == AvailabilityStatus.OFFLINE:
            continue
        if worker.profile_completeness < MIN_PROFILE_COMPLETENESS:
            continue
        eligible.append(worker)
    return eligible


def apply_user_filters(workers: List[WorkerProfile], filters: SearchFilters) -> List[WorkerProfile]:
    """Soft filters the customer switched on."""
    kept = []
    for worker in workers:
        if filters.online_only and worker.availability_status != AvailabilityStatus.ONLINE:
            continue
        if filters.min_experience is not None and worker.years_of_experience < filters.min_experience:
            continue
        if filters.max_experience is not None and worker.years_of_experience > filters.max_experience:
            continue
        if filters.min_price is not None and worker.starting_price < filters.min_price:
            continue
        if filters.max_price is not None and worker.starting_price > filters.max_price:
            continue
        if filters.price_type is not None and worker.price_type != filters.price_type:
            continue
        if filters.min_rating is not None and worker.rating < filters.min_rating:
            continue
        if filters.verified_only and not worker.is_verified:
            continue
        kept.append(worker)
    return kept


def validate_filters(filters: SearchFilters) -> ValidationResult:
    errors: List[str] = []

    if not filters.skill or not filters.skill.strip():
        errors.append("Skill is required")
    if filters.location is None:
        errors.append("Location is required")
    if not filters.radius or filters.radius <= 0:
        errors.append("Valid radius is required")
    if filters.radius > MAX_SEARCH_RADIUS_KM:
        errors.append(f"Radius cannot exceed {MAX_SEARCH_RADIUS_KM}km")

    if filters.min_experience is not None and filters.min_experience < 0:
        errors.append("Min experience cannot be negative")
    if (
        filters.min_experience is not None
        and filters.max_experience is not None
        and filters.min_experience > filters.max_experience
    ):
        errors.append("Min experience cannot exceed max experience")

    if filters.min_price is not None and filters.min_price < 0:
        errors.append("Min price cannot be negative")
    if filters.min_price is not None and filters.max_price is not None and filters.min_price > filters.max_price:
        errors.append("Min price cannot exceed max price")

    if filters.min_rating is not None and not 0 <= filters.min_rating <= 5:
        errors.append("Rating must be between 0 and 5")

    return ValidationResult(valid=not errors, errors=errors)


def get_active_filter_count(filters: SearchFilters) -> int:
    count = 0
    if filters.online_only:
        count += 1
    if filters.available_today:
        count += 1
    if filters.min_experience is not None or filters.max_experience is not None:
        count += 1
    if filters.min_price is not None or filters.max_price is not None:
        count += 1
    if filters.price_type is not None:
        count += 1
    if filters.min_rating is not None:
        count += 1
    if filters.verified_only:
        count += 1
    return count


def clear_filters(filters: SearchFilters) -> SearchFilters:
    """Drop user filters, keeping skill, location and radius."""
    return SearchFilters(skill=filters.skill, location=filters.location, radius=filters.radius)


def _fmt_number(value: float) -> str:
    return f"{value:g}"


def get_filter_summary(filters: SearchFilters) -> List[str]:
    """Short chips describing the active user filters."""
    summary: List[str] = []
    if filters.online_only:
        summary.append("Online only")
    if filters.available_today:
        summary.append("Available today")
    if filters.min_experience is not None or filters.max_experience is not None:
        low = _fmt_number(filters.min_experience or 0)
        high = _fmt_number(filters.max_experience) if filters.max_experience is not None else "∞"
        summary.append(f"{low}-{high} years exp")
    if filters.min_price is not None or filters.max_price is not None:
        low = _fmt_number(filters.min_price or 0)
        high = _fmt_number(filters.max_price) if filters.max_price is not None else "∞"
        summary.append(f"₹{low}-{high}")
    if filters.price_type is not None:
        summary.append("Hourly rate" if filters.price_type == PriceType.HOURLY else "Fixed price")
    if filters.min_rating is not None:
        summary.append(f"{_fmt_number(filters.min_rating)}★+")
    if filters.verified_only:
        summary.append("Verified only")
    return summary
