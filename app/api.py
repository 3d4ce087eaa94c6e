"""HTTP API for location-aware worker discovery."""

import hmac
from typing import List, Optional

import redis
from fastapi import APIRouter, Depends, Header, HTTPException, Query, status
from pydantic import BaseModel, Field

from app import app_state
from app.domain import AvailabilityStatus, Coordinate, UserLocation, WorkerProfile
from app.geo import calculate_distance, format_distance, get_city_coordinates
from app.notify import CooldownInfo, NotifyResponse, RejectReason, WorkerNotification, WorkerStatus
from app.search import (
    RankedWorker,
    SearchFilters,
    apply_eligibility_filters,
    apply_user_filters,
    get_filter_summary,
    rank_workers,
    validate_filters,
)
from .config import settings
from utils.logging_utils import get_tagged_logger, mask_url

logger = get_tagged_logger(__name__, tag="app/api")


def _connect_key_store(url: Optional[str]):
    """Redis client holding the set of accepted API keys, or None."""
    if not url:
        return None
    try:
        client = redis.Redis.from_url(url)
    except (redis.RedisError, ValueError) as exc:
        logger.warning("Redis API key store unusable; static key only", extra={"error": str(exc)})
        return None
    logger.info("API keys checked against Redis", extra={"redis_url": mask_url(url)})
    return client


_key_store = _connect_key_store(settings.api_key_redis_url)


def _known_in_redis(key: str) -> bool:
    if _key_store is None:
        return False
    try:
        return bool(_key_store.sismember(settings.api_key_redis_set, key))
    except redis.RedisError as exc:
        logger.warning("Redis API key lookup failed", extra={"error": str(exc)})
        return False


def _matches_static_key(key: str) -> bool:
    configured = settings.api_key
    return bool(configured) and hmac.compare_digest(key.encode(), configured.encode())


def require_api_key(x_api_key: Optional[str] = Header(default=None)) -> None:
    """Accept requests whose X-API-Key is in the Redis key set or equals the static key.

    With neither configured the API is open.
    """
    if not settings.api_key and _key_store is None:
        return
    if not x_api_key:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing API key")
    if _known_in_redis(x_api_key) or _matches_static_key(x_api_key):
        return
    logger.info("Rejected request with unknown API key")
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid API key")


def get_state() -> app_state.AppState:
    """Dependency hook; tests replace it through `app.dependency_overrides`."""
    return app_state.get_app_state()


router = APIRouter(dependencies=[Depends(require_api_key)])


class LocationResponse(BaseModel):
    """Current location plus whether it came from the device or a manual choice."""
    location: UserLocation
    permission_granted: bool


class RefreshResponse(BaseModel):
    location: UserLocation
    updated: bool


class RadiusBody(BaseModel):
    radius_km: float = Field(gt=0)


class DistanceRequest(BaseModel):
    origin: Coordinate
    destination: Coordinate


class DistanceResponse(BaseModel):
    distance_km: float
    label: str


class NearbyWorker(BaseModel):
    worker: WorkerProfile
    distance_km: float
    label: str


class NearbyResponse(BaseModel):
    origin: UserLocation
    radius_km: float
    workers: List[NearbyWorker]


class SearchResult(BaseModel):
    worker: WorkerProfile
    rank: int
    ranking_score: float
    distance_km: float
    label: str


class SearchResponse(BaseModel):
    total: int
    filters: List[str]
    results: List[SearchResult]


class NotifyRequest(BaseModel):
    customer_id: Optional[str] = None
    job_id: Optional[str] = None
    message: Optional[str] = Field(default=None, max_length=500)


class NotifyStatusResponse(BaseModel):
    worker_id: str
    status: WorkerStatus
    cooldown: CooldownInfo


_REJECT_STATUS = {
    RejectReason.IN_FLIGHT: status.HTTP_409_CONFLICT,
    RejectReason.COOLDOWN: status.HTTP_429_TOO_MANY_REQUESTS,
    RejectReason.RATE_LIMITED: status.HTTP_429_TOO_MANY_REQUESTS,
    RejectReason.DELIVERY_FAILED: status.HTTP_502_BAD_GATEWAY,
}


def _to_search_result(ranked: RankedWorker) -> SearchResult:
    return SearchResult(
        worker=ranked.worker,
        rank=ranked.rank,
        ranking_score=round(ranked.ranking_score, 2),
        distance_km=ranked.distance_km,
        label=format_distance(ranked.distance_km),
    )


@router.get("/location", response_model=LocationResponse)
async def get_location(state: app_state.AppState = Depends(get_state)):
    """Return the stored location, falling back to the default reference city."""
    manager = state.location_manager
    await manager.ensure_loaded()
    return LocationResponse(location=manager.current_location, permission_granted=manager.permission_granted)


@router.put("/location", response_model=LocationResponse)
async def set_location(location: UserLocation, state: app_state.AppState = Depends(get_state)):
    """Store a manually chosen location."""
    manager = state.location_manager
    await manager.ensure_loaded()
    manager.set_manual_location(location)
    logger.info(f"Manual location set to {location.city}")
    return LocationResponse(location=manager.current_location, permission_granted=manager.permission_granted)


@router.post("/location/refresh", response_model=RefreshResponse)
async def refresh_location(state: app_state.AppState = Depends(get_state)):
    """Request permission if needed and fetch a fresh device location."""
    manager = state.location_manager
    await manager.ensure_loaded()
    fresh = await manager.refresh()
    return RefreshResponse(location=manager.current_location, updated=fresh is not None)


@router.get("/location/cities/{name}", response_model=UserLocation)
def lookup_city(name: str):
    """Resolve a reference city by name."""
    location = get_city_coordinates(name)
    if location is None:
        raise HTTPException(status_code=404, detail=f"Unknown city: {name}")
    return location


@router.get("/location/radius", response_model=RadiusBody)
async def get_radius(state: app_state.AppState = Depends(get_state)):
    manager = state.location_manager
    await manager.ensure_loaded()
    return RadiusBody(radius_km=manager.get_nearby_radius())


@router.put("/location/radius", response_model=RadiusBody)
async def set_radius(body: RadiusBody, state: app_state.AppState = Depends(get_state)):
    manager = state.location_manager
    await manager.ensure_loaded()
    manager.set_nearby_radius(body.radius_km)
    return RadiusBody(radius_km=manager.get_nearby_radius())


@router.post("/distance", response_model=DistanceResponse)
def distance(req: DistanceRequest):
    """Great-circle distance between two coordinates."""
    km = calculate_distance(req.origin, req.destination)
    return DistanceResponse(distance_km=km, label=format_distance(km))


@router.get("/workers/nearby", response_model=NearbyResponse)
async def nearby_workers(
    radius_km: Optional[float] = Query(default=None, gt=0),
    skill: Optional[str] = None,
    state: app_state.AppState = Depends(get_state),
):
    """Active, not-offline workers within the radius of the current location, nearest first."""
    manager = state.location_manager
    await manager.ensure_loaded()
    workers = [
        w for w in state.workers.list_workers()
        if w.is_active and w.availability_status != AvailabilityStatus.OFFLINE
    ]
    if skill:
        wanted = skill.strip().lower()
        workers = [w for w in workers if w.primary_skill.lower() == wanted or wanted in (s.lower() for s in w.skills)]
    found = manager.find_nearby(workers, radius_km)
    return NearbyResponse(
        origin=manager.current_location,
        radius_km=radius_km if radius_km is not None else manager.get_nearby_radius(),
        workers=[
            NearbyWorker(worker=located.item, distance_km=located.distance, label=format_distance(located.distance))
            for located in found
        ],
    )


@router.post("/workers/search", response_model=SearchResponse)
def search_workers(filters: SearchFilters, state: app_state.AppState = Depends(get_state)):
    """Eligibility filters, user filters, then weighted ranking."""
    result = validate_filters(filters)
    if not result.valid:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=result.errors)

    eligible = apply_eligibility_filters(state.workers.list_workers(), filters)
    filtered = apply_user_filters(eligible, filters)
    ranked = rank_workers(filtered, filters.location)
    logger.info(f"Search '{filters.skill}' within {filters.radius} km: "
                f"{len(eligible)} eligible, {len(ranked)} after filters")
    return SearchResponse(
        total=len(ranked),
        filters=get_filter_summary(filters),
        results=[_to_search_result(r) for r in ranked],
    )


@router.get("/workers/{worker_id}/notify", response_model=NotifyStatusResponse)
def notify_status(worker_id: str, state: app_state.AppState = Depends(get_state)):
    """Notify button state for a worker."""
    return NotifyStatusResponse(
        worker_id=worker_id,
        status=state.notify.get_worker_status(worker_id),
        cooldown=state.notify.get_cooldown_info(worker_id),
    )


@router.post("/workers/{worker_id}/notify", response_model=NotifyResponse)
async def notify_worker(
    worker_id: str,
    req: Optional[NotifyRequest] = None,
    state: app_state.AppState = Depends(get_state),
):
    """Send an instant notify; rejected attempts map to 409, 429 or 502."""
    if state.workers.get_worker(worker_id) is None:
        raise HTTPException(status_code=404, detail="Unknown worker ID")

    req = req or NotifyRequest()
    outcome = await state.notify.open_notify(
        worker_id, customer_id=req.customer_id, job_id=req.job_id, message=req.message
    )
    if not outcome.success:
        raise HTTPException(status_code=_REJECT_STATUS[outcome.reason], detail=outcome.model_dump(mode="json"))
    return outcome


@router.get("/customers/{customer_id}/notifications", response_model=List[WorkerNotification])
def notification_history(
    customer_id: str,
    limit: int = Query(default=20, ge=1, le=100),
    state: app_state.AppState = Depends(get_state),
):
    """Notifies sent by a customer, newest first."""
    return state.notify.get_notification_history(customer_id, limit=limit)
