"""Weighted multi-signal ordering of search results.

Each signal is scored on 0..100, the scores are combined with fixed weights
into a 0..100 ranking score, and workers with few completed jobs get a small
boost so newcomers are not buried. A controlled shuffle can then jitter the
lower ranks to spread exposure without touching the top three.
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, TypeVar

from pydantic import BaseModel

from app.domain import AvailabilityStatus, Coordinate, WorkerProfile
from app.geo import calculate_distance, haversine_km

DEFAULT_MAX_RADIUS_KM = 25.0
DEFAULT_NEW_WORKER_BOOST = 5.0
NEW_WORKER_JOB_THRESHOLD = 10


@dataclass(frozen=True)
class RankingWeights:
    availability: float = 30
    distance: float = 20
    rating: float = 20
    response_time: float = 12
    completion_rate: float = 10
    activity: float = 5
    verification: float = 3

    def total(self) -> float:
        return (
            self.availability
            + self.distance
            + self.rating
            + self.response_time
            + self.completion_rate
            + self.activity
            + self.verification
        )


DEFAULT_WEIGHTS = RankingWeights()


@dataclass(frozen=True)
class RankingOptions:
    max_radius: float = DEFAULT_MAX_RADIUS_KM
    new_worker_boost: float = DEFAULT_NEW_WORKER_BOOST


class RankingSignals(BaseModel):
    """Inputs of the ranking score for one worker."""
    availability_status: AvailabilityStatus
    distance_km: float
    rating: float
    response_time_minutes: float
    completion_rate: float
    hours_since_active: float
    is_verified: bool
    total_jobs_completed: int

    @classmethod
    def from_worker(cls, worker: WorkerProfile, origin: Coordinate) -> "RankingSignals":
        return cls(
            availability_status=worker.availability_status,
            distance_km=haversine_km(origin, worker.location),
            rating=worker.rating,
            response_time_minutes=worker.response_time_minutes,
            completion_rate=worker.completion_rate,
            hours_since_active=worker.hours_since_active,
            is_verified=worker.is_verified,
            total_jobs_completed=worker.total_jobs_completed,
        )


class RankedWorker(BaseModel):
    worker: WorkerProfile
    ranking_score: float
    rank: int
    distance_km: float


def availability_score(status: AvailabilityStatus) -> float:
    if status == AvailabilityStatus.ONLINE:
        return 100.0
    if status == AvailabilityStatus.BUSY:
        return 50.0
    return 0.0


def distance_score(distance_km: float, max_radius: float = DEFAULT_MAX_RADIUS_KM) -> float:
    if distance_km > max_radius:
        return 0.0
    return max(0.0, 100 - (distance_km / max_radius) * 100)


def rating_score(rating: float) -> float:
    return (rating / 5) * 100


def response_score(response_time_minutes: float) -> float:
    # 0 min -> 100, 60 min or slower -> 0
    return max(0.0, 100 - (response_time_minutes / 60) * 100)


def completion_score(completion_rate: float) -> float:
    return min(100.0, max(0.0, completion_rate))


def activity_score(hours_since_active: float) -> float:
    # 0 h -> 100, a week or more -> 0
    return max(0.0, 100 - (hours_since_active / 168) * 100)


def verification_score(is_verified: bool) -> float:
    return 100.0 if is_verified else 0.0


def get_score_breakdown(signals: RankingSignals, options: Optional[RankingOptions] = None) -> Dict[str, float]:
    """Per-signal 0..100 scores, for debugging and explanations."""
    options = options or RankingOptions()
    return {
        "availability": availability_score(signals.availability_status),
        "distance": distance_score(signals.distance_km, options.max_radius),
        "rating": rating_score(signals.rating),
        "response_time": response_score(signals.response_time_minutes),
        "completion_rate": completion_score(signals.completion_rate),
        "activity": activity_score(signals.hours_since_active),
        "verification": verification_score(signals.is_verified),
    }


def calculate_ranking_score(
    signals: RankingSignals,
    weights: RankingWeights = DEFAULT_WEIGHTS,
    options: Optional[RankingOptions] = None,
) -> float:
    options = options or RankingOptions()
    scores = get_score_breakdown(signals, options)
    weighted = (
        scores["availability"] * weights.availability
        + scores["distance"] * weights.distance
        + scores["rating"] * weights.rating
        + scores["response_time"] * weights.response_time
        + scores["completion_rate"] * weights.completion_rate
        + scores["activity"] * weights.activity
        + scores["verification"] * weights.verification
    )
    score = weighted / weights.total()
    if signals.total_jobs_completed < NEW_WORKER_JOB_THRESHOLD:
        score += options.new_worker_boost
    return min(100.0, max(0.0, score))


def rank_workers(
    workers: Sequence[WorkerProfile],
    origin: Coordinate,
    weights: RankingWeights = DEFAULT_WEIGHTS,
    options: Optional[RankingOptions] = None,
) -> List[RankedWorker]:
    """Score every worker against `origin`, best first, with 1-based ranks."""
    scored = []
    for worker in workers:
        signals = RankingSignals.from_worker(worker, origin)
        score = calculate_ranking_score(signals, weights, options)
        scored.append((worker, score, calculate_distance(origin, worker.location)))
    scored.sort(key=lambda entry: entry[1], reverse=True)
    return [
        RankedWorker(worker=worker, ranking_score=score, rank=index + 1, distance_km=distance)
        for index, (worker, score, distance) in enumerate(scored)
    ]


R = TypeVar("R", bound=RankedWorker)


def apply_controlled_shuffle(workers: List[R], rng: Optional[random.Random] = None) -> List[R]:
    """Jitter lower ranks for fair exposure; ranks 1-3 never move.

    Ranks 4-10 move by one position, 11-20 by up to two, 21+ by up to three.
    Only the upward move is clamped, at the top of the worker's band; a move
    down can cross into the next band, so rank 10 may end up at 11. Moves are
    swaps, so the result is a permutation of the input.
    """
    if not workers:
        return workers
    rng = rng or random.Random()
    last = len(workers) - 1
    out: List[R] = list(workers)
    for index, worker in enumerate(workers):
        if worker.rank <= 3:
            continue
        if worker.rank <= 10:
            offset = -1 if rng.random() < 0.5 else 1
            floor = 3
        elif worker.rank <= 20:
            offset = rng.randint(-2, 2)
            floor = 10
        else:
            offset = rng.randint(-3, 3)
            floor = 20
        target = max(floor, min(last, index + offset))
        out[index], out[target] = out[target], out[index]
    return out
