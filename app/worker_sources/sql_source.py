"""SQL-backed worker directory.

Reads one row per worker from a table (default `workers`). Coordinates live
in `latitude`/`longitude` columns (`lat`/`lon` also accepted) and the skill
list in a comma-separated `skills` column. Columns missing from the table
fall back to the `WorkerProfile` defaults.
"""

from __future__ import annotations

import re
from typing import List, Mapping, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine

from app.domain import Coordinate, WorkerProfile
from app.worker_sources.base import WorkerDirectory
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="worker_sources/sql")

_TABLE_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)?$")

_OPTIONAL_COLUMNS = (
    "name",
    "service_radius_km",
    "availability_status",
    "years_of_experience",
    "starting_price",
    "price_type",
    "rating",
    "is_verified",
    "is_active",
    "profile_completeness",
    "response_time_minutes",
    "completion_rate",
    "hours_since_active",
    "total_jobs_completed",
)


class SqlWorkerDirectory(WorkerDirectory):
    """Fetch worker profiles from a relational table."""

    def __init__(self, engine: Engine, *, table: str = "workers") -> None:
        """Bind to a database engine and the table holding worker rows."""
        if not _TABLE_NAME.match(table):
            raise ValueError(f"Invalid table name '{table}'")
        self.engine = engine
        self.table = table

    @classmethod
    def from_url(cls, database_url: str, **kwargs) -> "SqlWorkerDirectory":
        """Create an engine from a URL and build the directory."""
        engine = create_engine(database_url, future=True)
        return cls(engine, **kwargs)

    @staticmethod
    def _get_value(row: Mapping, *keys):
        """Return the first non-null value for the provided keys."""
        for key in keys:
            if key in row and row[key] is not None:
                return row[key]
        return None

    @classmethod
    def _row_to_worker(cls, row: Mapping) -> Optional[WorkerProfile]:
        """Convert a result row; rows without an id, skill or position are skipped."""
        worker_id = cls._get_value(row, "id", "worker_id")
        skill = cls._get_value(row, "primary_skill", "skill")
        latitude = cls._get_value(row, "latitude", "lat")
        longitude = cls._get_value(row, "longitude", "lon")
        if worker_id is None or skill is None or latitude is None or longitude is None:
            logger.warning("Skipping incomplete worker row", extra={"worker_id": worker_id})
            return None

        skills_raw = cls._get_value(row, "skills") or ""
        data = {
            "id": str(worker_id),
            "primary_skill": str(skill),
            "skills": [s.strip() for s in str(skills_raw).split(",") if s.strip()],
            "location": Coordinate(latitude=float(latitude), longitude=float(longitude)),
        }
        for column in _OPTIONAL_COLUMNS:
            value = cls._get_value(row, column)
            if value is not None:
                data[column] = value
        try:
            return WorkerProfile.model_validate(data)
        except ValueError as exc:
            logger.warning("Skipping invalid worker row: %s", exc, extra={"worker_id": worker_id})
            return None

    def _query(self, where: str = "", params: Optional[dict] = None) -> List[WorkerProfile]:
        sql = text(f"SELECT * FROM {self.table} {where}")
        with self.engine.connect() as conn:
            rows = conn.execute(sql, params or {}).mappings().all()
        workers = [self._row_to_worker(row) for row in rows]
        return [w for w in workers if w is not None]

    def list_workers(self) -> List[WorkerProfile]:
        return self._query()

    def get_worker(self, worker_id: str) -> Optional[WorkerProfile]:
        found = self._query("WHERE id = :worker_id", {"worker_id": worker_id})
        return found[0] if found else None
