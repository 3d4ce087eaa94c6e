"""In-memory worker directory, optionally seeded from a JSON file."""

from __future__ import annotations

import json
import threading
from pathlib import Path
from typing import Iterable, List, Optional

from app.domain import WorkerProfile
from app.worker_sources.base import WorkerDirectory
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="worker_sources/in_memory")


class InMemoryWorkerDirectory(WorkerDirectory):
    """Thread-safe directory keyed by worker id; insertion order is kept."""

    def __init__(self, workers: Iterable[WorkerProfile] = ()) -> None:
        self._workers: dict[str, WorkerProfile] = {}
        self._lock = threading.Lock()
        for worker in workers:
            self.upsert(worker)

    @classmethod
    def from_json_file(cls, path: str | Path) -> "InMemoryWorkerDirectory":
        """Load a JSON array of worker objects."""
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
        if not isinstance(raw, list):
            raise ValueError(f"Expected a JSON array of workers in {path}")
        workers = [WorkerProfile.model_validate(item) for item in raw]
        logger.info("Loaded workers from file", extra={"path": str(path), "count": len(workers)})
        return cls(workers)

    def upsert(self, worker: WorkerProfile) -> None:
        with self._lock:
            self._workers[worker.id] = worker

    def remove(self, worker_id: str) -> None:
        with self._lock:
            self._workers.pop(worker_id, None)

    def list_workers(self) -> List[WorkerProfile]:
        with self._lock:
            return list(self._workers.values())

    def get_worker(self, worker_id: str) -> Optional[WorkerProfile]:
        with self._lock:
            return self._workers.get(worker_id)
