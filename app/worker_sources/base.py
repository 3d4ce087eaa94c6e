"""Interface for anything that can list searchable workers."""

from __future__ import annotations

from typing import List, Optional, Protocol

from app.domain import WorkerProfile


class WorkerDirectory(Protocol):
    """Read access to worker profiles."""

    def list_workers(self) -> List[WorkerProfile]:
        """Return every known worker profile."""
        ...

    def get_worker(self, worker_id: str) -> Optional[WorkerProfile]:
        """Return one worker, or None if unknown."""
        ...
