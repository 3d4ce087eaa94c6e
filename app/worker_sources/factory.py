"""Factory helpers for choosing a worker directory at startup."""

from __future__ import annotations

from app import config
from app.worker_sources.base import WorkerDirectory
from app.worker_sources.memory import InMemoryWorkerDirectory
from utils.logging_utils import get_tagged_logger, mask_url

logger = get_tagged_logger(__name__, tag="worker_sources/factory")


DEFAULT_SOURCE_NAME = "memory"


def build_worker_directory(settings: config.Settings | None = None) -> WorkerDirectory:
    """Instantiate the configured worker directory."""
    settings = settings or config.settings
    source = (settings.worker_source or DEFAULT_SOURCE_NAME).lower()

    if source == "memory":
        logger.info("Using in-memory worker directory")
        return InMemoryWorkerDirectory()

    if source == "json":
        if not settings.workers_file:
            raise ValueError("workers_file must be set for the JSON worker source")
        return InMemoryWorkerDirectory.from_json_file(settings.workers_file)

    if source == "sql":
        from .sql_source import SqlWorkerDirectory

        db_url = settings.workers_database_url
        if not db_url:
            raise ValueError("workers_database_url must be set for the SQL worker source")
        logger.info("Using SQL worker directory", extra={"db_url": mask_url(db_url)})
        return SqlWorkerDirectory.from_url(db_url, table=settings.workers_table)

    raise ValueError(f"Unknown worker source '{source}'")
