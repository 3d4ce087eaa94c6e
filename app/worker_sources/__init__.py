"""Worker directories supplying locatable worker profiles."""

from .base import WorkerDirectory
from .factory import build_worker_directory
from .memory import InMemoryWorkerDirectory
from .sql_source import SqlWorkerDirectory

__all__ = [
    "WorkerDirectory",
    "build_worker_directory",
    "InMemoryWorkerDirectory",
    "SqlWorkerDirectory",
]
