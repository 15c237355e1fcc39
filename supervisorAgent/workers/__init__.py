"""Worker cards, registry, YAML scanner and the in-process worker pool."""

from .schema import WorkerCard, WorkerMetrics
from .registry import WorkerRegistry
from .scanner import import_handler, load_worker_registry
from .pool import WorkerPool

__all__ = [
    "WorkerCard",
    "WorkerMetrics",
    "WorkerRegistry",
    "WorkerPool",
    "import_handler",
    "load_worker_registry",
]
