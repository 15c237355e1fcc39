"""Data model exports."""

from .task import (
    DEFAULT_PRIORITY,
    ErrorRecord,
    ExecutionResult,
    ExecutionStrategy,
    Phase,
    RunConfig,
    RunStatus,
    Task,
    TaskReport,
    TaskStats,
    TaskStatus,
    generate_task_id,
)

__all__ = [
    "DEFAULT_PRIORITY",
    "ErrorRecord",
    "ExecutionResult",
    "ExecutionStrategy",
    "Phase",
    "RunConfig",
    "RunStatus",
    "Task",
    "TaskReport",
    "TaskStats",
    "TaskStatus",
    "generate_task_id",
]
