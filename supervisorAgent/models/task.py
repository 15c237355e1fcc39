"""Task records and run-level result models.

Tasks are immutable pydantic models. Nodes never mutate a Task in place; they
publish a copy (``task.model_copy(update=...)``) through the ``tasks`` reducer
so every graph step sees a consistent snapshot.
"""

from __future__ import annotations

import time
import uuid
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


DEFAULT_PRIORITY = 5
"""Neutral priority for tasks that do not state one."""


class TaskStatus(str, Enum):
    """Lifecycle of a single task inside one run."""

    PENDING = "pending"
    ASSIGNED = "assigned"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


class Phase(str, Enum):
    """Phases of the orchestration state machine (one active at a time)."""

    PLANNING = "planning"
    DELEGATION = "delegation"
    EXECUTION = "execution"
    MONITORING = "monitoring"
    HANDLE_FAILURE = "handle_failure"
    COMPLETION = "completion"
    ERROR = "error"


class ExecutionStrategy(str, Enum):
    """Dispatch ordering policy."""

    SEQUENTIAL = "sequential"
    PARALLEL = "parallel"
    PRIORITIZED = "prioritized"


class RunStatus(str, Enum):
    """Overall outcome reported to the host."""

    SUCCESS = "success"
    PARTIAL = "partial"
    FAILED = "failed"


def generate_task_id() -> str:
    """Return a short unique task id (UUID prefix)."""
    return f"task-{uuid.uuid4().hex[:8]}"


class Task(BaseModel):
    """A unit of work tracked by the orchestrator.

    Accepts both snake_case and camelCase keys (``requiredCapabilities``,
    ``createdAt``) so planner output from other systems validates as-is.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    id: str = Field(
        default_factory=generate_task_id,
        min_length=1,
        validation_alias=AliasChoices("id", "task_id", "taskId"),
    )
    name: str = ""
    description: str = ""
    priority: int = DEFAULT_PRIORITY
    required_capabilities: List[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("required_capabilities", "requiredCapabilities", "capabilities"),
    )
    status: TaskStatus = TaskStatus.PENDING
    result: Any = None
    error: Optional[str] = None
    created_at: float = Field(
        default_factory=time.time,
        validation_alias=AliasChoices("created_at", "createdAt"),
    )
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("required_capabilities", mode="before")
    @classmethod
    def _coerce_capabilities(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, str):
            return [value]
        return value

    @field_validator("priority", mode="before")
    @classmethod
    def _coerce_priority(cls, value: Any) -> Any:
        return DEFAULT_PRIORITY if value is None else value

    @property
    def display_name(self) -> str:
        """Name used in result maps (falls back to the id)."""
        return self.name or self.id

    def with_status(
        self,
        status: TaskStatus,
        *,
        result: Any = None,
        error: Optional[str] = None,
    ) -> "Task":
        """Return a copy in ``status``; result/error are only kept where they apply."""
        return self.model_copy(
            update={
                "status": status,
                "result": result if status == TaskStatus.COMPLETED else None,
                "error": error if status == TaskStatus.FAILED else None,
            }
        )

    def summary(self) -> Dict[str, Any]:
        """Serializable summary handed to the delegation oracle."""
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "priority": self.priority,
            "required_capabilities": list(self.required_capabilities),
            "metadata": dict(self.metadata),
        }


class ErrorRecord(BaseModel):
    """One entry of the run's error log."""

    model_config = ConfigDict(frozen=True)

    message: str
    code: str
    node: str
    timestamp: float = Field(default_factory=time.time)
    task_id: Optional[str] = None


class TaskReport(BaseModel):
    """Final state of one task as reported in the ExecutionResult."""

    id: str
    name: str
    status: TaskStatus
    priority: int = DEFAULT_PRIORITY
    worker_id: Optional[str] = None
    error: Optional[str] = None


class TaskStats(BaseModel):
    total: int = 0
    completed: int = 0
    failed: int = 0
    success_rate: float = 0.0


class ExecutionResult(BaseModel):
    """Final report returned by ``Orchestrator.submit``."""

    status: RunStatus
    summary: str
    results: Dict[str, Any] = Field(default_factory=dict)
    stats: TaskStats = Field(default_factory=TaskStats)
    tasks: List[TaskReport] = Field(default_factory=list)
    errors: List[ErrorRecord] = Field(default_factory=list)
    elapsed_seconds: float = 0.0
    run_id: Optional[str] = None


class RunConfig(BaseModel):
    """Per-run overrides for :meth:`Orchestrator.submit`.

    Unset fields fall back to ``OrchestrationSettings``.
    """

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    execution_strategy: Optional[ExecutionStrategy] = Field(
        default=None,
        validation_alias=AliasChoices("execution_strategy", "executionStrategy", "strategy"),
    )
    max_retries: Optional[int] = Field(
        default=None,
        ge=0,
        validation_alias=AliasChoices("max_retries", "maxRetries"),
    )
    capability_filter: Optional[List[str]] = Field(
        default=None,
        validation_alias=AliasChoices("capability_filter", "capabilityFilter", "filter"),
    )


__all__ = [
    "DEFAULT_PRIORITY",
    "TaskStatus",
    "Phase",
    "ExecutionStrategy",
    "RunStatus",
    "generate_task_id",
    "Task",
    "ErrorRecord",
    "TaskReport",
    "TaskStats",
    "ExecutionResult",
    "RunConfig",
]
