"""Monitoring node - the run's polling loop.

Each invocation waits ``poll_interval`` seconds, queries the progress oracle
once, merges terminal reports into the task store and decides where the run
goes next. The node re-enters itself while work is outstanding, so every
invocation has to be a fresh, idempotent check: reports for tasks that are not
``in_progress`` any more are ignored.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Dict, List, Mapping, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from supervisorAgent.config.settings import OrchestrationSettings
from supervisorAgent.graph.state import RunState, next_phase
from supervisorAgent.interfaces import ProgressOracle, maybe_await
from supervisorAgent.models import Phase, TaskStatus
from supervisorAgent.utils.error_handler import (
    ErrorCode,
    describe_exception,
    make_error_record,
    with_error_boundary,
)
from supervisorAgent.utils.logging_utils import log_node_entry, log_node_exit

LOGGER = logging.getLogger(__name__)

UNASSIGNED_ERROR = "No worker assigned"
DEFAULT_FAILURE = "Task failed without an error message"


class ProgressUpdate(BaseModel):
    """One progress report from the progress oracle."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore", from_attributes=True)

    task_id: str = Field(validation_alias=AliasChoices("task_id", "taskId", "id"))
    status: TaskStatus
    result: Any = None
    error: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("task_id", mode="before")
    @classmethod
    def _id_as_text(cls, value: Any) -> Any:
        return str(value) if isinstance(value, int) else value

    @model_validator(mode="after")
    def _error_from_metadata(self) -> "ProgressUpdate":
        if self.error is None and self.metadata.get("error"):
            self.error = str(self.metadata["error"])
        return self


def normalize_progress(raw: Any) -> List[ProgressUpdate]:
    """Turn a progress-oracle response into a list of ProgressUpdate.

    Accepts a list of reports, a single report, or a wrapper mapping with a
    ``tasks`` key. Reports that do not validate are skipped.
    """
    if raw is None:
        return []
    if isinstance(raw, Mapping):
        if "tasks" in raw and isinstance(raw["tasks"], (list, tuple)):
            raw = raw["tasks"]
        else:
            raw = [raw]
    elif isinstance(raw, ProgressUpdate) or not isinstance(raw, (list, tuple)):
        raw = [raw]

    updates = []
    for entry in raw:
        if isinstance(entry, ProgressUpdate):
            updates.append(entry)
            continue
        try:
            updates.append(ProgressUpdate.model_validate(entry))
        except ValidationError as exc:
            LOGGER.warning(f"Ignoring malformed progress report: {exc.errors()[0].get('msg')}")
    return updates


def merge_progress(state: RunState, updates: List[ProgressUpdate]) -> dict:
    """Fold terminal reports into task-store deltas.

    Only ``completed``/``failed`` reports for tasks currently ``in_progress`` are
    applied. Returns the deltas for tasks/task_status/task_results/task_errors
    plus ``errors`` records for failures.
    """
    tasks = state.get("tasks") or {}
    current = state.get("task_status") or {}

    delta = {"tasks": {}, "task_status": {}, "task_results": {}, "task_errors": {}, "errors": []}
    for update in updates:
        task = tasks.get(update.task_id)
        if task is None:
            LOGGER.debug(f"Progress for unknown task {update.task_id} ignored")
            continue
        if update.status not in (TaskStatus.COMPLETED, TaskStatus.FAILED):
            continue
        if current.get(update.task_id) != TaskStatus.IN_PROGRESS or update.task_id in delta["task_status"]:
            continue

        if update.status == TaskStatus.COMPLETED:
            delta["tasks"][task.id] = task.with_status(TaskStatus.COMPLETED, result=update.result)
            delta["task_results"][task.id] = update.result
            LOGGER.info(f"Task {task.id} completed")
        else:
            error = update.error or DEFAULT_FAILURE
            delta["tasks"][task.id] = task.with_status(TaskStatus.FAILED, error=error)
            delta["task_errors"][task.id] = error
            delta["errors"].append(make_error_record(error, ErrorCode.TASK_FAILED, "monitoring", task_id=task.id))
            LOGGER.warning(f"Task {task.id} failed: {error}")
        delta["task_status"][task.id] = update.status
    return delta


def decide_next_phase(
    status: Mapping[str, TaskStatus],
    assignments: Mapping[str, str],
) -> Phase:
    """Monitoring decision on the merged status map.

    Returns MONITORING while anything is in flight (in_progress, or pending
    with a worker), HANDLE_FAILURE if any task failed, otherwise COMPLETION.
    """
    for task_id, task_status in status.items():
        if task_status == TaskStatus.IN_PROGRESS:
            return Phase.MONITORING
        if task_status == TaskStatus.PENDING and assignments.get(task_id):
            return Phase.MONITORING
    if any(task_status == TaskStatus.FAILED for task_status in status.values()):
        return Phase.HANDLE_FAILURE
    return Phase.COMPLETION


def build_monitoring_node(
    *,
    progress: ProgressOracle,
    settings: OrchestrationSettings,
) -> Callable:
    """Build the monitoring node.

    Args:
        progress: Progress oracle ``() -> [{task_id, status, result?, error?}]``
        settings: Orchestration settings (poll interval)

    Returns:
        Async node function for RunState
    """

    @with_error_boundary("monitoring")
    async def monitoring_node(state: RunState) -> dict:
        log_node_entry(LOGGER, "monitoring", state, level=logging.DEBUG)
        await asyncio.sleep(settings.poll_interval)

        errors = []
        try:
            updates = normalize_progress(await maybe_await(progress()))
        except Exception as exc:
            LOGGER.warning(f"Progress poll failed, treating as no updates: {describe_exception(exc)}")
            errors.append(make_error_record(
                f"Progress poll failed: {describe_exception(exc)}",
                ErrorCode.MONITOR_POLL_FAILED,
                "monitoring",
            ))
            updates = []

        delta = merge_progress(state, updates)
        delta["errors"] = errors + delta["errors"]

        merged_status = {**(state.get("task_status") or {}), **delta["task_status"]}
        assignments = state.get("task_assignments") or {}
        target = decide_next_phase(merged_status, assignments)

        if target != Phase.MONITORING:
            # Tasks no delegation round ever assigned count as failed so recovery retries them
            tasks = state.get("tasks") or {}
            for task_id, task in tasks.items():
                if task_id in merged_status:
                    continue
                delta["tasks"][task_id] = task.with_status(TaskStatus.FAILED, error=UNASSIGNED_ERROR)
                delta["task_status"][task_id] = TaskStatus.FAILED
                delta["task_errors"][task_id] = UNASSIGNED_ERROR
                delta["errors"].append(make_error_record(
                    UNASSIGNED_ERROR, ErrorCode.TASK_UNASSIGNED, "monitoring", task_id=task_id
                ))
                target = Phase.HANDLE_FAILURE

        delta["monitor_polls"] = state.get("monitor_polls", 0) + 1
        delta["phase"] = next_phase(Phase.MONITORING, target)
        log_node_exit(LOGGER, "monitoring", delta, level=logging.DEBUG)
        return delta

    return monitoring_node


__all__ = [
    "ProgressUpdate",
    "normalize_progress",
    "merge_progress",
    "decide_next_phase",
    "build_monitoring_node",
    "UNASSIGNED_ERROR",
]
