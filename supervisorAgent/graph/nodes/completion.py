"""Terminal nodes: completion, error, and the pure result aggregator."""

from __future__ import annotations

import logging
import time
from typing import Callable, Dict, Optional

from supervisorAgent.graph.nodes.planning import build_fallback_task
from supervisorAgent.graph.state import RunState, merge_dicts, ordered_tasks
from supervisorAgent.models import (
    ErrorRecord,
    ExecutionResult,
    Phase,
    RunStatus,
    Task,
    TaskReport,
    TaskStats,
    TaskStatus,
)
from supervisorAgent.utils.error_handler import ErrorCode, make_error_record
from supervisorAgent.utils.logging_utils import log_node_entry, log_run_summary

LOGGER = logging.getLogger(__name__)

_TERMINAL_STATUSES = (TaskStatus.COMPLETED, TaskStatus.FAILED)


def aggregate_results(state: RunState) -> ExecutionResult:
    """Build the ExecutionResult for a terminal run state.

    Pure: the output depends only on ``state``, so calling it twice on the
    same state gives identical results. Elapsed time is taken from
    ``start_time``/``end_time`` (0 while ``end_time`` is unset).
    """
    status_map = state.get("task_status") or {}
    task_results = state.get("task_results") or {}
    tasks = ordered_tasks(state)

    total = len(tasks)
    completed = sum(1 for task in tasks if status_map.get(task.id) == TaskStatus.COMPLETED)
    failed = sum(1 for task in tasks if status_map.get(task.id) == TaskStatus.FAILED)

    if failed == 0:
        status = RunStatus.SUCCESS
    elif failed == total:
        status = RunStatus.FAILED
    else:
        status = RunStatus.PARTIAL

    # Keyed by name; a later task with the same name overwrites an earlier one
    results = {
        task.display_name: task_results.get(task.id)
        for task in tasks
        if status_map.get(task.id) == TaskStatus.COMPLETED
    }

    assignments = state.get("task_assignments") or {}
    task_errors = state.get("task_errors") or {}
    reports = [
        TaskReport(
            id=task.id,
            name=task.display_name,
            status=status_map.get(task.id, task.status),
            priority=task.priority,
            worker_id=assignments.get(task.id),
            error=task_errors.get(task.id) if status_map.get(task.id) == TaskStatus.FAILED else None,
        )
        for task in tasks
    ]

    start_time = state.get("start_time") or 0.0
    end_time = state.get("end_time")
    elapsed = max(0.0, end_time - start_time) if end_time is not None else 0.0

    return ExecutionResult(
        status=status,
        summary=f"Completed {completed} of {total} tasks",
        results=results,
        stats=TaskStats(
            total=total,
            completed=completed,
            failed=failed,
            success_rate=(completed / total) if total else 0.0,
        ),
        tasks=reports,
        errors=list(state.get("errors") or []),
        elapsed_seconds=elapsed,
        run_id=state.get("run_id"),
    )


def fail_outstanding(state: RunState, reason: str) -> Dict[str, Dict]:
    """Deltas that mark every task without a terminal status as failed."""
    status_map = state.get("task_status") or {}
    tasks: Dict[str, Task] = {}
    status: Dict[str, TaskStatus] = {}
    task_errors: Dict[str, str] = {}
    for task in ordered_tasks(state):
        if status_map.get(task.id) in _TERMINAL_STATUSES:
            continue
        tasks[task.id] = task.with_status(TaskStatus.FAILED, error=reason)
        status[task.id] = TaskStatus.FAILED
        task_errors[task.id] = reason
    return {"tasks": tasks, "task_status": status, "task_errors": task_errors}


def _apply(state: RunState, updates: dict) -> RunState:
    """Merge ``updates`` into ``state`` with the same reducers the graph uses."""
    merged = dict(state)
    for key, value in updates.items():
        if key in ("tasks", "task_status", "task_results", "task_errors", "task_assignments"):
            merged[key] = merge_dicts(state.get(key), value)
        elif key == "errors":
            merged[key] = list(state.get(key) or []) + list(value)
        else:
            merged[key] = value
    return merged


def _abort_updates(state: RunState, last_error: Optional[ErrorRecord]) -> dict:
    reason = f"Run aborted: {last_error.message}" if last_error else "Run aborted"
    seeded = None
    if not state.get("tasks"):
        # Aborted before planning finished: the goal still counts as one failed task
        seeded = build_fallback_task(state.get("goal") or "")
        state = _apply(state, {"tasks": {seeded.id: seeded}, "task_order": [seeded.id]})
    updates = fail_outstanding(state, reason)
    if seeded is not None:
        updates["task_order"] = [seeded.id]
    if updates["tasks"]:
        LOGGER.warning(f"Failing {len(updates['tasks'])} unfinished task(s): {reason}")
    return updates


def finalize_aborted_state(
    state: RunState,
    message: str,
    code: ErrorCode = ErrorCode.RUN_ABORTED,
    node: str = "orchestrator",
) -> RunState:
    """Close a run that cannot continue (used by the host on timeouts and limits).

    Records the error, fails every unfinished task, stamps ``end_time`` and
    attaches the aggregated result. Returns the new state.
    """
    record = make_error_record(message, code, node)
    state = _apply(state, {"errors": [record], "phase": Phase.ERROR})
    state = _apply(state, _abort_updates(state, record))
    state = _apply(state, {"end_time": state.get("end_time") or time.time()})
    state["result"] = aggregate_results(state)
    return state


def build_completion_node() -> Callable:
    """Build the completion node (aggregates once, at the terminal phase)."""

    def completion_node(state: RunState) -> dict:
        log_node_entry(LOGGER, "completion", state)
        end_time = state.get("end_time") or time.time()
        result = aggregate_results({**state, "end_time": end_time})
        log_run_summary(LOGGER, result)
        return {"end_time": end_time, "result": result}

    return completion_node


def build_error_node() -> Callable:
    """Build the error node.

    Unfinished tasks are failed with the last recorded error so the final
    counts still add up, then the run is aggregated like a normal completion.
    """

    def error_node(state: RunState) -> dict:
        log_node_entry(LOGGER, "error", state)
        errors = state.get("errors") or []
        updates = _abort_updates(state, errors[-1] if errors else None)
        updates["end_time"] = state.get("end_time") or time.time()
        updates["result"] = aggregate_results(_apply(state, updates))
        log_run_summary(LOGGER, updates["result"])
        return updates

    return error_node


__all__ = [
    "aggregate_results",
    "fail_outstanding",
    "finalize_aborted_state",
    "build_completion_node",
    "build_error_node",
]
