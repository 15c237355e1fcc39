"""Recovery node - bounded re-delegation of failed tasks.

One recovery round costs one unit of the retry budget, whether or not the
delegation oracle finds a new worker for anything. Once the budget is spent the
failed tasks stay failed and the run moves on to completion without another
delegation call.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List

from supervisorAgent.graph.nodes.delegation import request_assignments
from supervisorAgent.graph.state import RunState, next_phase, ordered_tasks
from supervisorAgent.interfaces import DelegationOracle
from supervisorAgent.models import ExecutionStrategy, Phase, Task, TaskStatus
from supervisorAgent.utils.error_handler import ErrorCode, make_error_record, with_error_boundary
from supervisorAgent.utils.logging_utils import log_node_entry, log_node_exit

LOGGER = logging.getLogger(__name__)


def failed_tasks(state: RunState) -> List[Task]:
    """Failed tasks in creation order."""
    status = state.get("task_status") or {}
    return [task for task in ordered_tasks(state) if status.get(task.id) == TaskStatus.FAILED]


def retry_summary(task: Task, state: RunState) -> Dict[str, Any]:
    """Task summary extended with the context of its previous attempt."""
    summary = task.summary()
    summary["previous_error"] = (state.get("task_errors") or {}).get(task.id) or task.error
    summary["previous_worker"] = (state.get("task_assignments") or {}).get(task.id)
    summary["attempt"] = state.get("retry_count", 0) + 1
    return summary


def build_recovery_node(*, delegator: DelegationOracle) -> Callable:
    """Build the handle_failure node.

    Args:
        delegator: Delegation oracle, called with the failed tasks only

    Returns:
        Async node function for RunState
    """

    @with_error_boundary("handle_failure")
    async def recovery_node(state: RunState) -> dict:
        log_node_entry(LOGGER, "handle_failure", state)
        failed = failed_tasks(state)
        retry_count = state.get("retry_count", 0)
        max_retries = state.get("max_retries", 0)

        if not failed:
            LOGGER.info("No failed tasks, nothing to recover")
            return {"phase": next_phase(Phase.HANDLE_FAILURE, Phase.COMPLETION)}

        failed_ids = [task.id for task in failed]
        if retry_count >= max_retries:
            LOGGER.warning(
                f"Retry budget exhausted ({retry_count}/{max_retries}), "
                f"{len(failed_ids)} task(s) stay failed: {failed_ids}"
            )
            updates = {
                "errors": [make_error_record(
                    f"Retry budget exhausted after {retry_count} round(s); "
                    f"{len(failed_ids)} task(s) remain failed",
                    ErrorCode.RECOVERY_EXHAUSTED,
                    "handle_failure",
                )],
                "phase": next_phase(Phase.HANDLE_FAILURE, Phase.COMPLETION),
            }
            log_node_exit(LOGGER, "handle_failure", updates)
            return updates

        LOGGER.info(f"Recovery round {retry_count + 1}/{max_retries} for {failed_ids}")
        assignments, errors = await request_assignments(
            delegator,
            [retry_summary(task, state) for task in failed],
            strategy=state.get("execution_strategy", ExecutionStrategy.SEQUENTIAL),
            capability_filter=state.get("capability_filter"),
            valid_ids=failed_ids,
            node="handle_failure",
        )

        tasks = {task.id: task.with_status(TaskStatus.PENDING) for task in failed if task.id in assignments}
        status = {task_id: TaskStatus.PENDING for task_id in tasks}
        left = [task_id for task_id in failed_ids if task_id not in assignments]
        if left:
            LOGGER.warning(f"No new worker for {left}; they stay failed this round")

        updates = {
            "tasks": tasks,
            "task_status": status,
            "task_assignments": assignments,
            "retry_count": retry_count + 1,
            "delegation_rounds": state.get("delegation_rounds", 0) + 1,
            "errors": errors,
            "phase": next_phase(Phase.HANDLE_FAILURE, Phase.EXECUTION),
        }
        log_node_exit(LOGGER, "handle_failure", updates)
        return updates

    return recovery_node


__all__ = ["build_recovery_node", "failed_tasks", "retry_summary"]
