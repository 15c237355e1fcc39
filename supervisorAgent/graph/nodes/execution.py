"""Execution node - hands eligible tasks off to their assigned workers.

Eligible means ``pending`` with an assignment. Hand-off is fire-and-forget: the
node returns as soon as every eligible task has been given to its worker and
leaves completion detection to the monitor.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Dict, List, Optional, Tuple

from supervisorAgent.graph.state import RunState, next_phase, ordered_tasks
from supervisorAgent.interfaces import TaskDispatcher, maybe_await
from supervisorAgent.models import ExecutionStrategy, Phase, Task, TaskStatus
from supervisorAgent.utils.error_handler import (
    ErrorCode,
    describe_exception,
    make_error_record,
    with_error_boundary,
)
from supervisorAgent.utils.logging_utils import log_node_entry, log_node_exit

LOGGER = logging.getLogger(__name__)


def select_eligible(state: RunState) -> List[Task]:
    """Pending tasks that have a worker, in creation order."""
    status = state.get("task_status") or {}
    assignments = state.get("task_assignments") or {}
    return [
        task
        for task in ordered_tasks(state)
        if status.get(task.id) == TaskStatus.PENDING and assignments.get(task.id)
    ]


def order_for_strategy(tasks: List[Task], strategy: ExecutionStrategy) -> List[Task]:
    """Dispatch order for ``strategy``.

    sequential: ascending creation time (stable on creation order)
    parallel: creation order (all handed off together)
    prioritized: descending priority, ties by ascending id
    """
    strategy = ExecutionStrategy(strategy)
    if strategy == ExecutionStrategy.PRIORITIZED:
        return sorted(tasks, key=lambda task: (-task.priority, task.id))
    if strategy == ExecutionStrategy.SEQUENTIAL:
        return sorted(tasks, key=lambda task: task.created_at)
    return list(tasks)


async def _hand_off(dispatcher: TaskDispatcher, task: Task, worker_id: str) -> Optional[str]:
    """Dispatch one task; return the error text if the hand-off raised."""
    running = task.with_status(TaskStatus.IN_PROGRESS)
    try:
        await maybe_await(dispatcher(running, worker_id))
    except Exception as exc:
        LOGGER.warning(f"Dispatch of {task.id} to {worker_id} failed: {describe_exception(exc)}")
        return describe_exception(exc)
    LOGGER.debug(f"Dispatched {task.id} to {worker_id}")
    return None


def build_execution_node(*, dispatcher: TaskDispatcher) -> Callable:
    """Build the execution (dispatch) node.

    Args:
        dispatcher: ``(task, worker_id)`` hand-off to the worker's entry point

    Returns:
        Async node function for RunState
    """

    @with_error_boundary("execution")
    async def execution_node(state: RunState) -> dict:
        log_node_entry(LOGGER, "execution", state)
        strategy = ExecutionStrategy(state.get("execution_strategy", ExecutionStrategy.SEQUENTIAL))
        assignments = state.get("task_assignments") or {}

        eligible = order_for_strategy(select_eligible(state), strategy)
        if not eligible:
            LOGGER.info("No eligible tasks, moving straight to monitoring")
            return {"phase": next_phase(Phase.EXECUTION, Phase.MONITORING)}

        LOGGER.info(
            f"Dispatching {len(eligible)} task(s) ({strategy.value}): "
            f"{[task.id for task in eligible]}"
        )

        outcomes: List[Tuple[Task, Optional[str]]] = []
        if strategy == ExecutionStrategy.PARALLEL:
            errors = await asyncio.gather(
                *(_hand_off(dispatcher, task, assignments[task.id]) for task in eligible)
            )
            outcomes = list(zip(eligible, errors))
        else:
            for task in eligible:
                outcomes.append((task, await _hand_off(dispatcher, task, assignments[task.id])))

        tasks: Dict[str, Task] = {}
        status: Dict[str, TaskStatus] = {}
        task_errors: Dict[str, str] = {}
        errors = []
        for task, error in outcomes:
            if error is None:
                tasks[task.id] = task.with_status(TaskStatus.IN_PROGRESS)
                status[task.id] = TaskStatus.IN_PROGRESS
                continue
            # in_progress -> failed within the same step
            tasks[task.id] = task.with_status(TaskStatus.FAILED, error=error)
            status[task.id] = TaskStatus.FAILED
            task_errors[task.id] = error
            errors.append(make_error_record(
                f"Dispatch to {assignments[task.id]} failed: {error}",
                ErrorCode.DISPATCH_FAILED,
                "execution",
                task_id=task.id,
            ))

        updates = {
            "tasks": tasks,
            "task_status": status,
            "task_errors": task_errors,
            "errors": errors,
            "phase": next_phase(Phase.EXECUTION, Phase.MONITORING),
        }
        log_node_exit(LOGGER, "execution", updates)
        return updates

    return execution_node


__all__ = ["build_execution_node", "select_eligible", "order_for_strategy"]
