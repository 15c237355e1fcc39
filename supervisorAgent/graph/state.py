"""Run state for the supervisor graph.

The per-task maps are reducer-merged: a node returns only the keys it changed
and LangGraph folds them into the current snapshot (later writes for a key
overwrite, keys accumulate). ``errors`` is append-only.
"""

from __future__ import annotations

import operator
import time
import uuid
from typing import Annotated, Any, Dict, Iterable, List, Optional, TypedDict

from supervisorAgent.models import (
    ErrorRecord,
    ExecutionResult,
    ExecutionStrategy,
    Phase,
    Task,
    TaskStatus,
)
from supervisorAgent.utils.error_handler import ControllerError


def merge_dicts(current: Optional[Dict], update: Optional[Dict]) -> Dict:
    """Reducer: shallow merge where keys from ``update`` win."""
    return {**(current or {}), **(update or {})}


class RunState(TypedDict, total=False):
    """State tracked across one orchestration run."""

    # ========== Identity and input ==========
    run_id: str
    goal: str
    context: Dict[str, Any]
    supplied_tasks: Optional[List[Any]]  # Planning bypass (tasks given by the caller)

    # ========== Phase machine ==========
    phase: Phase

    # ========== Task store ==========
    tasks: Annotated[Dict[str, Task], merge_dicts]
    task_order: List[str]  # Task ids in creation order
    task_assignments: Annotated[Dict[str, str], merge_dicts]
    task_status: Annotated[Dict[str, TaskStatus], merge_dicts]
    task_results: Annotated[Dict[str, Any], merge_dicts]
    task_errors: Annotated[Dict[str, str], merge_dicts]

    # ========== Execution control ==========
    execution_strategy: ExecutionStrategy
    capability_filter: Optional[List[str]]
    retry_count: int
    max_retries: int
    delegation_rounds: int  # Delegation oracle calls (initial + recovery)
    monitor_polls: int

    # ========== Error log and timing ==========
    errors: Annotated[List[ErrorRecord], operator.add]
    start_time: float
    end_time: Optional[float]
    result: Optional[ExecutionResult]


ALLOWED_TRANSITIONS: Dict[Phase, frozenset] = {
    Phase.PLANNING: frozenset({Phase.DELEGATION, Phase.ERROR}),
    Phase.DELEGATION: frozenset({Phase.EXECUTION, Phase.ERROR}),
    Phase.EXECUTION: frozenset({Phase.MONITORING, Phase.ERROR}),
    Phase.MONITORING: frozenset({Phase.MONITORING, Phase.HANDLE_FAILURE, Phase.COMPLETION, Phase.ERROR}),
    Phase.HANDLE_FAILURE: frozenset({Phase.EXECUTION, Phase.COMPLETION, Phase.ERROR}),
    Phase.COMPLETION: frozenset(),
    Phase.ERROR: frozenset(),
}


def next_phase(current: Phase, target: Phase) -> Phase:
    """Validate a phase transition and return ``target``.

    Raises:
        ControllerError: The edge is not part of the phase graph
    """
    if target not in ALLOWED_TRANSITIONS[Phase(current)]:
        raise ControllerError(f"Illegal phase transition: {Phase(current).value} -> {Phase(target).value}")
    return target


def create_initial_state(
    goal: str,
    *,
    context: Optional[Dict[str, Any]] = None,
    execution_strategy: ExecutionStrategy = ExecutionStrategy.SEQUENTIAL,
    max_retries: int = 3,
    capability_filter: Optional[List[str]] = None,
    tasks: Optional[Iterable[Any]] = None,
    run_id: Optional[str] = None,
) -> RunState:
    """Create a fresh RunState in the ``planning`` phase.

    Args:
        goal: Goal text handed to the planning oracle
        context: Free-form context passed to the oracles
        execution_strategy: Dispatch strategy for this run
        max_retries: Recovery budget for this run
        capability_filter: Capabilities every assigned worker must have
        tasks: Optional pre-built tasks; planning then skips the oracle
        run_id: Run identifier (generated if omitted)
    """
    return RunState(
        run_id=run_id or uuid.uuid4().hex,
        goal=goal,
        context=dict(context or {}),
        supplied_tasks=list(tasks) if tasks is not None else None,
        phase=Phase.PLANNING,
        tasks={},
        task_order=[],
        task_assignments={},
        task_status={},
        task_results={},
        task_errors={},
        execution_strategy=ExecutionStrategy(execution_strategy),
        capability_filter=list(capability_filter) if capability_filter else None,
        retry_count=0,
        max_retries=max_retries,
        delegation_rounds=0,
        monitor_polls=0,
        errors=[],
        start_time=time.time(),
        end_time=None,
        result=None,
    )


def ordered_tasks(state: RunState) -> List[Task]:
    """Tasks in creation order (``task_order`` first, then any stragglers)."""
    tasks = state.get("tasks") or {}
    order = list(state.get("task_order") or [])
    seen = set(order)
    order.extend(task_id for task_id in tasks if task_id not in seen)
    return [tasks[task_id] for task_id in order if task_id in tasks]


__all__ = [
    "RunState",
    "merge_dicts",
    "ALLOWED_TRANSITIONS",
    "next_phase",
    "create_initial_state",
    "ordered_tasks",
]
