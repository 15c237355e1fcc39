"""Delegation node - asks the delegation oracle who should run each task.

Tasks the oracle leaves out stay unassigned for this round and are never
dispatched; the monitor later fails them so that recovery can delegate them
again.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Callable, Collection, Dict, List, Mapping, Tuple

from supervisorAgent.graph.state import RunState, next_phase, ordered_tasks
from supervisorAgent.interfaces import DelegationOracle, maybe_await
from supervisorAgent.models import ExecutionStrategy, Phase, TaskStatus
from supervisorAgent.utils.error_handler import (
    DelegationError,
    ErrorCode,
    describe_exception,
    make_error_record,
    with_error_boundary,
)
from supervisorAgent.utils.logging_utils import log_node_entry, log_node_exit

LOGGER = logging.getLogger(__name__)


def parse_assignments(raw: Any, valid_ids: Collection[str]) -> Tuple[Dict[str, str], List[str]]:
    """Parse a delegation-oracle response into ``{task_id: worker_id}``.

    Accepts a mapping or a JSON string encoding one. Entries for unknown tasks
    or with an empty / non-string worker id are dropped.

    Returns:
        (assignments, ids of dropped entries)

    Raises:
        DelegationError: The response is neither a mapping nor JSON for one
    """
    if raw is None:
        return {}, []
    if isinstance(raw, (str, bytes)):
        try:
            raw = json.loads(raw) if raw.strip() else {}
        except json.JSONDecodeError as exc:
            raise DelegationError(
                f"Delegation response is not valid JSON: {exc.msg}",
                code=ErrorCode.DELEGATION_FAILED.value,
            ) from exc
    if not isinstance(raw, Mapping):
        raise DelegationError(
            f"Delegation response must be an object, got {type(raw).__name__}",
            code=ErrorCode.DELEGATION_FAILED.value,
        )

    valid = set(valid_ids)
    assignments: Dict[str, str] = {}
    dropped: List[str] = []
    for task_id, worker_id in raw.items():
        task_id = str(task_id)
        if task_id not in valid:
            LOGGER.warning(f"Delegation refers to unknown task {task_id}, ignored")
            dropped.append(task_id)
            continue
        if not isinstance(worker_id, str) or not worker_id.strip():
            LOGGER.warning(f"Delegation for task {task_id} has no usable worker id, ignored")
            dropped.append(task_id)
            continue
        assignments[task_id] = worker_id.strip()
    return assignments, dropped


async def request_assignments(
    delegator: DelegationOracle,
    summaries: List[Dict[str, Any]],
    *,
    strategy: ExecutionStrategy,
    capability_filter,
    valid_ids: Collection[str],
    node: str,
) -> Tuple[Dict[str, str], list]:
    """Call the delegation oracle and parse its answer.

    Oracle exceptions and malformed responses are recorded, never raised: the
    round simply assigns nothing.
    """
    try:
        raw = await maybe_await(delegator(summaries, ExecutionStrategy(strategy).value, capability_filter))
        assignments, _ = parse_assignments(raw, valid_ids)
    except Exception as exc:
        LOGGER.warning(f"Delegation failed in {node}, no tasks assigned this round: {describe_exception(exc)}")
        return {}, [make_error_record(
            f"Delegation failed: {describe_exception(exc)}",
            ErrorCode.DELEGATION_FAILED,
            node,
        )]
    return assignments, []


def build_delegation_node(*, delegator: DelegationOracle) -> Callable:
    """Build the delegation node.

    Args:
        delegator: Delegation oracle ``(task_summaries, strategy, filter) -> {task_id: worker_id}``

    Returns:
        Async node function for RunState
    """

    @with_error_boundary("delegation")
    async def delegation_node(state: RunState) -> dict:
        log_node_entry(LOGGER, "delegation", state)
        tasks = ordered_tasks(state)
        current_status = state.get("task_status") or {}

        assignments, errors = await request_assignments(
            delegator,
            [task.summary() for task in tasks],
            strategy=state.get("execution_strategy", ExecutionStrategy.SEQUENTIAL),
            capability_filter=state.get("capability_filter"),
            valid_ids=[task.id for task in tasks],
            node="delegation",
        )

        unassigned = [task.id for task in tasks if task.id not in assignments]
        if unassigned:
            LOGGER.warning(f"{len(unassigned)} task(s) left unassigned this round: {unassigned}")

        # Idempotent across rounds: only tasks without a status start as pending
        status_updates = {
            task_id: TaskStatus.PENDING
            for task_id in assignments
            if task_id not in current_status
        }

        updates = {
            "task_assignments": assignments,
            "task_status": status_updates,
            "delegation_rounds": state.get("delegation_rounds", 0) + 1,
            "errors": errors,
            "phase": next_phase(Phase.DELEGATION, Phase.EXECUTION),
        }
        log_node_exit(LOGGER, "delegation", updates)
        return updates

    return delegation_node


__all__ = ["build_delegation_node", "parse_assignments", "request_assignments"]
