"""Interfaces for the orchestrator's external collaborators.

Each collaborator may be a plain function or a coroutine function; the graph
nodes call them through :func:`maybe_await`.
"""

from __future__ import annotations

import inspect
from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence

from supervisorAgent.models import Task


class PlanningOracle(Protocol):
    """Turns a goal into task candidates.

    May return a list of tasks, a mapping keyed by task id, a single task, or
    nothing at all. Entries may be ``Task`` objects, mappings or plain strings.
    """

    def __call__(self, goal: str, context: Mapping[str, Any]) -> Any:
        ...


class DelegationOracle(Protocol):
    """Proposes ``{task_id: worker_id}`` for serialized task summaries.

    The response may also be a JSON string encoding the same mapping.
    """

    def __call__(
        self,
        tasks: Sequence[Dict[str, Any]],
        strategy: str,
        capability_filter: Optional[List[str]],
    ) -> Any:
        ...


class TaskDispatcher(Protocol):
    """Fire-and-forget hand-off of a task to a worker's execution entry point."""

    def __call__(self, task: Task, worker_id: str) -> Any:
        ...


class ProgressOracle(Protocol):
    """Returns ``[{task_id, status, result?, error?}, ...]`` progress updates."""

    def __call__(self) -> Any:
        ...


async def maybe_await(value: Any) -> Any:
    """Await ``value`` if it is awaitable, otherwise return it unchanged."""
    if inspect.isawaitable(value):
        return await value
    return value


__all__ = [
    "PlanningOracle",
    "DelegationOracle",
    "TaskDispatcher",
    "ProgressOracle",
    "maybe_await",
]
