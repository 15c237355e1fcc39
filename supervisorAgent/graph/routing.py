"""Routing logic for the supervisor graph.

Every node writes the phase it wants next into ``state["phase"]``; the routers
only read it back and check it against the edges that node is allowed to take.
A phase outside that set means the state machine itself is broken, which is
fatal (ControllerError).
"""

from __future__ import annotations

import logging
from typing import Literal

from supervisorAgent.graph.state import ALLOWED_TRANSITIONS, RunState
from supervisorAgent.models import Phase
from supervisorAgent.utils.error_handler import ControllerError
from supervisorAgent.utils.logging_utils import log_routing_decision

LOGGER = logging.getLogger("supervisor.routing")


def _route(from_node: Phase, state: RunState) -> str:
    phase = state.get("phase")
    try:
        phase = Phase(phase)
    except ValueError as exc:
        raise ControllerError(f"Unknown phase after {from_node.value}: {phase!r}") from exc

    if phase not in ALLOWED_TRANSITIONS[from_node]:
        raise ControllerError(f"Node {from_node.value} cannot route to {phase.value}")

    reason = ""
    if phase == Phase.MONITORING and from_node == Phase.MONITORING:
        reason = "work outstanding, polling again"
    elif phase == Phase.ERROR:
        errors = state.get("errors") or []
        reason = errors[-1].message if errors else "node failed"
    log_routing_decision(LOGGER, from_node.value, phase.value, reason)
    return phase.value


def route_after_planning(state: RunState) -> Literal["delegation", "error"]:
    """Planning always hands over to delegation unless the node broke."""
    return _route(Phase.PLANNING, state)


def route_after_delegation(state: RunState) -> Literal["execution", "error"]:
    return _route(Phase.DELEGATION, state)


def route_after_execution(state: RunState) -> Literal["monitoring", "error"]:
    return _route(Phase.EXECUTION, state)


def route_after_monitoring(
    state: RunState,
) -> Literal["monitoring", "handle_failure", "completion", "error"]:
    """Route after a progress poll.

    Returns:
        "monitoring": Tasks still in flight, poll again
        "handle_failure": Nothing in flight and at least one task failed
        "completion": Every task completed
        "error": The monitoring node itself failed
    """
    return _route(Phase.MONITORING, state)


def route_after_recovery(state: RunState) -> Literal["execution", "completion", "error"]:
    """Route after handle_failure.

    Returns:
        "execution": Failed tasks were re-delegated, dispatch them again
        "completion": No failures left, or the retry budget is spent
        "error": The recovery node itself failed
    """
    return _route(Phase.HANDLE_FAILURE, state)


__all__ = [
    "route_after_planning",
    "route_after_delegation",
    "route_after_execution",
    "route_after_monitoring",
    "route_after_recovery",
]
