"""Graph Builder for supervisorAgent.

Supervisor Graph Architecture:

    START → planning → delegation → execution → monitoring ⟲ → completion → END
                                        ↑            |
                                        └── handle_failure ──→ completion
                                             (retry loop)

    Any phase node that fails routes to ``error`` → END.

Each node is a phase handler; it returns a state delta including the next
``phase``, and the routers map that phase onto the matching node.
"""

from __future__ import annotations

import logging
from typing import Optional

from langgraph.graph import END, START, StateGraph

from supervisorAgent.config.settings import OrchestrationSettings
from supervisorAgent.graph.nodes import (
    build_completion_node,
    build_delegation_node,
    build_error_node,
    build_execution_node,
    build_monitoring_node,
    build_planning_node,
    build_recovery_node,
)
from supervisorAgent.graph.routing import (
    route_after_delegation,
    route_after_execution,
    route_after_monitoring,
    route_after_planning,
    route_after_recovery,
)
from supervisorAgent.graph.state import RunState
from supervisorAgent.interfaces import DelegationOracle, PlanningOracle, ProgressOracle, TaskDispatcher
from supervisorAgent.models import Phase
from supervisorAgent.utils.error_handler import ControllerError

LOGGER = logging.getLogger(__name__)


def build_supervisor_graph(
    *,
    planner: PlanningOracle,
    delegator: DelegationOracle,
    dispatcher: TaskDispatcher,
    progress: ProgressOracle,
    settings: Optional[OrchestrationSettings] = None,
    checkpointer=None,
):
    """Build the supervisor orchestration graph.

    Args:
        planner: Planning oracle
        delegator: Delegation oracle (initial round and recovery rounds)
        dispatcher: Hand-off to a worker's execution entry point
        progress: Progress oracle polled by the monitor
        settings: Orchestration settings (defaults if None)
        checkpointer: Optional LangGraph checkpointer

    Returns:
        Compiled LangGraph application

    Raises:
        ControllerError: A collaborator is missing or the graph cannot be compiled
    """
    for name, collaborator in (
        ("planner", planner),
        ("delegator", delegator),
        ("dispatcher", dispatcher),
        ("progress", progress),
    ):
        if not callable(collaborator):
            raise ControllerError(f"{name} must be callable, got {type(collaborator).__name__}")

    settings = settings or OrchestrationSettings()

    # ========== Build Nodes ==========
    planning_node = build_planning_node(planner=planner, settings=settings)
    delegation_node = build_delegation_node(delegator=delegator)
    execution_node = build_execution_node(dispatcher=dispatcher)
    monitoring_node = build_monitoring_node(progress=progress, settings=settings)
    recovery_node = build_recovery_node(delegator=delegator)
    completion_node = build_completion_node()
    error_node = build_error_node()

    # ========== Build Graph ==========
    graph = StateGraph(RunState)

    graph.add_node(Phase.PLANNING.value, planning_node)
    graph.add_node(Phase.DELEGATION.value, delegation_node)
    graph.add_node(Phase.EXECUTION.value, execution_node)
    graph.add_node(Phase.MONITORING.value, monitoring_node)
    graph.add_node(Phase.HANDLE_FAILURE.value, recovery_node)
    graph.add_node(Phase.COMPLETION.value, completion_node)
    graph.add_node(Phase.ERROR.value, error_node)

    # ========== Routing ==========
    graph.add_edge(START, "planning")

    graph.add_conditional_edges(
        "planning",
        route_after_planning,
        {
            "delegation": "delegation",
            "error": "error",
        }
    )

    graph.add_conditional_edges(
        "delegation",
        route_after_delegation,
        {
            "execution": "execution",
            "error": "error",
        }
    )

    graph.add_conditional_edges(
        "execution",
        route_after_execution,
        {
            "monitoring": "monitoring",
            "error": "error",
        }
    )

    # Monitoring re-enters itself while work is outstanding (polling loop)
    graph.add_conditional_edges(
        "monitoring",
        route_after_monitoring,
        {
            "monitoring": "monitoring",
            "handle_failure": "handle_failure",
            "completion": "completion",
            "error": "error",
        }
    )

    # The one permitted back-edge: handle_failure → execution
    graph.add_conditional_edges(
        "handle_failure",
        route_after_recovery,
        {
            "execution": "execution",
            "completion": "completion",
            "error": "error",
        }
    )

    graph.add_edge("completion", END)
    graph.add_edge("error", END)

    # ========== Compile ==========
    try:
        app = graph.compile(checkpointer=checkpointer)
    except Exception as exc:
        raise ControllerError(f"Supervisor graph failed to compile: {exc}") from exc

    LOGGER.info("Supervisor graph compiled")
    return app


__all__ = ["build_supervisor_graph"]
