"""Graph nodes exports - one node per orchestration phase."""

from .planning import build_planning_node
from .delegation import build_delegation_node
from .execution import build_execution_node
from .monitoring import build_monitoring_node
from .recovery import build_recovery_node
from .completion import aggregate_results, build_completion_node, build_error_node

__all__ = [
    "build_planning_node",
    "build_delegation_node",
    "build_execution_node",
    "build_monitoring_node",
    "build_recovery_node",
    "build_completion_node",
    "build_error_node",
    "aggregate_results",
]
