"""Graph assembly exports."""

from .builder import build_supervisor_graph
from .state import RunState, create_initial_state

__all__ = ["build_supervisor_graph", "RunState", "create_initial_state"]
