"""Runtime assembly."""

from .app import Orchestrator, build_orchestrator, result_to_dict

__all__ = ["Orchestrator", "build_orchestrator", "result_to_dict"]
