"""Unified error handling for supervisor graph nodes.

Only ``ConfigurationError`` and ``ControllerError`` ever leave
``Orchestrator.submit``. Everything else is written to the run's error log as an
``ErrorRecord`` and the state machine keeps going (or moves to the ``error``
phase when a node itself breaks).
"""

from __future__ import annotations

import functools
import inspect
import logging
from enum import Enum
from typing import Any, Callable, Optional

from supervisorAgent.models import ErrorRecord, Phase

LOGGER = logging.getLogger(__name__)


class SupervisorError(Exception):
    """Base exception for supervisorAgent errors."""

    def __init__(self, message: str, code: str = None):
        super().__init__(message)
        self.code = code or ErrorCode.NODE_FAILED.value


class PlanningError(SupervisorError):
    """Planning oracle failed or produced unusable output."""
    pass


class DelegationError(SupervisorError):
    """Delegation oracle response could not be parsed."""
    pass


class TaskExecutionError(SupervisorError):
    """A worker could not accept or finish a task."""
    pass


class ConfigurationError(SupervisorError):
    """Invalid orchestrator or run configuration (fatal)."""
    pass


class ControllerError(SupervisorError):
    """The state machine cannot be built or advanced (fatal)."""
    pass


class ErrorCode(str, Enum):
    PLANNING_FAILED = "PLANNING_FAILED"
    PLANNING_FALLBACK = "PLANNING_FALLBACK"
    DELEGATION_FAILED = "DELEGATION_FAILED"
    DISPATCH_FAILED = "DISPATCH_FAILED"
    TASK_FAILED = "TASK_FAILED"
    TASK_UNASSIGNED = "TASK_UNASSIGNED"
    MONITOR_POLL_FAILED = "MONITOR_POLL_FAILED"
    RECOVERY_EXHAUSTED = "RECOVERY_EXHAUSTED"
    NODE_FAILED = "NODE_FAILED"
    RUN_ABORTED = "RUN_ABORTED"
    RUN_LIMIT_EXCEEDED = "RUN_LIMIT_EXCEEDED"


def make_error_record(
    message: str,
    code: ErrorCode | str,
    node: str,
    task_id: Optional[str] = None,
) -> ErrorRecord:
    """Build an ErrorRecord for the run's error log."""
    code_value = code.value if isinstance(code, ErrorCode) else str(code)
    return ErrorRecord(message=message, code=code_value, node=node, task_id=task_id)


def describe_exception(error: BaseException) -> str:
    """Readable one-line description (falls back to the type name)."""
    text = str(error).strip()
    return text if text else type(error).__name__


def with_error_boundary(node_name: str):
    """Decorator to add error boundary to graph nodes.

    Any exception escaping the node is logged, recorded in ``errors`` and the
    run is moved to the ``error`` phase instead of crashing the graph.

    Args:
        node_name: Name of the node for logging and error records

    Example:
        @with_error_boundary("monitoring")
        async def monitoring_node(state: RunState) -> dict:
            ...
    """
    def _on_error(error: Exception) -> dict:
        if isinstance(error, SupervisorError):
            LOGGER.error(f"{node_name} failed: {error}")
            code = error.code
        else:
            LOGGER.exception(f"{node_name} unexpected error", exc_info=error)
            code = ErrorCode.NODE_FAILED
        return {
            "phase": Phase.ERROR,
            "errors": [make_error_record(describe_exception(error), code, node_name)],
        }

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def sync_wrapper(state: Any) -> dict:
            try:
                return func(state)
            except Exception as e:
                return _on_error(e)

        @functools.wraps(func)
        async def async_wrapper(state: Any) -> dict:
            try:
                return await func(state)
            except Exception as e:
                return _on_error(e)

        if inspect.iscoroutinefunction(func):
            return async_wrapper
        return sync_wrapper

    return decorator


__all__ = [
    "SupervisorError",
    "PlanningError",
    "DelegationError",
    "TaskExecutionError",
    "ConfigurationError",
    "ControllerError",
    "ErrorCode",
    "make_error_record",
    "describe_exception",
    "with_error_boundary",
]
