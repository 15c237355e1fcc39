"""Utilities for supervisorAgent."""

from .logging_utils import (
    log_error,
    log_node_entry,
    log_node_exit,
    log_routing_decision,
    log_run_summary,
    setup_logging,
)
from .error_handler import (
    ConfigurationError,
    ControllerError,
    DelegationError,
    ErrorCode,
    PlanningError,
    SupervisorError,
    TaskExecutionError,
    describe_exception,
    make_error_record,
    with_error_boundary,
)

__all__ = [
    "setup_logging",
    "log_node_entry",
    "log_node_exit",
    "log_routing_decision",
    "log_error",
    "log_run_summary",
    "SupervisorError",
    "PlanningError",
    "DelegationError",
    "TaskExecutionError",
    "ConfigurationError",
    "ControllerError",
    "ErrorCode",
    "describe_exception",
    "make_error_record",
    "with_error_boundary",
]
