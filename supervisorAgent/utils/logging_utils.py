"""Logging utilities for supervisorAgent."""

from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, Optional

if TYPE_CHECKING:
    from supervisorAgent.config.settings import ObservabilitySettings
    from supervisorAgent.models import ExecutionResult


def setup_logging(settings: Optional["ObservabilitySettings"] = None) -> logging.Logger:
    """Setup logging configuration for supervisorAgent.

    Args:
        settings: Observability settings (log level and directory); defaults apply if None

    Returns:
        Configured logger instance
    """
    level_name = settings.log_level if settings else "INFO"
    log_dir = Path(settings.log_dir if settings else "logs")
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / f"supervisor_{datetime.now().strftime('%Y%m%d_%H%M%S')}.log"

    logger = logging.getLogger("supervisorAgent")
    logger.setLevel(logging.DEBUG)  # Handlers decide what they keep
    logger.propagate = False

    # Clear existing handlers
    logger.handlers = []

    # File handler (detailed logs)
    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setLevel(logging.getLevelName(level_name.upper()))
    file_formatter = logging.Formatter(
        "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )
    file_handler.setFormatter(file_formatter)

    # Console handler (user-friendly)
    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.WARNING)
    console_handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))

    logger.addHandler(file_handler)
    logger.addHandler(console_handler)

    logger.info("=" * 80)
    logger.info("Supervisor session started")
    logger.info(f"Log file: {log_file}")
    logger.info("=" * 80)

    return logger


def _status_counts(state: Dict[str, Any]) -> Dict[str, int]:
    counts: Dict[str, int] = {}
    for status in (state.get("task_status") or {}).values():
        key = getattr(status, "value", status)
        counts[key] = counts.get(key, 0) + 1
    return counts


def log_node_entry(
    logger: logging.Logger,
    node_name: str,
    state: Dict[str, Any],
    level: int = logging.INFO,
) -> None:
    """Log node entry with a compact state snapshot.

    Args:
        logger: Logger instance
        node_name: Name of the node being entered
        state: Current run state
        level: Log level (the monitoring loop uses DEBUG)
    """
    if not logger.isEnabledFor(level):
        return
    run_id = state.get("run_id") or "N/A"
    logger.log(level, f"# ENTERING NODE: {node_name} (run {run_id[:8]})")
    logger.log(level, f"  - tasks: {len(state.get('tasks') or {})}")
    logger.log(level, f"  - status: {_status_counts(state)}")
    logger.log(level, f"  - retries: {state.get('retry_count', 0)}/{state.get('max_retries')}")


def log_node_exit(
    logger: logging.Logger,
    node_name: str,
    updates: Dict[str, Any],
    level: int = logging.INFO,
) -> None:
    """Log node exit with the returned state updates.

    Args:
        logger: Logger instance
        node_name: Name of the node being exited
        updates: State updates returned by the node
        level: Log level
    """
    if not logger.isEnabledFor(level):
        return
    logger.log(level, f"# EXITING NODE: {node_name}")
    for key, value in updates.items():
        if key == "tasks":
            logger.log(level, f"  - tasks: {len(value)} updated")
        elif key == "errors":
            logger.log(level, f"  - errors: +{len(value)}")
        else:
            logger.log(level, f"  - {key}: {getattr(value, 'value', value)}")


def log_routing_decision(logger: logging.Logger, from_node: str, decision: str, reason: str = "") -> None:
    """Log routing decision.

    Args:
        logger: Logger instance
        from_node: Source node making the decision
        decision: Routing destination
        reason: Reason for the routing decision
    """
    logger.debug(f"Routing decision from {from_node} → {decision}" + (f" ({reason})" if reason else ""))


def log_error(logger: logging.Logger, error: Exception, context: str = "") -> None:
    """Log error with context.

    Args:
        logger: Logger instance
        error: Exception instance
        context: Additional context about where the error occurred
    """
    logger.error(f"Error occurred: {type(error).__name__}: {str(error)}")
    if context:
        logger.error(f"  Context: {context}")
    logger.debug("Full traceback:", exc_info=error)


def log_run_summary(logger: logging.Logger, result: "ExecutionResult") -> None:
    """Log the final ExecutionResult of a run.

    Args:
        logger: Logger instance
        result: Aggregated run result
    """
    logger.info("=" * 80)
    logger.info(f"Run finished: {result.status.value} - {result.summary}")
    logger.info(f"  Stats: {json.dumps(result.stats.model_dump(), ensure_ascii=False)}")
    logger.info(f"  Errors: {len(result.errors)}")
    logger.info(f"  Elapsed: {result.elapsed_seconds:.3f}s")
    logger.info("=" * 80)


__all__ = [
    "setup_logging",
    "log_node_entry",
    "log_node_exit",
    "log_routing_decision",
    "log_error",
    "log_run_summary",
]
