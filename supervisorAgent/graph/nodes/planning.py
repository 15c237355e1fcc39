"""Planning node - turns the goal into the run's task set.

The planning oracle is allowed to answer in several shapes (list, mapping keyed
by id, single task, JSON text, nothing). Whatever comes back is normalized into
an id -> Task map plus the creation order. When nothing usable is produced the
node synthesizes exactly one fallback task wrapping the raw goal.
"""

from __future__ import annotations

import json
import logging
import time
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from pydantic import ValidationError

from supervisorAgent.config.settings import OrchestrationSettings
from supervisorAgent.graph.state import RunState, next_phase
from supervisorAgent.interfaces import PlanningOracle, maybe_await
from supervisorAgent.models import DEFAULT_PRIORITY, Phase, Task, TaskStatus
from supervisorAgent.utils.error_handler import (
    ErrorCode,
    describe_exception,
    make_error_record,
    with_error_boundary,
)
from supervisorAgent.utils.logging_utils import log_node_entry, log_node_exit

LOGGER = logging.getLogger(__name__)

_ID_KEYS = ("id", "task_id", "taskId")
_TASK_KEYS = frozenset({"id", "task_id", "taskId", "name", "description", "priority"})


def _derive_name(description: str) -> str:
    first_line = description.strip().split("\n")[0]
    return first_line[:50]


def coerce_task(
    entry: Any,
    *,
    default_priority: int = DEFAULT_PRIORITY,
    task_id: Optional[str] = None,
    created_at: Optional[float] = None,
) -> Optional[Task]:
    """Convert one planner entry into a pending Task.

    Returns None for entries that carry neither a name nor a description.
    """
    if isinstance(entry, Task):
        data: Dict[str, Any] = entry.model_dump()
    elif isinstance(entry, Mapping):
        data = dict(entry)
    elif isinstance(entry, str):
        data = {"description": entry}
    else:
        LOGGER.warning(f"Ignoring planner entry of type {type(entry).__name__}")
        return None

    # JSON planners often number their tasks; ids are always strings here
    for key in _ID_KEYS:
        if data.get(key) is not None and not isinstance(data[key], str):
            data[key] = str(data[key])
    if task_id and not any(data.get(key) for key in _ID_KEYS):
        data["id"] = task_id
    if data.get("priority") is None:
        data["priority"] = default_priority
    if created_at is not None and not any(key in data for key in ("created_at", "createdAt")):
        data["created_at"] = created_at

    description = str(data.get("description") or "").strip()
    name = str(data.get("name") or "").strip()
    if not description and not name:
        LOGGER.warning("Ignoring planner entry without name or description")
        return None
    data["description"] = description or name
    data["name"] = name or _derive_name(description)

    # Planner output never decides lifecycle state
    data["status"] = TaskStatus.PENDING
    data.pop("result", None)
    data.pop("error", None)

    try:
        return Task.model_validate(data)
    except ValidationError as exc:
        LOGGER.warning(f"Ignoring invalid planner entry: {exc.errors()[0].get('msg')}")
        return None


def _parse_text(raw: str) -> Any:
    text = raw.strip()
    if text[:1] in ("[", "{"):
        try:
            return json.loads(text)
        except json.JSONDecodeError:
            LOGGER.debug("Planner text looked like JSON but did not parse; using it as a task")
    return text


def _entries(raw: Any) -> List[Tuple[Optional[str], Any]]:
    """Flatten oracle output into ``(key, entry)`` pairs."""
    if raw is None:
        return []
    if isinstance(raw, str):
        if not raw.strip():
            return []
        parsed = _parse_text(raw)
        if isinstance(parsed, str):
            return [(None, parsed)]
        return _entries(parsed)
    if isinstance(raw, Task):
        return [(None, raw)]
    if isinstance(raw, Mapping):
        if "tasks" in raw and isinstance(raw["tasks"], (list, tuple, Mapping)):
            return _entries(raw["tasks"])
        if _TASK_KEYS & set(raw):
            return [(None, raw)]  # a single inferred task
        return [(str(key), value) for key, value in raw.items()]
    if isinstance(raw, (list, tuple)):
        return [(None, item) for item in raw]
    LOGGER.warning(f"Unsupported planner output type: {type(raw).__name__}")
    return []


def normalize_plan(
    raw: Any,
    *,
    default_priority: int = DEFAULT_PRIORITY,
) -> Tuple[Dict[str, Task], List[str]]:
    """Normalize planning-oracle output.

    Returns:
        (tasks by id, ids in creation order). Both are empty when nothing usable
        was produced. Duplicate ids keep their first occurrence.
    """
    tasks: Dict[str, Task] = {}
    order: List[str] = []
    base_time = time.time()

    for index, (key, entry) in enumerate(_entries(raw)):
        task = coerce_task(
            entry,
            default_priority=default_priority,
            task_id=key,
            created_at=base_time + index * 1e-6,
        )
        if task is None:
            continue
        if task.id in tasks:
            LOGGER.warning(f"Duplicate task id from planner: {task.id} (keeping first)")
            continue
        tasks[task.id] = task
        order.append(task.id)

    return tasks, order


def build_fallback_task(goal: str, *, default_priority: int = DEFAULT_PRIORITY) -> Task:
    """Single task wrapping the raw goal."""
    description = goal.strip() or "Complete the requested goal"
    return Task(
        name=_derive_name(description),
        description=description,
        priority=default_priority,
        status=TaskStatus.PENDING,
        metadata={"fallback": True},
    )


def build_planning_node(
    *,
    planner: PlanningOracle,
    settings: OrchestrationSettings,
) -> Callable:
    """Build the planning node.

    Args:
        planner: Planning oracle ``(goal, context) -> tasks``
        settings: Orchestration settings (default priority)

    Returns:
        Async node function for RunState
    """

    @with_error_boundary("planning")
    async def planning_node(state: RunState) -> dict:
        log_node_entry(LOGGER, "planning", state)
        goal = state.get("goal") or ""
        context = state.get("context") or {}
        errors = []

        supplied = state.get("supplied_tasks")
        if supplied is not None:
            LOGGER.info(f"Using {len(supplied)} caller-supplied task(s), planning oracle skipped")
            raw = supplied
        else:
            try:
                raw = await maybe_await(planner(goal, context))
            except Exception as exc:
                LOGGER.warning(f"Planning oracle failed, using fallback task: {describe_exception(exc)}")
                errors.append(make_error_record(
                    f"Planning oracle failed: {describe_exception(exc)}",
                    ErrorCode.PLANNING_FAILED,
                    "planning",
                ))
                raw = None

        tasks, order = normalize_plan(raw, default_priority=settings.default_priority)

        if not tasks:
            fallback = build_fallback_task(goal, default_priority=settings.default_priority)
            LOGGER.info(f"Planner produced no tasks, created fallback task {fallback.id}")
            errors.append(make_error_record(
                "Planner produced no usable tasks; goal wrapped as a single task",
                ErrorCode.PLANNING_FALLBACK,
                "planning",
                task_id=fallback.id,
            ))
            tasks, order = {fallback.id: fallback}, [fallback.id]

        updates = {
            "tasks": tasks,
            "task_order": order,
            "errors": errors,
            "phase": next_phase(Phase.PLANNING, Phase.DELEGATION),
        }
        log_node_exit(LOGGER, "planning", updates)
        return updates

    return planning_node


__all__ = [
    "build_planning_node",
    "normalize_plan",
    "coerce_task",
    "build_fallback_task",
]
