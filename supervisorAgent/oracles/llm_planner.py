"""LLM planning oracle.

Asks a LangChain chat model to break a goal into a JSON task list. The reply is
parsed leniently (code fences, a ``{"tasks": [...]}`` wrapper, prose around the
JSON); anything that still does not parse yields no tasks, which sends the
planning node down its fallback path.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, List, Mapping, Optional

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import HumanMessage, SystemMessage

from supervisorAgent.utils.error_handler import ErrorCode, PlanningError, describe_exception
from supervisorAgent.workers import WorkerRegistry

LOGGER = logging.getLogger(__name__)

_FENCE = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL)

PLANNER_PROMPT = """You are a supervisor that decomposes a goal into concrete sub-tasks for a team of workers.

Reply with JSON only, in this shape:
{{"tasks": [{{"name": "...", "description": "...", "priority": 1-10, "required_capabilities": ["..."]}}]}}

Rules:
- At most {max_tasks} tasks
- Higher priority means more urgent (5 is neutral)
- Only use capabilities the team actually has
{catalog}"""


def _content_text(content: Any) -> str:
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for part in content:
            if isinstance(part, str):
                parts.append(part)
            elif isinstance(part, Mapping) and part.get("type") == "text":
                parts.append(str(part.get("text", "")))
        return "".join(parts)
    return str(content or "")


def parse_plan_text(text: str) -> List[Any]:
    """Extract the task list from a model reply; returns [] if there is none."""
    fenced = _FENCE.search(text)
    if fenced:
        text = fenced.group(1)
    text = text.strip()

    start = min((i for i in (text.find("["), text.find("{")) if i >= 0), default=-1)
    if start < 0:
        LOGGER.warning("Planner reply contains no JSON")
        return []
    closing = "]" if text[start] == "[" else "}"
    end = text.rfind(closing)
    try:
        data = json.loads(text[start:end + 1])
    except json.JSONDecodeError as e:
        LOGGER.warning(f"Planner reply is not valid JSON: {e.msg}")
        return []

    if isinstance(data, Mapping):
        data = data.get("tasks", [data])
    if not isinstance(data, list):
        LOGGER.warning(f"Planner reply has unexpected shape: {type(data).__name__}")
        return []
    return data


class LLMPlanner:
    """Planning oracle backed by a chat model.

    Args:
        model: Any LangChain chat model
        registry: Optional worker registry; its catalog is shown to the model
        max_tasks: Upper bound on tasks the model is asked for
    """

    def __init__(self, model: BaseChatModel, *, registry: Optional[WorkerRegistry] = None, max_tasks: int = 10):
        self.model = model
        self.registry = registry
        self.max_tasks = max_tasks

    def build_messages(self, goal: str, context: Mapping[str, Any]):
        catalog = ""
        if self.registry is not None and self.registry.list_active():
            catalog = "\n# Team\n" + self.registry.get_catalog_text()
        system = PLANNER_PROMPT.format(max_tasks=self.max_tasks, catalog=catalog)

        human = f"Goal: {goal}"
        if context:
            human += f"\n\nContext:\n{json.dumps(dict(context), ensure_ascii=False, default=str)}"
        return [SystemMessage(content=system), HumanMessage(content=human)]

    async def __call__(self, goal: str, context: Mapping[str, Any]) -> List[Any]:
        try:
            response = await self.model.ainvoke(self.build_messages(goal, context))
        except Exception as e:
            raise PlanningError(
                f"Chat model call failed: {describe_exception(e)}",
                code=ErrorCode.PLANNING_FAILED.value,
            ) from e
        tasks = parse_plan_text(_content_text(getattr(response, "content", response)))
        LOGGER.info(f"LLM planner proposed {len(tasks)} task(s)")
        return tasks[: self.max_tasks]


__all__ = ["LLMPlanner", "parse_plan_text", "PLANNER_PROMPT"]
