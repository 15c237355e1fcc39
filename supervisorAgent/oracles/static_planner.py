"""Planning oracle that always returns the same task list."""

from __future__ import annotations

import copy
from typing import Any, Iterable, List, Mapping


class StaticPlanner:
    """Returns a copy of ``tasks`` for every goal (empty list -> fallback task)."""

    def __init__(self, tasks: Iterable[Any] = ()):
        self.tasks = list(tasks)
        self.calls = 0

    def __call__(self, goal: str, context: Mapping[str, Any]) -> List[Any]:
        self.calls += 1
        return copy.deepcopy(self.tasks)


__all__ = ["StaticPlanner"]
