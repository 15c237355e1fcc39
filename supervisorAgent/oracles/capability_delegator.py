"""Capability-based delegation oracle.

Picks a worker for each task from the WorkerRegistry:

1. Only active workers that have every capability in the run's filter qualify.
2. A task's ``preferred_worker`` metadata wins when that worker qualifies.
3. Otherwise the worker must cover all of the task's required capabilities
   (case-insensitive substring match); candidates are scored
   ``matching_capabilities * 10 + priority`` and ties keep registry order.
4. On a retry round the worker that just failed the task is passed over when
   another worker qualifies.

Tasks no worker qualifies for are left out of the answer, i.e. unassigned.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence

from supervisorAgent.workers import WorkerCard, WorkerRegistry

LOGGER = logging.getLogger(__name__)

CAPABILITY_WEIGHT = 10


def score_worker(card: WorkerCard, required: List[str]) -> int:
    return card.matching_capabilities(required) * CAPABILITY_WEIGHT + card.priority


class CapabilityDelegator:
    """Delegation oracle backed by a WorkerRegistry.

    Args:
        registry: Registry to choose workers from (read at every call)
    """

    def __init__(self, registry: WorkerRegistry):
        self.registry = registry

    def __call__(
        self,
        tasks: Sequence[Mapping[str, Any]],
        strategy: str,
        capability_filter: Optional[List[str]] = None,
    ) -> Dict[str, str]:
        assignments: Dict[str, str] = {}
        for summary in tasks:
            worker = self.select_worker(summary, capability_filter)
            if worker is None:
                LOGGER.warning(f"No qualified worker for task {summary.get('id')}")
                continue
            assignments[str(summary["id"])] = worker.id
        LOGGER.debug(f"Delegated {len(assignments)}/{len(tasks)} task(s) ({strategy})")
        return assignments

    def select_worker(
        self,
        summary: Mapping[str, Any],
        capability_filter: Optional[List[str]] = None,
    ) -> Optional[WorkerCard]:
        candidates = self.registry.list_active()
        if capability_filter:
            candidates = [card for card in candidates if card.has_all_capabilities(capability_filter)]
        if not candidates:
            return None

        previous = summary.get("previous_worker")
        metadata = summary.get("metadata") or {}
        preferred = metadata.get("preferred_worker") or metadata.get("preferredAgentId")
        if preferred and preferred != previous:
            for card in candidates:
                if card.id == preferred:
                    return card

        required = list(summary.get("required_capabilities") or [])
        eligible = [card for card in candidates if card.has_all_capabilities(required)]
        if not eligible:
            return None

        # sorted() is stable, so equal scores keep registry order
        ranked = sorted(eligible, key=lambda card: -score_worker(card, required))
        if previous:
            for card in ranked:
                if card.id != previous:
                    return card
        return ranked[0]


__all__ = ["CapabilityDelegator", "score_worker", "CAPABILITY_WEIGHT"]
