"""Worker Registry - 可用 worker 的注册表

注册表是一个显式对象，由调用方创建并按引用传给委派器和 worker pool，
没有进程级单例。

查询模式（Query Pattern）：
- get(worker_id): 按 ID 查询
- list_active(): 所有参与委派的 worker（注册顺序）
- query_by_capability(capability): 按单个能力查询
- query_by_capabilities(capabilities): 按多个能力查询
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional

from .schema import WorkerCard

LOGGER = logging.getLogger(__name__)


class WorkerRegistry:
    """Worker 注册表

    Workers 按注册顺序保存；委派器在得分相同时依赖这个顺序。
    """

    def __init__(self, cards: Optional[Iterable[WorkerCard]] = None):
        self._workers: Dict[str, WorkerCard] = {}
        for card in cards or []:
            self.register(card)

    # ========== Registration Methods ==========

    def register(self, card: WorkerCard) -> WorkerCard:
        """注册一个 worker（同 ID 覆盖旧的注册）

        Args:
            card: Worker Card

        Returns:
            注册的 Worker Card
        """
        if card.id in self._workers:
            LOGGER.warning(f"Worker {card.id} registered again, replacing previous card")
        self._workers[card.id] = card
        LOGGER.debug(f"Registered worker: {card.id} ({card.name or card.id})")
        return card

    def unregister(self, worker_id: str) -> Optional[WorkerCard]:
        """移除一个 worker

        Returns:
            被移除的 Worker Card，不存在时返回 None
        """
        card = self._workers.pop(worker_id, None)
        if card is not None:
            LOGGER.info(f"Unregistered worker: {worker_id}")
        return card

    def activate(self, worker_id: str) -> WorkerCard:
        """启用 worker（参与委派）

        Raises:
            KeyError: Worker 未注册
        """
        card = self._require(worker_id)
        card.active = True
        LOGGER.info(f"Activated worker: {worker_id}")
        return card

    def deactivate(self, worker_id: str) -> WorkerCard:
        """停用 worker（不再参与委派，已派发的任务不受影响）

        Raises:
            KeyError: Worker 未注册
        """
        card = self._require(worker_id)
        card.active = False
        LOGGER.info(f"Deactivated worker: {worker_id}")
        return card

    def _require(self, worker_id: str) -> WorkerCard:
        if worker_id not in self._workers:
            raise KeyError(f"Worker not registered: {worker_id}")
        return self._workers[worker_id]

    # ========== Query Methods ==========

    def get(self, worker_id: str) -> Optional[WorkerCard]:
        return self._workers.get(worker_id)

    def __contains__(self, worker_id: str) -> bool:
        return worker_id in self._workers

    def __len__(self) -> int:
        return len(self._workers)

    def list_all(self) -> List[WorkerCard]:
        return list(self._workers.values())

    def list_active(self) -> List[WorkerCard]:
        return [card for card in self._workers.values() if card.active]

    def query_by_capability(self, capability: str) -> List[WorkerCard]:
        """按能力查询启用中的 workers（子串匹配，不区分大小写）

        Examples:
            >>> workers = registry.query_by_capability("research")
        """
        return [card for card in self.list_active() if card.has_capability(capability)]

    def query_by_capabilities(self, capabilities: List[str], match_all: bool = True) -> List[WorkerCard]:
        """按多个能力查询启用中的 workers

        Args:
            capabilities: 能力列表
            match_all: 是否要求全部匹配（默认 True，否则匹配任一即可）
        """
        if match_all:
            return [card for card in self.list_active() if card.has_all_capabilities(capabilities)]
        return [
            card for card in self.list_active()
            if any(card.has_capability(capability) for capability in capabilities)
        ]

    # ========== Catalog Generation ==========

    def get_catalog_text(self) -> str:
        """生成启用中 workers 的目录文本（用于 LLM 提示）"""
        return "\n".join(card.get_catalog_text() for card in self.list_active())

    # ========== Statistics ==========

    def get_stats(self) -> Dict[str, int]:
        """获取注册表统计信息"""
        active = self.list_active()
        return {
            "registered": len(self._workers),
            "active": len(active),
            "tasks_completed": sum(card.metrics.tasks_completed for card in self._workers.values()),
            "tasks_failed": sum(card.metrics.tasks_failed for card in self._workers.values()),
        }


__all__ = ["WorkerRegistry"]
