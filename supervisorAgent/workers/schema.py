"""Worker Card Schema - 工作单元（worker）的元数据描述

Worker Card 描述一个可以执行任务的 worker：身份、能力标签、优先级、
执行入口（handler）以及运行指标。

指标只能通过 ``WorkerCard.record_outcome()`` 更新，编排核心从不直接修改
worker 的内部计数。
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from supervisorAgent.models import DEFAULT_PRIORITY


@dataclass
class WorkerMetrics:
    """Worker 运行指标

    Attributes:
        tasks_completed: 成功完成的任务数
        tasks_failed: 失败的任务数
        total_duration: 累计执行耗时（秒）
        last_error: 最近一次失败的错误信息
    """

    tasks_completed: int = 0
    tasks_failed: int = 0
    total_duration: float = 0.0
    last_error: Optional[str] = None

    @property
    def tasks_total(self) -> int:
        return self.tasks_completed + self.tasks_failed

    @property
    def success_rate(self) -> float:
        """成功率（0.0 - 1.0），没有执行记录时为 0"""
        total = self.tasks_total
        return self.tasks_completed / total if total else 0.0

    @property
    def average_duration(self) -> float:
        total = self.tasks_total
        return self.total_duration / total if total else 0.0

    def as_dict(self) -> Dict[str, Any]:
        return {
            "tasks_completed": self.tasks_completed,
            "tasks_failed": self.tasks_failed,
            "total_duration": round(self.total_duration, 6),
            "success_rate": self.success_rate,
            "average_duration": self.average_duration,
            "last_error": self.last_error,
        }


@dataclass
class WorkerCard:
    """Worker Card - 可执行任务的 worker 描述

    Attributes:
        # ========== Identity ==========
        id: Worker 唯一标识符（委派结果中的 worker id）
        name: 显示名称
        description: 功能描述
        role: 团队中的角色（可选）

        # ========== Capabilities ==========
        capabilities: 能力标签列表（委派时与 task.required_capabilities 匹配）
        priority: 优先级，得分相同时高优先级的 worker 胜出（默认 5）

        # ========== Execution ==========
        handler: 执行入口 ``handler(task) -> result``，可以是同步函数或协程函数
        active: 是否参与委派

        # ========== Metadata ==========
        tags: 标签列表
        metadata: 任意附加信息
        metrics: 运行指标（只通过 record_outcome 更新）

    Examples:
        >>> card = WorkerCard(
        ...     id="writer",
        ...     name="Writer",
        ...     description="写作与总结",
        ...     capabilities=["writing", "summarization"],
        ...     priority=7,
        ...     handler=lambda task: f"done: {task.name}",
        ... )
        >>> card.has_capability("summar")
        True
    """

    # ========== Identity ==========
    id: str
    name: str = ""
    description: str = ""
    role: str = ""

    # ========== Capabilities ==========
    capabilities: List[str] = field(default_factory=list)
    priority: int = DEFAULT_PRIORITY

    # ========== Execution ==========
    handler: Optional[Callable[..., Any]] = None
    active: bool = True

    # ========== Metadata ==========
    tags: List[str] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)
    metrics: WorkerMetrics = field(default_factory=WorkerMetrics)

    def has_capability(self, capability: str) -> bool:
        """检查是否具有指定能力（不区分大小写的子串匹配）

        Args:
            capability: 能力名称

        Returns:
            True 如果任一能力标签包含该名称
        """
        needle = capability.lower()
        return any(needle in own.lower() for own in self.capabilities)

    def has_all_capabilities(self, capabilities: List[str]) -> bool:
        """检查是否具有全部指定能力（空列表视为满足）"""
        return all(self.has_capability(capability) for capability in capabilities)

    def matching_capabilities(self, capabilities: List[str]) -> int:
        """统计匹配的能力数量"""
        return sum(1 for capability in capabilities if self.has_capability(capability))

    def record_outcome(self, success: bool, duration: float = 0.0, error: Optional[str] = None) -> None:
        """记录一次任务执行结果

        Args:
            success: 任务是否成功
            duration: 执行耗时（秒）
            error: 失败时的错误信息
        """
        if success:
            self.metrics.tasks_completed += 1
        else:
            self.metrics.tasks_failed += 1
            self.metrics.last_error = error
        self.metrics.total_duration += max(0.0, duration)

    def get_catalog_text(self) -> str:
        """生成该 worker 的目录文本（用于 LLM 提示）"""
        lines = [f"- {self.id} ({self.name or self.id}): {self.description}"]
        if self.capabilities:
            lines.append(f"  capabilities: {', '.join(self.capabilities)}")
        if self.tags:
            lines.append(f"  tags: {', '.join(self.tags)}")
        lines.append(f"  priority: {self.priority}")
        return "\n".join(lines)


__all__ = ["WorkerCard", "WorkerMetrics"]
