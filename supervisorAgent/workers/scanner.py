"""Worker scanner - 从 workers.yaml 扫描并注册 workers

负责：
1. 从 YAML 文件读取 Worker Card 配置
2. 动态导入 worker 执行入口（handler）
3. 创建 WorkerCard 实例并注册到 WorkerRegistry

配置示例::

    global:
      enabled: true
    workers:
      writer:
        name: Writer
        description: 写作与总结
        capabilities: [writing, summarization]
        priority: 7
        handler_path: "my_project.workers:write"
        active: true
"""

from __future__ import annotations

import importlib
import logging
from pathlib import Path
from typing import Any, Callable, Dict, Optional

import yaml

from supervisorAgent.models import DEFAULT_PRIORITY
from supervisorAgent.utils.error_handler import ConfigurationError

from .registry import WorkerRegistry
from .schema import WorkerCard

LOGGER = logging.getLogger(__name__)


def import_handler(handler_path: str) -> Callable:
    """动态导入 worker 执行入口

    Args:
        handler_path: 入口路径（格式: "module.path:function_name"）

    Returns:
        可调用对象

    Raises:
        ImportError: 导入失败
        AttributeError: 函数不存在
        ValueError: 路径格式错误

    Examples:
        >>> handler = import_handler("supervisor_main:echo_worker")
    """
    try:
        module_path, attr_name = handler_path.split(":")
        module = importlib.import_module(module_path)
        handler = getattr(module, attr_name)
    except (ValueError, ImportError, AttributeError) as e:
        LOGGER.error(f"Failed to import worker handler '{handler_path}': {e}")
        raise
    if not callable(handler):
        raise ValueError(f"Worker handler '{handler_path}' is not callable")
    return handler


def parse_worker_card_from_config(worker_id: str, config: Dict[str, Any]) -> WorkerCard:
    """从 YAML 配置解析 Worker Card

    Raises:
        ImportError / AttributeError / ValueError: handler 导入失败
    """
    capabilities = config.get("capabilities") or []
    if isinstance(capabilities, str):
        capabilities = [capabilities]

    handler = None
    if config.get("handler_path"):
        handler = import_handler(config["handler_path"])

    return WorkerCard(
        id=worker_id,
        name=config.get("name", worker_id),
        description=config.get("description", ""),
        role=config.get("role", ""),
        capabilities=[str(capability) for capability in capabilities],
        priority=int(config.get("priority", DEFAULT_PRIORITY)),
        handler=handler,
        active=bool(config.get("active", True)),
        tags=list(config.get("tags") or []),
        metadata=dict(config.get("metadata") or {}),
    )


def load_workers_config(config_path: Path | str) -> Dict[str, Any]:
    """加载 workers.yaml 配置文件

    Raises:
        ConfigurationError: 文件不存在或 YAML 无法解析
    """
    config_path = Path(config_path)
    if not config_path.exists():
        raise ConfigurationError(f"Worker config not found: {config_path}")

    try:
        with config_path.open("r", encoding="utf-8") as f:
            config = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid worker config {config_path}: {e}") from e

    if not isinstance(config, dict):
        raise ConfigurationError(f"Worker config {config_path} must be a mapping")

    LOGGER.debug(f"Loaded worker config from {config_path}")
    return config


def load_worker_registry(
    config_path: Path | str,
    registry: Optional[WorkerRegistry] = None,
) -> WorkerRegistry:
    """从 workers.yaml 扫描并注册 workers

    Args:
        config_path: 配置文件路径
        registry: 已有的注册表（可选，默认新建）

    Returns:
        填充好的 WorkerRegistry
    """
    registry = registry if registry is not None else WorkerRegistry()
    config = load_workers_config(config_path)

    # 检查全局开关
    if not (config.get("global") or {}).get("enabled", True):
        LOGGER.info("Workers are disabled in config")
        return registry

    for worker_id, worker_config in (config.get("workers") or {}).items():
        try:
            card = parse_worker_card_from_config(str(worker_id), worker_config or {})
        except (ImportError, AttributeError, ValueError, TypeError) as e:
            LOGGER.error(f"Failed to register worker '{worker_id}': {e}")
            continue
        registry.register(card)
        LOGGER.info(f"Registered worker: {card.id} ({card.name}, active={card.active})")

    stats = registry.get_stats()
    LOGGER.info(f"Worker scan complete: {stats['registered']} registered, {stats['active']} active")
    return registry


__all__ = [
    "import_handler",
    "parse_worker_card_from_config",
    "load_workers_config",
    "load_worker_registry",
]
