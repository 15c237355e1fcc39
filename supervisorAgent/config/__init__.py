"""Configuration exports."""

from .settings import (
    ObservabilitySettings,
    OrchestrationSettings,
    Settings,
    WorkerPoolSettings,
    get_settings,
)

__all__ = [
    "ObservabilitySettings",
    "OrchestrationSettings",
    "Settings",
    "WorkerPoolSettings",
    "get_settings",
]
