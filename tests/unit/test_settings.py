"""Tests for pydantic-settings configuration."""

import pytest
from pydantic import ValidationError

from supervisorAgent.config.settings import (
    OrchestrationSettings,
    Settings,
    WorkerPoolSettings,
    get_settings,
)
from supervisorAgent.models import ExecutionStrategy


def test_orchestration_defaults(monkeypatch):
    for name in ("SUPERVISOR_MAX_RETRIES", "SUPERVISOR_EXECUTION_STRATEGY", "SUPERVISOR_POLL_INTERVAL"):
        monkeypatch.delenv(name, raising=False)
    settings = OrchestrationSettings()
    assert settings.max_retries == 3
    assert settings.execution_strategy == ExecutionStrategy.SEQUENTIAL
    assert settings.default_priority == 5
    assert settings.run_timeout is None


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("SUPERVISOR_MAX_RETRIES", "1")
    monkeypatch.setenv("SUPERVISOR_EXECUTION_STRATEGY", "parallel")
    monkeypatch.setenv("SUPERVISOR_TASK_TIMEOUT", "2.5")

    assert OrchestrationSettings().max_retries == 1
    assert OrchestrationSettings().execution_strategy == ExecutionStrategy.PARALLEL
    assert WorkerPoolSettings().task_timeout == 2.5


def test_field_names_accepted():
    settings = OrchestrationSettings(max_retries=0, poll_interval=0)
    assert settings.max_retries == 0
    assert settings.poll_interval == 0


def test_invalid_values_rejected():
    with pytest.raises(ValidationError):
        OrchestrationSettings(max_retries=-1)
    with pytest.raises(ValidationError):
        WorkerPoolSettings(max_concurrency=0)


def test_root_settings_nest_groups():
    settings = Settings()
    assert isinstance(settings.orchestration, OrchestrationSettings)
    assert isinstance(settings.workers, WorkerPoolSettings)


def test_get_settings_is_cached():
    get_settings.cache_clear()
    assert get_settings() is get_settings()
    get_settings.cache_clear()
