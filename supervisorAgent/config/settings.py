"""Environment-bound configuration objects.

This module provides Pydantic BaseSettings-based configuration loading from .env files.
Every field can be set through a ``SUPERVISOR_*`` environment variable.

Example:
    from supervisorAgent.config.settings import get_settings

    settings = get_settings()  # Cached instance
    max_retries = settings.orchestration.max_retries
    strategy = settings.orchestration.execution_strategy
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv
from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from supervisorAgent.models import DEFAULT_PRIORITY, ExecutionStrategy


load_dotenv()


class OrchestrationSettings(BaseSettings):
    """State machine defaults.

    - max_retries: Recovery rounds before failed tasks are frozen (default: 3)
    - execution_strategy: sequential / parallel / prioritized (default: sequential)
    - default_priority: Priority given to tasks that do not state one (default: 5)
    - poll_interval: Seconds the monitor waits before each progress poll
    - recursion_limit: Graph step ceiling imposed by the host driver
    - run_timeout: Wall-clock ceiling in seconds (None = unbounded)
    """

    max_retries: int = Field(
        default=3,
        ge=0,
        validation_alias=AliasChoices("SUPERVISOR_MAX_RETRIES", "max_retries"),
    )
    execution_strategy: ExecutionStrategy = Field(
        default=ExecutionStrategy.SEQUENTIAL,
        validation_alias=AliasChoices("SUPERVISOR_EXECUTION_STRATEGY", "execution_strategy"),
    )
    default_priority: int = Field(
        default=DEFAULT_PRIORITY,
        validation_alias=AliasChoices("SUPERVISOR_DEFAULT_PRIORITY", "default_priority"),
    )
    poll_interval: float = Field(
        default=0.05,
        ge=0,
        validation_alias=AliasChoices("SUPERVISOR_POLL_INTERVAL", "poll_interval"),
    )
    recursion_limit: int = Field(
        default=1000,
        ge=10,
        validation_alias=AliasChoices("SUPERVISOR_RECURSION_LIMIT", "recursion_limit"),
    )
    run_timeout: Optional[float] = Field(
        default=None,
        gt=0,
        validation_alias=AliasChoices("SUPERVISOR_RUN_TIMEOUT", "run_timeout"),
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )


class WorkerPoolSettings(BaseSettings):
    """In-process worker pool limits.

    - task_timeout: Per-task timeout enforced by the pool (None = no timeout)
    - max_concurrency: Maximum simultaneously running workers (None = unbounded)
    """

    task_timeout: Optional[float] = Field(
        default=None,
        gt=0,
        validation_alias=AliasChoices("SUPERVISOR_TASK_TIMEOUT", "task_timeout"),
    )
    max_concurrency: Optional[int] = Field(
        default=None,
        ge=1,
        validation_alias=AliasChoices("SUPERVISOR_MAX_CONCURRENCY", "max_concurrency"),
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )


class ObservabilitySettings(BaseSettings):
    """Tracing and logging configuration.

    Controls observability features:
    - LangSmith tracing (LANGCHAIN_TRACING_V2, LANGCHAIN_PROJECT, etc.)
    - Logging settings (SUPERVISOR_LOG_LEVEL, SUPERVISOR_LOG_DIR)
    """

    langsmith_project: Optional[str] = Field(default=None, alias="LANGCHAIN_PROJECT")
    langsmith_api_key: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("LANGCHAIN_API_KEY", "LANGSMITH_API_KEY")
    )
    langsmith_endpoint: Optional[str] = Field(default=None, alias="LANGCHAIN_ENDPOINT")
    tracing_enabled: bool = Field(default=False, alias="LANGCHAIN_TRACING_V2")

    log_level: str = Field(default="INFO", alias="SUPERVISOR_LOG_LEVEL")
    log_dir: str = Field(default="logs", alias="SUPERVISOR_LOG_DIR")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )


class Settings(BaseSettings):
    """Root application settings loaded from .env file.

    Hierarchical structure containing three nested settings groups:
    - orchestration: State machine defaults (OrchestrationSettings)
    - workers: In-process worker pool limits (WorkerPoolSettings)
    - observability: Tracing and logging (ObservabilitySettings)

    Use get_settings() to obtain a cached instance.
    """

    environment: str = Field(default="dev", alias="APP_ENV")
    orchestration: OrchestrationSettings = Field(default_factory=OrchestrationSettings)
    workers: WorkerPoolSettings = Field(default_factory=WorkerPoolSettings)
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        validate_assignment=True,
        case_sensitive=False,
        populate_by_name=True,
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached Settings instance.

    Uses LRU cache so only one Settings object is created per process.
    Call ``get_settings.cache_clear()`` after changing the environment.

    Returns:
        Settings: Cached application settings instance
    """
    return Settings()


__all__ = [
    "OrchestrationSettings",
    "WorkerPoolSettings",
    "ObservabilitySettings",
    "Settings",
    "get_settings",
]
