"""Pytest configuration and fixtures for all tests.

This file is automatically loaded by pytest and ensures proper test environment setup.
"""

import sys
from pathlib import Path

import pytest

# Ensure project root is in PYTHONPATH for imports to work
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from supervisorAgent.config.settings import OrchestrationSettings, WorkerPoolSettings
from supervisorAgent.graph.state import create_initial_state
from supervisorAgent.models import Task, TaskStatus
from supervisorAgent.workers import WorkerCard, WorkerPool, WorkerRegistry


@pytest.fixture
def fast_settings():
    """Orchestration settings with a near-zero poll interval."""
    return OrchestrationSettings(poll_interval=0.001, recursion_limit=500, max_retries=3)


@pytest.fixture
def make_task():
    """Factory: make_task("t1", priority=3, ...)"""

    def _make(task_id, **fields):
        fields.setdefault("name", task_id)
        fields.setdefault("description", f"Task {task_id}")
        return Task(id=task_id, **fields)

    return _make


@pytest.fixture
def make_state():
    """Factory building a RunState with tasks already planned.

    ``status``/``assignments``/``results``/``task_errors`` fill the per-task maps;
    any other keyword overrides the state key of the same name.
    """

    def _make(tasks=(), *, status=None, assignments=None, results=None, task_errors=None, **overrides):
        state = create_initial_state("goal", max_retries=overrides.pop("max_retries", 3))
        tasks = list(tasks)
        state["tasks"] = {task.id: task for task in tasks}
        state["task_order"] = [task.id for task in tasks]
        state["task_status"] = {key: TaskStatus(value) for key, value in (status or {}).items()}
        state["task_assignments"] = dict(assignments or {})
        state["task_results"] = dict(results or {})
        state["task_errors"] = dict(task_errors or {})
        state.update(overrides)
        return state

    return _make


@pytest.fixture
def registry():
    """Registry with two general workers and one specialist."""

    async def ok(task):
        return f"done:{task.id}"

    return WorkerRegistry([
        WorkerCard(id="alpha", name="Alpha", capabilities=["general", "writing"], priority=5, handler=ok),
        WorkerCard(id="beta", name="Beta", capabilities=["general", "research"], priority=7, handler=ok),
        WorkerCard(id="gamma", name="Gamma", capabilities=["data-analysis"], priority=3, handler=ok),
    ])


@pytest.fixture
def pool_settings():
    return WorkerPoolSettings()


@pytest.fixture
def pool(registry, pool_settings):
    return WorkerPool(registry, pool_settings)
