"""Tests for WorkerCard, WorkerRegistry, the YAML scanner and CapabilityDelegator."""

import textwrap
from pathlib import Path

import pytest

from supervisorAgent.oracles import CapabilityDelegator
from supervisorAgent.utils.error_handler import ConfigurationError
from supervisorAgent.workers import WorkerCard, WorkerRegistry, import_handler, load_worker_registry


class TestWorkerCard:
    """Worker Card"""

    def test_capability_match_is_case_insensitive_substring(self):
        card = WorkerCard(id="w", capabilities=["Data-Analysis", "writing"])
        assert card.has_capability("analysis")
        assert card.has_capability("WRITING")
        assert not card.has_capability("research")
        assert card.has_all_capabilities([])
        assert card.matching_capabilities(["data", "write", "research"]) == 2

    def test_catalog_text_lists_capabilities_and_tags(self):
        card = WorkerCard(id="w", name="Writer", capabilities=["writing"], tags=["demo"], priority=4)
        text = card.get_catalog_text()
        assert text.startswith("- w (Writer)")
        assert "capabilities: writing" in text
        assert "tags: demo" in text
        assert "priority: 4" in text

    def test_record_outcome_updates_metrics(self):
        card = WorkerCard(id="w")
        card.record_outcome(True, 0.5)
        card.record_outcome(False, 1.5, "boom")
        assert card.metrics.tasks_completed == 1
        assert card.metrics.tasks_failed == 1
        assert card.metrics.success_rate == 0.5
        assert card.metrics.average_duration == 1.0
        assert card.metrics.last_error == "boom"


class TestWorkerRegistry:
    def test_register_query_and_order(self, registry):
        assert [card.id for card in registry.list_active()] == ["alpha", "beta", "gamma"]
        assert [card.id for card in registry.query_by_capability("general")] == ["alpha", "beta"]
        assert [card.id for card in registry.query_by_capabilities(["general", "research"])] == ["beta"]
        assert [
            card.id for card in registry.query_by_capabilities(["writing", "data"], match_all=False)
        ] == ["alpha", "gamma"]

    def test_activate_deactivate(self, registry):
        registry.deactivate("beta")
        assert "beta" not in [card.id for card in registry.list_active()]
        assert "beta" in registry
        registry.activate("beta")
        assert registry.get("beta").active

    def test_unknown_worker(self, registry):
        with pytest.raises(KeyError):
            registry.deactivate("nobody")
        assert registry.unregister("nobody") is None

    def test_stats(self, registry):
        registry.get("alpha").record_outcome(True)
        stats = registry.get_stats()
        assert stats["registered"] == 3
        assert stats["active"] == 3
        assert stats["tasks_completed"] == 1


class TestScanner:
    """从 YAML 加载 workers"""

    def test_import_handler(self):
        handler = import_handler("supervisor_main:echo_worker")
        assert callable(handler)
        with pytest.raises(ValueError):
            import_handler("no_colon_here")

    def test_load_worker_registry(self, tmp_path):
        config = tmp_path / "workers.yaml"
        config.write_text(textwrap.dedent("""
            workers:
              echo:
                name: Echo
                capabilities: general
                priority: 8
                handler_path: "supervisor_main:echo_worker"
              broken:
                name: Broken
                handler_path: "supervisor_main:does_not_exist"
              idle:
                name: Idle
                active: false
        """), encoding="utf-8")

        registry = load_worker_registry(config)
        assert [card.id for card in registry.list_all()] == ["echo", "idle"]
        echo = registry.get("echo")
        assert echo.capabilities == ["general"]
        assert echo.priority == 8
        assert echo.handler is not None
        assert [card.id for card in registry.list_active()] == ["echo"]

    def test_bundled_config_loads(self):
        registry = load_worker_registry(Path(__file__).parents[2] / "supervisorAgent" / "config" / "workers.yaml")
        assert registry.get("echo") is not None

    def test_globally_disabled(self, tmp_path):
        config = tmp_path / "workers.yaml"
        config.write_text("global:\n  enabled: false\nworkers:\n  a: {name: A}\n", encoding="utf-8")
        assert len(load_worker_registry(config)) == 0

    def test_missing_or_invalid_file(self, tmp_path):
        with pytest.raises(ConfigurationError):
            load_worker_registry(tmp_path / "missing.yaml")
        bad = tmp_path / "bad.yaml"
        bad.write_text("workers: [unclosed", encoding="utf-8")
        with pytest.raises(ConfigurationError):
            load_worker_registry(bad)


class TestCapabilityDelegator:
    """按能力委派"""

    def test_requires_every_capability_and_prefers_higher_score(self, registry):
        delegator = CapabilityDelegator(registry)
        assignments = delegator(
            [
                {"id": "t1", "required_capabilities": ["general"]},
                {"id": "t2", "required_capabilities": ["writing"]},
                {"id": "t3", "required_capabilities": ["analysis"]},
                {"id": "t4", "required_capabilities": ["cooking"]},
                {"id": "t5", "required_capabilities": []},
            ],
            "sequential",
            None,
        )
        assert assignments == {"t1": "beta", "t2": "alpha", "t3": "gamma", "t5": "beta"}

    def test_capability_filter_limits_candidates(self, registry):
        delegator = CapabilityDelegator(registry)
        assignments = delegator([{"id": "t1"}], "parallel", ["writing"])
        assert assignments == {"t1": "alpha"}
        assert delegator([{"id": "t1"}], "parallel", ["nothing"]) == {}

    def test_preferred_worker(self, registry):
        delegator = CapabilityDelegator(registry)
        assignments = delegator([{"id": "t1", "metadata": {"preferred_worker": "gamma"}}], "sequential", None)
        assert assignments == {"t1": "gamma"}

    def test_retry_avoids_previous_worker(self, registry):
        delegator = CapabilityDelegator(registry)
        summary = {"id": "t1", "required_capabilities": ["general"], "previous_worker": "beta"}
        assert delegator([summary], "sequential", None) == {"t1": "alpha"}

    def test_retry_falls_back_to_same_worker_when_alone(self, registry):
        delegator = CapabilityDelegator(registry)
        summary = {"id": "t1", "required_capabilities": ["data"], "previous_worker": "gamma"}
        assert delegator([summary], "sequential", None) == {"t1": "gamma"}

    def test_inactive_workers_are_skipped(self, registry):
        registry.deactivate("beta")
        delegator = CapabilityDelegator(registry)
        assert delegator([{"id": "t1", "required_capabilities": ["research"]}], "sequential", None) == {}
