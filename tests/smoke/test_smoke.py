"""Smoke tests for quick validation.

Smoke tests are fast, critical-path tests that verify the system's basic functionality.
Run these before commits to catch obvious breakage.

Typical run time: < 10 seconds
"""

import json
from pathlib import Path

import pytest


class TestBasicSetup:
    """验证基础设置和配置"""

    def test_settings_load(self):
        """测试配置加载"""
        from supervisorAgent.config.settings import get_settings

        settings = get_settings()
        assert settings is not None
        assert settings.orchestration.max_retries >= 0
        assert settings.orchestration.recursion_limit >= 10

    def test_package_imports(self):
        """测试核心模块可导入"""
        import supervisorAgent
        from supervisorAgent.graph import build_supervisor_graph, create_initial_state
        from supervisorAgent.runtime import Orchestrator, build_orchestrator
        from supervisorAgent.workers import WorkerPool, WorkerRegistry

        assert supervisorAgent.__version__
        assert callable(build_supervisor_graph)
        assert callable(create_initial_state)
        assert Orchestrator and build_orchestrator and WorkerPool and WorkerRegistry


class TestConfigFiles:
    """验证配置文件存在"""

    def test_workers_config_exists(self):
        config_path = Path(__file__).parents[2] / "supervisorAgent" / "config" / "workers.yaml"
        assert config_path.is_file(), "workers.yaml 应该存在"


class TestGraph:
    def test_graph_compiles(self):
        """测试状态机可以编译"""
        from supervisorAgent.graph import build_supervisor_graph

        app = build_supervisor_graph(
            planner=lambda goal, context: [],
            delegator=lambda tasks, strategy, capability_filter: {},
            dispatcher=lambda task, worker_id: None,
            progress=lambda: [],
        )
        nodes = set(app.get_graph().nodes)
        for name in ("planning", "delegation", "execution", "monitoring", "handle_failure", "completion", "error"):
            assert name in nodes


class TestCli:
    """命令行冒烟测试"""

    @pytest.mark.asyncio
    async def test_demo_run(self, capsys, monkeypatch, tmp_path):
        import supervisor_main

        monkeypatch.chdir(tmp_path)
        exit_code = await supervisor_main.main(["Say hello", "--task", "greet", "--task", "wave"])

        assert exit_code == 0
        output = json.loads(capsys.readouterr().out)
        assert output["status"] == "success"
        assert output["stats"]["total"] == 2

    @pytest.mark.asyncio
    async def test_bad_context_json(self, capsys, monkeypatch, tmp_path):
        import supervisor_main

        monkeypatch.chdir(tmp_path)
        assert await supervisor_main.main(["goal", "--context", "{not json"]) == 2
        assert "Invalid --context" in capsys.readouterr().err
