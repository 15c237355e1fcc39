"""Tests for the LLM planning oracle (with a fake chat model)."""

import pytest
from langchain_core.language_models.fake_chat_models import FakeListChatModel
from langchain_core.messages import HumanMessage, SystemMessage

from supervisorAgent.graph.nodes.planning import build_planning_node, normalize_plan
from supervisorAgent.graph.state import create_initial_state
from supervisorAgent.oracles import LLMPlanner, StaticPlanner, parse_plan_text
from supervisorAgent.utils.error_handler import PlanningError
from supervisorAgent.workers import WorkerCard, WorkerRegistry


class TestParsePlanText:
    """解析模型输出"""

    def test_plain_json_list(self):
        assert parse_plan_text('[{"name": "a"}]') == [{"name": "a"}]

    def test_fenced_wrapper(self):
        text = 'Here is the plan:\n```json\n{"tasks": [{"name": "a"}, {"name": "b"}]}\n```\nGood luck!'
        assert [task["name"] for task in parse_plan_text(text)] == ["a", "b"]

    def test_prose_around_json(self):
        assert parse_plan_text('Sure! [{"name": "x"}] Done.') == [{"name": "x"}]

    @pytest.mark.parametrize("text", ["", "no json here", "[{broken", '"just a string"'])
    def test_unusable_reply(self, text):
        assert parse_plan_text(text) == []


class TestLLMPlanner:
    @pytest.mark.asyncio
    async def test_returns_parsed_tasks(self):
        model = FakeListChatModel(responses=[
            '{"tasks": [{"name": "Research", "priority": 8, "required_capabilities": ["research"]},'
            ' {"name": "Write", "priority": 3}]}'
        ])
        planner = LLMPlanner(model)
        raw = await planner("Write a report", {})
        tasks, order = normalize_plan(raw)
        assert [tasks[task_id].name for task_id in order] == ["Research", "Write"]
        assert tasks[order[0]].required_capabilities == ["research"]

    @pytest.mark.asyncio
    async def test_garbage_reply_yields_no_tasks(self):
        planner = LLMPlanner(FakeListChatModel(responses=["I cannot help with that."]))
        assert await planner("goal", {}) == []

    @pytest.mark.asyncio
    async def test_max_tasks_cap(self):
        reply = "[" + ",".join('{"name": "t%d"}' % i for i in range(5)) + "]"
        planner = LLMPlanner(FakeListChatModel(responses=[reply]), max_tasks=2)
        assert len(await planner("goal", {})) == 2

    @pytest.mark.asyncio
    async def test_model_failure_raises_planning_error(self):
        class OfflineModel:
            async def ainvoke(self, messages):
                raise ConnectionError("model offline")

        with pytest.raises(PlanningError) as excinfo:
            await LLMPlanner(OfflineModel())("goal", {})
        assert excinfo.value.code == "PLANNING_FAILED"
        assert "model offline" in str(excinfo.value)

    @pytest.mark.asyncio
    async def test_model_failure_falls_back_in_planning_node(self, fast_settings):
        class OfflineModel:
            async def ainvoke(self, messages):
                raise ConnectionError("model offline")

        node = build_planning_node(planner=LLMPlanner(OfflineModel()), settings=fast_settings)
        updates = await node(create_initial_state("Ship it"))
        assert [record.code for record in updates["errors"]] == ["PLANNING_FAILED", "PLANNING_FALLBACK"]
        (task,) = updates["tasks"].values()
        assert task.description == "Ship it"

    def test_prompt_includes_team_catalog_and_context(self):
        registry = WorkerRegistry([WorkerCard(id="writer", name="Writer", capabilities=["writing"])])
        planner = LLMPlanner(FakeListChatModel(responses=["[]"]), registry=registry)
        system, human = planner.build_messages("Ship it", {"deadline": "friday"})
        assert isinstance(system, SystemMessage)
        assert "writer" in system.content
        assert isinstance(human, HumanMessage)
        assert "Ship it" in human.content
        assert "friday" in human.content


def test_static_planner_returns_copies():
    planner = StaticPlanner([{"id": "t1", "name": "one"}])
    first = planner("g", {})
    first[0]["name"] = "changed"
    assert planner("g", {})[0]["name"] == "one"
    assert planner.calls == 2
