"""Tests for the planning node and plan normalization."""

import pytest

from supervisorAgent.graph.nodes.planning import (
    build_fallback_task,
    build_planning_node,
    coerce_task,
    normalize_plan,
)
from supervisorAgent.graph.state import create_initial_state
from supervisorAgent.models import DEFAULT_PRIORITY, Phase, Task, TaskStatus


class TestNormalizePlan:
    """规划输出的各种形态"""

    def test_list_of_mappings(self):
        tasks, order = normalize_plan([
            {"id": "t1", "name": "One", "priority": 2},
            {"id": "t2", "description": "Second task\nwith details"},
        ])
        assert order == ["t1", "t2"]
        assert tasks["t1"].priority == 2
        assert tasks["t2"].name == "Second task"
        assert tasks["t2"].priority == DEFAULT_PRIORITY

    def test_mapping_keyed_by_id(self):
        tasks, order = normalize_plan({"a": {"name": "A"}, "b": "Do B"})
        assert order == ["a", "b"]
        assert tasks["b"].description == "Do B"

    def test_single_task_mapping(self):
        tasks, order = normalize_plan({"name": "Only", "description": "The only task"})
        assert len(order) == 1
        assert tasks[order[0]].name == "Only"

    def test_single_task_object(self):
        task = Task(id="x", name="X", status=TaskStatus.COMPLETED, result="stale")
        tasks, order = normalize_plan(task)
        assert order == ["x"]
        assert tasks["x"].status == TaskStatus.PENDING
        assert tasks["x"].result is None

    def test_wrapper_with_tasks_key_and_json_text(self):
        tasks, order = normalize_plan('{"tasks": [{"id": "j1", "name": "From JSON"}]}')
        assert order == ["j1"]
        assert tasks["j1"].name == "From JSON"

    def test_plain_text_becomes_one_task(self):
        tasks, order = normalize_plan("Summarize the report")
        assert len(order) == 1
        assert tasks[order[0]].description == "Summarize the report"

    @pytest.mark.parametrize("raw", [None, [], {}, "", "   ", [None, 42, {"priority": 3}]])
    def test_nothing_usable(self, raw):
        assert normalize_plan(raw) == ({}, [])

    def test_duplicate_ids_keep_first(self):
        tasks, order = normalize_plan([{"id": "t1", "name": "first"}, {"id": "t1", "name": "second"}])
        assert order == ["t1"]
        assert tasks["t1"].name == "first"

    def test_creation_order_is_strictly_increasing(self):
        tasks, order = normalize_plan(["a", "b", "c"])
        created = [tasks[task_id].created_at for task_id in order]
        assert created == sorted(created)
        assert len(set(created)) == 3

    def test_numeric_ids_are_kept_as_strings(self):
        tasks, order = normalize_plan('[{"id": 1, "name": "a"}, {"taskId": 2, "name": "b"}, {"id": 0, "name": "c"}]')
        assert order == ["1", "2", "0"]
        assert [tasks[task_id].name for task_id in order] == ["a", "b", "c"]

    def test_invalid_entries_are_skipped(self):
        tasks, order = normalize_plan([{"id": "ok", "name": "fine"}, {"name": "bad", "priority": "high"}])
        assert order == ["ok"]


def test_coerce_task_name_is_first_line_cut_to_50():
    task = coerce_task("x" * 80 + "\nsecond line")
    assert task.name == "x" * 50


def test_fallback_task_wraps_goal():
    task = build_fallback_task("  Plan the offsite  ")
    assert task.description == "Plan the offsite"
    assert task.status == TaskStatus.PENDING
    assert task.priority == DEFAULT_PRIORITY
    assert task.metadata["fallback"] is True


class TestPlanningNode:
    """planning 节点"""

    @pytest.mark.asyncio
    async def test_uses_planner_output(self, fast_settings):
        node = build_planning_node(planner=lambda goal, ctx: ["a", "b"], settings=fast_settings)
        updates = await node(create_initial_state("G"))
        assert len(updates["tasks"]) == 2
        assert updates["task_order"] == list(updates["tasks"])
        assert updates["phase"] == Phase.DELEGATION
        assert updates["errors"] == []

    @pytest.mark.asyncio
    async def test_async_planner_receives_goal_and_context(self, fast_settings):
        seen = {}

        async def planner(goal, context):
            seen.update(goal=goal, context=context)
            return [{"id": "t1", "name": "one"}]

        node = build_planning_node(planner=planner, settings=fast_settings)
        await node(create_initial_state("G", context={"team": "core"}))
        assert seen == {"goal": "G", "context": {"team": "core"}}

    @pytest.mark.asyncio
    async def test_empty_output_creates_one_fallback(self, fast_settings):
        node = build_planning_node(planner=lambda goal, ctx: [], settings=fast_settings)
        updates = await node(create_initial_state("G"))
        assert len(updates["tasks"]) == 1
        (task,) = updates["tasks"].values()
        assert task.description == "G"
        assert [record.code for record in updates["errors"]] == ["PLANNING_FALLBACK"]
        assert updates["phase"] == Phase.DELEGATION

    @pytest.mark.asyncio
    async def test_planner_exception_is_not_propagated(self, fast_settings):
        def planner(goal, ctx):
            raise RuntimeError("model offline")

        node = build_planning_node(planner=planner, settings=fast_settings)
        updates = await node(create_initial_state("G"))
        assert len(updates["tasks"]) == 1
        codes = [record.code for record in updates["errors"]]
        assert codes == ["PLANNING_FAILED", "PLANNING_FALLBACK"]
        assert "model offline" in updates["errors"][0].message
        assert updates["phase"] == Phase.DELEGATION

    @pytest.mark.asyncio
    async def test_supplied_tasks_skip_the_planner(self, fast_settings):
        calls = []
        node = build_planning_node(planner=lambda goal, ctx: calls.append(goal), settings=fast_settings)
        state = create_initial_state("G", tasks=[{"id": "s1", "name": "supplied"}])
        updates = await node(state)
        assert calls == []
        assert updates["task_order"] == ["s1"]
