"""Tests for the delegation node and assignment parsing."""

import pytest

from supervisorAgent.graph.nodes.delegation import build_delegation_node, parse_assignments
from supervisorAgent.models import ExecutionStrategy, Phase, TaskStatus
from supervisorAgent.utils.error_handler import DelegationError


class TestParseAssignments:
    def test_mapping(self):
        assignments, dropped = parse_assignments({"t1": "alpha", "t2": "beta"}, ["t1", "t2"])
        assert assignments == {"t1": "alpha", "t2": "beta"}
        assert dropped == []

    def test_json_string(self):
        assignments, _ = parse_assignments('{"t1": "alpha"}', ["t1"])
        assert assignments == {"t1": "alpha"}

    def test_drops_unknown_tasks_and_bad_worker_ids(self):
        assignments, dropped = parse_assignments(
            {"t1": "alpha", "ghost": "beta", "t2": "", "t3": 7}, ["t1", "t2", "t3"]
        )
        assert assignments == {"t1": "alpha"}
        assert sorted(dropped) == ["ghost", "t2", "t3"]

    @pytest.mark.parametrize("raw", [None, "", "  "])
    def test_empty_response(self, raw):
        assert parse_assignments(raw, ["t1"]) == ({}, [])

    @pytest.mark.parametrize("raw", ["not json", "[1, 2]", ["t1"], 42])
    def test_malformed_response_raises(self, raw):
        with pytest.raises(DelegationError) as exc_info:
            parse_assignments(raw, ["t1"])
        assert exc_info.value.code == "DELEGATION_FAILED"


class TestDelegationNode:
    """delegation 节点"""

    @pytest.mark.asyncio
    async def test_assigns_and_initializes_pending(self, make_task, make_state):
        calls = []

        def delegator(tasks, strategy, capability_filter):
            calls.append((tasks, strategy, capability_filter))
            return {"t1": "alpha", "t2": "beta"}

        state = make_state(
            [make_task("t1"), make_task("t2"), make_task("t3")],
            execution_strategy=ExecutionStrategy.PARALLEL,
            capability_filter=["general"],
        )
        updates = await build_delegation_node(delegator=delegator)(state)

        assert updates["task_assignments"] == {"t1": "alpha", "t2": "beta"}
        assert updates["task_status"] == {"t1": TaskStatus.PENDING, "t2": TaskStatus.PENDING}
        assert updates["delegation_rounds"] == 1
        assert updates["phase"] == Phase.EXECUTION

        summaries, strategy, capability_filter = calls[0]
        assert [summary["id"] for summary in summaries] == ["t1", "t2", "t3"]
        assert strategy == "parallel"
        assert capability_filter == ["general"]

    @pytest.mark.asyncio
    async def test_existing_status_is_left_alone(self, make_task, make_state):
        state = make_state([make_task("t1"), make_task("t2")], status={"t1": "completed"})
        updates = await build_delegation_node(delegator=lambda *a: {"t1": "alpha", "t2": "alpha"})(state)
        assert updates["task_status"] == {"t2": TaskStatus.PENDING}

    @pytest.mark.asyncio
    async def test_malformed_response_assigns_nothing(self, make_task, make_state):
        state = make_state([make_task("t1")])
        updates = await build_delegation_node(delegator=lambda *a: "{broken")(state)
        assert updates["task_assignments"] == {}
        assert updates["task_status"] == {}
        assert [record.code for record in updates["errors"]] == ["DELEGATION_FAILED"]
        assert updates["phase"] == Phase.EXECUTION

    @pytest.mark.asyncio
    async def test_oracle_exception_is_recorded(self, make_task, make_state):
        async def delegator(*args):
            raise ConnectionError("oracle down")

        updates = await build_delegation_node(delegator=delegator)(make_state([make_task("t1")]))
        assert updates["task_assignments"] == {}
        assert "oracle down" in updates["errors"][0].message
        assert updates["phase"] == Phase.EXECUTION
