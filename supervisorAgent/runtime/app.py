"""Application assembly for supervisorAgent.

This module builds the host side of the orchestrator:
1. Resolving settings and per-run overrides
2. Building the supervisor graph once per Orchestrator
3. Driving a run to a terminal phase (recursion limit + optional wall-clock timeout)
4. Turning host-side aborts into a normal ExecutionResult

``build_orchestrator`` wires the default collaborators: a WorkerRegistry, the
in-process WorkerPool (dispatch + progress), the CapabilityDelegator and a
planner (LLMPlanner when a chat model is given, otherwise a StaticPlanner).
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Optional, Union

from langgraph.errors import GraphRecursionError
from pydantic import ValidationError

from supervisorAgent.config.settings import OrchestrationSettings, Settings, get_settings
from supervisorAgent.graph.builder import build_supervisor_graph
from supervisorAgent.graph.nodes.completion import finalize_aborted_state
from supervisorAgent.graph.state import RunState, create_initial_state
from supervisorAgent.interfaces import DelegationOracle, PlanningOracle, ProgressOracle, TaskDispatcher
from supervisorAgent.models import ExecutionResult, Phase, RunConfig
from supervisorAgent.oracles import CapabilityDelegator, LLMPlanner, StaticPlanner
from supervisorAgent.telemetry import configure_tracing
from supervisorAgent.utils.error_handler import (
    ConfigurationError,
    ControllerError,
    ErrorCode,
    describe_exception,
)
from supervisorAgent.utils.logging_utils import log_error, log_run_summary
from supervisorAgent.workers import WorkerPool, WorkerRegistry, load_worker_registry

LOGGER = logging.getLogger(__name__)


class Orchestrator:
    """Host driver for the supervisor graph.

    Runs on one instance are serialized; the graph itself is built once.

    Args:
        planner: Planning oracle
        delegator: Delegation oracle
        dispatcher: Worker hand-off
        progress: Progress oracle
        settings: Orchestration settings (cached global settings if None)
        checkpointer: Optional LangGraph checkpointer
        pool: Worker pool to cancel when a run is aborted (optional)
    """

    def __init__(
        self,
        *,
        planner: PlanningOracle,
        delegator: DelegationOracle,
        dispatcher: TaskDispatcher,
        progress: ProgressOracle,
        settings: Optional[OrchestrationSettings] = None,
        checkpointer=None,
        pool: Optional[WorkerPool] = None,
    ):
        self.settings = settings or get_settings().orchestration
        self.pool = pool
        self.app = build_supervisor_graph(
            planner=planner,
            delegator=delegator,
            dispatcher=dispatcher,
            progress=progress,
            settings=self.settings,
            checkpointer=checkpointer,
        )
        self._lock = asyncio.Lock()

    @property
    def registry(self) -> Optional[WorkerRegistry]:
        return self.pool.registry if self.pool is not None else None

    def resolve_config(self, config: Union[RunConfig, Mapping[str, Any], None]) -> RunConfig:
        """Validate per-run overrides.

        Raises:
            ConfigurationError: Unknown keys or invalid values
        """
        if config is None:
            return RunConfig()
        if isinstance(config, RunConfig):
            return config
        if not isinstance(config, Mapping):
            raise ConfigurationError(f"Run config must be a mapping, got {type(config).__name__}")
        try:
            return RunConfig.model_validate(dict(config))
        except ValidationError as e:
            raise ConfigurationError(f"Invalid run config: {e.errors()[0].get('msg')}") from e

    def create_state(
        self,
        goal: str,
        context: Optional[Mapping[str, Any]] = None,
        config: Union[RunConfig, Mapping[str, Any], None] = None,
        tasks: Optional[Iterable[Any]] = None,
    ) -> RunState:
        if not isinstance(goal, str):
            raise ConfigurationError(f"Goal must be a string, got {type(goal).__name__}")
        if context is not None and not isinstance(context, Mapping):
            raise ConfigurationError(f"Context must be a mapping, got {type(context).__name__}")

        run_config = self.resolve_config(config)
        strategy = run_config.execution_strategy or self.settings.execution_strategy
        max_retries = run_config.max_retries if run_config.max_retries is not None else self.settings.max_retries
        return create_initial_state(
            goal,
            context=dict(context or {}),
            execution_strategy=strategy,
            max_retries=max_retries,
            capability_filter=run_config.capability_filter,
            tasks=tasks,
        )

    async def submit(
        self,
        goal: str,
        context: Optional[Mapping[str, Any]] = None,
        config: Union[RunConfig, Mapping[str, Any], None] = None,
        tasks: Optional[Iterable[Any]] = None,
    ) -> ExecutionResult:
        """Run one orchestration to completion.

        Args:
            goal: Goal text for the planning oracle
            context: Free-form context handed to the oracles
            config: Per-run overrides (strategy, max_retries, capability_filter)
            tasks: Pre-built tasks; when given the planning oracle is skipped

        Returns:
            ExecutionResult of the run

        Raises:
            ConfigurationError: Invalid goal, context or config
            ControllerError: The graph could not be advanced
        """
        async with self._lock:
            # start_time is stamped only once the previous run has released the lock
            state = self.create_state(goal, context, config, tasks)
            LOGGER.info(
                f"Run {state['run_id'][:8]} started: strategy={state['execution_strategy'].value}, "
                f"max_retries={state['max_retries']}"
            )
            if self.pool is not None:
                self.pool.reset()
            final_state = await self._drive(state)

        result = final_state["result"]
        log_run_summary(LOGGER, result)
        return result

    async def _drive(self, state: RunState) -> RunState:
        last: RunState = state
        limit = self.settings.recursion_limit
        timeout = self.settings.run_timeout
        run_config = {"recursion_limit": limit, "configurable": {"thread_id": state["run_id"]}}

        async def _stream() -> None:
            nonlocal last
            async for snapshot in self.app.astream(state, config=run_config, stream_mode="values"):
                last = snapshot

        try:
            if timeout:
                await asyncio.wait_for(_stream(), timeout=timeout)
            else:
                await _stream()
        except GraphRecursionError:
            LOGGER.error(f"Run {state['run_id'][:8]} hit the recursion limit ({limit})")
            last = finalize_aborted_state(
                last, f"Run exceeded the step limit of {limit}", ErrorCode.RUN_LIMIT_EXCEEDED
            )
        except asyncio.TimeoutError:
            LOGGER.error(f"Run {state['run_id'][:8]} timed out after {timeout}s")
            last = finalize_aborted_state(
                last, f"Run exceeded the time limit of {timeout}s", ErrorCode.RUN_LIMIT_EXCEEDED
            )
        except (ConfigurationError, ControllerError):
            raise
        except Exception as e:
            log_error(LOGGER, e, context=f"run {state['run_id']}")
            raise ControllerError(f"Supervisor graph failed: {describe_exception(e)}") from e

        if last.get("result") is None:
            last = finalize_aborted_state(last, "Run ended before reaching a terminal phase")

        if last.get("phase") == Phase.ERROR and self.pool is not None:
            await self.pool.cancel_pending()
        return last


def build_orchestrator(
    registry: Optional[WorkerRegistry] = None,
    *,
    planner: Optional[PlanningOracle] = None,
    model=None,
    settings: Optional[Settings] = None,
    workers_config: Optional[Union[str, Path]] = None,
    checkpointer=None,
) -> Orchestrator:
    """Build an Orchestrator with the default collaborators.

    Args:
        registry: Worker registry (loaded from ``workers_config`` or empty if None)
        planner: Planning oracle; defaults to LLMPlanner(model) or an empty StaticPlanner
        model: LangChain chat model for the default planner
        settings: Application settings (cached global settings if None)
        workers_config: Path to a workers.yaml file
        checkpointer: Optional LangGraph checkpointer

    Returns:
        Orchestrator instance
    """
    settings = settings or get_settings()
    configure_tracing(settings.observability)

    if registry is None:
        registry = load_worker_registry(workers_config) if workers_config else WorkerRegistry()
    if not registry.list_active():
        LOGGER.warning("No active workers registered; every task will end up failed")

    if planner is None:
        planner = LLMPlanner(model, registry=registry) if model is not None else StaticPlanner()

    pool = WorkerPool(registry, settings.workers)
    orchestrator = Orchestrator(
        planner=planner,
        delegator=CapabilityDelegator(registry),
        dispatcher=pool.dispatch,
        progress=pool.poll,
        settings=settings.orchestration,
        checkpointer=checkpointer,
        pool=pool,
    )
    LOGGER.info(f"Orchestrator built with {len(registry)} worker(s)")
    return orchestrator


def result_to_dict(result: ExecutionResult) -> Dict[str, Any]:
    """JSON-ready dict of an ExecutionResult."""
    return result.model_dump(mode="json")


__all__ = ["Orchestrator", "build_orchestrator", "result_to_dict"]
