#!/usr/bin/env python3
"""supervisorAgent - Command line entry point.

Usage:
    python supervisor_main.py "Write a release announcement"
    python supervisor_main.py "Ship v2" --workers workers.yaml --strategy parallel
    python supervisor_main.py "Demo" --task "Draft notes" --task "Review notes" --max-retries 1

Without ``--workers`` a single demo worker (``echo``) is registered that simply
echoes each task back. Without ``--task`` the goal itself becomes the only task
unless a planner is configured in code.
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

# Add project root to sys.path for imports
project_root = Path(__file__).parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from supervisorAgent.config.settings import get_settings
from supervisorAgent.models import ExecutionStrategy, RunStatus, Task
from supervisorAgent.runtime import build_orchestrator, result_to_dict
from supervisorAgent.utils.error_handler import ConfigurationError, ControllerError
from supervisorAgent.utils.logging_utils import setup_logging
from supervisorAgent.workers import WorkerCard, WorkerRegistry

EXIT_CODES = {RunStatus.SUCCESS: 0, RunStatus.PARTIAL: 1, RunStatus.FAILED: 2}


async def echo_worker(task: Task) -> str:
    """Demo worker: pretends to work briefly and echoes the task."""
    await asyncio.sleep(0.01)
    return f"[echo] {task.name}: {task.description}"


def build_demo_registry() -> WorkerRegistry:
    return WorkerRegistry([
        WorkerCard(
            id="echo",
            name="Echo",
            description="Echoes every task back (demo worker)",
            capabilities=["echo", "general"],
            handler=echo_worker,
        )
    ])


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run one supervisor orchestration")
    parser.add_argument("goal", help="Goal to orchestrate")
    parser.add_argument("--workers", type=Path, help="workers.yaml with worker definitions")
    parser.add_argument(
        "--strategy",
        choices=[strategy.value for strategy in ExecutionStrategy],
        help="Execution strategy (default from settings)",
    )
    parser.add_argument("--max-retries", type=int, help="Recovery rounds (default from settings)")
    parser.add_argument(
        "--filter", action="append", dest="capability_filter", metavar="CAPABILITY",
        help="Only delegate to workers with this capability (repeatable)",
    )
    parser.add_argument(
        "--task", action="append", dest="tasks", metavar="DESCRIPTION",
        help="Supply a task directly and skip planning (repeatable)",
    )
    parser.add_argument("--context", help="JSON object passed to the oracles as context")
    return parser.parse_args(argv)


async def main(argv=None) -> int:
    """Main entry point for the supervisor CLI."""
    args = parse_args(argv)

    settings = get_settings()
    setup_logging(settings.observability)

    try:
        context = json.loads(args.context) if args.context else None
    except json.JSONDecodeError as e:
        print(f"Invalid --context JSON: {e.msg}", file=sys.stderr)
        return 2

    config = {
        key: value
        for key, value in (
            ("execution_strategy", args.strategy),
            ("max_retries", args.max_retries),
            ("capability_filter", args.capability_filter),
        )
        if value is not None
    }

    try:
        registry = None if args.workers else build_demo_registry()
        orchestrator = build_orchestrator(registry, settings=settings, workers_config=args.workers)
        result = await orchestrator.submit(args.goal, context=context, config=config, tasks=args.tasks)
    except (ConfigurationError, ControllerError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    print(json.dumps(result_to_dict(result), ensure_ascii=False, indent=2))
    return EXIT_CODES[result.status]


def cli() -> None:
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        sys.exit(130)


if __name__ == "__main__":
    cli()
