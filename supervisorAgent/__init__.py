"""supervisorAgent - Task orchestration state machine.

The supervisor coordinates a set of sub-tasks executed by independent workers:

1. Plan: Turn a goal into tasks (planning oracle, fallback task when it yields nothing)
2. Delegate: Assign each task to a worker (delegation oracle)
3. Dispatch: Hand tasks to workers by strategy (sequential / parallel / prioritized)
4. Monitor: Poll progress until nothing is in flight
5. Recover: Re-delegate failed tasks within a bounded retry budget
6. Aggregate: Report status, per-task results and stats

Entry point: ``supervisorAgent.runtime.build_orchestrator(...).submit(goal)``.
"""

__version__ = "1.0.0"
