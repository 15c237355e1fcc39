"""In-process worker pool.

Implements the two worker-side collaborators of the supervisor graph:

- ``dispatch(task, worker_id)``: starts the worker's handler as an asyncio task
  and returns immediately (fire-and-forget).
- ``poll()``: reports the latest known state of every dispatched task.

Sync handlers run in a thread (``asyncio.to_thread``) so a slow worker never
blocks the event loop the graph runs on.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from supervisorAgent.config.settings import WorkerPoolSettings
from supervisorAgent.models import Task, TaskStatus
from supervisorAgent.utils.error_handler import ErrorCode, TaskExecutionError, describe_exception

from .registry import WorkerRegistry
from .schema import WorkerCard

LOGGER = logging.getLogger(__name__)


@dataclass
class _TaskRecord:
    task_id: str
    worker_id: str
    status: TaskStatus = TaskStatus.IN_PROGRESS
    result: Any = None
    error: Optional[str] = None

    def as_update(self) -> Dict[str, Any]:
        return {
            "task_id": self.task_id,
            "status": self.status.value,
            "result": self.result,
            "error": self.error,
            "worker_id": self.worker_id,
        }


class WorkerPool:
    """Runs tasks on registered workers and reports their progress.

    Args:
        registry: Worker registry used to resolve worker ids
        settings: Per-task timeout and concurrency limit (defaults if None)
    """

    def __init__(self, registry: WorkerRegistry, settings: Optional[WorkerPoolSettings] = None):
        self.registry = registry
        self.settings = settings or WorkerPoolSettings()
        self._records: Dict[str, _TaskRecord] = {}
        self._running: Dict[str, asyncio.Task] = {}
        self._semaphore: Optional[asyncio.Semaphore] = None

    def _limit(self) -> Optional[asyncio.Semaphore]:
        # Created lazily so it binds to the loop that runs the graph
        if self.settings.max_concurrency and self._semaphore is None:
            self._semaphore = asyncio.Semaphore(self.settings.max_concurrency)
        return self._semaphore

    async def dispatch(self, task: Task, worker_id: str) -> None:
        """Hand ``task`` to ``worker_id`` without waiting for it to finish.

        Raises:
            TaskExecutionError: Unknown or inactive worker, or a worker without a handler
        """
        card = self.registry.get(worker_id)
        if card is None:
            raise TaskExecutionError(f"Unknown worker: {worker_id}", code=ErrorCode.DISPATCH_FAILED.value)
        if not card.active:
            raise TaskExecutionError(f"Worker {worker_id} is inactive", code=ErrorCode.DISPATCH_FAILED.value)
        if card.handler is None:
            raise TaskExecutionError(f"Worker {worker_id} has no handler", code=ErrorCode.DISPATCH_FAILED.value)

        previous = self._running.get(task.id)
        if previous is not None and not previous.done():
            LOGGER.warning(f"Task {task.id} dispatched again while still running; cancelling the old run")
            previous.cancel()

        self._records[task.id] = _TaskRecord(task_id=task.id, worker_id=worker_id)
        self._running[task.id] = asyncio.create_task(
            self._run(card, task), name=f"worker-{worker_id}-{task.id}"
        )
        LOGGER.info(f"Task {task.id} handed to worker {worker_id}")

    async def _invoke(self, card: WorkerCard, task: Task) -> Any:
        if inspect.iscoroutinefunction(card.handler):
            return await card.handler(task)
        result = await asyncio.to_thread(card.handler, task)
        if inspect.isawaitable(result):
            result = await result
        return result

    async def _run(self, card: WorkerCard, task: Task) -> None:
        record = self._records[task.id]
        started = time.perf_counter()
        timeout = self.settings.task_timeout
        semaphore = self._limit()
        try:
            if semaphore is not None:
                async with semaphore:
                    result = await asyncio.wait_for(self._invoke(card, task), timeout=timeout)
            else:
                result = await asyncio.wait_for(self._invoke(card, task), timeout=timeout)
        except asyncio.CancelledError:
            self._finish(card, record, started, error="Task cancelled")
            raise
        except asyncio.TimeoutError:
            self._finish(card, record, started, error=f"Task timed out after {timeout}s")
        except Exception as exc:
            LOGGER.debug(f"Worker {card.id} raised on {task.id}", exc_info=exc)
            self._finish(card, record, started, error=describe_exception(exc))
        else:
            self._finish(card, record, started, result=result)

    def _finish(
        self,
        card: WorkerCard,
        record: _TaskRecord,
        started: float,
        *,
        result: Any = None,
        error: Optional[str] = None,
    ) -> None:
        duration = time.perf_counter() - started
        if self._records.get(record.task_id) is not record:
            return  # superseded by a newer dispatch of the same task
        if error is None:
            record.status = TaskStatus.COMPLETED
            record.result = result
            LOGGER.info(f"Worker {card.id} completed {record.task_id} in {duration:.3f}s")
        else:
            record.status = TaskStatus.FAILED
            record.error = error
            LOGGER.warning(f"Worker {card.id} failed {record.task_id}: {error}")
        card.record_outcome(error is None, duration, error)

    def poll(self) -> List[Dict[str, Any]]:
        """Latest state of every dispatched task."""
        return [record.as_update() for record in self._records.values()]

    def status_of(self, task_id: str) -> Optional[TaskStatus]:
        record = self._records.get(task_id)
        return record.status if record else None

    @property
    def running(self) -> int:
        return sum(1 for job in self._running.values() if not job.done())

    async def wait_idle(self) -> None:
        """Wait until every dispatched task has finished."""
        jobs = [job for job in self._running.values() if not job.done()]
        if jobs:
            await asyncio.gather(*jobs, return_exceptions=True)

    async def cancel_pending(self) -> int:
        """Cancel every task still running; returns how many were cancelled."""
        jobs = [job for job in self._running.values() if not job.done()]
        for job in jobs:
            job.cancel()
        if jobs:
            await asyncio.gather(*jobs, return_exceptions=True)
            LOGGER.info(f"Cancelled {len(jobs)} running task(s)")
        return len(jobs)

    def reset(self) -> None:
        """Forget finished tasks (call between runs)."""
        self._records = {
            task_id: record
            for task_id, record in self._records.items()
            if task_id in self._running and not self._running[task_id].done()
        }
        self._running = {task_id: job for task_id, job in self._running.items() if not job.done()}


__all__ = ["WorkerPool"]
