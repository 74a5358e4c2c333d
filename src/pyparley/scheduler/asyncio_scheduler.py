"""Event-loop scheduler backend.

Runs each scheduled task as an ``asyncio.Task`` on the running loop.
Task records live in memory; only the most recent ``max_finished``
finished records are kept.
"""

import asyncio
from collections import deque
from typing import Any

from ..errors import SchedulerClosedError, UnknownTaskError
from ..storage.models import utcnow
from .base import TaskHandler, TaskScheduler
from .models import ScheduledTask, TaskStatus


class AsyncioTaskScheduler(TaskScheduler):
    """In-process deferred task scheduler.

    Tasks are not cancelled on shutdown; ``shutdown()`` drains them.
    """

    def __init__(self, max_finished: int = 1000) -> None:
        super().__init__()
        if max_finished < 0:
            raise ValueError(f"max_finished must be >= 0, got {max_finished}")
        self._max_finished = max_finished
        self._finished: deque[str] = deque()
        self._handlers: dict[str, TaskHandler] = {}
        self._tasks: dict[str, ScheduledTask] = {}
        self._running: dict[str, asyncio.Task] = {}
        self._closed = False

    def register(self, task_name: str, handler: TaskHandler) -> None:
        if task_name in self._handlers:
            raise ValueError(f"Task {task_name} already registered")
        self._handlers[task_name] = handler

    async def schedule(
        self,
        delay: float,
        task_name: str,
        payload: dict[str, Any] | None = None,
        task_id: str | None = None
    ) -> str:
        if self._closed:
            raise SchedulerClosedError()

        handler = self._handlers.get(task_name)
        if handler is None:
            raise UnknownTaskError(task_name)

        if delay < 0:
            raise ValueError(f"delay must be >= 0, got {delay}")

        record_kwargs: dict[str, Any] = {
            "task_name": task_name,
            "payload": payload or {},
            "delay": delay,
        }
        if task_id is not None:
            if task_id in self._tasks:
                raise ValueError(f"Task id {task_id} already scheduled")
            record_kwargs["id"] = task_id

        record = ScheduledTask(**record_kwargs)
        self._tasks[record.id] = record
        self._running[record.id] = asyncio.create_task(
            self._run(record, handler),
            name=f"{task_name}:{record.id}"
        )

        self._debug("debug", "Scheduler", f"Scheduled {task_name} ({record.id}) after {delay}s")
        return record.id

    async def _run(self, record: ScheduledTask, handler: TaskHandler) -> None:
        """Execute one task and record its outcome."""
        try:
            if record.delay > 0:
                await asyncio.sleep(record.delay)

            record.status = TaskStatus.RUNNING
            await handler(**record.payload)
        except asyncio.CancelledError:
            record.status = TaskStatus.FAILED
            record.error = "cancelled"
            record.finished_at = utcnow()
            raise
        except Exception as e:
            record.status = TaskStatus.FAILED
            record.error = f"{type(e).__name__}: {e}"
            record.finished_at = utcnow()
            self._debug("error", "Scheduler", f"Task {record.task_name} ({record.id}) failed: {record.error}")
        else:
            record.status = TaskStatus.COMPLETE
            record.finished_at = utcnow()
            self._debug("debug", "Scheduler", f"Task {record.task_name} ({record.id}) complete")
        finally:
            self._running.pop(record.id, None)
            self._retire(record.id)

    def _retire(self, task_id: str) -> None:
        """Keep at most ``max_finished`` finished records, dropping the oldest."""
        self._finished.append(task_id)
        while len(self._finished) > self._max_finished:
            self._tasks.pop(self._finished.popleft(), None)

    async def get_task(self, task_id: str) -> ScheduledTask | None:
        return self._tasks.get(task_id)

    async def wait_idle(self, timeout: float | None = None) -> None:
        loop = asyncio.get_running_loop()
        deadline = None if timeout is None else loop.time() + timeout

        # Handlers may schedule follow-up tasks, so loop until empty.
        # asyncio.wait leaves unfinished tasks running on timeout.
        while self._running:
            remaining = None
            if deadline is not None:
                remaining = deadline - loop.time()
                if remaining <= 0:
                    raise asyncio.TimeoutError(
                        f"{len(self._running)} task(s) still running after {timeout}s"
                    )
            await asyncio.wait(list(self._running.values()), timeout=remaining)

    async def shutdown(self) -> None:
        self._closed = True
        await self.wait_idle()

    @property
    def is_accepting(self) -> bool:
        return not self._closed

    @property
    def pending_count(self) -> int:
        """Number of tasks not yet finished."""
        return len(self._running)

    @property
    def backend_type(self) -> str:
        return "asyncio"
