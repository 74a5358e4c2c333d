"""Abstract base class for deferred task schedulers.

The abstraction hides:
- Where tasks run (event loop, worker process, remote queue)
- How delays are implemented
- How task state is tracked
"""

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from typing import Any

from .models import ScheduledTask

TaskHandler = Callable[..., Awaitable[Any]]


class TaskScheduler(ABC):
    """Fire-and-forget scheduler for named tasks.

    ``schedule`` returns as soon as the task is queued; the handler runs
    independently of the caller. Exceptions escaping a handler mark the
    task failed and never reach the caller of ``schedule``.
    """

    def __init__(self) -> None:
        self._debug_callback: Any | None = None

    @abstractmethod
    def register(self, task_name: str, handler: TaskHandler) -> None:
        """Register an async handler under ``task_name``."""

    @abstractmethod
    async def schedule(
        self,
        delay: float,
        task_name: str,
        payload: dict[str, Any] | None = None,
        task_id: str | None = None
    ) -> str:
        """Queue ``task_name(**payload)`` to run after ``delay`` seconds.

        Args:
            delay: Seconds to wait before running (0 runs as soon as possible)
            task_name: Registered handler name
            payload: Keyword arguments for the handler
            task_id: Optional caller-chosen id (must be unique)

        Returns:
            The task id

        Raises:
            UnknownTaskError: If no handler is registered for ``task_name``
            ValueError: If ``delay`` is negative or ``task_id`` is already used
            SchedulerClosedError: If the scheduler has been shut down
        """

    @abstractmethod
    async def get_task(self, task_id: str) -> ScheduledTask | None:
        """Fetch a task record by id."""

    @abstractmethod
    async def wait_idle(self, timeout: float | None = None) -> None:
        """Wait until no task is pending or running.

        Raises:
            TimeoutError: If tasks are still outstanding after ``timeout`` seconds
        """

    @abstractmethod
    async def shutdown(self) -> None:
        """Stop accepting tasks and let outstanding ones run to completion."""

    @property
    @abstractmethod
    def is_accepting(self) -> bool:
        """False once ``shutdown()`` has been called; ``schedule`` then raises."""

    @property
    @abstractmethod
    def backend_type(self) -> str:
        """Get the backend type identifier."""

    def set_debug_callback(self, callback: Any) -> None:
        """Set the debug callback for task lifecycle logging.

        Args:
            callback: Callable(level: str, component: str, message: str)
        """
        self._debug_callback = callback

    def _debug(self, level: str, component: str, message: str) -> None:
        if self._debug_callback:
            self._debug_callback(level, component, message)
