"""Factory for creating deferred task schedulers."""

from typing import Any

from .base import TaskScheduler


def create_task_scheduler(backend: str = "asyncio", **kwargs: Any) -> TaskScheduler:
    """Create a task scheduler.

    Args:
        backend: Backend type ("asyncio" currently supported)
        **kwargs: Backend-specific configuration

    Returns:
        TaskScheduler instance

    Raises:
        ValueError: If backend type is not supported
    """
    if backend == "asyncio":
        from .asyncio_scheduler import AsyncioTaskScheduler
        return AsyncioTaskScheduler(**kwargs)

    raise ValueError(
        f"Unsupported scheduler backend: {backend}. "
        f"Supported backends: asyncio"
    )
