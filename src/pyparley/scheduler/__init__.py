"""Deferred task scheduler module for pyparley."""

from .base import TaskHandler, TaskScheduler
from .factory import create_task_scheduler
from .models import ScheduledTask, TaskStatus

__all__ = [
    "ScheduledTask",
    "TaskHandler",
    "TaskScheduler",
    "TaskStatus",
    "create_task_scheduler",
]
