"""Data models for deferred tasks."""

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, Field

from ..storage.models import utcnow


class TaskStatus(str, Enum):
    """Lifecycle of a scheduled task."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETE = "complete"
    FAILED = "failed"


class ScheduledTask(BaseModel):
    """A work-queue entry: one deferred invocation of a registered task."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    task_name: str = Field(description="Registered handler name")
    payload: dict[str, Any] = Field(default_factory=dict, description="Keyword arguments for the handler")
    delay: float = Field(default=0.0, ge=0.0, description="Seconds to wait before running")
    status: TaskStatus = TaskStatus.PENDING
    scheduled_at: datetime = Field(default_factory=utcnow)
    finished_at: datetime | None = None
    error: str | None = Field(default=None, description="Error text if the handler raised")

    @property
    def is_finished(self) -> bool:
        return self.status in (TaskStatus.COMPLETE, TaskStatus.FAILED)
