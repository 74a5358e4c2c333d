"""Data models for the message store.

These models define the structure of chat messages and conversation turns,
independent of the storage backend used.
"""

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


def utcnow() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


class Message(BaseModel):
    """One immutable chat turn, authored by the human user or the assistant.

    ``id`` and ``sequence`` are assigned by the store on insert; a message
    built by callers carries neither.
    """

    model_config = ConfigDict(frozen=True)

    content: str = Field(description="Message text")
    is_user: bool = Field(description="True if authored by the human, False for the assistant")
    user_id: str | None = Field(default=None, description="Owning user identity")
    id: str | None = Field(default=None, description="Store-assigned identifier")
    sequence: int | None = Field(
        default=None,
        description="Store-assigned creation order (monotonic across the table)"
    )

    @property
    def role(self) -> str:
        """Chat role of the author: 'user' or 'assistant'."""
        return "user" if self.is_user else "assistant"


class TurnStatus(str, Enum):
    """Where a sent message is in its reply lifecycle."""

    PENDING = "pending"
    ANSWERED = "answered"
    FALLBACK = "fallback"  # answered, but with a fixed fallback string


class ConversationTurn(BaseModel):
    """A human message together with the state of its assistant reply.

    The turn id is the id of the scheduled task that owns the reply.
    """

    id: str = Field(description="Owning scheduled task id")
    user_id: str
    user_message_id: str
    status: TurnStatus = TurnStatus.PENDING
    reply_message_id: str | None = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @property
    def is_pending(self) -> bool:
        return self.status is TurnStatus.PENDING
