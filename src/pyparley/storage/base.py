"""Abstract base class for message store backends.

This module defines the interface for chat message storage.
The abstraction hides:
- Storage format (in-process lists, SQLite tables)
- How insertion order is tracked
- Connection management
"""

from abc import ABC, abstractmethod

from .models import ConversationTurn, Message, TurnStatus


class MessageStore(ABC):
    """Abstract message store.

    Messages are append-only: there is no update or delete. Turns carry the
    only mutable state (their status) and are never removed either.
    """

    @abstractmethod
    async def connect(self) -> None:
        """Initialize the store backend."""

    @abstractmethod
    async def disconnect(self) -> None:
        """Close the store backend gracefully."""

    @abstractmethod
    async def insert_message(self, message: Message) -> Message:
        """Append a message.

        Args:
            message: Message to store (any ``id``/``sequence`` is ignored)

        Returns:
            The stored message with ``id`` and ``sequence`` assigned
        """

    @abstractmethod
    async def list_messages_by_user(self, user_id: str) -> list[Message]:
        """List every message owned by ``user_id``, oldest first."""

    @abstractmethod
    async def count_messages(self, user_id: str | None = None) -> int:
        """Count messages, optionally only those owned by ``user_id``."""

    @abstractmethod
    async def insert_turn(self, turn: ConversationTurn) -> ConversationTurn:
        """Record a new conversation turn."""

    @abstractmethod
    async def update_turn(
        self,
        turn_id: str,
        status: TurnStatus,
        reply_message_id: str | None = None
    ) -> ConversationTurn | None:
        """Set a turn's status (and reply id). Returns None if the turn is unknown."""

    @abstractmethod
    async def get_turn(self, turn_id: str) -> ConversationTurn | None:
        """Fetch a turn by id."""

    @abstractmethod
    async def list_turns_by_user(self, user_id: str) -> list[ConversationTurn]:
        """List turns owned by ``user_id``, oldest first."""

    @property
    @abstractmethod
    def backend_type(self) -> str:
        """Get the backend type identifier."""
