"""In-memory message store backend.

Simple list-based storage for tests and throwaway sessions.
Data is lost when the application exits.
"""

from uuid import uuid4

from .base import MessageStore
from .models import ConversationTurn, Message, TurnStatus, utcnow


class InMemoryMessageStore(MessageStore):
    """In-memory message store (process lifetime only)."""

    def __init__(self) -> None:
        self._messages: list[Message] = []
        self._turns: dict[str, ConversationTurn] = {}
        self._next_sequence = 1

    async def connect(self) -> None:
        """Initialize store (no-op for in-memory)."""
        pass

    async def disconnect(self) -> None:
        """Close store (no-op for in-memory)."""
        pass

    async def insert_message(self, message: Message) -> Message:
        stored = message.model_copy(
            update={"id": str(uuid4()), "sequence": self._next_sequence}
        )
        self._next_sequence += 1
        self._messages.append(stored)
        return stored

    async def list_messages_by_user(self, user_id: str) -> list[Message]:
        return [m for m in self._messages if m.user_id == user_id]

    async def count_messages(self, user_id: str | None = None) -> int:
        if user_id is None:
            return len(self._messages)
        return sum(1 for m in self._messages if m.user_id == user_id)

    async def insert_turn(self, turn: ConversationTurn) -> ConversationTurn:
        self._turns[turn.id] = turn
        return turn

    async def update_turn(
        self,
        turn_id: str,
        status: TurnStatus,
        reply_message_id: str | None = None
    ) -> ConversationTurn | None:
        turn = self._turns.get(turn_id)
        if turn is None:
            return None
        updated = turn.model_copy(update={
            "status": status,
            "reply_message_id": reply_message_id,
            "updated_at": utcnow(),
        })
        self._turns[turn_id] = updated
        return updated

    async def get_turn(self, turn_id: str) -> ConversationTurn | None:
        return self._turns.get(turn_id)

    async def list_turns_by_user(self, user_id: str) -> list[ConversationTurn]:
        # dicts preserve insertion order
        return [t for t in self._turns.values() if t.user_id == user_id]

    @property
    def backend_type(self) -> str:
        return "memory"
