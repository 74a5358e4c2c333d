"""Message store module for pyparley.

Provides the append-only ``messages`` table with per-user lookup,
plus the turn records that make pending replies queryable.
"""

from .base import MessageStore
from .factory import create_message_store
from .models import ConversationTurn, Message, TurnStatus

__all__ = [
    "ConversationTurn",
    "Message",
    "MessageStore",
    "TurnStatus",
    "create_message_store",
]
