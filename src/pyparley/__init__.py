"""
Pyparley: a minimal authenticated chat service.

Users send text; the service stores it, asks an OpenAI-compatible
completion endpoint for a reply in a deferred task, and stores the reply.
Each module hides one design decision (storage, identity, scheduling,
completion provider, workflow).
"""

__version__ = "0.1.0"

from .chat import ChatWorkflow
from .errors import AuthenticationError, PyparleyError, SchedulerClosedError
from .identity import IdentityProvider, User, create_identity_provider
from .llm import LLMProvider, create_llm_provider
from .scheduler import TaskScheduler, create_task_scheduler
from .storage import (
    ConversationTurn,
    Message,
    MessageStore,
    TurnStatus,
    create_message_store,
)

__all__ = [
    "AuthenticationError",
    "ChatWorkflow",
    "ConversationTurn",
    "IdentityProvider",
    "LLMProvider",
    "Message",
    "MessageStore",
    "PyparleyError",
    "SchedulerClosedError",
    "TaskScheduler",
    "TurnStatus",
    "User",
    "create_identity_provider",
    "create_llm_provider",
    "create_message_store",
    "create_task_scheduler",
]
