"""Chat workflow: send -> generate -> store.

Hidden design decisions:
- How the caller's identity gates reads and writes
- How reply generation is deferred
- Fallback text when the completion provider fails or returns nothing
- Whether replies for one user are serialized
"""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any
from uuid import uuid4

from ..errors import AuthenticationError, SchedulerClosedError
from ..identity import IdentityProvider, User
from ..llm import DEFAULT_CHAT_MODEL, ChatMessage, LLMProvider
from ..prompts import get_system_prompt
from ..scheduler import TaskScheduler
from ..storage import ConversationTurn, Message, MessageStore, TurnStatus
from .constants import (
    DEFAULT_MAX_TOKENS,
    EMPTY_RESPONSE_FALLBACK,
    ERROR_RESPONSE_FALLBACK,
    GENERATE_RESPONSE_TASK,
)


class ChatWorkflow:
    """Turns one human utterance into a stored human message and,
    asynchronously, one stored assistant message.

    All collaborators are passed in, so tests can substitute fakes for
    the store, identity provider, scheduler and completion provider.
    The workflow registers its reply task on ``scheduler`` when built;
    a scheduler therefore serves one workflow.
    """

    def __init__(
        self,
        store: MessageStore,
        identity: IdentityProvider,
        scheduler: TaskScheduler,
        llm: LLMProvider | None,
        model: str | None = None,
        system_prompt: str | None = None,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        serialize_per_user: bool = False,
    ):
        """Initialize the workflow.

        Args:
            store: Message store
            identity: Identity provider resolving session tokens
            scheduler: Deferred task scheduler for reply generation
            llm: Completion provider. None means every reply takes the
                provider-failure fallback.
            model: Model identifier (None uses the provider's default)
            system_prompt: System instruction (None loads prompts/system.txt)
            max_tokens: Output token bound for each reply
            serialize_per_user: If True, one user's replies are generated
                one at a time, in send order
        """
        self._store = store
        self._identity = identity
        self._scheduler = scheduler
        self._llm = llm
        self._model = model or (llm.model if llm is not None else DEFAULT_CHAT_MODEL)
        self._max_tokens = max_tokens
        self._serialize_per_user = serialize_per_user
        # user id -> (lock, number of replies holding or waiting for it)
        self._user_locks: dict[str, tuple[asyncio.Lock, int]] = {}
        self._debug_callback: Any | None = None

        self._system_prompt = system_prompt if system_prompt is not None else get_system_prompt()

        scheduler.register(GENERATE_RESPONSE_TASK, self.generate_response)

    @property
    def model(self) -> str:
        return self._model

    def set_debug_callback(self, callback: Any) -> None:
        """Set the debug callback for detailed execution logging.

        Args:
            callback: Callable(level: str, component: str, message: str)
                      level: 'debug', 'info', 'warning', 'error'
                      component: Source component name
                      message: Log message
        """
        self._debug_callback = callback

    def _debug(self, level: str, component: str, message: str) -> None:
        if self._debug_callback:
            self._debug_callback(level, component, message)

    async def list_messages(self, session_token: str | None) -> list[Message]:
        """List the caller's messages, oldest first.

        An unauthenticated caller gets an empty list, not an error.
        """
        user_id = await self._identity.resolve(session_token)
        if not user_id:
            return []
        return await self._store.list_messages_by_user(user_id)

    async def list_turns(self, session_token: str | None) -> list[ConversationTurn]:
        """List the caller's turns with their reply status, oldest first."""
        user_id = await self._identity.resolve(session_token)
        if not user_id:
            return []
        return await self._store.list_turns_by_user(user_id)

    async def logged_in_user(self, session_token: str | None) -> User | None:
        """Return the caller's user record, or None when signed out."""
        user_id = await self._identity.resolve(session_token)
        if not user_id:
            return None
        return await self._identity.get_user(user_id)

    async def send(self, session_token: str | None, text: str) -> ConversationTurn:
        """Store the caller's message and schedule the assistant reply.

        Returns once the reply task is queued, not once it has run.

        Args:
            session_token: Caller's session token
            text: Message text

        Returns:
            The pending turn; its id is the reply task id. If the task
            could not be queued, the turn is already closed as fallback.

        Raises:
            AuthenticationError: If the caller has no resolved identity.
            SchedulerClosedError: If the scheduler no longer accepts work.
                Nothing is written in either case.
        """
        user_id = await self._identity.resolve(session_token)
        if not user_id:
            raise AuthenticationError()
        if not self._scheduler.is_accepting:
            raise SchedulerClosedError()

        user_message = await self._store.insert_message(
            Message(content=text, is_user=True, user_id=user_id)
        )

        # The turn must exist before its task can run and update it
        turn = await self._store.insert_turn(ConversationTurn(
            id=str(uuid4()),
            user_id=user_id,
            user_message_id=user_message.id,
        ))

        try:
            await self._scheduler.schedule(
                0,
                GENERATE_RESPONSE_TASK,
                {"user_message": text, "user_id": user_id, "turn_id": turn.id},
                task_id=turn.id,
            )
        except Exception as e:
            # The message is already stored, so answer it here instead
            self._debug("error", "Chat", f"Could not queue reply {turn.id}: {type(e).__name__}: {e}")
            await self._store_reply(ERROR_RESPONSE_FALLBACK, TurnStatus.FALLBACK, user_id, turn.id)
            return await self._store.get_turn(turn.id) or turn

        self._debug("info", "Chat", f"Queued reply {turn.id} for user {user_id}")
        return turn

    async def generate_response(
        self,
        user_message: str,
        user_id: str,
        turn_id: str | None = None
    ) -> Message:
        """Ask the completion provider for a reply and store it.

        Runs inside the deferred task. Provider failures never propagate:
        they are reported through the debug callback and replaced by a
        fixed fallback, so exactly one assistant message is always stored.

        Args:
            user_message: The human text to answer
            user_id: Owner of the conversation
            turn_id: Turn to mark answered (None skips turn bookkeeping)

        Returns:
            The stored assistant message
        """
        if self._serialize_per_user:
            async with self._user_lock(user_id):
                return await self._generate_and_store(user_message, user_id, turn_id)
        return await self._generate_and_store(user_message, user_id, turn_id)

    @asynccontextmanager
    async def _user_lock(self, user_id: str) -> AsyncIterator[None]:
        """Hold the user's reply lock; it is dropped once nobody needs it."""
        lock, holders = self._user_locks.get(user_id, (None, 0))
        if lock is None:
            lock = asyncio.Lock()
        self._user_locks[user_id] = (lock, holders + 1)
        try:
            async with lock:
                yield
        finally:
            lock, holders = self._user_locks[user_id]
            if holders == 1:
                del self._user_locks[user_id]
            else:
                self._user_locks[user_id] = (lock, holders - 1)

    async def _generate_and_store(
        self,
        user_message: str,
        user_id: str,
        turn_id: str | None
    ) -> Message:
        messages = [
            ChatMessage(role="system", content=self._system_prompt),
            ChatMessage(role="user", content=user_message),
        ]

        status = TurnStatus.ANSWERED
        try:
            if self._llm is None:
                raise RuntimeError("Completion provider not configured")
            response = await self._llm.chat_completion(
                messages,
                model=self._model,
                max_tokens=self._max_tokens,
            )
            reply = response.content or EMPTY_RESPONSE_FALLBACK
        except Exception as e:
            self._debug("error", "LLM", f"Error generating AI response: {type(e).__name__}: {e}")
            reply = ERROR_RESPONSE_FALLBACK
            status = TurnStatus.FALLBACK

        return await self._store_reply(reply, status, user_id, turn_id)

    async def _store_reply(
        self,
        reply: str,
        status: TurnStatus,
        user_id: str,
        turn_id: str | None
    ) -> Message:
        stored = await self.store_assistant_message(reply, user_id)

        if turn_id is not None:
            await self._store.update_turn(turn_id, status, reply_message_id=stored.id)

        self._debug("debug", "Chat", f"Stored reply for user {user_id} ({status.value})")
        return stored

    async def store_assistant_message(self, content: str, user_id: str) -> Message:
        """Persist an assistant message. No business logic."""
        return await self._store.insert_message(
            Message(content=content, is_user=False, user_id=user_id)
        )
