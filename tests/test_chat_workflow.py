"""Unit tests for the chat workflow."""
import asyncio

import pytest
from conftest import FakeLLMProvider, build_harness

from pyparley.chat import (
    DEFAULT_MAX_TOKENS,
    EMPTY_RESPONSE_FALLBACK,
    ERROR_RESPONSE_FALLBACK,
    GENERATE_RESPONSE_TASK,
    ChatWorkflow,
)
from pyparley.errors import AuthenticationError, SchedulerClosedError
from pyparley.identity import create_identity_provider
from pyparley.scheduler import TaskStatus, create_task_scheduler
from pyparley.scheduler.asyncio_scheduler import AsyncioTaskScheduler
from pyparley.storage import TurnStatus, create_message_store


class TestListMessages:
    """Tests for ChatWorkflow.list_messages."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("token", [None, "", "bogus-token"])
    async def test_unauthenticated_gets_empty_list(self, harness, token):
        """Test that an unauthenticated caller sees nothing, without error."""
        other = await harness.identity.sign_in("other@example.com")
        await harness.workflow.send(other, "secret")
        await harness.scheduler.wait_idle(timeout=5)

        assert await harness.workflow.list_messages(token) == []

    @pytest.mark.asyncio
    async def test_only_own_messages_in_order(self, harness):
        """Test that each user sees only their own messages, oldest first."""
        ada = await harness.identity.sign_in("ada@example.com")
        bob = await harness.identity.sign_in("bob@example.com")

        await harness.workflow.send(ada, "first")
        await harness.scheduler.wait_idle(timeout=5)
        await harness.workflow.send(bob, "bob's")
        await harness.scheduler.wait_idle(timeout=5)
        await harness.workflow.send(ada, "second")
        await harness.scheduler.wait_idle(timeout=5)

        ada_id = await harness.identity.resolve(ada)
        messages = await harness.workflow.list_messages(ada)

        assert [(m.content, m.is_user) for m in messages] == [
            ("first", True),
            ("Hi there!", False),
            ("second", True),
            ("Hi there!", False),
        ]
        assert all(m.user_id == ada_id for m in messages)
        sequences = [m.sequence for m in messages]
        assert sequences == sorted(sequences)

    @pytest.mark.asyncio
    async def test_signed_out_user_sees_nothing(self, harness):
        token = await harness.identity.sign_in("ada@example.com")
        await harness.workflow.send(token, "hello")
        await harness.scheduler.wait_idle(timeout=5)
        await harness.identity.sign_out(token)

        assert await harness.workflow.list_messages(token) == []


class TestSend:
    """Tests for ChatWorkflow.send."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("token", [None, "", "bogus-token"])
    async def test_unauthenticated_send_fails_without_writes(self, harness, token):
        """Test that a failed send leaves the message table unchanged."""
        before = await harness.store.count_messages()

        with pytest.raises(AuthenticationError):
            await harness.workflow.send(token, "hello")

        await harness.scheduler.wait_idle(timeout=5)
        assert await harness.store.count_messages() == before
        assert harness.llm.calls == []

    @pytest.mark.asyncio
    async def test_user_message_stored_synchronously(self, harness):
        """Test that send stores exactly one human message before returning."""
        token = await harness.identity.sign_in("ada@example.com")
        user_id = await harness.identity.resolve(token)

        turn = await harness.workflow.send(token, "hello")

        messages = await harness.store.list_messages_by_user(user_id)
        assert len(messages) == 1
        assert messages[0].content == "hello"
        assert messages[0].is_user is True
        assert messages[0].user_id == user_id
        assert turn.user_message_id == messages[0].id
        assert turn.status is TurnStatus.PENDING

    @pytest.mark.asyncio
    async def test_reply_stored_eventually(self, harness):
        """Test that exactly one assistant message follows the task run."""
        token = await harness.identity.sign_in("ada@example.com")
        user_id = await harness.identity.resolve(token)

        turn = await harness.workflow.send(token, "hello")
        await harness.scheduler.wait_idle(timeout=5)

        messages = await harness.store.list_messages_by_user(user_id)
        replies = [m for m in messages if not m.is_user]
        assert len(messages) == 2
        assert len(replies) == 1
        assert replies[0].content == "Hi there!"
        assert replies[0].user_id == user_id

        stored_turn = await harness.store.get_turn(turn.id)
        assert stored_turn.status is TurnStatus.ANSWERED
        assert stored_turn.reply_message_id == replies[0].id

    @pytest.mark.asyncio
    async def test_turn_id_is_task_id(self, harness):
        """Test that the turn is owned by its scheduled task."""
        token = await harness.identity.sign_in("ada@example.com")

        turn = await harness.workflow.send(token, "hello")
        task = await harness.scheduler.get_task(turn.id)

        assert task is not None
        assert task.task_name == GENERATE_RESPONSE_TASK
        await harness.scheduler.wait_idle(timeout=5)
        assert task.status is TaskStatus.COMPLETE

    @pytest.mark.asyncio
    async def test_completion_request(self, harness):
        """Test the prefix, model and token bound sent to the provider."""
        token = await harness.identity.sign_in("ada@example.com")

        await harness.workflow.send(token, "what is 2+2?")
        await harness.scheduler.wait_idle(timeout=5)

        [call] = harness.llm.calls
        assert [(m.role, m.content) for m in call["messages"]] == [
            ("system", "You are a test assistant."),
            ("user", "what is 2+2?"),
        ]
        assert call["model"] == "fake-model"
        assert call["max_tokens"] == DEFAULT_MAX_TOKENS

    @pytest.mark.asyncio
    async def test_empty_text_is_sent(self, harness):
        """Test that empty text is stored and answered like any other."""
        token = await harness.identity.sign_in("ada@example.com")

        await harness.workflow.send(token, "")
        await harness.scheduler.wait_idle(timeout=5)

        messages = await harness.workflow.list_messages(token)
        assert [m.content for m in messages] == ["", "Hi there!"]


class TestFallbacks:
    """Replies when the completion provider misbehaves."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [
        RuntimeError("connection refused"),
        asyncio.TimeoutError(),
        ValueError("bad response"),
    ])
    async def test_provider_error_stores_error_fallback(self, error):
        """Test that a failing provider yields the fixed error reply."""
        h = await build_harness(FakeLLMProvider(error=error))
        token = await h.identity.sign_in("ada@example.com")

        turn = await h.workflow.send(token, "hello")
        await h.scheduler.wait_idle(timeout=5)

        messages = await h.workflow.list_messages(token)
        assert [m.content for m in messages if not m.is_user] == [ERROR_RESPONSE_FALLBACK]
        assert (await h.store.get_turn(turn.id)).status is TurnStatus.FALLBACK
        # The task itself succeeded: the failure was handled
        assert (await h.scheduler.get_task(turn.id)).status is TaskStatus.COMPLETE
        await h.scheduler.shutdown()

    @pytest.mark.asyncio
    async def test_empty_completion_stores_empty_fallback(self):
        """Test that a content-less response yields the fixed empty reply."""
        h = await build_harness(FakeLLMProvider(content=""))
        token = await h.identity.sign_in("ada@example.com")

        turn = await h.workflow.send(token, "hello")
        await h.scheduler.wait_idle(timeout=5)

        messages = await h.workflow.list_messages(token)
        assert [m.content for m in messages if not m.is_user] == [EMPTY_RESPONSE_FALLBACK]
        assert (await h.store.get_turn(turn.id)).status is TurnStatus.ANSWERED
        await h.scheduler.shutdown()

    @pytest.mark.asyncio
    async def test_missing_provider_stores_error_fallback(self):
        """Test that a workflow without a provider still answers."""
        h = await build_harness(None)
        token = await h.identity.sign_in("ada@example.com")

        turn = await h.workflow.send(token, "hello")
        await h.scheduler.wait_idle(timeout=5)

        messages = await h.workflow.list_messages(token)
        assert [m.content for m in messages if not m.is_user] == [ERROR_RESPONSE_FALLBACK]
        assert (await h.store.get_turn(turn.id)).status is TurnStatus.FALLBACK
        await h.scheduler.shutdown()

    @pytest.mark.asyncio
    async def test_provider_error_is_logged(self):
        """Test that the failure reaches the debug callback."""
        h = await build_harness(FakeLLMProvider(error=RuntimeError("boom")))
        logs = []
        h.workflow.set_debug_callback(lambda level, component, msg: logs.append((level, component, msg)))
        token = await h.identity.sign_in("ada@example.com")

        await h.workflow.send(token, "hello")
        await h.scheduler.wait_idle(timeout=5)

        assert ("error", "LLM", "Error generating AI response: RuntimeError: boom") in logs
        await h.scheduler.shutdown()


class TestConcurrentSends:
    """Two sends from one user racing before either reply finishes."""

    @pytest.mark.asyncio
    async def test_relaxed_replies_can_interleave(self):
        """Test that by default a faster reply may be stored first."""
        llm = FakeLLMProvider(delays={"slow": 0.2, "fast": 0.0})
        h = await build_harness(llm)
        token = await h.identity.sign_in("ada@example.com")

        await h.workflow.send(token, "slow")
        await h.workflow.send(token, "fast")
        await h.scheduler.wait_idle(timeout=5)

        messages = await h.workflow.list_messages(token)
        assert [m.is_user for m in messages] == [True, True, False, False]
        assert len(llm.calls) == 2
        turns = await h.workflow.list_turns(token)
        [slow_turn, fast_turn] = turns
        slow_reply = next(m for m in messages if m.id == slow_turn.reply_message_id)
        fast_reply = next(m for m in messages if m.id == fast_turn.reply_message_id)
        assert fast_reply.sequence < slow_reply.sequence
        await h.scheduler.shutdown()

    @pytest.mark.asyncio
    async def test_serialized_replies_follow_send_order(self):
        """Test that per-user serialization stores replies in send order."""
        llm = FakeLLMProvider(delays={"slow": 0.2, "fast": 0.0})
        h = await build_harness(llm, serialize_per_user=True)
        token = await h.identity.sign_in("ada@example.com")

        await h.workflow.send(token, "slow")
        await h.workflow.send(token, "fast")
        await h.scheduler.wait_idle(timeout=5)

        messages = await h.workflow.list_messages(token)
        turns = await h.workflow.list_turns(token)
        reply_ids = [m.id for m in messages if not m.is_user]
        assert reply_ids == [t.reply_message_id for t in turns]
        await h.scheduler.shutdown()

    @pytest.mark.asyncio
    async def test_serialization_is_per_user(self):
        """Test that one user's slow reply does not block another user."""
        llm = FakeLLMProvider(delays={"slow": 0.2})
        h = await build_harness(llm, serialize_per_user=True)
        ada = await h.identity.sign_in("ada@example.com")
        bob = await h.identity.sign_in("bob@example.com")

        await h.workflow.send(ada, "slow")
        bob_turn = await h.workflow.send(bob, "quick")
        await asyncio.sleep(0.05)

        assert (await h.store.get_turn(bob_turn.id)).status is TurnStatus.ANSWERED
        await h.scheduler.wait_idle(timeout=5)
        await h.scheduler.shutdown()


class TestTurnsAndIdentity:
    """Tests for list_turns and logged_in_user."""

    @pytest.mark.asyncio
    async def test_list_turns(self, harness):
        token = await harness.identity.sign_in("ada@example.com")

        first = await harness.workflow.send(token, "one")
        second = await harness.workflow.send(token, "two")
        await harness.scheduler.wait_idle(timeout=5)

        turns = await harness.workflow.list_turns(token)
        assert [t.id for t in turns] == [first.id, second.id]
        assert all(t.status is TurnStatus.ANSWERED for t in turns)

    @pytest.mark.asyncio
    async def test_list_turns_unauthenticated(self, harness):
        assert await harness.workflow.list_turns(None) == []

    @pytest.mark.asyncio
    async def test_logged_in_user(self, harness):
        token = await harness.identity.sign_in("ada@example.com")

        user = await harness.workflow.logged_in_user(token)

        assert user is not None
        assert user.email == "ada@example.com"
        assert await harness.workflow.logged_in_user(None) is None


class TestStoreAssistantMessage:
    """Tests for ChatWorkflow.store_assistant_message."""

    @pytest.mark.asyncio
    async def test_stores_verbatim(self, harness):
        stored = await harness.workflow.store_assistant_message("canned", "u1")

        assert stored.content == "canned"
        assert stored.is_user is False
        assert stored.user_id == "u1"
        assert await harness.store.count_messages("u1") == 1

    @pytest.mark.asyncio
    async def test_generate_response_without_turn(self, harness):
        """Test invoking the reply task directly, outside a turn."""
        stored = await harness.workflow.generate_response("hello", "u1")

        assert stored.content == "Hi there!"
        assert stored.user_id == "u1"


class TestWorkflowConstruction:
    """Tests for ChatWorkflow wiring."""

    @pytest.mark.asyncio
    async def test_model_defaults_to_provider_model(self, harness):
        assert harness.workflow.model == "fake-model"

    @pytest.mark.asyncio
    async def test_one_workflow_per_scheduler(self, harness):
        """Test that a second workflow cannot claim the same reply task."""
        with pytest.raises(ValueError):
            ChatWorkflow(
                store=harness.store,
                identity=harness.identity,
                scheduler=harness.scheduler,
                llm=harness.llm,
                system_prompt="x",
            )


class FailingScheduler(AsyncioTaskScheduler):
    """Accepts work but fails to queue it."""

    async def schedule(self, delay, task_name, payload=None, task_id=None):
        raise RuntimeError("queue unavailable")


class TestSendAtomicity:
    """A send either writes nothing or ends with an answered turn."""

    @pytest.mark.asyncio
    async def test_send_after_shutdown_writes_nothing(self, harness):
        """Test that a closed scheduler is rejected before any write."""
        token = await harness.identity.sign_in("ada@example.com")
        user_id = await harness.identity.resolve(token)
        await harness.scheduler.shutdown()

        with pytest.raises(SchedulerClosedError):
            await harness.workflow.send(token, "hello")

        assert await harness.store.count_messages() == 0
        assert await harness.store.list_turns_by_user(user_id) == []
        assert harness.llm.calls == []

    @pytest.mark.asyncio
    async def test_queue_failure_closes_turn_with_fallback(self):
        """Test that a turn whose task cannot be queued is not left pending."""
        store = create_message_store("memory")
        identity = create_identity_provider("memory")
        llm = FakeLLMProvider()
        workflow = ChatWorkflow(
            store=store,
            identity=identity,
            scheduler=FailingScheduler(),
            llm=llm,
            system_prompt="x",
        )
        logs = []
        workflow.set_debug_callback(lambda level, component, msg: logs.append((level, component, msg)))
        token = await identity.sign_in("ada@example.com")

        turn = await workflow.send(token, "hello")

        messages = await workflow.list_messages(token)
        assert [(m.content, m.is_user) for m in messages] == [
            ("hello", True),
            (ERROR_RESPONSE_FALLBACK, False),
        ]
        assert turn.status is TurnStatus.FALLBACK
        assert turn.reply_message_id == messages[1].id
        [stored_turn] = await workflow.list_turns(token)
        assert stored_turn.status is TurnStatus.FALLBACK
        assert llm.calls == []
        assert any(level == "error" and "queue unavailable" in msg for level, _, msg in logs)


class TestUserLocks:
    """Per-user locks do not outlive the replies that use them."""

    @pytest.mark.asyncio
    async def test_locks_released_after_replies(self):
        llm = FakeLLMProvider(delays={"slow": 0.05})
        h = await build_harness(llm, serialize_per_user=True)
        ada = await h.identity.sign_in("ada@example.com")
        bob = await h.identity.sign_in("bob@example.com")

        await h.workflow.send(ada, "slow")
        await h.workflow.send(ada, "fast")
        await h.workflow.send(bob, "slow")
        await asyncio.sleep(0)
        assert len(h.workflow._user_locks) == 2

        await h.scheduler.wait_idle(timeout=5)

        assert h.workflow._user_locks == {}
        await h.scheduler.shutdown()


class TestSystemInstruction:
    """The instruction sent with every request."""

    @pytest.mark.asyncio
    async def test_working_directory_prompt_is_ignored(self, tmp_path, monkeypatch):
        """Test that a ./prompts/system.txt cannot replace the instruction."""
        from pyparley.prompts import PROMPTS_DIR_ENV, clear_cache

        (tmp_path / "prompts").mkdir()
        (tmp_path / "prompts" / "system.txt").write_text("You are a pirate.")
        monkeypatch.chdir(tmp_path)
        monkeypatch.delenv(PROMPTS_DIR_ENV, raising=False)
        clear_cache()

        llm = FakeLLMProvider()
        identity = create_identity_provider("memory")
        scheduler = create_task_scheduler("asyncio")
        workflow = ChatWorkflow(
            store=create_message_store("memory"),
            identity=identity,
            scheduler=scheduler,
            llm=llm,
        )
        token = await identity.sign_in("ada@example.com")
        await workflow.send(token, "hello")
        await scheduler.shutdown()
        clear_cache()

        system = llm.calls[0]["messages"][0]
        assert system.role == "system"
        assert system.content == "You are a helpful assistant. Keep your responses concise and friendly."
