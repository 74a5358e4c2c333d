"""Pytest configuration and shared fixtures."""
import asyncio
import os
from dataclasses import dataclass
from typing import Any

import pytest

from pyparley.chat import ChatWorkflow
from pyparley.identity import IdentityProvider, create_identity_provider
from pyparley.llm import ChatMessage, LLMProvider, LLMResponse
from pyparley.scheduler import TaskScheduler, create_task_scheduler
from pyparley.storage import MessageStore, create_message_store


class FakeLLMProvider(LLMProvider):
    """Scripted completion provider that records every request.

    Args:
        content: Text returned for every request
        error: Exception raised instead of answering
        delays: Seconds to sleep before answering, keyed by user text
    """

    def __init__(
        self,
        content: str = "Hi there!",
        error: Exception | None = None,
        delays: dict[str, float] | None = None,
        model: str = "fake-model",
    ):
        self._content = content
        self._error = error
        self._delays = delays or {}
        self._model = model
        self.calls: list[dict[str, Any]] = []
        self.closed = False

    @property
    def model(self) -> str:
        return self._model

    async def chat_completion(
        self,
        messages: list[ChatMessage],
        model: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
        **kwargs: Any
    ) -> LLMResponse:
        self.calls.append({
            "messages": messages,
            "model": model,
            "max_tokens": max_tokens,
        })
        delay = self._delays.get(messages[-1].content, 0.0)
        if delay:
            await asyncio.sleep(delay)
        if self._error is not None:
            raise self._error
        return LLMResponse(content=self._content, model=model or self._model)

    async def close(self) -> None:
        self.closed = True


@dataclass
class Harness:
    """A workflow wired over in-memory collaborators."""

    store: MessageStore
    identity: IdentityProvider
    scheduler: TaskScheduler
    llm: LLMProvider | None
    workflow: ChatWorkflow


async def build_harness(
    llm: LLMProvider | None,
    serialize_per_user: bool = False,
) -> Harness:
    store = create_message_store("memory")
    identity = create_identity_provider("memory")
    scheduler = create_task_scheduler("asyncio")
    await store.connect()
    await identity.connect()
    workflow = ChatWorkflow(
        store=store,
        identity=identity,
        scheduler=scheduler,
        llm=llm,
        system_prompt="You are a test assistant.",
        serialize_per_user=serialize_per_user,
    )
    return Harness(store, identity, scheduler, llm, workflow)


@pytest.fixture(scope="session")
def api_keys():
    """Return API keys from environment."""
    return {
        "openai": os.getenv("OPENAI_API_KEY"),
    }


@pytest.fixture
def fake_llm():
    """Provider that always answers 'Hi there!'."""
    return FakeLLMProvider()


@pytest.fixture
async def harness(fake_llm):
    """Workflow over in-memory backends and the fake provider."""
    h = await build_harness(fake_llm)
    yield h
    await h.scheduler.shutdown()


@pytest.fixture
def db_path(tmp_path):
    """Path of a fresh SQLite file."""
    return tmp_path / "pyparley.db"
