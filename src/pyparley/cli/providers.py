"""Provider factory functions for CLI.

Centralizes creation of the store, identity provider, scheduler and
completion provider from environment variables.
Hides configuration details from command implementations.
"""

import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any

from rich.console import Console

from ..chat import ChatWorkflow
from ..identity import IdentityProvider, create_identity_provider
from ..llm import DEFAULT_CHAT_MODEL, LLMProvider, create_llm_provider
from ..scheduler import TaskScheduler, create_task_scheduler
from ..storage import MessageStore, create_message_store

# Default console for output
_console = Console()

DEFAULT_DB_PATH = "./data/pyparley.db"


def _backend_config() -> tuple[str, dict[str, Any]]:
    backend = os.getenv("PYPARLEY_STORE", "sqlite").lower()
    if backend == "sqlite":
        return backend, {"path": os.getenv("PYPARLEY_DB_PATH", DEFAULT_DB_PATH)}
    return backend, {}


def get_store() -> MessageStore:
    """Create the message store from environment variables.

    Environment variables:
        PYPARLEY_STORE: Backend type (memory or sqlite; default: sqlite)
        PYPARLEY_DB_PATH: SQLite file (default: ./data/pyparley.db)
    """
    backend, config = _backend_config()
    return create_message_store(backend, **config)


def get_identity() -> IdentityProvider:
    """Create the identity provider, sharing the store's backend and file."""
    backend, config = _backend_config()
    return create_identity_provider(backend, **config)


def get_scheduler() -> TaskScheduler:
    """Create the deferred task scheduler."""
    return create_task_scheduler("asyncio")


def get_llm(console: Console | None = None) -> LLMProvider | None:
    """Create the completion provider from environment variables.

    Args:
        console: Optional Rich console for output

    Returns:
        Completion provider instance, or None if not configured

    Environment variables:
        OPENAI_API_KEY: API key for the endpoint (required)
        OPENAI_BASE_URL: Endpoint base URL (default: SDK default)
        OPENAI_CHAT_MODEL: Model identifier (default: gpt-4.1-nano)
    """
    con = console or _console
    api_key = os.getenv("OPENAI_API_KEY")
    if not api_key:
        con.print("[yellow]Warning: OPENAI_API_KEY not set, replies will use the fallback message[/yellow]")
        return None

    return create_llm_provider(
        "openai",
        api_key=api_key,
        base_url=os.getenv("OPENAI_BASE_URL") or None,
        model=os.getenv("OPENAI_CHAT_MODEL", DEFAULT_CHAT_MODEL),
    )


@dataclass
class ChatRuntime:
    """Connected collaborators plus the workflow wired over them."""

    store: MessageStore
    identity: IdentityProvider
    scheduler: TaskScheduler
    llm: LLMProvider | None
    workflow: ChatWorkflow


@asynccontextmanager
async def open_runtime(
    llm: LLMProvider | None,
    debug_callback: Any | None = None,
) -> AsyncIterator[ChatRuntime]:
    """Connect backends, build the workflow, and tear everything down.

    On exit the scheduler is drained first, so replies already queued
    are generated and stored before connections close.
    """
    store = get_store()
    identity = get_identity()
    scheduler = get_scheduler()

    await store.connect()
    await identity.connect()
    try:
        workflow = ChatWorkflow(store=store, identity=identity, scheduler=scheduler, llm=llm)
        if debug_callback is not None:
            workflow.set_debug_callback(debug_callback)
            scheduler.set_debug_callback(debug_callback)

        yield ChatRuntime(
            store=store,
            identity=identity,
            scheduler=scheduler,
            llm=llm,
            workflow=workflow,
        )
    finally:
        try:
            await scheduler.shutdown()
        finally:
            await identity.disconnect()
            await store.disconnect()
            if llm is not None:
                await llm.close()
