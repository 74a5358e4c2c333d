from abc import ABC, abstractmethod
from typing import Any

from .models import ChatMessage, LLMResponse


class LLMProvider(ABC):
    """A completion endpoint that continues a conversation prefix.

    Implementations own their API client. Endpoint errors propagate
    unchanged; callers choose their own fallback. Use ``async with
    provider:`` to release the client when done.
    """

    @property
    @abstractmethod
    def model(self) -> str:
        """Model used when a request does not name one."""

    @abstractmethod
    async def chat_completion(
        self,
        messages: list[ChatMessage],
        model: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
        **kwargs: Any
    ) -> LLMResponse:
        """Continue ``messages`` and return the generated text.

        Args:
            messages: Ordered conversation prefix
            model: Overrides :attr:`model` for this request
            max_tokens: Output token bound (None leaves the endpoint default)
            temperature: Sampling temperature (None leaves the endpoint default)
            **kwargs: Passed through to the endpoint

        Returns:
            LLMResponse whose ``content`` is "" when the endpoint produced
            no text. An empty answer is not an error.
        """

    @abstractmethod
    async def close(self) -> None:
        """Release the underlying client."""

    async def __aenter__(self) -> "LLMProvider":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        try:
            await self.close()
        except RuntimeError as e:
            # httpx may fail to close its pool once the loop is gone
            if "Event loop is closed" not in str(e):
                raise
