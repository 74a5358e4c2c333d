"""Chat Completions adapter for api.openai.com and compatible endpoints."""

from typing import Any

from openai import AsyncOpenAI

from ..base import LLMProvider
from ..models import ChatMessage, LLMResponse

DEFAULT_CHAT_MODEL = "gpt-4.1-nano"


def _usage_dict(usage: Any) -> dict[str, int] | None:
    if usage is None:
        return None
    return {
        "prompt_tokens": usage.prompt_tokens,
        "completion_tokens": usage.completion_tokens,
        "total_tokens": usage.total_tokens,
    }


def _first_choice_text(completion: Any) -> str:
    # A null message content or a response without choices both read as ""
    if not completion.choices:
        return ""
    return completion.choices[0].message.content or ""


class OpenAIProvider(LLMProvider):
    """Provider for any endpoint speaking the Chat Completions protocol.

    ``base_url`` picks the endpoint (None means api.openai.com). Extra
    keyword arguments such as ``timeout`` or ``max_retries`` go to the
    ``AsyncOpenAI`` client unchanged.
    """

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_CHAT_MODEL,
        base_url: str | None = None,
        organization: str | None = None,
        **client_kwargs: Any
    ):
        self._model = model
        self._client = AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            organization=organization,
            **client_kwargs
        )

    @property
    def model(self) -> str:
        return self._model

    @property
    def base_url(self) -> str:
        """Endpoint the client sends requests to."""
        return str(self._client.base_url)

    def _build_request(
        self,
        messages: list[ChatMessage],
        model: str | None,
        max_tokens: int | None,
        temperature: float | None,
        extra: dict[str, Any]
    ) -> dict[str, Any]:
        request: dict[str, Any] = {
            "model": model or self._model,
            "messages": [m.model_dump() for m in messages],
        }
        optional = {"max_tokens": max_tokens, "temperature": temperature}
        request.update({k: v for k, v in optional.items() if v is not None})
        request.update(extra)
        return request

    async def chat_completion(
        self,
        messages: list[ChatMessage],
        model: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
        **kwargs: Any
    ) -> LLMResponse:
        request = self._build_request(messages, model, max_tokens, temperature, kwargs)
        completion = await self._client.chat.completions.create(**request)

        return LLMResponse(
            content=_first_choice_text(completion),
            model=completion.model,
            usage=_usage_dict(completion.usage),
        )

    async def close(self) -> None:
        await self._client.close()
