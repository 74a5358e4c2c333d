from .base import LLMProvider
from .factory import create_llm_provider
from .models import ChatMessage, LLMResponse
from .providers import DEFAULT_CHAT_MODEL, OpenAIProvider

__all__ = [
    "DEFAULT_CHAT_MODEL",
    "LLMProvider",
    "create_llm_provider",
    "ChatMessage",
    "LLMResponse",
    "OpenAIProvider",
]
