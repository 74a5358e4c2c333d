from .openai import DEFAULT_CHAT_MODEL, OpenAIProvider

__all__ = ["DEFAULT_CHAT_MODEL", "OpenAIProvider"]
