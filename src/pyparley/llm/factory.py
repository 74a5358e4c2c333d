from typing import Any

from .base import LLMProvider
from .providers import OpenAIProvider

_PROVIDERS: dict[str, type[LLMProvider]] = {
    "openai": OpenAIProvider,
}

_REQUIRED_SETTINGS: dict[str, tuple[str, ...]] = {
    "openai": ("api_key",),
}


def create_llm_provider(provider: str, **config: Any) -> LLMProvider:
    """Build a completion provider by name.

    Args:
        provider: Provider name, case-insensitive ('openai')
        **config: Constructor settings. For 'openai': api_key (required),
            model, base_url, organization, plus AsyncOpenAI client options.

    Raises:
        ValueError: If the provider name is unknown
        TypeError: If a required setting is missing or empty

    Examples:
        >>> provider = create_llm_provider(
        ...     "openai",
        ...     api_key="sk-...",
        ...     base_url="https://llm.internal.example/v1"
        ... )
    """
    name = provider.lower()
    provider_cls = _PROVIDERS.get(name)
    if provider_cls is None:
        supported = ", ".join(f"'{n}'" for n in sorted(_PROVIDERS))
        raise ValueError(f"Unsupported provider: {provider}. Supported providers: {supported}")

    missing = [key for key in _REQUIRED_SETTINGS.get(name, ()) if not config.get(key)]
    if missing:
        raise TypeError(f"{name} provider requires {', '.join(missing)} in config")

    return provider_cls(**config)
