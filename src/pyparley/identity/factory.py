"""Factory for creating identity providers."""

from typing import Any

from .base import IdentityProvider


def create_identity_provider(
    backend: str = "memory",
    **kwargs: Any
) -> IdentityProvider:
    """Create an identity provider.

    Args:
        backend: Backend type ("memory" or "sqlite")
        **kwargs: Backend-specific configuration

    Returns:
        IdentityProvider instance

    Raises:
        ValueError: If backend type is not supported
    """
    if backend == "memory":
        from .in_memory import InMemoryIdentityProvider
        return InMemoryIdentityProvider(**kwargs)

    elif backend == "sqlite":
        from .sqlite import SQLiteIdentityProvider
        return SQLiteIdentityProvider(**kwargs)

    raise ValueError(
        f"Unsupported identity backend: {backend}. "
        f"Supported backends: memory, sqlite"
    )
