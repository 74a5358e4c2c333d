"""Abstract base class for identity providers.

The abstraction hides:
- How session tokens are minted and stored
- Where user records live
"""

import secrets
from abc import ABC, abstractmethod

from .models import User


class IdentityProvider(ABC):
    """Resolves a session token to a stable user id.

    Tokens are opaque strings handed out by ``sign_in``; ``resolve``
    returns None for a missing, unknown or signed-out token.
    """

    @abstractmethod
    async def connect(self) -> None:
        """Initialize the provider backend."""

    @abstractmethod
    async def disconnect(self) -> None:
        """Close the provider backend gracefully."""

    @abstractmethod
    async def resolve(self, token: str | None) -> str | None:
        """Return the user id behind ``token``, or None."""

    @abstractmethod
    async def sign_in(self, email: str | None = None) -> str:
        """Open a session and return its token.

        With an email, the matching user is reused (or created on first
        sign-in). Without one, a fresh anonymous user is created.
        """

    @abstractmethod
    async def sign_out(self, token: str) -> bool:
        """Close a session. Returns False if the token was unknown."""

    @abstractmethod
    async def get_user(self, user_id: str) -> User | None:
        """Fetch a user record."""

    @property
    @abstractmethod
    def backend_type(self) -> str:
        """Get the backend type identifier."""

    @staticmethod
    def _new_token() -> str:
        return secrets.token_urlsafe(32)

    @staticmethod
    def _normalize_email(email: str | None) -> str | None:
        if email is None:
            return None
        email = email.strip().lower()
        if not email:
            raise ValueError("email must not be blank")
        return email
