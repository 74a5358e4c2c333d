"""In-memory identity provider (process lifetime only)."""

from .base import IdentityProvider
from .models import User


class InMemoryIdentityProvider(IdentityProvider):
    """Dict-backed users and sessions, suitable for tests."""

    def __init__(self) -> None:
        self._users: dict[str, User] = {}
        self._users_by_email: dict[str, str] = {}
        self._sessions: dict[str, str] = {}

    async def connect(self) -> None:
        pass

    async def disconnect(self) -> None:
        pass

    async def resolve(self, token: str | None) -> str | None:
        if not token:
            return None
        return self._sessions.get(token)

    async def sign_in(self, email: str | None = None) -> str:
        email = self._normalize_email(email)
        user_id = self._users_by_email.get(email) if email else None
        if user_id is None:
            user = User(email=email)
            self._users[user.id] = user
            if email:
                self._users_by_email[email] = user.id
            user_id = user.id

        token = self._new_token()
        self._sessions[token] = user_id
        return token

    async def sign_out(self, token: str) -> bool:
        return self._sessions.pop(token, None) is not None

    async def get_user(self, user_id: str) -> User | None:
        return self._users.get(user_id)

    @property
    def backend_type(self) -> str:
        return "memory"
