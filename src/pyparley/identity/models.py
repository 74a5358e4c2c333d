"""Data models for user identity."""

from datetime import datetime
from uuid import uuid4

from pydantic import BaseModel, Field

from ..storage.models import utcnow


class User(BaseModel):
    """A signed-up user. Anonymous users have no email."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    email: str | None = Field(default=None, description="Sign-in email, None for anonymous users")
    created_at: datetime = Field(default_factory=utcnow)

    @property
    def is_anonymous(self) -> bool:
        return self.email is None

    @property
    def display_name(self) -> str:
        return self.email or "friend"
