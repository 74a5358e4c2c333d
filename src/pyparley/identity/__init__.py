"""Identity module for pyparley.

Resolves session tokens to user ids for the chat workflow.
"""

from .base import IdentityProvider
from .factory import create_identity_provider
from .models import User

__all__ = [
    "IdentityProvider",
    "User",
    "create_identity_provider",
]
