"""Chat workflow module for pyparley."""

from .constants import (
    DEFAULT_MAX_TOKENS,
    EMPTY_RESPONSE_FALLBACK,
    ERROR_RESPONSE_FALLBACK,
    GENERATE_RESPONSE_TASK,
)
from .workflow import ChatWorkflow

__all__ = [
    "ChatWorkflow",
    "DEFAULT_MAX_TOKENS",
    "EMPTY_RESPONSE_FALLBACK",
    "ERROR_RESPONSE_FALLBACK",
    "GENERATE_RESPONSE_TASK",
]
