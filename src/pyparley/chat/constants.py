"""Fixed values of the chat workflow."""

from typing import Final

GENERATE_RESPONSE_TASK: Final[str] = "chat.generate_response"

DEFAULT_MAX_TOKENS: Final[int] = 150

# Stored when the provider succeeds but returns no text
EMPTY_RESPONSE_FALLBACK: Final[str] = "I'm sorry, I couldn't generate a response."

# Stored when the provider call raises
ERROR_RESPONSE_FALLBACK: Final[str] = (
    "I'm sorry, I'm having trouble responding right now. Please try again."
)
