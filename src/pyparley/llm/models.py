from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

Role = Literal["system", "user", "assistant"]


class ChatMessage(BaseModel):
    """One entry of the conversation prefix sent to a completion provider."""

    model_config = ConfigDict(frozen=True)

    role: Role = Field(description="Role of the message sender: 'system', 'user', or 'assistant'")
    content: str = Field(description="Content of the message")


class LLMResponse(BaseModel):
    """Response from a completion provider."""

    model_config = ConfigDict(frozen=True)

    content: str = Field(default="", description="Generated text content")
    model: str = Field(description="Model that generated the response")
    usage: dict[str, int] | None = Field(
        default=None,
        description="Token usage information"
    )

    @property
    def has_content(self) -> bool:
        """Whether the provider produced any text at all."""
        return bool(self.content)
