"""Chat completion messages and results."""

from enum import Enum
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from digital_twin.rag.models import ConversationTurn


class Role(str, Enum):
    """Who a chat message is attributed to."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class Message(BaseModel):
    """One chat completion message."""

    role: Role = Field(description="Message role")
    content: str = Field(description="Message content")

    @classmethod
    def from_turn(cls, turn: "ConversationTurn") -> "Message":
        """Carry a prior conversation turn into the completion request."""
        return cls(role=Role(turn.role), content=turn.content)


class GenerationResult(BaseModel):
    """A completion returned by the generation service.

    Attributes:
        content: Completion text, empty when the service returned none.
        model: Model that produced it.
        finish_reason: Why the service stopped ("stop", "length", ...).
        prompt_tokens: Prompt token usage, 0 when not reported.
        completion_tokens: Completion token usage, 0 when not reported.
    """

    content: str = Field(default="", description="Completion text")
    model: str = Field(description="Model used")
    finish_reason: str | None = Field(default=None, description="Stop reason")
    prompt_tokens: int = Field(default=0, description="Prompt token count")
    completion_tokens: int = Field(default=0, description="Completion token count")
