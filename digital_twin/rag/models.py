"""RAG pipeline data models."""

from typing import Literal, Self

from pydantic import BaseModel, Field, model_validator

from digital_twin.exceptions import ErrorKind


class SourceCitation(BaseModel):
    """A record that contributed text to an answer.

    Attributes:
        title: Record title.
        score: Relevance score reported by the vector service.
    """

    title: str = Field(description="Record title")
    score: float = Field(description="Relevance score")


class ConversationTurn(BaseModel):
    """One prior message in a chat conversation."""

    role: Literal["user", "assistant"] = Field(description="Who said it")
    content: str = Field(description="What was said")


class AssembledContext(BaseModel):
    """Grounding text and the sources it came from.

    Attributes:
        text: Records rendered as "title: content", blank-line separated.
        sources: One citation per record that contributed text.
        contents: Raw contents of the contributing records, in order.
    """

    text: str = Field(default="", description="Grounding text")
    sources: list[SourceCitation] = Field(default_factory=list)
    contents: list[str] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        """True when no record contributed text."""
        return not self.sources


class QueryResult(BaseModel):
    """Outcome of one RAG query.

    On success `answer` is non-empty and `error` is absent; on failure
    `answer` is empty and both `error` and `error_kind` are set.
    """

    success: bool = Field(description="Whether an answer was produced")
    answer: str = Field(default="", description="Answer text")
    context: list[SourceCitation] = Field(
        default_factory=list,
        description="Sources the answer is grounded on",
    )
    error: str | None = Field(default=None, description="User-safe error message")
    error_kind: ErrorKind | None = Field(default=None, description="Failure class")
    error_code: str | None = Field(default=None, description="Structured error code")
    degraded: bool = Field(
        default=False,
        description="Answer was built from raw records after generation failed",
    )
    duration_ms: int = Field(default=0, ge=0, description="Elapsed milliseconds")

    @model_validator(mode="after")
    def _check_outcome(self) -> Self:
        if self.success:
            if not self.answer.strip() or self.error is not None:
                raise ValueError("successful result needs an answer and no error")
        elif self.answer or self.error is None or self.error_kind is None:
            raise ValueError("failed result needs an error and error_kind, and no answer")
        return self
