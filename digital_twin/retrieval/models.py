"""Retrieval data models."""

from typing import Any

from pydantic import BaseModel, Field


class RetrievedRecord(BaseModel):
    """One normalized hit from the knowledge base.

    Attributes:
        id: Record identifier.
        score: Relevance score (higher is more relevant, range not fixed).
        title: Record title.
        content: Record text; may be empty.
        metadata: Remaining non-empty metadata from the provider.
    """

    id: str | int = Field(description="Record identifier")
    score: float = Field(default=0.0, description="Relevance score")
    title: str = Field(default="Information", description="Record title")
    content: str = Field(default="", description="Record text")
    metadata: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional metadata",
    )
