"""Vector store data models."""

from typing import Any

from pydantic import BaseModel, Field


class VectorHit(BaseModel):
    """One raw hit from a vector similarity search.

    Attributes:
        id: Record identifier as reported by the provider.
        score: Similarity score (higher is more similar), if reported.
        metadata: Stored record metadata (title, content, type, ...).
    """

    id: str | int | None = Field(default=None, description="Record identifier")
    score: float | None = Field(default=None, description="Similarity score")
    metadata: dict[str, Any] = Field(
        default_factory=dict,
        description="Record metadata",
    )


class IndexInfo(BaseModel):
    """Summary statistics for a vector index."""

    vector_count: int = Field(default=0, description="Number of stored vectors")
