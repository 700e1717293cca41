"""Vector store module."""

from digital_twin.vectorstore.models import IndexInfo, VectorHit
from digital_twin.vectorstore.service import (
    QdrantVectorIndex,
    UpstashVectorIndex,
    VectorIndex,
    build_vector_index,
)

__all__ = [
    "IndexInfo",
    "QdrantVectorIndex",
    "UpstashVectorIndex",
    "VectorHit",
    "VectorIndex",
    "build_vector_index",
]
