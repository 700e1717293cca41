"""Retrieval pipeline module."""

from digital_twin.retrieval.models import RetrievedRecord
from digital_twin.retrieval.retriever import Retriever, VectorRetriever, normalize_hits

__all__ = [
    "RetrievedRecord",
    "Retriever",
    "VectorRetriever",
    "normalize_hits",
]
