"""Observability module for metrics and monitoring."""

from digital_twin.observability.metrics import (
    MetricsMiddleware,
    get_metrics,
    get_metrics_content_type,
    track_llm_request,
    track_mcp_request,
    track_rag_query,
    track_retrieval_request,
)

__all__ = [
    "MetricsMiddleware",
    "get_metrics",
    "get_metrics_content_type",
    "track_llm_request",
    "track_mcp_request",
    "track_rag_query",
    "track_retrieval_request",
]
