"""RAG pipeline module."""

from digital_twin.rag.context import assemble_context, degraded_answer
from digital_twin.rag.generation import AnswerGenerator
from digital_twin.rag.models import (
    AssembledContext,
    ConversationTurn,
    QueryResult,
    SourceCitation,
)
from digital_twin.rag.pipeline import RAGPipeline, build_pipeline

__all__ = [
    "AnswerGenerator",
    "AssembledContext",
    "ConversationTurn",
    "QueryResult",
    "RAGPipeline",
    "SourceCitation",
    "assemble_context",
    "build_pipeline",
    "degraded_answer",
]
