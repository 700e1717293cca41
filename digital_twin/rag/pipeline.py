"""RAG pipeline orchestrator."""

import time

from digital_twin.config import RAGSettings
from digital_twin.exceptions import (
    DigitalTwinError,
    ErrorKind,
    GenerationError,
    ValidationError,
)
from digital_twin.llm.prompts import Persona, PersonaPromptTemplate
from digital_twin.logging_config import get_logger
from digital_twin.observability.metrics import track_rag_query
from digital_twin.rag.context import assemble_context, degraded_answer
from digital_twin.rag.generation import AnswerGenerator
from digital_twin.rag.models import ConversationTurn, QueryResult, SourceCitation
from digital_twin.retrieval.retriever import Retriever, VectorRetriever
from digital_twin.services import ServiceContainer

logger = get_logger(__name__)

UNEXPECTED_ERROR_MESSAGE = "An unexpected error occurred"


class RAGPipeline:
    """Orchestrates the RAG pipeline.

    Validates the question, retrieves records, assembles context and
    generates an answer. Every outcome, including failures, comes back as
    a QueryResult carrying the elapsed time; no exception escapes `query`.
    """

    def __init__(
        self,
        retriever: Retriever,
        generator: AnswerGenerator,
        settings: RAGSettings,
        persona: Persona | None = None,
    ) -> None:
        """Initialize the RAG pipeline.

        Args:
            retriever: Record retriever.
            generator: Answer generator.
            settings: Limits and fallback policy.
            persona: Voice and canned answers (first-person default).
        """
        self._retriever = retriever
        self._generator = generator
        self._settings = settings
        self._template = PersonaPromptTemplate(persona)

    @property
    def persona(self) -> Persona:
        """The persona this pipeline speaks as."""
        return self._template.persona

    async def query(
        self,
        question: str,
        history: list[ConversationTurn] | None = None,
    ) -> QueryResult:
        """Answer a question from the knowledge base.

        Args:
            question: Free-text question.
            history: Prior conversation turns, oldest first.

        Returns:
            QueryResult describing the answer or the failure.
        """
        start = time.perf_counter()
        sources: list[SourceCitation] = []

        try:
            question = self._validate(question)

            logger.info(
                "Processing RAG query",
                extra={"question_length": len(question), "history": len(history or [])},
            )

            records = await self._retriever.retrieve(question, top_k=self._settings.top_k)
            if not records:
                return self._answer(start, self.persona.no_results_answer, [])

            context = assemble_context(records)
            if context.is_empty:
                return self._answer(start, self.persona.no_content_answer, [])
            sources = context.sources

            system_prompt, prompt = self._template.build_prompt(question, context.text)

            try:
                answer = await self._generator.generate(system_prompt, prompt, history)
            except GenerationError as e:
                fallback = ""
                if self._settings.degraded_fallback:
                    fallback = degraded_answer(
                        context,
                        self.persona.fallback_prefix,
                        self._settings.fallback_char_budget,
                    )
                if not fallback:
                    raise
                logger.warning(
                    "Generation failed, answering from retrieved records",
                    extra={"error_code": e.code.value},
                )
                return self._answer(start, fallback, sources, degraded=True)

            return self._answer(start, answer, sources)

        except DigitalTwinError as e:
            logger.warning(
                f"RAG query failed: {e.message}",
                extra={"error_kind": e.kind.value, "error_code": e.code.value},
            )
            return self._failure(start, e.message, e.kind, e.code.value, sources)

        except Exception:
            logger.exception("Unexpected error in RAG query")
            return self._failure(start, UNEXPECTED_ERROR_MESSAGE, ErrorKind.UNKNOWN, None, [])

    def _validate(self, question: str) -> str:
        question = question.strip() if isinstance(question, str) else ""
        if not question:
            raise ValidationError("Question cannot be empty")
        limit = self._settings.max_question_length
        if len(question) > limit:
            raise ValidationError(f"Question too long (max {limit} characters)")
        return question

    @staticmethod
    def _elapsed_ms(start: float) -> int:
        return int((time.perf_counter() - start) * 1000)

    def _answer(
        self,
        start: float,
        answer: str,
        sources: list[SourceCitation],
        degraded: bool = False,
    ) -> QueryResult:
        duration_ms = self._elapsed_ms(start)
        track_rag_query("degraded" if degraded else "success", duration_ms / 1000)
        logger.info(
            "RAG query completed",
            extra={"sources_count": len(sources), "duration_ms": duration_ms, "degraded": degraded},
        )
        return QueryResult(
            success=True,
            answer=answer,
            context=sources,
            degraded=degraded,
            duration_ms=duration_ms,
        )

    def _failure(
        self,
        start: float,
        message: str,
        kind: ErrorKind,
        code: str | None,
        sources: list[SourceCitation],
    ) -> QueryResult:
        duration_ms = self._elapsed_ms(start)
        track_rag_query(kind.value, duration_ms / 1000)
        return QueryResult(
            success=False,
            error=message,
            error_kind=kind,
            error_code=code,
            context=sources,
            duration_ms=duration_ms,
        )


def build_pipeline(services: ServiceContainer, persona: Persona | None = None) -> RAGPipeline:
    """Wire a pipeline onto a service container.

    Args:
        services: Shared service handles.
        persona: Optional persona override.

    Returns:
        Ready-to-use RAGPipeline.
    """
    settings = services.settings.rag
    return RAGPipeline(
        retriever=VectorRetriever(services, settings),
        generator=AnswerGenerator(services, settings),
        settings=settings,
        persona=persona,
    )
