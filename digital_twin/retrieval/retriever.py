"""Vector retrieval step."""

import asyncio
from abc import ABC, abstractmethod

from digital_twin.classification import classify_retrieval_failure
from digital_twin.config import RAGSettings
from digital_twin.exceptions import (
    ProviderFailure,
    RetrievalError,
    ValidationError,
    VectorStoreError,
)
from digital_twin.logging_config import get_logger
from digital_twin.observability.metrics import track_retrieval_request
from digital_twin.retrieval.models import RetrievedRecord
from digital_twin.services import ServiceContainer
from digital_twin.vectorstore.models import VectorHit

logger = get_logger(__name__)


class Retriever(ABC):
    """Abstract base class for retrievers."""

    @abstractmethod
    async def retrieve(
        self,
        query: str,
        top_k: int | None = None,
    ) -> list[RetrievedRecord]:
        """Retrieve records relevant to a query.

        Args:
            query: The search query.
            top_k: Maximum number of records to return.

        Returns:
            Records in provider order; empty when nothing matched.

        Raises:
            ValidationError: If the query is empty or too long.
            ConfigurationError: If the vector service is not configured.
            RetrievalError: If the search fails or times out.
        """
        ...


class VectorRetriever(Retriever):
    """Retriever backed by the shared vector index.

    Enforces a hard deadline on the search; the pending request is
    cancelled when the deadline passes.
    """

    def __init__(
        self,
        services: ServiceContainer,
        settings: RAGSettings,
    ) -> None:
        """Initialize the retriever.

        Args:
            services: Container providing the vector index.
            settings: Limits and deadlines.
        """
        self._services = services
        self._settings = settings

    async def retrieve(
        self,
        query: str,
        top_k: int | None = None,
    ) -> list[RetrievedRecord]:
        """Search the vector index and normalize the hits."""
        query = query.strip() if query else ""
        if not query:
            raise ValidationError("Query cannot be empty")
        if len(query) > self._settings.max_question_length:
            raise ValidationError(
                f"Query too long (max {self._settings.max_question_length} characters)",
                details={"length": len(query)},
            )

        top_k = top_k or self._settings.top_k
        index = await self._services.get_vector_index()

        try:
            hits = await asyncio.wait_for(
                index.query(query, top_k=top_k, include_metadata=True),
                timeout=self._settings.retrieval_timeout,
            )
        except TimeoutError as e:
            logger.warning(
                "Vector search timed out",
                extra={"timeout": self._settings.retrieval_timeout},
            )
            raise self._classified(ProviderFailure(message="timeout", timed_out=True)) from e
        except VectorStoreError as e:
            raise self._classified(e.failure) from e
        except Exception as e:
            logger.error(f"Unexpected vector search failure: {e}")
            raise self._classified(ProviderFailure(message=str(e))) from e

        records = normalize_hits(hits)

        track_retrieval_request(
            records_returned=len(records),
            top_score=records[0].score if records else 0.0,
        )
        logger.debug(
            f"Retrieved {len(records)} records",
            extra={"query_length": len(query), "top_k": top_k, "raw_hits": len(hits)},
        )
        return records

    @staticmethod
    def _classified(failure: ProviderFailure) -> RetrievalError:
        classification = classify_retrieval_failure(failure)
        return RetrievalError(
            classification.message,
            code=classification.code,
            details={"status_code": failure.status_code} if failure.status_code else None,
        )


def normalize_hits(hits: list[VectorHit]) -> list[RetrievedRecord]:
    """Convert raw hits into records.

    Hits without an identifier are dropped, a missing score becomes 0,
    provider order is kept, and non-empty metadata is carried through.

    Args:
        hits: Raw provider hits.

    Returns:
        Normalized records.
    """
    records: list[RetrievedRecord] = []
    for hit in hits:
        if hit.id is None or hit.id == "":
            continue

        metadata = {k: v for k, v in hit.metadata.items() if v not in (None, "", [], {})}
        title = str(metadata.pop("title", "") or "Information")
        content = str(metadata.pop("content", "") or "")

        records.append(
            RetrievedRecord(
                id=hit.id,
                score=hit.score or 0.0,
                title=title,
                content=content,
                metadata=metadata,
            )
        )
    return records
