"""Tests for retrieval module."""

import pytest

from digital_twin.exceptions import (
    ConfigurationError,
    ErrorCode,
    ProviderFailure,
    RetrievalError,
    ValidationError,
    VectorStoreError,
)
from digital_twin.retrieval.models import RetrievedRecord
from digital_twin.retrieval.retriever import VectorRetriever, normalize_hits
from digital_twin.vectorstore.models import VectorHit


class TestRetrievedRecord:
    """Tests for RetrievedRecord model."""

    def test_defaults(self) -> None:
        """Title and content have defaults."""
        record = RetrievedRecord(id="r1")
        assert record.title == "Information"
        assert record.content == ""
        assert record.score == 0.0


class TestNormalizeHits:
    """Tests for hit normalization."""

    def test_drops_hits_without_id(self) -> None:
        """Hits with no identifier are skipped."""
        hits = [
            VectorHit(id=None, score=0.9, metadata={"content": "orphan"}),
            VectorHit(id="", score=0.8),
            VectorHit(id="kept", score=0.7, metadata={"content": "text"}),
        ]
        records = normalize_hits(hits)
        assert [r.id for r in records] == ["kept"]

    def test_missing_score_is_zero(self) -> None:
        """Absent score becomes 0."""
        records = normalize_hits([VectorHit(id=1)])
        assert records[0].score == 0.0

    def test_title_and_content_extracted(self) -> None:
        """Title and content leave the metadata bag; empty values are dropped."""
        hit = VectorHit(
            id="r1",
            score=0.5,
            metadata={"title": "Skills", "content": "Python", "type": "skills", "tags": []},
        )
        record = normalize_hits([hit])[0]

        assert record.title == "Skills"
        assert record.content == "Python"
        assert record.metadata == {"type": "skills"}

    def test_default_title(self) -> None:
        """Records without a title are labelled Information."""
        assert normalize_hits([VectorHit(id="r1", metadata={"title": ""})])[0].title == "Information"

    def test_order_preserved(self) -> None:
        """Provider order is kept, not re-sorted by score."""
        hits = [VectorHit(id="low", score=0.1), VectorHit(id="high", score=0.9)]
        assert [r.id for r in normalize_hits(hits)] == ["low", "high"]


class TestVectorRetriever:
    """Tests for VectorRetriever."""

    @pytest.mark.asyncio
    async def test_retrieve(self, services, settings, vector_index) -> None:
        """Records come back normalized, limited to top_k."""
        retriever = VectorRetriever(services, settings.rag)

        records = await retriever.retrieve("  What are your skills?  ", top_k=2)

        assert [r.title for r in records] == ["Technical Skills", "Experience"]
        assert vector_index.calls == [
            {"text": "What are your skills?", "top_k": 2, "include_metadata": True}
        ]

    @pytest.mark.asyncio
    async def test_default_top_k(self, services, settings, vector_index) -> None:
        """top_k defaults to the configured value."""
        await VectorRetriever(services, settings.rag).retrieve("skills")
        assert vector_index.calls[0]["top_k"] == 3

    @pytest.mark.asyncio
    async def test_zero_hits(self, services, settings, vector_index) -> None:
        """An empty result is not an error."""
        vector_index.hits = []
        records = await VectorRetriever(services, settings.rag).retrieve("unknown topic")
        assert records == []

    @pytest.mark.asyncio
    async def test_empty_query(self, services, settings, vector_index) -> None:
        """Blank queries are rejected without a search."""
        with pytest.raises(ValidationError):
            await VectorRetriever(services, settings.rag).retrieve("   ")
        assert vector_index.calls == []

    @pytest.mark.asyncio
    async def test_query_too_long(self, services, settings, vector_index) -> None:
        """Oversized queries are rejected without a search."""
        with pytest.raises(ValidationError):
            await VectorRetriever(services, settings.rag).retrieve("x" * 1001)
        assert vector_index.calls == []

    @pytest.mark.asyncio
    async def test_timeout(self, make_settings, make_services, vector_index) -> None:
        """A slow search is cancelled and classified as a timeout."""
        settings = make_settings(retrieval_timeout=0.01)
        vector_index.delay = 1.0

        with pytest.raises(RetrievalError) as exc_info:
            await VectorRetriever(make_services(settings), settings.rag).retrieve("skills")

        assert exc_info.value.code == ErrorCode.VECTOR_TIMEOUT
        assert exc_info.value.message == "Vector search timed out"

    @pytest.mark.asyncio
    async def test_provider_failure_classified(self, services, settings, vector_index) -> None:
        """Adapter errors are classified."""
        vector_index.error = VectorStoreError(
            "Upstash returned 401", ProviderFailure(status_code=401, message="Unauthorized")
        )

        with pytest.raises(RetrievalError) as exc_info:
            await VectorRetriever(services, settings.rag).retrieve("skills")

        assert exc_info.value.code == ErrorCode.VECTOR_UNAUTHORIZED
        assert exc_info.value.message == "Invalid vector database credentials"

    @pytest.mark.asyncio
    async def test_unexpected_failure_classified(self, services, settings, vector_index) -> None:
        """Unknown exceptions still become retrieval failures."""
        vector_index.error = RuntimeError("kaboom")

        with pytest.raises(RetrievalError) as exc_info:
            await VectorRetriever(services, settings.rag).retrieve("skills")

        assert exc_info.value.code == ErrorCode.VECTOR_STORE_ERROR

    @pytest.mark.asyncio
    async def test_missing_configuration(self, make_settings, make_services, vector_index) -> None:
        """Missing credentials fail before any search."""
        settings = make_settings(configured=False)

        with pytest.raises(ConfigurationError):
            await VectorRetriever(make_services(settings), settings.rag).retrieve("skills")

        assert vector_index.calls == []
