"""Vector index interface with Upstash and Qdrant implementations.

Both backends embed the query text server-side, so callers only ever pass
plain text.
"""

from abc import ABC, abstractmethod
from typing import Any

import httpx
from qdrant_client import AsyncQdrantClient, models
from qdrant_client.http.exceptions import ResponseHandlingException, UnexpectedResponse

from digital_twin.config import (
    QdrantSettings,
    Settings,
    UpstashSettings,
    VectorProvider,
)
from digital_twin.exceptions import ProviderFailure, VectorStoreError
from digital_twin.logging_config import get_logger
from digital_twin.vectorstore.models import IndexInfo, VectorHit

logger = get_logger(__name__)


class VectorIndex(ABC):
    """Abstract base class for text-queryable vector indexes."""

    @abstractmethod
    async def query(
        self,
        text: str,
        top_k: int,
        include_metadata: bool = True,
    ) -> list[VectorHit]:
        """Search for records semantically similar to `text`.

        Args:
            text: Query text.
            top_k: Maximum hits to return.
            include_metadata: Whether to return stored metadata.

        Returns:
            Hits in provider order (most relevant first).

        Raises:
            VectorStoreError: If the search fails.
        """
        ...

    @abstractmethod
    async def info(self) -> IndexInfo:
        """Get index statistics.

        Raises:
            VectorStoreError: If the request fails.
        """
        ...

    @abstractmethod
    async def close(self) -> None:
        """Release network resources."""
        ...


class UpstashVectorIndex(VectorIndex):
    """Upstash Vector index accessed through its REST API."""

    def __init__(
        self,
        settings: UpstashSettings,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the Upstash index.

        Args:
            settings: Upstash configuration (url and token must be set).
            client: HTTP client (for testing).
        """
        self._settings = settings
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            token = self._settings.token.get_secret_value() if self._settings.token else ""
            self._client = httpx.AsyncClient(
                base_url=(self._settings.url or "").rstrip("/"),
                headers={"Authorization": f"Bearer {token}"},
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        client = self._get_client()

        try:
            response = await client.request(method, path, **kwargs)
            response.raise_for_status()

        except httpx.TimeoutException as e:
            raise VectorStoreError(
                "Vector request timed out",
                ProviderFailure(message=str(e) or "timeout", timed_out=True),
            ) from e

        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            logger.error(f"Upstash request failed: {status}", extra={"path": path})
            raise VectorStoreError(
                f"Upstash returned {status}",
                ProviderFailure(status_code=status, message=_error_text(e.response)),
            ) from e

        except httpx.RequestError as e:
            logger.error(f"Upstash connection error: {e}")
            raise VectorStoreError(
                "Failed to connect to Upstash",
                ProviderFailure(message=str(e), connection_failed=True),
            ) from e

        try:
            data = response.json()
        except ValueError as e:
            raise VectorStoreError(
                "Invalid response from Upstash",
                ProviderFailure(message=str(e)),
            ) from e

        result = data.get("result") if isinstance(data, dict) else None
        if result is None:
            raise VectorStoreError(
                "Vector search returned null results",
                ProviderFailure(message="null result"),
            )
        return result

    async def query(
        self,
        text: str,
        top_k: int,
        include_metadata: bool = True,
    ) -> list[VectorHit]:
        """Query by raw text using Upstash's hosted embedding model."""
        result = await self._request(
            "POST",
            "/query-data",
            json={"data": text, "topK": top_k, "includeMetadata": include_metadata},
        )

        if not isinstance(result, list):
            raise VectorStoreError(
                "Unexpected query result shape",
                ProviderFailure(message=type(result).__name__),
            )

        return [
            VectorHit(
                id=item.get("id"),
                score=item.get("score"),
                metadata=item.get("metadata") or {},
            )
            for item in result
            if isinstance(item, dict)
        ]

    async def info(self) -> IndexInfo:
        """Get vector count from the info endpoint."""
        result = await self._request("GET", "/info")
        count = result.get("vectorCount", 0) if isinstance(result, dict) else 0
        return IndexInfo(vector_count=count or 0)


class QdrantVectorIndex(VectorIndex):
    """Qdrant collection queried with server-side text inference."""

    def __init__(
        self,
        settings: QdrantSettings,
        client: AsyncQdrantClient | None = None,
    ) -> None:
        """Initialize Qdrant index.

        Args:
            settings: Qdrant configuration.
            client: Existing client (for testing).
        """
        self._settings = settings
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> AsyncQdrantClient:
        """Get or create Qdrant client."""
        if self._client is None:
            api_key = None
            if self._settings.api_key:
                api_key = self._settings.api_key.get_secret_value()

            self._client = AsyncQdrantClient(
                url=self._settings.url,
                api_key=api_key,
                cloud_inference=self._settings.cloud_inference,
            )
        return self._client

    async def close(self) -> None:
        """Close the Qdrant client."""
        if self._owns_client and self._client is not None:
            await self._client.close()
            self._client = None

    async def query(
        self,
        text: str,
        top_k: int,
        include_metadata: bool = True,
    ) -> list[VectorHit]:
        """Query the collection with a text document."""
        client = self._get_client()

        try:
            response = await client.query_points(
                collection_name=self._settings.collection_name,
                query=models.Document(text=text, model=self._settings.embedding_model),
                limit=top_k,
                with_payload=include_metadata,
            )
        except Exception as e:
            raise _qdrant_error(e) from e

        return [
            VectorHit(
                id=point.id,
                score=point.score,
                metadata=dict(point.payload) if point.payload else {},
            )
            for point in response.points
        ]

    async def info(self) -> IndexInfo:
        """Count points in the collection."""
        client = self._get_client()

        try:
            result = await client.count(
                collection_name=self._settings.collection_name,
                exact=True,
            )
        except Exception as e:
            raise _qdrant_error(e) from e

        return IndexInfo(vector_count=result.count)


def _error_text(response: httpx.Response) -> str:
    """Extract the provider's error message from a failed response."""
    try:
        data = response.json()
    except ValueError:
        return response.text
    if isinstance(data, dict) and data.get("error"):
        return str(data["error"])
    return response.text


def _qdrant_error(exc: Exception) -> VectorStoreError:
    """Translate a qdrant-client exception into a VectorStoreError."""
    if isinstance(exc, UnexpectedResponse):
        content = exc.content.decode(errors="replace") if exc.content else ""
        return VectorStoreError(
            f"Qdrant returned {exc.status_code}",
            ProviderFailure(status_code=exc.status_code, message=content or str(exc)),
        )

    if isinstance(exc, ResponseHandlingException):
        source = exc.source
        if isinstance(source, httpx.TimeoutException):
            return VectorStoreError(
                "Qdrant request timed out",
                ProviderFailure(message=str(source) or "timeout", timed_out=True),
            )
        if isinstance(source, httpx.RequestError):
            return VectorStoreError(
                "Failed to connect to Qdrant",
                ProviderFailure(message=str(source), connection_failed=True),
            )

    return VectorStoreError(f"Qdrant query failed: {exc}", ProviderFailure(message=str(exc)))


def build_vector_index(settings: Settings) -> VectorIndex:
    """Create the vector index selected by `settings.vector_provider`."""
    if settings.vector_provider == VectorProvider.QDRANT:
        return QdrantVectorIndex(settings.qdrant)
    return UpstashVectorIndex(settings.upstash)
