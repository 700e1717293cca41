"""Pytest configuration and shared fixtures."""

import asyncio
from collections.abc import AsyncGenerator, Callable
from typing import Any

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from pydantic import SecretStr

from digital_twin.api.app import create_app
from digital_twin.config import (
    LLMSettings,
    QdrantSettings,
    RAGSettings,
    Settings,
    UpstashSettings,
    VectorProvider,
)
from digital_twin.llm.client import LLMClient
from digital_twin.llm.models import GenerationResult, Message
from digital_twin.services import ServiceContainer
from digital_twin.vectorstore.models import IndexInfo, VectorHit
from digital_twin.vectorstore.service import VectorIndex

SKILLS_ANSWER = "I work mainly with Python, FastAPI and PostgreSQL."

SKILLS_HITS = [
    VectorHit(
        id="skills-1",
        score=0.91,
        metadata={"title": "Technical Skills", "content": "Python, FastAPI, PostgreSQL"},
    ),
    VectorHit(
        id="exp-1",
        score=0.84,
        metadata={"title": "Experience", "content": "Five years of backend development"},
    ),
    VectorHit(
        id="proj-1",
        score=0.77,
        metadata={"title": "Projects", "content": "Built a RAG platform"},
    ),
]


class StubVectorIndex(VectorIndex):
    """In-memory vector index that records every call."""

    def __init__(self, hits: list[VectorHit] | None = None) -> None:
        self.hits = list(hits or [])
        self.error: Exception | None = None
        self.delay = 0.0
        self.vector_count = 42
        self.calls: list[dict[str, Any]] = []
        self.closed = False

    async def query(
        self,
        text: str,
        top_k: int,
        include_metadata: bool = True,
    ) -> list[VectorHit]:
        self.calls.append({"text": text, "top_k": top_k, "include_metadata": include_metadata})
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.hits[:top_k]

    async def info(self) -> IndexInfo:
        return IndexInfo(vector_count=self.vector_count)

    async def close(self) -> None:
        self.closed = True


class StubLLMClient(LLMClient):
    """LLM client that replays scripted responses.

    Each call consumes the next response; the last one repeats. An
    Exception in the script is raised instead of returned.
    """

    def __init__(self, responses: list[str | Exception] | None = None) -> None:
        self.responses: list[str | Exception] = list(responses or [SKILLS_ANSWER])
        self.delay = 0.0
        self.calls: list[list[Message]] = []
        self.closed = False

    @property
    def model_name(self) -> str:
        return "stub-model"

    async def generate(
        self,
        messages: list[Message],
        temperature: float | None = None,
        max_tokens: int | None = None,
        top_p: float | None = None,
    ) -> GenerationResult:
        self.calls.append(messages)
        if self.delay:
            await asyncio.sleep(self.delay)
        response = self.responses[min(len(self.calls), len(self.responses)) - 1]
        if isinstance(response, Exception):
            raise response
        return GenerationResult(content=response, model="stub-model")

    async def close(self) -> None:
        self.closed = True


def build_settings(configured: bool = True, **rag: Any) -> Settings:
    """Settings independent of the process environment.

    Args:
        configured: Whether the required credentials are present.
        **rag: RAGSettings overrides.
    """
    rag.setdefault("generation_retry_delay", 0.0)
    return Settings(
        vector_provider=VectorProvider.UPSTASH,
        upstash=UpstashSettings(
            url="https://twin-index.upstash.io" if configured else None,
            token=SecretStr("upstash-token") if configured else None,
        ),
        qdrant=QdrantSettings(url=None, api_key=None),
        llm=LLMSettings(api_key=SecretStr("groq-key") if configured else None),
        rag=RAGSettings(**rag),
    )


@pytest.fixture
def make_settings() -> Callable[..., Settings]:
    """Factory for environment-independent settings."""
    return build_settings


@pytest.fixture
def settings() -> Settings:
    """Fully configured settings with no retry delay."""
    return build_settings()


@pytest.fixture
def vector_index() -> StubVectorIndex:
    """Stub vector index preloaded with profile records."""
    return StubVectorIndex(SKILLS_HITS)


@pytest.fixture
def llm_client() -> StubLLMClient:
    """Stub LLM client answering with a fixed completion."""
    return StubLLMClient()


@pytest.fixture
def make_services(
    vector_index: StubVectorIndex,
    llm_client: StubLLMClient,
) -> Callable[[Settings], ServiceContainer]:
    """Factory for containers wired to the stub services."""

    def factory(settings: Settings) -> ServiceContainer:
        return ServiceContainer(
            settings,
            vector_factory=lambda _: vector_index,
            llm_factory=lambda _: llm_client,
        )

    return factory


@pytest.fixture
def services(
    settings: Settings,
    make_services: Callable[[Settings], ServiceContainer],
) -> ServiceContainer:
    """Configured container wired to the stub services."""
    return make_services(settings)


@pytest.fixture
def app(services: ServiceContainer) -> FastAPI:
    """Application wired to the stub services."""
    return create_app(services=services)


@pytest.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Create async test client for FastAPI app.

    Yields:
        AsyncClient configured for testing.
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
