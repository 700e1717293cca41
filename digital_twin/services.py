"""Shared handles to the external services.

One ServiceContainer is built at startup and injected into the pipeline,
the health checker and the protocol handlers. Handles are created on first
use, after the required configuration has been validated, and then reused
for the life of the process.
"""

import asyncio
from collections.abc import Callable

from digital_twin.config import Settings
from digital_twin.exceptions import ConfigurationError
from digital_twin.llm.client import LLMClient, OpenAICompatibleClient
from digital_twin.logging_config import get_logger
from digital_twin.vectorstore.service import VectorIndex, build_vector_index

logger = get_logger(__name__)

VectorIndexFactory = Callable[[Settings], VectorIndex]
LLMClientFactory = Callable[[Settings], LLMClient]


def build_llm_client(settings: Settings) -> LLMClient:
    """Create the generation client from settings."""
    return OpenAICompatibleClient(settings.llm)


class ServiceContainer:
    """Lazily constructed, shared vector index and LLM client.

    Construction is single-flight: concurrent first callers wait on one
    lock and share the handle built by whoever got there first. When the
    configuration is incomplete nothing is cached, so a later call with
    corrected settings succeeds.
    """

    def __init__(
        self,
        settings: Settings,
        vector_factory: VectorIndexFactory = build_vector_index,
        llm_factory: LLMClientFactory = build_llm_client,
    ) -> None:
        """Initialize the container.

        Args:
            settings: Application settings.
            vector_factory: Builds the vector index (replaced in tests).
            llm_factory: Builds the LLM client (replaced in tests).
        """
        self._settings = settings
        self._vector_factory = vector_factory
        self._llm_factory = llm_factory
        self._vector_index: VectorIndex | None = None
        self._llm_client: LLMClient | None = None
        self._lock = asyncio.Lock()

    @property
    def settings(self) -> Settings:
        """Settings the container was built with."""
        return self._settings

    def validate(self) -> None:
        """Check that every required configuration value is present.

        Raises:
            ConfigurationError: If any required value is missing.
        """
        missing = self._settings.missing_required()
        if missing:
            raise ConfigurationError(
                "Missing required environment variables: " + ", ".join(missing),
                details={"missing": missing},
            )

    async def get_vector_index(self) -> VectorIndex:
        """Get the shared vector index, creating it on first use.

        Raises:
            ConfigurationError: If required configuration is missing.
        """
        if self._vector_index is not None:
            return self._vector_index

        async with self._lock:
            if self._vector_index is None:
                self.validate()
                self._vector_index = self._vector_factory(self._settings)
                logger.info(
                    "Vector index client created",
                    extra={"provider": self._settings.vector_provider.value},
                )
        return self._vector_index

    async def get_llm_client(self) -> LLMClient:
        """Get the shared LLM client, creating it on first use.

        Raises:
            ConfigurationError: If required configuration is missing.
        """
        if self._llm_client is not None:
            return self._llm_client

        async with self._lock:
            if self._llm_client is None:
                self.validate()
                self._llm_client = self._llm_factory(self._settings)
                logger.info(
                    "LLM client created",
                    extra={"model": self._llm_client.model_name},
                )
        return self._llm_client

    async def close(self) -> None:
        """Close any handles that were created."""
        if self._vector_index is not None:
            await self._vector_index.close()
            self._vector_index = None
        if self._llm_client is not None:
            await self._llm_client.close()
            self._llm_client = None
