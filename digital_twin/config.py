"""Application configuration using Pydantic Settings.

All configuration is loaded from environment variables (or a `.env` file).
No secrets are hardcoded.
"""

from enum import Enum
from functools import lru_cache

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Application environment."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class VectorProvider(str, Enum):
    """Supported vector search backends."""

    UPSTASH = "upstash"
    QDRANT = "qdrant"


class UpstashSettings(BaseSettings):
    """Upstash Vector REST configuration."""

    model_config = SettingsConfigDict(
        env_prefix="UPSTASH_VECTOR_REST_",
        env_file=".env",
        extra="ignore",
    )

    url: str | None = Field(
        default=None,
        description="Upstash Vector REST endpoint URL",
    )
    token: SecretStr | None = Field(
        default=None,
        description="Upstash Vector REST token",
    )


class QdrantSettings(BaseSettings):
    """Qdrant vector database configuration."""

    model_config = SettingsConfigDict(
        env_prefix="QDRANT_",
        env_file=".env",
        extra="ignore",
    )

    url: str | None = Field(
        default=None,
        description="Qdrant server URL",
    )
    api_key: SecretStr | None = Field(
        default=None,
        description="Qdrant API key (optional for local)",
    )
    collection_name: str = Field(
        default="digital_twin",
        description="Collection holding the profile records",
    )
    embedding_model: str = Field(
        default="sentence-transformers/all-minilm-l6-v2",
        description="Model used for server-side query inference",
    )
    cloud_inference: bool = Field(
        default=True,
        description="Embed queries on the Qdrant server instead of locally",
    )


class LLMSettings(BaseSettings):
    """Generation service configuration.

    Defaults target Groq's OpenAI-compatible API.
    """

    model_config = SettingsConfigDict(
        env_prefix="GROQ_",
        env_file=".env",
        extra="ignore",
    )

    base_url: str = Field(
        default="https://api.groq.com/openai/v1",
        description="OpenAI-compatible API base URL",
    )
    api_key: SecretStr | None = Field(
        default=None,
        description="Generation service API key",
    )
    model: str = Field(
        default="llama-3.1-8b-instant",
        description="Model name to use for generation",
    )
    timeout: float = Field(
        default=30.0,
        description="HTTP transport timeout in seconds",
    )
    max_tokens: int = Field(
        default=500,
        description="Maximum tokens in response",
    )
    temperature: float = Field(
        default=0.7,
        description="Sampling temperature",
    )
    top_p: float = Field(
        default=1.0,
        description="Nucleus sampling cutoff",
    )


class RAGSettings(BaseSettings):
    """Query pipeline limits, deadlines and retry policy."""

    model_config = SettingsConfigDict(
        env_prefix="RAG_",
        env_file=".env",
        extra="ignore",
    )

    top_k: int = Field(default=3, ge=1, le=50, description="Records to retrieve")
    max_question_length: int = Field(
        default=1000,
        description="Maximum question length in characters",
    )
    max_prompt_length: int = Field(
        default=30000,
        description="Maximum generation prompt length in characters",
    )
    retrieval_timeout: float = Field(
        default=10.0,
        description="Vector search deadline in seconds",
    )
    generation_timeout: float = Field(
        default=15.0,
        description="Per-attempt generation deadline in seconds",
    )
    generation_max_attempts: int = Field(
        default=2,
        ge=1,
        description="Total generation attempts before giving up",
    )
    generation_retry_delay: float = Field(
        default=1.0,
        ge=0.0,
        description="Fixed delay between generation attempts in seconds",
    )
    degraded_fallback: bool = Field(
        default=False,
        description="Answer from raw retrieved content when generation fails",
    )
    fallback_char_budget: int = Field(
        default=400,
        description="Maximum characters of raw content in a degraded answer",
    )


class Settings(BaseSettings):
    """Main application settings.

    Aggregates all configuration sections.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application settings
    environment: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="Application environment",
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode",
    )

    # API settings
    api_host: str = Field(
        default="0.0.0.0",
        description="API server host",
    )
    api_port: int = Field(
        default=8000,
        description="API server port",
    )

    vector_provider: VectorProvider = Field(
        default=VectorProvider.UPSTASH,
        description="Vector search backend",
    )

    # Nested settings
    upstash: UpstashSettings = Field(default_factory=UpstashSettings)
    qdrant: QdrantSettings = Field(default_factory=QdrantSettings)
    llm: LLMSettings = Field(default_factory=LLMSettings)
    rag: RAGSettings = Field(default_factory=RAGSettings)

    def missing_required(self) -> list[str]:
        """List required environment variables that are not set.

        Returns:
            Environment variable names, empty when fully configured.
        """
        missing: list[str] = []

        if self.vector_provider == VectorProvider.UPSTASH:
            if not self.upstash.url:
                missing.append("UPSTASH_VECTOR_REST_URL")
            if not _secret_present(self.upstash.token):
                missing.append("UPSTASH_VECTOR_REST_TOKEN")
        elif not self.qdrant.url:
            missing.append("QDRANT_URL")

        if not _secret_present(self.llm.api_key):
            missing.append("GROQ_API_KEY")

        return missing

    @property
    def vector_endpoint(self) -> str | None:
        """URL of the configured vector backend."""
        if self.vector_provider == VectorProvider.QDRANT:
            return self.qdrant.url
        return self.upstash.url


def _secret_present(value: SecretStr | None) -> bool:
    return value is not None and bool(value.get_secret_value().strip())


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings.

    Returns:
        Settings instance loaded from environment.
    """
    return Settings()
