"""LLM client interface and implementations."""

import time
from abc import ABC, abstractmethod
from typing import Any

import httpx

from digital_twin.config import LLMSettings
from digital_twin.exceptions import LLMError, ProviderFailure
from digital_twin.llm.models import GenerationResult, Message
from digital_twin.logging_config import get_logger
from digital_twin.observability.metrics import track_llm_request

logger = get_logger(__name__)


class LLMClient(ABC):
    """Abstract base class for LLM clients.

    Defines the interface for generating text with LLMs.
    """

    @abstractmethod
    async def generate(
        self,
        messages: list[Message],
        temperature: float | None = None,
        max_tokens: int | None = None,
        top_p: float | None = None,
    ) -> GenerationResult:
        """Generate text from messages.

        Args:
            messages: Conversation messages.
            temperature: Sampling temperature override.
            max_tokens: Maximum tokens override.
            top_p: Nucleus sampling override.

        Returns:
            GenerationResult with generated text.

        Raises:
            LLMError: If generation fails.
        """
        ...

    @property
    @abstractmethod
    def model_name(self) -> str:
        """Get the model name."""
        ...

    async def close(self) -> None:
        """Release network resources."""


class OpenAICompatibleClient(LLMClient):
    """LLM client for OpenAI-compatible chat completion APIs.

    Works with:
    - Groq (api.groq.com/openai/v1)
    - OpenAI API
    - Ollama, vLLM, or any OpenAI-compatible endpoint
    """

    def __init__(
        self,
        settings: LLMSettings,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the OpenAI-compatible client.

        Args:
            settings: LLM configuration.
            client: HTTP client (for testing).
        """
        self._settings = settings
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._settings.timeout)
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    @property
    def model_name(self) -> str:
        """Get the model name."""
        return self._settings.model

    async def generate(
        self,
        messages: list[Message],
        temperature: float | None = None,
        max_tokens: int | None = None,
        top_p: float | None = None,
    ) -> GenerationResult:
        """Generate text using chat completions API."""
        client = self._get_client()
        url = f"{self._settings.base_url.rstrip('/')}/chat/completions"

        payload: dict[str, Any] = {
            "model": self._settings.model,
            "messages": [
                {"role": msg.role.value, "content": msg.content} for msg in messages
            ],
            "temperature": self._settings.temperature if temperature is None else temperature,
            "max_tokens": max_tokens or self._settings.max_tokens,
            "top_p": self._settings.top_p if top_p is None else top_p,
            "stream": False,
        }

        headers = {}
        if self._settings.api_key:
            headers["Authorization"] = f"Bearer {self._settings.api_key.get_secret_value()}"

        start = time.perf_counter()
        try:
            response = await client.post(url, json=payload, headers=headers)
            response.raise_for_status()

        except httpx.TimeoutException as e:
            logger.error(f"LLM request timed out: {e}")
            self._track(start, success=False)
            raise LLMError(
                "LLM request timed out",
                ProviderFailure(message=str(e) or "timeout", timed_out=True),
            ) from e

        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            logger.error(f"LLM request failed: {status}")
            self._track(start, success=False)
            raise LLMError(
                f"LLM service returned {status}",
                ProviderFailure(status_code=status, message=_error_text(e.response)),
            ) from e

        except httpx.RequestError as e:
            logger.error(f"LLM connection error: {e}")
            self._track(start, success=False)
            raise LLMError(
                "Failed to connect to LLM service",
                ProviderFailure(message=str(e), connection_failed=True),
            ) from e

        try:
            data = response.json()
            choice = data["choices"][0]
            message = choice["message"]
            usage = data.get("usage") or {}

            result = GenerationResult(
                content=message.get("content") or "",
                model=data.get("model", self._settings.model),
                finish_reason=choice.get("finish_reason"),
                prompt_tokens=usage.get("prompt_tokens", 0),
                completion_tokens=usage.get("completion_tokens", 0),
            )

        except (KeyError, IndexError, TypeError, ValueError) as e:
            self._track(start, success=False)
            raise LLMError(
                f"Invalid response from LLM: {e}",
                ProviderFailure(message=str(e)),
            ) from e

        self._track(start, success=True, result=result)
        return result

    def _track(
        self,
        start: float,
        success: bool,
        result: GenerationResult | None = None,
    ) -> None:
        track_llm_request(
            model=self._settings.model,
            duration=time.perf_counter() - start,
            prompt_tokens=result.prompt_tokens if result else 0,
            completion_tokens=result.completion_tokens if result else 0,
            success=success,
        )


def _error_text(response: httpx.Response) -> str:
    """Extract the provider's error message from a failed response."""
    try:
        data = response.json()
    except ValueError:
        return response.text
    error = data.get("error") if isinstance(data, dict) else None
    if isinstance(error, dict):
        return str(error.get("message") or error)
    if error:
        return str(error)
    return response.text
