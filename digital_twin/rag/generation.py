"""Answer generation step.

Each attempt runs under a hard deadline; failed or empty completions are
retried with a fixed delay up to the configured number of attempts.
"""

import asyncio
import logging

from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_fixed,
)

from digital_twin.classification import classify_generation_failure
from digital_twin.config import RAGSettings
from digital_twin.exceptions import (
    GenerationError,
    LLMError,
    ProviderFailure,
    ValidationError,
)
from digital_twin.llm.client import LLMClient
from digital_twin.llm.models import Message, Role
from digital_twin.logging_config import get_logger
from digital_twin.rag.models import ConversationTurn
from digital_twin.services import ServiceContainer

logger = get_logger(__name__)


class AnswerGenerator:
    """Calls the generation service with deadline and retry policy."""

    def __init__(
        self,
        services: ServiceContainer,
        settings: RAGSettings,
    ) -> None:
        """Initialize the generator.

        Args:
            services: Container providing the LLM client.
            settings: Limits, deadline and retry policy.
        """
        self._services = services
        self._settings = settings

    async def generate(
        self,
        system_prompt: str,
        prompt: str,
        history: list[ConversationTurn] | None = None,
    ) -> str:
        """Generate an answer.

        Args:
            system_prompt: Fixed persona instruction.
            prompt: User prompt embedding context and question.
            history: Prior conversation turns, oldest first.

        Returns:
            The trimmed, non-empty completion.

        Raises:
            ValidationError: If the prompt is empty or too long.
            ConfigurationError: If the generation service is not configured.
            GenerationError: If every attempt failed.
        """
        if not prompt.strip():
            raise ValidationError("Prompt cannot be empty")
        if len(prompt.strip()) > self._settings.max_prompt_length:
            raise ValidationError(
                "Prompt too long",
                details={"length": len(prompt), "max": self._settings.max_prompt_length},
            )

        client = await self._services.get_llm_client()
        messages = build_messages(system_prompt, prompt, history)

        retrying = AsyncRetrying(
            stop=stop_after_attempt(self._settings.generation_max_attempts),
            wait=wait_fixed(self._settings.generation_retry_delay),
            retry=retry_if_exception_type(GenerationError),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )

        answer = ""
        async for attempt in retrying:
            with attempt:
                answer = await self._attempt(
                    client, messages, attempt.retry_state.attempt_number
                )
        return answer

    async def _attempt(
        self,
        client: LLMClient,
        messages: list[Message],
        attempt_number: int,
    ) -> str:
        try:
            result = await asyncio.wait_for(
                client.generate(messages),
                timeout=self._settings.generation_timeout,
            )
        except TimeoutError as e:
            failure = ProviderFailure(message="timeout", timed_out=True)
            raise self._classified(failure, attempt_number) from e
        except LLMError as e:
            raise self._classified(e.failure, attempt_number) from e
        except Exception as e:
            logger.error(f"Unexpected generation failure: {e}")
            raise self._classified(ProviderFailure(message=str(e)), attempt_number) from e

        answer = result.content.strip()
        if not answer:
            failure = ProviderFailure(message="empty response")
            raise self._classified(failure, attempt_number)
        return answer

    @staticmethod
    def _classified(failure: ProviderFailure, attempt_number: int) -> GenerationError:
        classification = classify_generation_failure(failure)
        logger.warning(
            f"Generation attempt {attempt_number} failed: {classification.message}",
            extra={"attempt": attempt_number, "error_code": classification.code.value},
        )
        return GenerationError(
            classification.message,
            code=classification.code,
            details={"attempt": attempt_number},
        )


def build_messages(
    system_prompt: str,
    prompt: str,
    history: list[ConversationTurn] | None = None,
) -> list[Message]:
    """Order system instruction, prior turns and the current prompt."""
    messages = [Message(role=Role.SYSTEM, content=system_prompt)]
    for turn in history or []:
        messages.append(Message.from_turn(turn))
    messages.append(Message(role=Role.USER, content=prompt))
    return messages
