"""Dependency health check.

Three probes: configuration presence, a minimal vector query and a
minimal completion. The remote probes run only when the configuration is
complete; a failing remote probe records its error and the other still runs.
"""

import asyncio
from typing import Any

from pydantic import BaseModel, Field

from digital_twin.exceptions import DigitalTwinError
from digital_twin.llm.models import Message, Role
from digital_twin.logging_config import get_logger
from digital_twin.services import ServiceContainer

logger = get_logger(__name__)

PROBE_QUERY = "health check test"


class HealthReport(BaseModel):
    """Aggregated health of the external dependencies.

    Attributes:
        success: True only when every probe passed.
        services: Pass/fail per dependency (environment, vector, generation).
        errors: Human-readable error per failed probe.
        details: Vector count, endpoint prefix and model name when known.
    """

    success: bool = Field(description="All probes passed")
    services: dict[str, bool] = Field(default_factory=dict)
    errors: list[str] = Field(default_factory=list)
    details: dict[str, Any] = Field(default_factory=dict)


class HealthChecker:
    """Runs the dependency probes against the shared services."""

    def __init__(self, services: ServiceContainer) -> None:
        self._services = services

    async def check(self) -> HealthReport:
        """Run the probes and aggregate the outcome."""
        errors: list[str] = []
        details: dict[str, Any] = {}

        environment = self._probe_environment(errors, details)
        vector = generation = False
        if environment:
            vector, generation = await asyncio.gather(
                self._probe_vector(errors, details),
                self._probe_generation(errors),
            )

        services = {
            "environment": environment,
            "vector": vector,
            "generation": generation,
        }
        report = HealthReport(
            success=all(services.values()),
            services=services,
            errors=errors,
            details=details,
        )
        logger.info(
            "Health check completed",
            extra={"success": report.success, "services": services},
        )
        return report

    def _probe_environment(self, errors: list[str], details: dict[str, Any]) -> bool:
        settings = self._services.settings
        try:
            self._services.validate()
        except DigitalTwinError as e:
            errors.append(f"Environment: {e.message}")
            return False

        endpoint = settings.vector_endpoint or ""
        details["vector_url"] = endpoint[:30] + "..."
        details["model"] = settings.llm.model
        return True

    async def _probe_vector(self, errors: list[str], details: dict[str, Any]) -> bool:
        timeout = self._services.settings.rag.retrieval_timeout
        try:
            index = await self._services.get_vector_index()
            await asyncio.wait_for(index.query(PROBE_QUERY, top_k=1, include_metadata=False), timeout)
            info = await asyncio.wait_for(index.info(), timeout)
        except Exception as e:
            errors.append(f"Vector: {_describe(e)}")
            return False

        details["vector_count"] = info.vector_count
        return True

    async def _probe_generation(self, errors: list[str]) -> bool:
        timeout = self._services.settings.rag.generation_timeout
        try:
            client = await self._services.get_llm_client()
            await asyncio.wait_for(
                client.generate([Message(role=Role.USER, content="test")], max_tokens=5),
                timeout,
            )
        except Exception as e:
            errors.append(f"Generation: {_describe(e)}")
            return False
        return True


def _describe(exc: Exception) -> str:
    if isinstance(exc, DigitalTwinError):
        return exc.message
    if isinstance(exc, TimeoutError):
        return "Request timed out"
    return str(exc) or type(exc).__name__
