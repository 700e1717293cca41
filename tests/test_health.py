"""Tests for the dependency health check and health endpoints."""

import pytest
from httpx import ASGITransport, AsyncClient

from digital_twin import __version__
from digital_twin.api.app import create_app
from digital_twin.exceptions import LLMError, ProviderFailure
from digital_twin.health import HealthChecker


class TestHealthChecker:
    """Tests for HealthChecker."""

    @pytest.mark.asyncio
    async def test_all_healthy(self, services, vector_index, llm_client) -> None:
        """Every probe passes and details are filled in."""
        report = await HealthChecker(services).check()

        assert report.success
        assert report.services == {"environment": True, "vector": True, "generation": True}
        assert report.errors == []
        assert report.details["vector_count"] == 42
        assert report.details["model"] == "llama-3.1-8b-instant"
        assert report.details["vector_url"] == "https://twin-index.upstash.io"[:30] + "..."

    @pytest.mark.asyncio
    async def test_probes_are_minimal(self, services, vector_index, llm_client) -> None:
        """Probes use one record and a tiny completion."""
        await HealthChecker(services).check()

        assert vector_index.calls == [
            {"text": "health check test", "top_k": 1, "include_metadata": False}
        ]
        assert len(llm_client.calls) == 1
        assert len(llm_client.calls[0]) == 1

    @pytest.mark.asyncio
    async def test_unconfigured(self, make_settings, make_services, vector_index, llm_client) -> None:
        """Missing configuration skips the remote probes and reports once."""
        report = await HealthChecker(make_services(make_settings(configured=False))).check()

        assert not report.success
        assert report.services == {"environment": False, "vector": False, "generation": False}
        assert len(report.errors) == 1
        assert report.errors[0].startswith("Environment: Missing required environment variables")
        assert vector_index.calls == []
        assert llm_client.calls == []

    @pytest.mark.asyncio
    async def test_one_probe_fails(self, services, llm_client) -> None:
        """A failing probe does not stop the others."""
        llm_client.responses = [LLMError("LLM service returned 401", ProviderFailure(status_code=401))]

        report = await HealthChecker(services).check()

        assert not report.success
        assert report.services == {"environment": True, "vector": True, "generation": False}
        assert report.errors == ["Generation: LLM service returned 401"]
        assert report.details["vector_count"] == 42

    @pytest.mark.asyncio
    async def test_vector_timeout(self, make_settings, make_services, vector_index) -> None:
        """A hung vector probe is reported as timed out."""
        vector_index.delay = 1.0
        settings = make_settings(retrieval_timeout=0.01)

        report = await HealthChecker(make_services(settings)).check()

        assert report.services["vector"] is False
        assert "Vector: Request timed out" in report.errors


class TestHealthEndpoint:
    """Tests for /health endpoint."""

    async def test_health_returns_200(self, client: AsyncClient) -> None:
        """Health endpoint returns 200 OK."""
        response = await client.get("/health")
        assert response.status_code == 200

    async def test_health_returns_status(self, client: AsyncClient) -> None:
        """Health endpoint returns healthy status."""
        response = await client.get("/health")
        data = response.json()
        assert data["status"] == "healthy"

    async def test_health_returns_version(self, client: AsyncClient) -> None:
        """Health endpoint returns application version."""
        response = await client.get("/health")
        data = response.json()
        assert data["version"] == __version__

    async def test_health_returns_timestamp(self, client: AsyncClient) -> None:
        """Health endpoint returns ISO timestamp."""
        response = await client.get("/health")
        data = response.json()
        assert "T" in data["timestamp"]


class TestReadinessEndpoint:
    """Tests for /health/ready endpoint."""

    async def test_readiness_returns_200(self, client: AsyncClient) -> None:
        """Readiness endpoint returns 200 OK when dependencies respond."""
        response = await client.get("/health/ready")
        assert response.status_code == 200

    async def test_readiness_returns_report(self, client: AsyncClient) -> None:
        """Readiness endpoint returns the probe results."""
        response = await client.get("/health/ready")
        data = response.json()
        assert data["status"] == "ready"
        assert data["services"]["vector"] is True
        assert "timestamp" in data

    async def test_readiness_unconfigured_returns_503(self, make_settings, make_services) -> None:
        """Missing configuration makes the service not ready."""
        app = create_app(services=make_services(make_settings(configured=False)))
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.get("/health/ready")

        assert response.status_code == 503
        data = response.json()
        assert data["status"] == "not_ready"
        assert data["success"] is False


class TestLivenessEndpoint:
    """Tests for /health/live endpoint."""

    async def test_liveness_returns_alive(self, client: AsyncClient) -> None:
        """Liveness endpoint returns alive status."""
        response = await client.get("/health/live")
        assert response.status_code == 200
        assert response.json()["status"] == "alive"
