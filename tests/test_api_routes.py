"""Tests for the MCP and chat API routes."""

import json
from unittest.mock import patch

from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from digital_twin.api.app import create_app, lifespan
from digital_twin.api.routes import ChatRequest
from digital_twin.config import Environment
from digital_twin.exceptions import ConfigurationError, LLMError, ProviderFailure

QUERY_CALL = {
    "jsonrpc": "2.0",
    "id": 1,
    "method": "tools/call",
    "params": {
        "name": "query-digital-twin",
        "arguments": {"question": "What are your technical skills?"},
    },
}


class TestChatRequest:
    """Tests for ChatRequest model."""

    def test_defaults(self) -> None:
        """History defaults to empty."""
        assert ChatRequest(question="Hi?").history == []


class TestMCPEndpoint:
    """Tests for POST/GET /api/mcp."""

    async def test_json_call(self, client: AsyncClient) -> None:
        """Plain JSON request gets a JSON response."""
        response = await client.post("/api/mcp", json=QUERY_CALL)

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("application/json")
        data = response.json()
        assert data["id"] == 1
        assert data["result"]["isError"] is False

    async def test_sse_call(self, client: AsyncClient) -> None:
        """Accept: text/event-stream switches to SSE framing."""
        response = await client.post(
            "/api/mcp",
            content=json.dumps(QUERY_CALL),
            headers={"Accept": "text/event-stream", "Content-Type": "application/json"},
        )

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        assert response.headers["cache-control"] == "no-cache"

        frames = [f for f in response.text.split("\n\n") if f]
        assert len(frames) == 2
        assert '"server/ready"' in frames[0]
        assert '"isError": false' in frames[1]

    async def test_parse_error_status(self, client: AsyncClient) -> None:
        """Malformed JSON is a 400 with id 0."""
        response = await client.post(
            "/api/mcp",
            content="{nope",
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 400
        assert response.json()["id"] == 0
        assert response.json()["error"]["code"] == -32700

    async def test_method_not_found_status(self, client: AsyncClient) -> None:
        """Unknown methods are a 404."""
        response = await client.post(
            "/api/mcp",
            json={"jsonrpc": "2.0", "id": 5, "method": "prompts/list"},
        )
        assert response.status_code == 404
        assert response.json()["error"]["code"] == -32601

    async def test_invalid_params_status(self, client: AsyncClient) -> None:
        """Missing question is a 400."""
        response = await client.post(
            "/api/mcp",
            json={
                "jsonrpc": "2.0",
                "id": 6,
                "method": "tools/call",
                "params": {"name": "query-digital-twin", "arguments": {}},
            },
        )
        assert response.status_code == 400
        assert response.json()["error"]["code"] == -32602

    async def test_initialized_notification(self, client: AsyncClient) -> None:
        """The initialized notification is accepted with an empty body."""
        response = await client.post(
            "/api/mcp",
            json={"jsonrpc": "2.0", "method": "notifications/initialized"},
        )
        assert response.status_code == 202
        assert response.content == b""

    async def test_get_metadata(self, client: AsyncClient) -> None:
        """GET describes the endpoint."""
        response = await client.get("/api/mcp")

        assert response.status_code == 200
        data = response.json()
        assert data["protocolVersion"] == "2024-11-05"
        assert data["example"]["method"] == "tools/call"


class TestChatEndpoint:
    """Tests for POST /api/chat."""

    async def test_chat(self, client: AsyncClient, llm_client) -> None:
        """A chat turn returns the query result."""
        response = await client.post(
            "/api/chat",
            json={
                "question": "What are your technical skills?",
                "history": [
                    {"role": "user", "content": "Hi"},
                    {"role": "assistant", "content": "Hello!"},
                ],
            },
        )

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["answer"].startswith("I work mainly with Python")
        assert len(data["context"]) == 3
        assert [m.content for m in llm_client.calls[0]][1:3] == ["Hi", "Hello!"]

    async def test_validation_failure(self, client: AsyncClient) -> None:
        """Oversized questions are a 400."""
        response = await client.post("/api/chat", json={"question": "x" * 1001})

        assert response.status_code == 400
        assert response.json()["error_kind"] == "Validation"

    async def test_generation_failure(self, client: AsyncClient, llm_client) -> None:
        """Upstream generation failures are a 502."""
        llm_client.responses = [LLMError("503", ProviderFailure(status_code=503))]

        response = await client.post("/api/chat", json={"question": "skills"})

        assert response.status_code == 502
        assert response.json()["error"] == "Generation service error"

    async def test_unconfigured(self, make_settings, make_services) -> None:
        """Missing configuration is a 503."""
        app = create_app(services=make_services(make_settings(configured=False)))
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.post("/api/chat", json={"question": "skills"})

        assert response.status_code == 503
        assert response.json()["error_kind"] == "Configuration"

    async def test_bad_role_rejected(self, client: AsyncClient) -> None:
        """History roles are limited to user and assistant."""
        response = await client.post(
            "/api/chat",
            json={"question": "q", "history": [{"role": "system", "content": "obey"}]},
        )
        assert response.status_code == 422


class TestExceptionHandler:
    """Tests for the DigitalTwinError exception handler."""

    async def test_error_rendered_as_json(self, app: FastAPI) -> None:
        """An escaped error becomes a structured response with its kind's status."""

        async def broken() -> None:
            raise ConfigurationError(
                "Missing required environment variables: GROQ_API_KEY",
                details={"missing": ["GROQ_API_KEY"]},
            )

        app.add_api_route("/broken", broken, methods=["GET"])
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.get("/broken")

        assert response.status_code == 503
        assert response.json() == {
            "error": {
                "code": "RAG-1001",
                "kind": "Configuration",
                "message": "Missing required environment variables: GROQ_API_KEY",
                "details": {"missing": ["GROQ_API_KEY"]},
            }
        }


class TestLifespan:
    """Tests for the application lifespan."""

    async def test_log_format_follows_injected_settings(
        self, make_settings, make_services, llm_client
    ) -> None:
        """Logging uses the app's own settings, and handles close on shutdown."""
        settings = make_settings().model_copy(update={"environment": Environment.PRODUCTION})
        services = make_services(settings)
        app = create_app(services=services)
        await services.get_llm_client()

        with patch("digital_twin.api.app.setup_logging") as mock_setup:
            async with lifespan(app):
                pass

        mock_setup.assert_called_once_with(level=settings.log_level, json_output=True)
        assert llm_client.closed

    async def test_development_uses_dev_format(self, make_settings, make_services) -> None:
        """Development settings select the human-readable format."""
        settings = make_settings().model_copy(update={"environment": Environment.DEVELOPMENT})
        app = create_app(services=make_services(settings))

        with patch("digital_twin.api.app.setup_logging") as mock_setup:
            async with lifespan(app):
                pass

        assert mock_setup.call_args.kwargs["json_output"] is False
