"""FastAPI application entry point.

Configures the application with logging, metrics, health checks and the
MCP and chat routes.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response

from digital_twin import __version__
from digital_twin.api.routes import KIND_STATUS, router
from digital_twin.config import Environment, Settings, get_settings
from digital_twin.exceptions import DigitalTwinError, ErrorCode
from digital_twin.health import HealthChecker
from digital_twin.logging_config import get_logger, setup_logging
from digital_twin.mcp.handler import MCPHandler
from digital_twin.mcp.tools import DigitalTwinTools
from digital_twin.observability.metrics import (
    MetricsMiddleware,
    get_metrics,
    get_metrics_content_type,
)
from digital_twin.rag.pipeline import build_pipeline
from digital_twin.services import ServiceContainer

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Handles startup and shutdown events.
    """
    settings: Settings = app.state.settings
    setup_logging(
        level=settings.log_level,
        json_output=settings.environment != Environment.DEVELOPMENT,
    )
    logger.info(
        "Starting Digital Twin MCP server",
        extra={
            "version": __version__,
            "environment": settings.environment.value,
            "vector_provider": settings.vector_provider.value,
        },
    )

    yield

    logger.info("Shutting down Digital Twin MCP server")
    await app.state.services.close()


def create_app(
    settings: Settings | None = None,
    services: ServiceContainer | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Settings override (default from environment).
        services: Service container override (for testing).

    Returns:
        Configured FastAPI application instance.
    """
    if services is not None:
        settings = services.settings
    settings = settings or get_settings()
    services = services or ServiceContainer(settings)

    app = FastAPI(
        title="Digital Twin MCP Server",
        description="RAG over a personal knowledge base, exposed as MCP tools",
        version=__version__,
        lifespan=lifespan,
        debug=settings.debug,
    )

    pipeline = build_pipeline(services)
    health_checker = HealthChecker(services)

    app.state.settings = settings
    app.state.services = services
    app.state.pipeline = pipeline
    app.state.health_checker = health_checker
    app.state.mcp_handler = MCPHandler(DigitalTwinTools(pipeline, health_checker))

    app.add_middleware(MetricsMiddleware)
    app.add_exception_handler(DigitalTwinError, twin_exception_handler)

    app.add_api_route("/health", health_check, methods=["GET"], tags=["Health"])
    app.add_api_route("/health/ready", readiness_check, methods=["GET"], tags=["Health"])
    app.add_api_route("/health/live", liveness_check, methods=["GET"], tags=["Health"])
    app.add_api_route("/metrics", metrics, methods=["GET"], tags=["Observability"])
    app.include_router(router)

    return app


async def twin_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Render an unhandled DigitalTwinError as a structured JSON error."""
    if not isinstance(exc, DigitalTwinError):
        return JSONResponse(
            status_code=500,
            content={"error": {"code": ErrorCode.INTERNAL_ERROR.value, "message": str(exc), "details": {}}},
        )

    logger.error(
        f"Request failed: {exc.message}",
        extra={
            "error_code": exc.code.value,
            "path": request.url.path,
            "details": exc.details,
        },
    )
    return JSONResponse(status_code=KIND_STATUS[exc.kind], content=exc.to_dict())


async def health_check() -> dict[str, Any]:
    """Basic health check endpoint.

    Returns:
        Health status with version and timestamp.
    """
    return {
        "status": "healthy",
        "version": __version__,
        "timestamp": datetime.now(UTC).isoformat(),
    }


async def readiness_check(request: Request) -> JSONResponse:
    """Readiness endpoint: runs every dependency probe.

    Returns:
        The health report; 503 when any dependency is down.
    """
    checker: HealthChecker = request.app.state.health_checker
    report = await checker.check()

    content = report.model_dump(mode="json")
    content["status"] = "ready" if report.success else "not_ready"
    content["timestamp"] = datetime.now(UTC).isoformat()

    return JSONResponse(content, status_code=200 if report.success else 503)


async def liveness_check() -> dict[str, str]:
    """Liveness probe.

    Returns:
        Liveness status.
    """
    return {"status": "alive"}


async def metrics() -> Response:
    """Prometheus scrape endpoint."""
    return Response(content=get_metrics(), media_type=get_metrics_content_type())


def run() -> None:
    """Serve the application with uvicorn."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "digital_twin.api.app:app",
        host=settings.api_host,
        port=settings.api_port,
    )


app = create_app()
