"""Tool catalog and dispatch shared by the HTTP and stdio transports."""

from typing import Any

from pydantic import BaseModel, Field

from digital_twin.health import HealthChecker, HealthReport
from digital_twin.mcp.jsonrpc import JSONRPCError, JSONRPCErrorCode
from digital_twin.rag.models import QueryResult
from digital_twin.rag.pipeline import RAGPipeline, build_pipeline
from digital_twin.services import ServiceContainer

QUERY_TOOL = "query-digital-twin"
HEALTH_TOOL = "health-check"

QUERY_TOOL_DESCRIPTION = (
    "Query the digital twin's professional profile using RAG "
    "(Retrieval-Augmented Generation). Ask questions about work experience, "
    "technical skills, projects, education, or career goals."
)
HEALTH_TOOL_DESCRIPTION = (
    "Check the health status of all services (vector database, "
    "generation API, environment configuration)"
)
QUESTION_DESCRIPTION = (
    "The question to ask about the person's professional background, "
    "skills, or experience"
)

TOOL_CATALOG: list[dict[str, Any]] = [
    {
        "name": QUERY_TOOL,
        "description": QUERY_TOOL_DESCRIPTION,
        "inputSchema": {
            "type": "object",
            "properties": {
                "question": {"type": "string", "description": QUESTION_DESCRIPTION},
            },
            "required": ["question"],
        },
    },
    {
        "name": HEALTH_TOOL,
        "description": HEALTH_TOOL_DESCRIPTION,
        "inputSchema": {"type": "object", "properties": {}},
    },
]

_SERVICE_LABELS = {
    "environment": "Environment",
    "vector": "Vector Database",
    "generation": "Generation API",
}


class ToolResult(BaseModel):
    """Rendered outcome of one tool call."""

    text: str = Field(description="Text content")
    is_error: bool = Field(default=False, description="Underlying call failed")

    def to_mcp(self) -> dict[str, Any]:
        """Render as an MCP `tools/call` result."""
        return {
            "content": [{"type": "text", "text": self.text}],
            "isError": self.is_error,
        }


def render_query_result(result: QueryResult) -> ToolResult:
    """Render a query result as tool text with sources and timing."""
    if not result.success:
        return ToolResult(text=f"Error: {result.error or 'Unknown error occurred'}", is_error=True)

    text = result.answer
    if result.context:
        text += "\n\n---\n**Sources:**\n"
        for idx, source in enumerate(result.context, start=1):
            text += f"{idx}. {source.title} (relevance: {source.score * 100:.1f}%)\n"
    if result.duration_ms:
        text += f"\n*Response time: {result.duration_ms}ms*"
    return ToolResult(text=text)


def render_health_report(report: HealthReport) -> ToolResult:
    """Render a health report as tool text."""
    lines = [
        "**Health Check Results**",
        "",
        f"Overall Status: {'Healthy' if report.success else 'Unhealthy'}",
        "",
        "**Services:**",
    ]
    for key, label in _SERVICE_LABELS.items():
        lines.append(f"- {label}: {'ok' if report.services.get(key) else 'failed'}")

    details = report.details
    if details:
        lines += ["", "**Details:**"]
        if "vector_count" in details:
            lines.append(f"- Vector Count: {details['vector_count']}")
        if "model" in details:
            lines.append(f"- Model: {details['model']}")
        if "vector_url" in details:
            lines.append(f"- Vector URL: {details['vector_url']}")

    if report.errors:
        lines += ["", "**Errors:**"]
        lines += [f"- {error}" for error in report.errors]

    return ToolResult(text="\n".join(lines) + "\n", is_error=not report.success)


class DigitalTwinTools:
    """Executes the tools in TOOL_CATALOG."""

    def __init__(self, pipeline: RAGPipeline, health_checker: HealthChecker) -> None:
        self._pipeline = pipeline
        self._health_checker = health_checker

    async def call(self, name: Any, arguments: Any = None) -> ToolResult:
        """Run a tool by name.

        Args:
            name: Tool name from `params.name`.
            arguments: Tool arguments from `params.arguments`.

        Returns:
            The rendered tool result.

        Raises:
            JSONRPCError: INVALID_PARAMS for a missing name or bad
                arguments, METHOD_NOT_FOUND for an unknown tool.
        """
        if not name or not isinstance(name, str):
            raise JSONRPCError(JSONRPCErrorCode.INVALID_PARAMS, "Tool name is required")

        if name == QUERY_TOOL:
            question = arguments.get("question") if isinstance(arguments, dict) else None
            if not question or not isinstance(question, str):
                raise JSONRPCError(
                    JSONRPCErrorCode.INVALID_PARAMS,
                    "Question parameter is required and must be a string",
                )
            return render_query_result(await self._pipeline.query(question))

        if name == HEALTH_TOOL:
            return render_health_report(await self._health_checker.check())

        raise JSONRPCError(JSONRPCErrorCode.METHOD_NOT_FOUND, f"Unknown tool: {name}")


def build_tools(services: ServiceContainer) -> DigitalTwinTools:
    """Wire the tools onto a service container."""
    return DigitalTwinTools(build_pipeline(services), HealthChecker(services))
