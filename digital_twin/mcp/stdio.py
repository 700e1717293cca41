"""Stdio MCP server.

Serves the same tools as the HTTP endpoint to a local client that launches
this process. stdout carries protocol messages, so logs go to stderr.
"""

import sys
from typing import Annotated

from mcp.server.fastmcp import FastMCP
from mcp.server.fastmcp.exceptions import ToolError
from pydantic import Field

from digital_twin.config import get_settings
from digital_twin.logging_config import get_logger, setup_logging
from digital_twin.mcp.handler import SERVER_NAME
from digital_twin.mcp.jsonrpc import JSONRPCError
from digital_twin.mcp.tools import (
    HEALTH_TOOL,
    HEALTH_TOOL_DESCRIPTION,
    QUERY_TOOL,
    QUERY_TOOL_DESCRIPTION,
    QUESTION_DESCRIPTION,
    DigitalTwinTools,
    build_tools,
)
from digital_twin.services import ServiceContainer

logger = get_logger(__name__)


async def _run_tool(tools: DigitalTwinTools, name: str, arguments: dict[str, str]) -> str:
    # FastMCP reports a raised ToolError as an isError result.
    try:
        result = await tools.call(name, arguments)
    except JSONRPCError as e:
        raise ToolError(e.message) from e
    if result.is_error:
        raise ToolError(result.text)
    return result.text


def create_server(tools: DigitalTwinTools) -> FastMCP:
    """Create a FastMCP server exposing the digital twin tools."""
    server = FastMCP(name=SERVER_NAME)

    @server.tool(name=QUERY_TOOL, description=QUERY_TOOL_DESCRIPTION)
    async def query_digital_twin(
        question: Annotated[str, Field(description=QUESTION_DESCRIPTION)],
    ) -> str:
        return await _run_tool(tools, QUERY_TOOL, {"question": question})

    @server.tool(name=HEALTH_TOOL, description=HEALTH_TOOL_DESCRIPTION)
    async def health_check() -> str:
        return await _run_tool(tools, HEALTH_TOOL, {})

    return server


def main() -> None:
    """Run the stdio server until the client closes stdin."""
    settings = get_settings()
    setup_logging(level=settings.log_level, stream=sys.stderr)

    services = ServiceContainer(settings)
    server = create_server(build_tools(services))

    logger.info("Starting stdio MCP server", extra={"server": SERVER_NAME})
    server.run(transport="stdio")


if __name__ == "__main__":
    main()
