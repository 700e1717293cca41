"""MCP protocol handler.

Turns one raw JSON-RPC request body into one reply. The same handler
serves plain-JSON and SSE framing; only the transport around it differs.
"""

from typing import Any

from pydantic import BaseModel, Field

from digital_twin import __version__
from digital_twin.logging_config import get_logger
from digital_twin.mcp.jsonrpc import (
    JSONRPCError,
    JSONRPCErrorCode,
    JSONRPCRequest,
    error_response,
    parse_request,
    success_response,
)
from digital_twin.mcp.tools import TOOL_CATALOG, DigitalTwinTools
from digital_twin.observability.metrics import track_mcp_request

logger = get_logger(__name__)

PROTOCOL_VERSION = "2024-11-05"
SERVER_NAME = "digital-twin-mcp-server"
INITIALIZED_NOTIFICATION = "notifications/initialized"
SUPPORTED_METHODS = ["initialize", "tools/list", "tools/call"]

_HTTP_STATUS = {
    JSONRPCErrorCode.PARSE_ERROR: 400,
    JSONRPCErrorCode.INVALID_REQUEST: 400,
    JSONRPCErrorCode.INVALID_PARAMS: 400,
    JSONRPCErrorCode.METHOD_NOT_FOUND: 404,
    JSONRPCErrorCode.INTERNAL_ERROR: 500,
}


class MCPReply(BaseModel):
    """Reply to one request.

    Attributes:
        payload: JSON-RPC response, or None for an acknowledged notification.
        status_code: HTTP status for the plain-JSON transport.
    """

    payload: dict[str, Any] | None = Field(default=None)
    status_code: int = Field(default=200)


class MCPHandler:
    """Dispatches JSON-RPC requests to the MCP methods."""

    def __init__(self, tools: DigitalTwinTools) -> None:
        self._tools = tools

    async def handle(self, raw: bytes | str) -> MCPReply:
        """Handle one request body. Never raises.

        Args:
            raw: Request body.

        Returns:
            The reply to send.
        """
        request_id = None
        method = "invalid"
        try:
            request = parse_request(raw)
            request_id = request.id
            method = request.method

            if method == INITIALIZED_NOTIFICATION:
                track_mcp_request(method, "ok")
                return MCPReply(payload=None, status_code=202)

            result = await self.dispatch(request)

        except JSONRPCError as e:
            if e.request_id is not None:
                request_id = e.request_id
            if e.code == JSONRPCErrorCode.METHOD_NOT_FOUND and method not in SUPPORTED_METHODS:
                method = "unknown"
            track_mcp_request(method, "error")
            logger.info(
                f"JSON-RPC error: {e.message}",
                extra={"code": int(e.code), "method": method},
            )
            return MCPReply(
                payload=error_response(request_id, e),
                status_code=_HTTP_STATUS[e.code],
            )

        except Exception:
            logger.exception("Unhandled error in MCP handler", extra={"method": method})
            track_mcp_request(method, "error")
            error = JSONRPCError(JSONRPCErrorCode.INTERNAL_ERROR, "Internal server error")
            return MCPReply(payload=error_response(request_id, error), status_code=500)

        track_mcp_request(method, "ok")
        return MCPReply(payload=success_response(request_id, result))

    async def dispatch(self, request: JSONRPCRequest) -> dict[str, Any]:
        """Run a method and return its result.

        Raises:
            JSONRPCError: For unknown methods or invalid parameters.
        """
        if request.method == "initialize":
            return initialize_result()

        if request.method == "tools/list":
            return {"tools": TOOL_CATALOG}

        if request.method == "tools/call":
            params = request.params or {}
            result = await self._tools.call(params.get("name"), params.get("arguments"))
            return result.to_mcp()

        raise JSONRPCError(
            JSONRPCErrorCode.METHOD_NOT_FOUND,
            f"Method not found: {request.method}",
        )


def initialize_result() -> dict[str, Any]:
    """Result of the `initialize` method."""
    return {
        "protocolVersion": PROTOCOL_VERSION,
        "capabilities": {"tools": {}},
        "serverInfo": {"name": SERVER_NAME, "version": __version__},
    }


def server_metadata() -> dict[str, Any]:
    """Static description served on GET."""
    return {
        "name": "Digital Twin MCP Server",
        "version": __version__,
        "protocol": "Model Context Protocol (MCP)",
        "protocolVersion": PROTOCOL_VERSION,
        "transport": "HTTP (JSON or SSE)",
        "methods": SUPPORTED_METHODS,
        "tools": [
            {"name": tool["name"], "description": tool["description"]}
            for tool in TOOL_CATALOG
        ],
        "documentation": "Send POST requests with JSON-RPC 2.0 format",
        "example": {
            "jsonrpc": "2.0",
            "id": 1,
            "method": "tools/call",
            "params": {
                "name": "query-digital-twin",
                "arguments": {"question": "What are your technical skills?"},
            },
        },
    }
