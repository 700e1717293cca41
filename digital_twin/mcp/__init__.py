"""Model Context Protocol surface."""

from digital_twin.mcp.handler import MCPHandler, MCPReply, server_metadata
from digital_twin.mcp.jsonrpc import JSONRPCError, JSONRPCErrorCode, parse_request
from digital_twin.mcp.sse import format_sse_message, sse_frames, wants_event_stream
from digital_twin.mcp.tools import TOOL_CATALOG, DigitalTwinTools, ToolResult, build_tools

__all__ = [
    "TOOL_CATALOG",
    "DigitalTwinTools",
    "JSONRPCError",
    "JSONRPCErrorCode",
    "MCPHandler",
    "MCPReply",
    "ToolResult",
    "build_tools",
    "format_sse_message",
    "parse_request",
    "server_metadata",
    "sse_frames",
    "wants_event_stream",
]
