"""Server-Sent Events framing for the MCP endpoint.

One stream per request: a `server/ready` notification, then at most one
response frame, then the stream ends.
"""

import json
from collections.abc import AsyncIterator
from typing import Any

from digital_twin.mcp.handler import MCPHandler
from digital_twin.mcp.jsonrpc import notification

EVENT_STREAM = "text/event-stream"
SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
}


def wants_event_stream(accept: str | None) -> bool:
    """True when the Accept header asks for SSE."""
    return EVENT_STREAM in (accept or "").lower()


def format_sse_message(data: dict[str, Any], event: str | None = "message") -> str:
    """Render one SSE frame."""
    frame = f"event: {event}\n" if event else ""
    return frame + f"data: {json.dumps(data, ensure_ascii=False)}\n\n"


async def sse_frames(handler: MCPHandler, raw: bytes | str) -> AsyncIterator[str]:
    """Yield the frames answering one request."""
    yield format_sse_message(notification("server/ready"))

    reply = await handler.handle(raw)
    if reply.payload is not None:
        yield format_sse_message(reply.payload)
