"""API routes: MCP JSON-RPC endpoint and the chat endpoint."""

from typing import Any

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, Response, StreamingResponse
from pydantic import BaseModel, Field

from digital_twin.exceptions import ErrorKind
from digital_twin.logging_config import get_logger
from digital_twin.mcp.handler import MCPHandler, server_metadata
from digital_twin.mcp.sse import EVENT_STREAM, SSE_HEADERS, sse_frames, wants_event_stream
from digital_twin.rag.models import ConversationTurn, QueryResult
from digital_twin.rag.pipeline import RAGPipeline

logger = get_logger(__name__)


router = APIRouter(prefix="/api")

KIND_STATUS = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.CONFIGURATION: 503,
    ErrorKind.RETRIEVAL_FAILURE: 502,
    ErrorKind.GENERATION_FAILURE: 502,
    ErrorKind.UNKNOWN: 500,
}


class ChatRequest(BaseModel):
    """Request body for a chat turn."""

    question: str = Field(description="Question to answer")
    history: list[ConversationTurn] = Field(
        default_factory=list,
        description="Prior turns, oldest first",
    )


@router.post("/mcp", tags=["MCP"])
async def mcp_endpoint(request: Request) -> Response:
    """Handle one JSON-RPC request, framed as JSON or as SSE."""
    handler: MCPHandler = request.app.state.mcp_handler
    raw = await request.body()

    if wants_event_stream(request.headers.get("accept")):
        return StreamingResponse(
            sse_frames(handler, raw),
            media_type=EVENT_STREAM,
            headers=SSE_HEADERS,
        )

    reply = await handler.handle(raw)
    if reply.payload is None:
        return Response(status_code=reply.status_code)
    return JSONResponse(reply.payload, status_code=reply.status_code)


@router.get("/mcp", tags=["MCP"])
async def mcp_info() -> dict[str, Any]:
    """Describe the MCP endpoint."""
    return server_metadata()


@router.post("/chat", response_model=QueryResult, tags=["Chat"])
async def chat_endpoint(body: ChatRequest, request: Request) -> JSONResponse:
    """Answer a chat turn with conversation history."""
    pipeline: RAGPipeline = request.app.state.pipeline
    result = await pipeline.query(body.question, history=body.history)

    status_code = 200
    if not result.success and result.error_kind is not None:
        status_code = KIND_STATUS[result.error_kind]

    return JSONResponse(result.model_dump(mode="json"), status_code=status_code)
