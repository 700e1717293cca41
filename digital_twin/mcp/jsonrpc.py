"""JSON-RPC 2.0 message handling for the MCP endpoints."""

import json
from enum import IntEnum
from typing import Any

from pydantic import BaseModel, Field

RequestId = str | int


class JSONRPCErrorCode(IntEnum):
    """Reserved JSON-RPC 2.0 error codes."""

    PARSE_ERROR = -32700
    INVALID_REQUEST = -32600
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    INTERNAL_ERROR = -32603


class JSONRPCError(Exception):
    """A protocol-level failure that becomes a JSON-RPC error response.

    Attributes:
        code: JSON-RPC error code.
        message: Client-facing message.
        data: Optional structured detail.
        request_id: Id of the offending request, when it could be read.
    """

    def __init__(
        self,
        code: JSONRPCErrorCode,
        message: str,
        data: Any = None,
        request_id: RequestId | None = None,
    ) -> None:
        self.code = code
        self.message = message
        self.data = data
        self.request_id = request_id
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Render the `error` member of a response."""
        error: dict[str, Any] = {"code": int(self.code), "message": self.message}
        if self.data is not None:
            error["data"] = self.data
        return error


class JSONRPCRequest(BaseModel):
    """A validated JSON-RPC 2.0 request or notification."""

    jsonrpc: str = Field(default="2.0")
    id: RequestId | None = Field(default=None)
    method: str
    params: dict[str, Any] | None = None


def success_response(request_id: RequestId | None, result: Any) -> dict[str, Any]:
    """Create a JSON-RPC success response."""
    return {"jsonrpc": "2.0", "id": _response_id(request_id), "result": result}


def error_response(request_id: RequestId | None, error: JSONRPCError) -> dict[str, Any]:
    """Create a JSON-RPC error response."""
    return {"jsonrpc": "2.0", "id": _response_id(request_id), "error": error.to_dict()}


def notification(method: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
    """Create a JSON-RPC notification (no id, no response expected)."""
    msg: dict[str, Any] = {"jsonrpc": "2.0", "method": method}
    if params is not None:
        msg["params"] = params
    return msg


def _response_id(request_id: RequestId | None) -> RequestId:
    # Unreadable ids are answered with 0.
    return 0 if request_id is None else request_id


def parse_request(raw: bytes | str) -> JSONRPCRequest:
    """Decode and validate a JSON-RPC 2.0 request body.

    Args:
        raw: Request body.

    Returns:
        The validated request.

    Raises:
        JSONRPCError: PARSE_ERROR for malformed JSON, INVALID_REQUEST for a
            wrong envelope, INVALID_PARAMS for non-object params.
    """
    try:
        body = json.loads(raw)
    except ValueError as e:
        raise JSONRPCError(JSONRPCErrorCode.PARSE_ERROR, "Invalid JSON") from e

    if not isinstance(body, dict):
        raise JSONRPCError(
            JSONRPCErrorCode.INVALID_REQUEST,
            "Request must be a JSON object",
        )

    request_id = body.get("id")
    if isinstance(request_id, bool) or not isinstance(request_id, (str, int)):
        request_id = None

    if body.get("jsonrpc") != "2.0":
        raise JSONRPCError(
            JSONRPCErrorCode.INVALID_REQUEST,
            "Invalid JSON-RPC version (must be 2.0)",
            request_id=request_id,
        )

    method = body.get("method")
    if not isinstance(method, str) or not method:
        raise JSONRPCError(
            JSONRPCErrorCode.INVALID_REQUEST,
            "Method is required",
            request_id=request_id,
        )

    params = body.get("params")
    if params is not None and not isinstance(params, dict):
        raise JSONRPCError(
            JSONRPCErrorCode.INVALID_PARAMS,
            "Params must be an object",
            request_id=request_id,
        )

    return JSONRPCRequest(id=request_id, method=method, params=params)
