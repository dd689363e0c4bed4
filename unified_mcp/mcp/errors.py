"""
MCP Errors - JSON-RPC error taxonomy and envelope builder.

Three failure origins map onto two wire shapes:
- Protocol errors (malformed envelope, unknown tool, invalid arguments) and
  infrastructure errors become top-level JSON-RPC ``error`` responses.
- Tool execution errors (missing credential, upstream failure) become a
  regular ``result`` whose payload carries ``isError: true``.
"""

from enum import IntEnum
from typing import Any, Dict, Optional, Union

RequestId = Union[str, int, None]


class JSONRPCErrorCode(IntEnum):
    """Standard JSON-RPC 2.0 error codes used by MCP."""
    PARSE_ERROR = -32700
    INVALID_REQUEST = -32600
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    INTERNAL_ERROR = -32603
    SERVER_ERROR = -32000


class ProtocolError(Exception):
    """Raised during dispatch when a message must be answered with a JSON-RPC error."""

    def __init__(
        self,
        code: JSONRPCErrorCode,
        message: str,
        *,
        data: Optional[Any] = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.data = data


class ToolExecutionError(RuntimeError):
    """Raised by an adapter when the tool fails to produce a result."""

    def __init__(
        self,
        message: str,
        *,
        code: str = "tool_error",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.details = details or {}


class ServerReuseError(RuntimeError):
    """Raised when a request-scoped server is asked to handle a second message."""


def build_error_envelope(
    code: Union[JSONRPCErrorCode, int],
    message: str,
    request_id: RequestId = None,
    data: Optional[Any] = None,
) -> Dict[str, Any]:
    """Build a JSON-RPC 2.0 error response."""
    error: Dict[str, Any] = {"code": int(code), "message": message}
    if data is not None:
        error["data"] = data
    return {"jsonrpc": "2.0", "id": request_id, "error": error}


def envelope_from_protocol_error(exc: ProtocolError, request_id: RequestId = None) -> Dict[str, Any]:
    return build_error_envelope(exc.code, exc.message, request_id=request_id, data=exc.data)


def build_result_envelope(result: Dict[str, Any], request_id: RequestId) -> Dict[str, Any]:
    """Build a JSON-RPC 2.0 success response."""
    return {"jsonrpc": "2.0", "id": request_id, "result": result}
