"""
MCP Server - Request-scoped JSON-RPC dispatcher.

A ``RequestScopedServer`` is built for exactly one inbound HTTP request. It
borrows the shared, sealed ``ToolRegistry``, handles the single JSON-RPC
message carried in the request body and is discarded with the response.

Lifecycle:
    BUILT -> DISPATCHING -> RESPONDED

Supported methods:
- initialize: capability advertisement
- ping: liveness
- tools/list: tool discovery
- tools/call: lookup -> argument validation -> adapter invocation

Usage:
    server = RequestScopedServer(registry, settings, upstream)
    response = await server.handle({"jsonrpc": "2.0", "id": 1, "method": "tools/list"})
"""

from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional

import structlog
from pydantic import ValidationError

from ..clients.upstream import UpstreamClient
from ..core.config import Settings
from ..core.constants import SERVER_NAME, SERVER_VERSION
from .errors import (
    JSONRPCErrorCode,
    ProtocolError,
    RequestId,
    ServerReuseError,
    build_error_envelope,
    build_result_envelope,
    envelope_from_protocol_error,
)
from .protocol import (
    LATEST_PROTOCOL_VERSION,
    SUPPORTED_PROTOCOL_VERSIONS,
    CallToolParams,
    Implementation,
    InitializeResult,
    JSONRPCMessage,
    ListToolsResult,
)
from .registry import ToolNotFoundError, ToolRegistry
from .schema import ArgumentValidationError
from .tool import InvocationContext

logger = structlog.get_logger(__name__)

SERVER_INSTRUCTIONS = (
    "Unified MCP server exposing Context7 documentation lookup, Perplexity research "
    "and BrightData web data tools."
)

Handler = Callable[[Dict[str, Any]], Awaitable[Dict[str, Any]]]


class ServerState(str, Enum):
    BUILT = "built"
    DISPATCHING = "dispatching"
    RESPONDED = "responded"


class RequestScopedServer:
    """Ephemeral protocol server serving a single JSON-RPC message."""

    def __init__(
        self,
        registry: ToolRegistry,
        settings: Settings,
        upstream: UpstreamClient,
        request_id: Optional[str] = None,
    ) -> None:
        self._registry = registry
        self._settings = settings
        self._upstream = upstream
        self._request_id = request_id
        self._state = ServerState.BUILT
        self._handlers: Dict[str, Handler] = {
            "initialize": self._initialize,
            "ping": self._ping,
            "tools/list": self._list_tools,
            "tools/call": self._call_tool,
        }

    @property
    def state(self) -> ServerState:
        return self._state

    async def handle(self, message: Any) -> Optional[Dict[str, Any]]:
        """
        Handle one decoded JSON-RPC message.

        Returns:
            The JSON-RPC response, or None for notifications and client responses

        Raises:
            ServerReuseError: If this instance already handled a message
        """
        if self._state is not ServerState.BUILT:
            raise ServerReuseError("A request-scoped server handles exactly one message")

        self._state = ServerState.DISPATCHING
        try:
            return await self._dispatch(message)
        finally:
            self._state = ServerState.RESPONDED

    async def _dispatch(self, message: Any) -> Optional[Dict[str, Any]]:
        request_id = _extract_id(message)
        try:
            envelope = JSONRPCMessage.model_validate(message)
        except ValidationError as exc:
            logger.warning("Invalid JSON-RPC envelope", error=str(exc), request_id=self._request_id)
            return build_error_envelope(
                JSONRPCErrorCode.INVALID_REQUEST,
                "Invalid Request: not a JSON-RPC 2.0 message",
                request_id=request_id,
            )

        if envelope.is_response:
            logger.debug("Ignoring client response message", request_id=self._request_id)
            return None

        if envelope.is_notification:
            logger.info("Received notification", method=envelope.method, request_id=self._request_id)
            return None

        if envelope.method is None:
            logger.warning("JSON-RPC message has no method, result or error", request_id=self._request_id)
            return build_error_envelope(
                JSONRPCErrorCode.INVALID_REQUEST,
                "Invalid Request: message has no method, result or error",
                request_id=envelope.id,
            )

        handler = self._handlers.get(envelope.method)
        if handler is None:
            logger.warning("Unknown JSON-RPC method", method=envelope.method, request_id=self._request_id)
            return build_error_envelope(
                JSONRPCErrorCode.METHOD_NOT_FOUND,
                f"Method not found: {envelope.method}",
                request_id=envelope.id,
            )

        try:
            result = await handler(envelope.params or {})
        except ProtocolError as exc:
            return envelope_from_protocol_error(exc, request_id=envelope.id)
        return build_result_envelope(result, envelope.id)

    async def _initialize(self, params: Dict[str, Any]) -> Dict[str, Any]:
        requested = params.get("protocolVersion")
        version = requested if requested in SUPPORTED_PROTOCOL_VERSIONS else LATEST_PROTOCOL_VERSION
        result = InitializeResult(
            protocol_version=version,
            capabilities={"tools": {"listChanged": False}},
            server_info=Implementation(name=SERVER_NAME, version=SERVER_VERSION),
            instructions=SERVER_INSTRUCTIONS,
        )
        return result.model_dump(by_alias=True, exclude_none=True)

    async def _ping(self, params: Dict[str, Any]) -> Dict[str, Any]:
        return {}

    async def _list_tools(self, params: Dict[str, Any]) -> Dict[str, Any]:
        tools = [tool.to_tool_definition() for tool in self._registry.list_tools()]
        return ListToolsResult(tools=tools).to_wire()

    async def _call_tool(self, params: Dict[str, Any]) -> Dict[str, Any]:
        try:
            call = CallToolParams.model_validate(params)
        except ValidationError as exc:
            raise ProtocolError(
                JSONRPCErrorCode.INVALID_PARAMS,
                "Invalid params: tools/call requires a tool name and an arguments object",
                data={"errors": [error["msg"] for error in exc.errors()]},
            ) from exc

        try:
            tool = self._registry.resolve(call.name)
        except ToolNotFoundError as exc:
            logger.warning("Requested MCP tool not found", tool=call.name, request_id=self._request_id)
            raise ProtocolError(JSONRPCErrorCode.METHOD_NOT_FOUND, str(exc)) from exc

        try:
            arguments = tool.validate(call.arguments)
        except ArgumentValidationError as exc:
            logger.warning(
                "Tool arguments failed validation",
                tool=tool.name,
                errors=exc.errors,
                request_id=self._request_id,
            )
            raise ProtocolError(
                JSONRPCErrorCode.INVALID_PARAMS,
                f"Invalid arguments for tool '{tool.name}': {exc}",
                data={"errors": exc.errors},
            ) from exc

        context = InvocationContext(
            settings=self._settings,
            upstream=self._upstream,
            tool_name=tool.name,
            request_id=self._request_id,
        )
        result = await tool.invoke(arguments, context)
        return result.to_wire()


def _extract_id(message: Any) -> RequestId:
    if isinstance(message, dict):
        candidate = message.get("id")
        if isinstance(candidate, (str, int)) and not isinstance(candidate, bool):
            return candidate
    return None
