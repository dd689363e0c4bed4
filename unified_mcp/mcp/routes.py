"""
FastAPI router exposing the stateless MCP endpoint.

Endpoints:
- POST /mcp - one JSON-RPC message in, one JSON-RPC response out
- GET /mcp, DELETE /mcp - 405 (no SSE stream, no sessions in stateless mode)

Every POST builds its own ``RequestScopedServer`` over the shared registry
and releases it when the response completes, whatever the outcome.
"""

from __future__ import annotations

import json
import uuid
from typing import Any, Awaitable, Dict, Optional

import anyio
import structlog
from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import JSONResponse
from starlette.types import Message, Receive, Scope, Send

from ..clients.upstream import UpstreamClient
from ..core.config import Settings, get_settings
from .errors import JSONRPCErrorCode, build_error_envelope
from .registry import ToolRegistry
from .server import RequestScopedServer

logger = structlog.get_logger(__name__)


class ClientDisconnected(Exception):
    """Raised when the client goes away before dispatch completes."""


class GuardedJSONResponse(JSONResponse):
    """JSON response that logs, instead of re-raising, faults after headers were sent."""

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        started = False

        async def tracking_send(message: Message) -> None:
            nonlocal started
            if message["type"] == "http.response.start":
                started = True
            await send(message)

        try:
            await super().__call__(scope, receive, tracking_send)
        except Exception as exc:
            if not started:
                raise
            logger.error("MCP response failed after sending started", error=str(exc), exc_info=True)


class AbandonedResponse(Response):
    """Writes nothing; used once the client connection is gone."""

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        return None


def get_upstream_client(settings: Settings = Depends(get_settings)) -> UpstreamClient:
    return UpstreamClient(timeout=settings.upstream_timeout_seconds)


def create_mcp_router(registry: ToolRegistry) -> APIRouter:
    """Create the MCP router bound to a shared, read-only registry."""

    if registry is None:
        raise ValueError("registry is required")

    router = APIRouter(tags=["mcp"])

    @router.post("/mcp")
    async def handle_mcp(
        request: Request,
        settings: Settings = Depends(get_settings),
        upstream: UpstreamClient = Depends(get_upstream_client),
    ) -> Response:
        request_id = _resolve_request_id(request)
        logger.info("MCP request received", request_id=request_id)

        if not _is_json_content_type(request.headers.get("content-type")):
            return _error_response(
                status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
                JSONRPCErrorCode.SERVER_ERROR,
                "Unsupported Media Type: Content-Type must be application/json",
            )

        try:
            message = json.loads(await request.body())
        except ValueError:
            logger.warning("MCP request body is not valid JSON", request_id=request_id)
            return _error_response(
                status.HTTP_400_BAD_REQUEST,
                JSONRPCErrorCode.PARSE_ERROR,
                "Parse error: request body is not valid JSON",
            )

        if isinstance(message, list):
            return _error_response(
                status.HTTP_400_BAD_REQUEST,
                JSONRPCErrorCode.INVALID_REQUEST,
                "Invalid Request: batch requests are not supported",
            )

        server: Optional[RequestScopedServer] = None
        try:
            server = RequestScopedServer(registry, settings, upstream, request_id=request_id)
            response = await _run_until_disconnect(request, server.handle(message))
        except ClientDisconnected:
            logger.info("Client disconnected before MCP response", request_id=request_id)
            return AbandonedResponse()
        except Exception as exc:
            logger.error("MCP request failed", error=str(exc), request_id=request_id, exc_info=True)
            return _error_response(
                status.HTTP_500_INTERNAL_SERVER_ERROR,
                JSONRPCErrorCode.INTERNAL_ERROR,
                str(exc) or "Internal server error",
            )
        finally:
            if server is not None:
                logger.debug("MCP server released", request_id=request_id, state=server.state.value)
            server = None

        if response is None:
            return Response(status_code=status.HTTP_202_ACCEPTED)

        logger.info("MCP request handled", request_id=request_id)
        return GuardedJSONResponse(content=response)

    @router.get("/mcp")
    @router.delete("/mcp")
    async def method_not_allowed() -> Response:
        return _error_response(
            status.HTTP_405_METHOD_NOT_ALLOWED,
            JSONRPCErrorCode.SERVER_ERROR,
            "Method not allowed.",
            headers={"Allow": "POST"},
        )

    return router


async def _run_until_disconnect(request: Request, dispatch: Awaitable[Any]) -> Any:
    """
    Await dispatch, cancelling it if the client disconnects first.

    Dispatch and a disconnect listener share one task group; whichever
    finishes first cancels the group's scope.

    Raises:
        ClientDisconnected: If ``http.disconnect`` arrived before dispatch finished
    """
    outcome: Dict[str, Any] = {}

    async with anyio.create_task_group() as task_group:

        async def run_dispatch() -> None:
            try:
                outcome["result"] = await dispatch
            except Exception as exc:
                outcome["error"] = exc
            finally:
                task_group.cancel_scope.cancel()

        async def listen_for_disconnect() -> None:
            while True:
                message = await request.receive()
                if message["type"] == "http.disconnect":
                    task_group.cancel_scope.cancel()
                    return

        task_group.start_soon(run_dispatch)
        task_group.start_soon(listen_for_disconnect)

    if "error" in outcome:
        raise outcome["error"]
    if "result" in outcome:
        return outcome["result"]
    raise ClientDisconnected()


def _error_response(
    status_code: int,
    code: JSONRPCErrorCode,
    message: str,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=build_error_envelope(code, message),
        headers=headers,
    )


def _is_json_content_type(content_type: Optional[str]) -> bool:
    if not content_type:
        return False
    return content_type.split(";")[0].strip().lower() == "application/json"


def _resolve_request_id(request: Request) -> str:
    return request.headers.get("x-request-id") or str(uuid.uuid4())
