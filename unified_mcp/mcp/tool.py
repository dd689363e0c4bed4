"""
MCP Tool - Descriptor and invocation lifecycle shared by all tools.

A ``ToolDescriptor`` pairs immutable metadata (name, title, schemas) with the
provider adapter that executes it. ``ToolDescriptor.invoke`` wraps the
adapter with:
- Error handling (tool failures become ``isError`` results)
- Text rendering of structured output
- Invocation logging
"""

import json
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional

import structlog

from ..clients.upstream import UpstreamClient, UpstreamError
from ..core.config import Settings
from .errors import ToolExecutionError
from .protocol import CallToolResult, ProviderGroup, TextContent, ToolDefinition
from .schema import ArgumentValidationError, SchemaFields, object_schema, validate_arguments

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class InvocationContext:
    """Per-call collaborators handed to an adapter."""

    settings: Settings
    upstream: UpstreamClient
    tool_name: str
    request_id: Optional[str] = None


Adapter = Callable[[Dict[str, Any], InvocationContext], Awaitable[Dict[str, Any]]]


@dataclass(frozen=True)
class ToolDescriptor:
    """Immutable tool identity, metadata and adapter binding."""

    name: str
    title: str
    description: str
    group: ProviderGroup
    input_fields: SchemaFields
    output_fields: SchemaFields
    adapter: Adapter
    text_indent: Optional[int] = None

    @property
    def input_schema(self) -> Dict[str, Any]:
        return object_schema(self.input_fields)

    @property
    def output_schema(self) -> Dict[str, Any]:
        return object_schema(self.output_fields)

    def to_tool_definition(self) -> ToolDefinition:
        return ToolDefinition(
            name=self.name,
            title=self.title,
            description=self.description,
            input_schema=self.input_schema,
            output_schema=self.output_schema,
        )

    def validate(self, arguments: Any) -> Dict[str, Any]:
        """Validate arguments, returning them with defaults applied."""
        return validate_arguments(self.input_fields, arguments)

    async def invoke(self, arguments: Dict[str, Any], context: InvocationContext) -> CallToolResult:
        """
        Run the adapter on pre-validated arguments.

        Never raises for tool-level failures; cancellation still propagates.
        """
        start_time = time.time()
        try:
            structured = await self.adapter(arguments, context)
        except ToolExecutionError as exc:
            logger.warning(
                "Tool invocation failed",
                tool=self.name,
                code=exc.code,
                details=exc.details,
                error=str(exc),
                request_id=context.request_id,
            )
            return tool_failure(str(exc))
        except Exception as exc:
            logger.error(
                "Tool invocation crashed",
                tool=self.name,
                error=str(exc),
                request_id=context.request_id,
                exc_info=True,
            )
            return tool_failure(f"Tool execution failed: {exc}")

        try:
            validate_arguments(self.output_fields, structured)
        except ArgumentValidationError as exc:
            logger.warning(
                "Tool produced malformed output",
                tool=self.name,
                error=str(exc),
                request_id=context.request_id,
            )
            return tool_failure(f"Malformed upstream payload: {exc}")

        try:
            result = tool_success(structured, indent=self.text_indent)
        except ValueError as exc:
            logger.warning(
                "Tool output is not JSON serializable",
                tool=self.name,
                error=str(exc),
                request_id=context.request_id,
            )
            return tool_failure(f"Malformed upstream payload: {exc}")

        logger.info(
            "Tool invocation succeeded",
            tool=self.name,
            request_id=context.request_id,
            duration_ms=(time.time() - start_time) * 1000,
        )
        return result


def tool_success(structured: Dict[str, Any], indent: Optional[int] = None) -> CallToolResult:
    """
    Build a success result whose text block mirrors the structured content.

    Raises:
        ValueError: If the payload holds NaN or Infinity, which JSON cannot carry
    """
    return CallToolResult(
        content=[TextContent(text=json.dumps(structured, indent=indent, allow_nan=False))],
        structured_content=structured,
    )


def tool_failure(message: str) -> CallToolResult:
    return CallToolResult(content=[TextContent(text=message)], is_error=True)


def require_credential(value: Optional[str], env_name: str) -> str:
    """Return the credential or fail before any network I/O happens."""
    if not value:
        raise ToolExecutionError(f"{env_name} not configured", code="missing_credential")
    return value


async def call_upstream(
    context: InvocationContext,
    url: str,
    payload: Dict[str, Any],
    headers: Optional[Dict[str, str]] = None,
) -> Any:
    """Perform the adapter's upstream call, mapping failures to tool errors."""
    try:
        return await context.upstream.post_json(url, payload, headers=headers)
    except UpstreamError as exc:
        raise ToolExecutionError(
            str(exc),
            code="upstream_error",
            details={"status_code": exc.status_code},
        ) from exc


def bearer_headers(token: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token}", "Content-Type": "application/json"}
