"""
MCP (Model Context Protocol) Package.

Provides the request-scoped tool invocation layer:
- Immutable tool registry and discovery
- JSON-RPC dispatch with protocol/tool error separation
- Stateless HTTP transport binding

Usage:
    from unified_mcp.mcp import RequestScopedServer, build_default_registry

    server = RequestScopedServer(build_default_registry(), settings, upstream)
    response = await server.handle({
        "jsonrpc": "2.0",
        "id": 1,
        "method": "tools/call",
        "params": {"name": "perplexity_search", "arguments": {"query": "MCP"}},
    })
"""

from .errors import JSONRPCErrorCode, ProtocolError, ToolExecutionError
from .protocol import CallToolResult, ProviderGroup, ToolName
from .registry import ToolNotFoundError, ToolRegistry, build_default_registry
from .server import RequestScopedServer, ServerState
from .tool import InvocationContext, ToolDescriptor

__all__ = [
    "CallToolResult",
    "InvocationContext",
    "JSONRPCErrorCode",
    "ProtocolError",
    "ProviderGroup",
    "RequestScopedServer",
    "ServerState",
    "ToolDescriptor",
    "ToolExecutionError",
    "ToolName",
    "ToolNotFoundError",
    "ToolRegistry",
    "build_default_registry",
]
