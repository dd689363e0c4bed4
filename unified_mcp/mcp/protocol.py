"""
MCP Protocol - Type definitions and contracts.

Defines the JSON-RPC messages the stateless endpoint understands:
- JSONRPCMessage: Inbound envelope (request, notification or client response)
- InitializeResult: Capability advertisement
- CallToolParams/CallToolResult: Tool invocation messages
- ToolDefinition/ListToolsResult: Tool discovery
"""

from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

LATEST_PROTOCOL_VERSION = "2025-06-18"
SUPPORTED_PROTOCOL_VERSIONS = ("2025-06-18", "2025-03-26", "2024-11-05")


class ProviderGroup(str, Enum):
    """Upstream provider domains; each owns a disjoint set of tools."""
    CONTEXT7 = "context7"
    PERPLEXITY = "perplexity"
    BRIGHTDATA = "brightdata"


class ToolName(str, Enum):
    """Closed set of tool identities served by this process."""
    RESOLVE_LIBRARY_ID = "mcp__context7__resolve-library-id"
    GET_LIBRARY_DOCS = "mcp__context7__get-library-docs"
    PERPLEXITY_SEARCH = "perplexity_search"
    PERPLEXITY_ASK = "perplexity_ask"
    PERPLEXITY_RESEARCH = "perplexity_research"
    PERPLEXITY_REASON = "perplexity_reason"
    SEARCH_ENGINE = "mcp__brightdata__search_engine"
    SCRAPE_AS_MARKDOWN = "mcp__brightdata__scrape_as_markdown"
    SCRAPE_BATCH = "mcp__brightdata__scrape_batch"
    SEARCH_ENGINE_BATCH = "mcp__brightdata__search_engine_batch"


class JSONRPCMessage(BaseModel):
    """
    Inbound JSON-RPC 2.0 message.

    A request has ``method`` and ``id``; a notification has ``method`` only;
    a client response has ``id`` plus ``result`` or ``error``.
    """
    model_config = ConfigDict(extra="allow")

    jsonrpc: Literal["2.0"]
    id: Optional[Union[str, int]] = None
    method: Optional[str] = None
    params: Optional[Dict[str, Any]] = None
    result: Optional[Any] = None
    error: Optional[Dict[str, Any]] = None

    @property
    def is_notification(self) -> bool:
        return self.method is not None and "id" not in self.model_fields_set

    @property
    def is_response(self) -> bool:
        return self.method is None and bool({"result", "error"} & self.model_fields_set)


class Implementation(BaseModel):
    name: str
    version: str


class InitializeResult(BaseModel):
    """Result of the ``initialize`` handshake."""
    model_config = ConfigDict(populate_by_name=True)

    protocol_version: str = Field(..., alias="protocolVersion")
    capabilities: Dict[str, Any] = Field(default_factory=dict)
    server_info: Implementation = Field(..., alias="serverInfo")
    instructions: Optional[str] = None


class CallToolParams(BaseModel):
    """Params of a ``tools/call`` request."""
    name: str = Field(..., description="Tool name")
    arguments: Dict[str, Any] = Field(default_factory=dict, description="Tool-specific input")

    @field_validator("arguments", mode="before")
    @classmethod
    def _none_means_empty(cls, value: Any) -> Any:
        return {} if value is None else value


class TextContent(BaseModel):
    type: Literal["text"] = "text"
    text: str


class CallToolResult(BaseModel):
    """Outcome of a tool invocation, success or tool-level failure."""
    model_config = ConfigDict(populate_by_name=True)

    content: List[TextContent] = Field(default_factory=list)
    structured_content: Optional[Dict[str, Any]] = Field(default=None, alias="structuredContent")
    is_error: bool = Field(default=False, alias="isError")

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class ToolDefinition(BaseModel):
    """Tool advertisement returned by ``tools/list``."""
    model_config = ConfigDict(populate_by_name=True)

    name: str
    title: str
    description: str
    input_schema: Dict[str, Any] = Field(..., alias="inputSchema")
    output_schema: Dict[str, Any] = Field(..., alias="outputSchema")


class ListToolsResult(BaseModel):
    tools: List[ToolDefinition]

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)
