"""Tool registry shared read-only by every request-scoped server."""

from __future__ import annotations

from functools import lru_cache
from typing import Dict, Iterable, List

import structlog

from .protocol import ProviderGroup
from .tool import ToolDescriptor
from .tools import BUILTIN_TOOLS

logger = structlog.get_logger(__name__)


class ToolNotFoundError(LookupError):
    """Raised when the requested tool is not registered."""


class ToolRegistry:
    """
    Catalog of tool descriptors keyed by name.

    Populated once, then sealed. Enumeration order is registration order, so
    the advertised tool list is identical on every request.
    """

    def __init__(self, tools: Iterable[ToolDescriptor] = ()) -> None:
        self._tools: Dict[str, ToolDescriptor] = {}
        self._sealed = False
        for tool in tools:
            self.register(tool)

    def register(self, tool: ToolDescriptor) -> None:
        """Register a tool descriptor."""
        if self._sealed:
            raise RuntimeError("Registry is sealed; tools can only be registered before first use")
        if tool.name in self._tools:
            raise ValueError(f"Tool '{tool.name}' is already registered")
        self._tools[tool.name] = tool
        logger.debug("Registered MCP tool", tool=tool.name, group=tool.group.value)

    def seal(self) -> "ToolRegistry":
        self._sealed = True
        return self

    @property
    def sealed(self) -> bool:
        return self._sealed

    def list_tools(self) -> List[ToolDescriptor]:
        """Return all descriptors for discovery."""
        return list(self._tools.values())

    def resolve(self, tool_name: str) -> ToolDescriptor:
        """Return a descriptor or raise ToolNotFoundError."""
        tool = self._tools.get(tool_name)
        if tool is None:
            raise ToolNotFoundError(f"Tool '{tool_name}' is not registered")
        return tool

    def groups(self) -> List[str]:
        """Return provider group names in registration order."""
        seen: List[str] = []
        for tool in self._tools.values():
            if tool.group.value not in seen:
                seen.append(tool.group.value)
        return seen

    def tools_in_group(self, group: ProviderGroup) -> List[ToolDescriptor]:
        return [tool for tool in self._tools.values() if tool.group == group]

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, tool_name: object) -> bool:
        return tool_name in self._tools


@lru_cache()
def build_default_registry() -> ToolRegistry:
    """Build the process-wide registry of built-in tools."""
    registry = ToolRegistry(BUILTIN_TOOLS).seal()
    logger.info(
        "MCP tool registry built",
        tools=len(registry),
        groups=registry.groups(),
    )
    return registry
