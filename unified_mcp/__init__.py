"""Unified MCP servers: Context7, Perplexity and BrightData tools over stateless HTTP."""

__version__ = "1.0.0"
