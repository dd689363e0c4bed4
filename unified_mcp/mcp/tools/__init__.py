"""Built-in MCP tools, grouped by upstream provider."""

from .brightdata import BRIGHTDATA_TOOLS
from .context7 import CONTEXT7_TOOLS
from .perplexity import PERPLEXITY_MODELS, PERPLEXITY_TOOLS

BUILTIN_TOOLS = (*CONTEXT7_TOOLS, *PERPLEXITY_TOOLS, *BRIGHTDATA_TOOLS)

__all__ = [
    "BRIGHTDATA_TOOLS",
    "BUILTIN_TOOLS",
    "CONTEXT7_TOOLS",
    "PERPLEXITY_MODELS",
    "PERPLEXITY_TOOLS",
]
