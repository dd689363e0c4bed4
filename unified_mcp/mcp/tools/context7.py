"""
Context7 tools - library documentation lookup.

Resolves library names to Context7-compatible IDs and fetches documentation
for a resolved ID, optionally focused on a topic.
"""

from typing import Any, Dict, List

import structlog

from ...core.constants import CONTEXT7_KEY_ENV
from ..protocol import ProviderGroup, ToolName
from ..schema import FieldSpec, frozen_fields
from ..tool import InvocationContext, ToolDescriptor, bearer_headers, call_upstream, require_credential

logger = structlog.get_logger(__name__)

DEFAULT_MAX_TOKENS = 5000


async def resolve_library_id(arguments: Dict[str, Any], context: InvocationContext) -> Dict[str, Any]:
    api_key = require_credential(context.settings.context7_api_key, CONTEXT7_KEY_ENV)

    logger.info("Resolving library id", library=arguments["libraryName"], request_id=context.request_id)
    payload = await call_upstream(
        context,
        f"{context.settings.context7_base_url}/search",
        {"query": arguments["libraryName"]},
        headers=bearer_headers(api_key),
    )
    return {"libraries": _library_list(payload)}


def _library_list(payload: Any) -> Any:
    # search responses may wrap matches as {"results": [...]}
    if isinstance(payload, dict) and isinstance(payload.get("results"), list):
        return payload["results"]
    return payload


async def get_library_docs(arguments: Dict[str, Any], context: InvocationContext) -> Dict[str, Any]:
    api_key = require_credential(context.settings.context7_api_key, CONTEXT7_KEY_ENV)

    library_id = arguments["context7CompatibleLibraryID"]
    logger.info(
        "Fetching library documentation",
        library_id=library_id,
        topic=arguments.get("topic"),
        request_id=context.request_id,
    )
    payload = await call_upstream(
        context,
        f"{context.settings.context7_base_url}/docs",
        {
            "libraryId": library_id,
            "topic": arguments.get("topic"),
            "maxTokens": arguments.get("tokens") or DEFAULT_MAX_TOKENS,
        },
        headers=bearer_headers(api_key),
    )
    return {"documentation": payload}


CONTEXT7_TOOLS: List[ToolDescriptor] = [
    ToolDescriptor(
        name=ToolName.RESOLVE_LIBRARY_ID.value,
        title="Resolve Library ID",
        description="Resolve a library name to a Context7-compatible library ID",
        group=ProviderGroup.CONTEXT7,
        input_fields=frozen_fields(
            libraryName=FieldSpec("string", description="Library name to search for"),
        ),
        output_fields=frozen_fields(
            libraries=FieldSpec("array", items=FieldSpec("any")),
        ),
        adapter=resolve_library_id,
        text_indent=2,
    ),
    ToolDescriptor(
        name=ToolName.GET_LIBRARY_DOCS.value,
        title="Get Library Documentation",
        description="Fetch documentation for a library using Context7",
        group=ProviderGroup.CONTEXT7,
        input_fields=frozen_fields(
            context7CompatibleLibraryID=FieldSpec(
                "string", description="Context7 library ID (e.g., /org/project)"
            ),
            topic=FieldSpec("string", description="Optional topic to focus on", required=False),
            tokens=FieldSpec(
                "number", description=f"Max tokens (default: {DEFAULT_MAX_TOKENS})", required=False
            ),
        ),
        output_fields=frozen_fields(
            documentation=FieldSpec("any"),
        ),
        adapter=get_library_docs,
        text_indent=2,
    ),
]
