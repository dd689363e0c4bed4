"""
Perplexity tools - web-grounded research.

Four variants share one input schema and one adapter; they differ only by the
model selected through ``PERPLEXITY_MODELS``.
"""

from types import MappingProxyType
from typing import Any, Dict, List, Mapping

import structlog

from ...core.constants import PERPLEXITY_KEY_ENV
from ..errors import ToolExecutionError
from ..protocol import ProviderGroup, ToolName
from ..schema import FieldSpec, frozen_fields
from ..tool import InvocationContext, ToolDescriptor, bearer_headers, call_upstream, require_credential

logger = structlog.get_logger(__name__)

PERPLEXITY_MODELS: Mapping[str, str] = MappingProxyType({
    ToolName.PERPLEXITY_SEARCH.value: "sonar",
    ToolName.PERPLEXITY_ASK.value: "sonar-pro",
    ToolName.PERPLEXITY_RESEARCH.value: "sonar-deep-research",
    ToolName.PERPLEXITY_REASON.value: "sonar-reasoning-pro",
})

QUERY_FIELDS = frozen_fields(query=FieldSpec("string", description="Query or question"))
RESPONSE_FIELDS = frozen_fields(response=FieldSpec("string"))


async def ask_perplexity(arguments: Dict[str, Any], context: InvocationContext) -> Dict[str, Any]:
    api_key = require_credential(context.settings.perplexity_api_key, PERPLEXITY_KEY_ENV)
    model = PERPLEXITY_MODELS[context.tool_name]

    logger.info("Querying Perplexity", model=model, request_id=context.request_id)
    payload = await call_upstream(
        context,
        f"{context.settings.perplexity_base_url}/chat/completions",
        {
            "model": model,
            "messages": [{"role": "user", "content": arguments["query"]}],
        },
        headers=bearer_headers(api_key),
    )
    return {"response": _answer_text(payload)}


def _answer_text(payload: Any) -> Any:
    try:
        return payload["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError) as exc:
        raise ToolExecutionError(
            "Malformed upstream payload: missing choices[0].message.content",
            code="malformed_payload",
        ) from exc


def _title(tool_name: str) -> str:
    return tool_name.replace("perplexity_", "Perplexity ")


def _description(tool_name: str, model: str) -> str:
    return f"{tool_name.replace('perplexity_', '')} using {model} model"


PERPLEXITY_TOOLS: List[ToolDescriptor] = [
    ToolDescriptor(
        name=tool_name,
        title=_title(tool_name),
        description=_description(tool_name, model),
        group=ProviderGroup.PERPLEXITY,
        input_fields=QUERY_FIELDS,
        output_fields=RESPONSE_FIELDS,
        adapter=ask_perplexity,
    )
    for tool_name, model in PERPLEXITY_MODELS.items()
]
