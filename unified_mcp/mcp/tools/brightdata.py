"""
BrightData tools - web scraping and search engine results.

By default the adapters return placeholder results once the credential check
passes. With ``BRIGHTDATA_LIVE=true`` they call the BrightData request API
through the Web Unlocker zone configured in ``BRIGHTDATA_ZONE``.
"""

from typing import Any, Dict, List, Optional
from urllib.parse import quote_plus

import anyio
import structlog

from ...core.constants import BRIGHTDATA_TOKEN_ENV
from ..errors import ToolExecutionError
from ..protocol import ProviderGroup, ToolName
from ..schema import FieldSpec, frozen_fields
from ..tool import InvocationContext, ToolDescriptor, bearer_headers, call_upstream, require_credential

logger = structlog.get_logger(__name__)

ENGINES = ("google", "bing", "yandex")
DEFAULT_ENGINE = "google"
MAX_BATCH_SIZE = 10

SEARCH_URLS = {
    "google": "https://www.google.com/search?q={query}",
    "bing": "https://www.bing.com/search?q={query}",
    "yandex": "https://yandex.com/search/?text={query}",
}


def _engine_field() -> FieldSpec:
    return FieldSpec("string", enum=ENGINES, default=DEFAULT_ENGINE)


async def _fetch_markdown(context: InvocationContext, token: str, url: str) -> str:
    payload = await call_upstream(
        context,
        f"{context.settings.brightdata_base_url}/request",
        {
            "zone": context.settings.brightdata_zone,
            "url": url,
            "format": "json",
            "data_format": "markdown",
        },
        headers=bearer_headers(token),
    )
    if not isinstance(payload, dict) or not isinstance(payload.get("body"), str):
        raise ToolExecutionError("Malformed upstream payload: missing body", code="malformed_payload")
    return payload["body"]


async def _fetch_all(context: InvocationContext, token: str, urls: List[str]) -> List[str]:
    """Fetch every URL concurrently; the first failure cancels the rest."""
    pages: List[Optional[str]] = [None] * len(urls)
    failures: List[ToolExecutionError] = []

    async with anyio.create_task_group() as task_group:

        async def fetch(index: int, url: str) -> None:
            try:
                pages[index] = await _fetch_markdown(context, token, url)
            except ToolExecutionError as exc:
                failures.append(exc)
                task_group.cancel_scope.cancel()

        for index, url in enumerate(urls):
            task_group.start_soon(fetch, index, url)

    if failures:
        raise failures[0]
    return pages


def _search_url(query: str, engine: str) -> str:
    return SEARCH_URLS[engine].format(query=quote_plus(query))


async def search_engine(arguments: Dict[str, Any], context: InvocationContext) -> Dict[str, Any]:
    token = require_credential(context.settings.brightdata_api_token, BRIGHTDATA_TOKEN_ENV)
    query, engine = arguments["query"], arguments["engine"]

    if not context.settings.brightdata_live:
        return {"results": [f"Searched {engine} for: {query}"]}

    logger.info("BrightData search", engine=engine, request_id=context.request_id)
    page = await _fetch_markdown(context, token, _search_url(query, engine))
    return {"results": [page]}


async def scrape_as_markdown(arguments: Dict[str, Any], context: InvocationContext) -> Dict[str, Any]:
    token = require_credential(context.settings.brightdata_api_token, BRIGHTDATA_TOKEN_ENV)
    url = arguments["url"]

    if not context.settings.brightdata_live:
        return {"markdown": f"Scraped content from {url}"}

    logger.info("BrightData scrape", url=url, request_id=context.request_id)
    return {"markdown": await _fetch_markdown(context, token, url)}


async def scrape_batch(arguments: Dict[str, Any], context: InvocationContext) -> Dict[str, Any]:
    token = require_credential(context.settings.brightdata_api_token, BRIGHTDATA_TOKEN_ENV)
    urls = arguments["urls"]

    if not context.settings.brightdata_live:
        return {"results": [{"url": url, "status": "scraped"} for url in urls]}

    logger.info("BrightData batch scrape", count=len(urls), request_id=context.request_id)
    pages = await _fetch_all(context, token, urls)
    return {
        "results": [
            {"url": url, "status": "scraped", "markdown": page}
            for url, page in zip(urls, pages)
        ]
    }


async def search_engine_batch(arguments: Dict[str, Any], context: InvocationContext) -> Dict[str, Any]:
    token = require_credential(context.settings.brightdata_api_token, BRIGHTDATA_TOKEN_ENV)
    queries = arguments["queries"]

    if not context.settings.brightdata_live:
        return {"results": [{"query": q["query"], "engine": q["engine"]} for q in queries]}

    logger.info("BrightData batch search", count=len(queries), request_id=context.request_id)
    pages = await _fetch_all(context, token, [_search_url(q["query"], q["engine"]) for q in queries])
    return {
        "results": [
            {"query": q["query"], "engine": q["engine"], "results": page}
            for q, page in zip(queries, pages)
        ]
    }


BRIGHTDATA_TOOLS: List[ToolDescriptor] = [
    ToolDescriptor(
        name=ToolName.SEARCH_ENGINE.value,
        title="BrightData Search Engine",
        description="Search engine SERP results (Google/Bing/Yandex)",
        group=ProviderGroup.BRIGHTDATA,
        input_fields=frozen_fields(
            query=FieldSpec("string"),
            engine=_engine_field(),
        ),
        output_fields=frozen_fields(results=FieldSpec("array", items=FieldSpec("any"))),
        adapter=search_engine,
    ),
    ToolDescriptor(
        name=ToolName.SCRAPE_AS_MARKDOWN.value,
        title="BrightData Scrape as Markdown",
        description="Scrape webpage and convert to markdown",
        group=ProviderGroup.BRIGHTDATA,
        input_fields=frozen_fields(url=FieldSpec("string", format="uri")),
        output_fields=frozen_fields(markdown=FieldSpec("string")),
        adapter=scrape_as_markdown,
    ),
    ToolDescriptor(
        name=ToolName.SCRAPE_BATCH.value,
        title="BrightData Batch Scrape",
        description="Scrape multiple URLs",
        group=ProviderGroup.BRIGHTDATA,
        input_fields=frozen_fields(
            urls=FieldSpec("array", items=FieldSpec("string", format="uri"), max_items=MAX_BATCH_SIZE),
        ),
        output_fields=frozen_fields(results=FieldSpec("array", items=FieldSpec("any"))),
        adapter=scrape_batch,
    ),
    ToolDescriptor(
        name=ToolName.SEARCH_ENGINE_BATCH.value,
        title="BrightData Batch Search",
        description="Batch search engine queries",
        group=ProviderGroup.BRIGHTDATA,
        input_fields=frozen_fields(
            queries=FieldSpec(
                "array",
                items=FieldSpec(
                    "object",
                    properties=frozen_fields(
                        query=FieldSpec("string"),
                        engine=_engine_field(),
                    ),
                ),
                max_items=MAX_BATCH_SIZE,
            ),
        ),
        output_fields=frozen_fields(results=FieldSpec("array", items=FieldSpec("any"))),
        adapter=search_engine_batch,
    ),
]
