"""Tests for the request-scoped JSON-RPC server and dispatch algorithm."""

import asyncio
import dataclasses
from unittest.mock import AsyncMock

import pytest

from conftest import FakeUpstream, call_tool, make_settings, rpc
from unified_mcp.mcp.errors import JSONRPCErrorCode, ServerReuseError
from unified_mcp.mcp.protocol import LATEST_PROTOCOL_VERSION
from unified_mcp.mcp.registry import ToolRegistry
from unified_mcp.mcp.server import RequestScopedServer, ServerState


def _probed_registry(registry, result=None):
    """Copy of the default registry whose adapters are call-count probes."""
    probes = {}
    descriptors = []
    for tool in registry.list_tools():
        probe = AsyncMock(return_value=result if result is not None else {})
        probes[tool.name] = probe
        descriptors.append(dataclasses.replace(tool, adapter=probe))
    return ToolRegistry(descriptors).seal(), probes


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_state_transitions(self, make_server):
        server = make_server()
        assert server.state is ServerState.BUILT

        await server.handle(rpc("ping"))

        assert server.state is ServerState.RESPONDED

    @pytest.mark.asyncio
    async def test_second_message_is_a_usage_error(self, make_server):
        server = make_server()
        await server.handle(rpc("ping"))

        with pytest.raises(ServerReuseError):
            await server.handle(rpc("ping"))

    @pytest.mark.asyncio
    async def test_state_is_dispatching_while_adapter_runs(self, registry, settings, upstream):
        seen = {}
        server = None

        async def adapter(arguments, context):
            seen["state"] = server.state
            return {"response": "ok"}

        tool = dataclasses.replace(registry.resolve("perplexity_ask"), adapter=adapter)
        server = RequestScopedServer(ToolRegistry([tool]).seal(), settings, upstream)

        await server.handle(call_tool("perplexity_ask", {"query": "q"}))

        assert seen["state"] is ServerState.DISPATCHING


class TestProtocolMethods:
    @pytest.mark.asyncio
    async def test_initialize_echoes_supported_version(self, make_server):
        response = await make_server().handle(
            rpc("initialize", {"protocolVersion": "2025-03-26", "capabilities": {}, "clientInfo": {"name": "t", "version": "1"}})
        )

        result = response["result"]
        assert result["protocolVersion"] == "2025-03-26"
        assert result["capabilities"] == {"tools": {"listChanged": False}}
        assert result["serverInfo"] == {"name": "unified-mcp-servers", "version": "1.0.0"}

    @pytest.mark.asyncio
    async def test_initialize_falls_back_to_latest_version(self, make_server):
        response = await make_server().handle(rpc("initialize", {"protocolVersion": "1999-01-01"}))

        assert response["result"]["protocolVersion"] == LATEST_PROTOCOL_VERSION

    @pytest.mark.asyncio
    async def test_ping(self, make_server):
        assert await make_server().handle(rpc("ping", request_id="abc")) == {"jsonrpc": "2.0", "id": "abc", "result": {}}

    @pytest.mark.asyncio
    async def test_tools_list_is_identical_across_instances(self, make_server):
        first = await make_server().handle(rpc("tools/list"))
        second = await make_server().handle(rpc("tools/list"))

        assert first == second
        tools = first["result"]["tools"]
        assert len(tools) == 10
        assert all(tool["description"] and tool["inputSchema"] and tool["outputSchema"] for tool in tools)

    @pytest.mark.asyncio
    async def test_notification_gets_no_response(self, make_server):
        message = {"jsonrpc": "2.0", "method": "notifications/initialized"}

        assert await make_server().handle(message) is None

    @pytest.mark.asyncio
    async def test_client_response_gets_no_response(self, make_server):
        assert await make_server().handle({"jsonrpc": "2.0", "id": 7, "result": {}}) is None
        assert await make_server().handle({"jsonrpc": "2.0", "id": 8, "error": {"code": -1, "message": "x"}}) is None

    @pytest.mark.asyncio
    async def test_message_without_method_result_or_error_is_invalid(self, make_server):
        response = await make_server().handle({"jsonrpc": "2.0", "id": 1})

        assert response["id"] == 1
        assert response["error"]["code"] == JSONRPCErrorCode.INVALID_REQUEST

    @pytest.mark.asyncio
    async def test_unknown_method(self, make_server):
        response = await make_server().handle(rpc("resources/list", request_id=3))

        assert response["id"] == 3
        assert response["error"]["code"] == JSONRPCErrorCode.METHOD_NOT_FOUND

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "message",
        [
            {"id": 1, "method": "ping"},
            {"jsonrpc": "1.0", "id": 1, "method": "ping"},
            {"jsonrpc": "2.0", "id": 1, "method": 5},
            "ping",
        ],
    )
    async def test_invalid_envelope(self, make_server, message):
        response = await make_server().handle(message)

        assert response["error"]["code"] == JSONRPCErrorCode.INVALID_REQUEST

    @pytest.mark.asyncio
    async def test_invalid_envelope_echoes_id_when_known(self, make_server):
        response = await make_server().handle({"jsonrpc": "1.0", "id": "req-9", "method": "ping"})

        assert response["id"] == "req-9"


class TestToolDispatch:
    @pytest.mark.asyncio
    async def test_unknown_tool_is_method_not_found_and_no_adapter_runs(self, registry, settings, upstream):
        probed, probes = _probed_registry(registry)
        server = RequestScopedServer(probed, settings, upstream)

        response = await server.handle(call_tool("mcp__nope__missing", {}))

        assert response["error"]["code"] == JSONRPCErrorCode.METHOD_NOT_FOUND
        assert "mcp__nope__missing" in response["error"]["message"]
        assert all(probe.await_count == 0 for probe in probes.values())

    @pytest.mark.asyncio
    async def test_missing_tool_name_is_invalid_params(self, make_server):
        response = await make_server().handle(rpc("tools/call", {"arguments": {}}))

        assert response["error"]["code"] == JSONRPCErrorCode.INVALID_PARAMS

    @pytest.mark.asyncio
    async def test_scrape_batch_rejects_eleven_urls_before_upstream(self, registry, settings, upstream):
        probed, probes = _probed_registry(registry)
        urls = [f"https://example.com/{i}" for i in range(11)]

        response = await RequestScopedServer(probed, settings, upstream).handle(
            call_tool("mcp__brightdata__scrape_batch", {"urls": urls})
        )

        assert response["error"]["code"] == JSONRPCErrorCode.INVALID_PARAMS
        assert response["error"]["data"]["errors"]
        assert probes["mcp__brightdata__scrape_batch"].await_count == 0

    @pytest.mark.asyncio
    async def test_scrape_batch_accepts_ten_urls(self, make_server):
        urls = [f"https://example.com/{i}" for i in range(10)]

        response = await make_server().handle(call_tool("mcp__brightdata__scrape_batch", {"urls": urls}))

        result = response["result"]
        assert result["isError"] is False
        assert len(result["structuredContent"]["results"]) == 10

    @pytest.mark.asyncio
    async def test_missing_required_argument_is_invalid_params(self, make_server):
        response = await make_server().handle(call_tool("perplexity_search", {}))

        assert response["error"]["code"] == JSONRPCErrorCode.INVALID_PARAMS
        assert "query" in response["error"]["message"]

    @pytest.mark.asyncio
    async def test_omitted_arguments_are_still_validated(self, registry, settings, upstream):
        probed, probes = _probed_registry(registry)

        response = await RequestScopedServer(probed, settings, upstream).handle(
            call_tool("mcp__context7__resolve-library-id")
        )

        assert response["error"]["code"] == JSONRPCErrorCode.INVALID_PARAMS
        assert probes["mcp__context7__resolve-library-id"].await_count == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("tool_name", ["perplexity_search", "perplexity_ask", "perplexity_research", "perplexity_reason"])
    async def test_missing_research_credential_is_error_result_not_protocol_error(
        self, make_server, unconfigured_settings, tool_name
    ):
        upstream = FakeUpstream(payload={})
        response = await make_server(settings=unconfigured_settings, upstream=upstream).handle(
            call_tool(tool_name, {"query": "q"}, request_id=11)
        )

        assert "error" not in response
        assert response["id"] == 11
        assert response["result"]["isError"] is True
        assert "PERPLEXITY_API_KEY" in response["result"]["content"][0]["text"]
        assert upstream.calls == []

    @pytest.mark.asyncio
    async def test_success_result_shape(self, make_server):
        upstream = FakeUpstream(payload={"choices": [{"message": {"content": "hi"}}]})

        response = await make_server(upstream=upstream).handle(call_tool("perplexity_ask", {"query": "q"}))

        assert response["result"] == {
            "content": [{"type": "text", "text": '{"response": "hi"}'}],
            "structuredContent": {"response": "hi"},
            "isError": False,
        }

    @pytest.mark.asyncio
    async def test_engine_default_round_trip(self, registry, settings, upstream):
        probed, probes = _probed_registry(registry, result={"results": []})
        probe = probes["mcp__brightdata__search_engine"]

        await RequestScopedServer(probed, settings, upstream).handle(
            call_tool("mcp__brightdata__search_engine", {"query": "mcp"})
        )
        await RequestScopedServer(probed, settings, upstream).handle(
            call_tool("mcp__brightdata__search_engine", {"query": "mcp", "engine": "google"})
        )

        omitted_args = probe.await_args_list[0].args[0]
        explicit_args = probe.await_args_list[1].args[0]
        assert omitted_args == explicit_args == {"query": "mcp", "engine": "google"}


class TestConcurrency:
    @pytest.mark.asyncio
    async def test_concurrent_invocations_are_independent(self, registry, settings):
        release_docs = asyncio.Event()

        async def slow_docs(arguments, context):
            await release_docs.wait()
            return {"libraries": ["slow"]}

        async def fast_research(arguments, context):
            return {"response": f"answer to {arguments['query']}"}

        isolated = ToolRegistry([
            dataclasses.replace(registry.resolve("mcp__context7__resolve-library-id"), adapter=slow_docs),
            dataclasses.replace(registry.resolve("perplexity_ask"), adapter=fast_research),
        ]).seal()

        upstream = FakeUpstream()
        docs_task = asyncio.ensure_future(
            RequestScopedServer(isolated, settings, upstream).handle(
                call_tool("mcp__context7__resolve-library-id", {"libraryName": "x"}, request_id="docs")
            )
        )
        research = await asyncio.wait_for(
            RequestScopedServer(isolated, settings, upstream).handle(
                call_tool("perplexity_ask", {"query": "q"}, request_id="research")
            ),
            timeout=1,
        )

        assert docs_task.done() is False
        assert research["id"] == "research"
        assert research["result"]["structuredContent"] == {"response": "answer to q"}

        release_docs.set()
        docs = await docs_task
        assert docs["id"] == "docs"
        assert docs["result"]["structuredContent"] == {"libraries": ["slow"]}

    @pytest.mark.asyncio
    async def test_settings_are_per_instance(self, make_server):
        upstream = FakeUpstream(payload={"choices": [{"message": {"content": "ok"}}]})
        with_key, without_key = await asyncio.gather(
            make_server(upstream=upstream).handle(call_tool("perplexity_ask", {"query": "q"})),
            make_server(upstream=upstream, settings=make_settings(perplexity_api_key=None)).handle(
                call_tool("perplexity_ask", {"query": "q"})
            ),
        )

        assert with_key["result"]["isError"] is False
        assert without_key["result"]["isError"] is True
        assert len(upstream.calls) == 1
