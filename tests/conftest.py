"""
Pytest configuration and fixtures.

Provides:
- Settings with and without provider credentials
- A recording fake of the upstream HTTP client
- An ASGI test client over the FastAPI application
"""

from typing import Any, Dict, List, Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from unified_mcp.clients.upstream import UpstreamError
from unified_mcp.core.config import Settings, get_settings
from unified_mcp.main import create_app
from unified_mcp.mcp.registry import build_default_registry
from unified_mcp.mcp.routes import get_upstream_client
from unified_mcp.mcp.server import RequestScopedServer


class FakeUpstream:
    """Records upstream calls and answers with queued payloads."""

    def __init__(self, payload: Any = None, error: Optional[Exception] = None):
        self.payload = payload
        self.error = error
        self.calls: List[Dict[str, Any]] = []

    async def post_json(self, url: str, payload: Dict[str, Any], headers: Optional[Dict[str, str]] = None) -> Any:
        self.calls.append({"url": url, "payload": payload, "headers": headers})
        if self.error is not None:
            raise self.error
        if callable(self.payload):
            return self.payload(url, payload)
        return self.payload


def make_settings(**overrides: Any) -> Settings:
    values = {
        "context7_api_key": "ctx-test-key",
        "perplexity_api_key": "pplx-test-key",
        "brightdata_api_token": "bd-test-token",
        "brightdata_live": False,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def rpc(method: str, params: Optional[Dict[str, Any]] = None, request_id: Any = 1) -> Dict[str, Any]:
    message: Dict[str, Any] = {"jsonrpc": "2.0", "id": request_id, "method": method}
    if params is not None:
        message["params"] = params
    return message


def call_tool(name: str, arguments: Optional[Dict[str, Any]] = None, request_id: Any = 1) -> Dict[str, Any]:
    params: Dict[str, Any] = {"name": name}
    if arguments is not None:
        params["arguments"] = arguments
    return rpc("tools/call", params, request_id=request_id)


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def unconfigured_settings() -> Settings:
    return make_settings(context7_api_key=None, perplexity_api_key=None, brightdata_api_token=None)


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream(payload={})


@pytest.fixture
def registry():
    return build_default_registry()


@pytest.fixture
def make_server(registry, settings, upstream):
    """Factory for fresh request-scoped servers sharing the default registry."""

    def _make(**overrides: Any) -> RequestScopedServer:
        return RequestScopedServer(
            overrides.get("registry", registry),
            overrides.get("settings", settings),
            overrides.get("upstream", upstream),
            request_id="test-request",
        )

    return _make


@pytest.fixture
def app(settings, upstream):
    application = create_app()
    application.dependency_overrides[get_settings] = lambda: settings
    application.dependency_overrides[get_upstream_client] = lambda: upstream
    return application


@pytest_asyncio.fixture
async def client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as http_client:
        yield http_client


@pytest.fixture
def upstream_error() -> UpstreamError:
    return UpstreamError("Upstream request failed with status 503", status_code=503)
