"""
HTTP client for the upstream tool providers.

The adapters treat every provider the same way: make one HTTP call, return
the decoded JSON body. A fresh ``httpx.AsyncClient`` is opened per call so no
connection state is shared between requests.

Usage:
    client = UpstreamClient(timeout=30.0)
    payload = await client.post_json(url, {"query": "fastapi"}, headers=headers)
"""
from __future__ import annotations

import json
from typing import Any, Dict, Optional

import httpx
import structlog

logger = structlog.get_logger(__name__)


class UpstreamError(Exception):
    """Raised when an upstream call fails or returns an unusable payload."""

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class UpstreamClient:
    """Stateless JSON-over-HTTP client shared by the provider adapters."""

    def __init__(self, timeout: float = 60.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        """
        Args:
            timeout: Total request timeout in seconds
            transport: Optional transport override (tests use ``httpx.MockTransport``)
        """
        self.timeout = timeout
        self._transport = transport

    async def post_json(
        self,
        url: str,
        payload: Dict[str, Any],
        headers: Optional[Dict[str, str]] = None,
    ) -> Any:
        """
        POST a JSON body and return the decoded JSON response.

        Raises:
            UpstreamError: On transport failure, non-2xx status or a body that is not strict JSON
        """
        async with httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout, connect=10.0),
            transport=self._transport,
        ) as client:
            try:
                response = await client.post(url, json=payload, headers=headers)
                response.raise_for_status()
            except httpx.HTTPStatusError as exc:
                status_code = exc.response.status_code
                logger.warning("Upstream returned error status", url=url, status_code=status_code)
                raise UpstreamError(
                    f"Upstream request failed with status {status_code}",
                    status_code=status_code,
                ) from exc
            except httpx.HTTPError as exc:
                logger.warning("Upstream request failed", url=url, error=str(exc))
                raise UpstreamError(f"Upstream request failed: {exc}") from exc

        try:
            return json.loads(response.text, parse_constant=_reject_constant)
        except ValueError as exc:
            logger.warning("Upstream returned non-JSON body", url=url, status_code=response.status_code)
            raise UpstreamError("Upstream returned a malformed payload") from exc


def _reject_constant(name: str) -> Any:
    raise ValueError(f"Out of range float value {name} is not valid JSON")
