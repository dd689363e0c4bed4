"""HTTP clients for external services."""

from .upstream import UpstreamClient, UpstreamError

__all__ = ["UpstreamClient", "UpstreamError"]
