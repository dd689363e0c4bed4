"""
Health check endpoints.
"""

from datetime import datetime, timezone
from typing import List

import structlog
from fastapi import APIRouter
from pydantic import BaseModel

from ..core.constants import SERVICE_NAME
from ..mcp.registry import build_default_registry

logger = structlog.get_logger(__name__)
router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str
    service: str
    tools: int
    servers: List[str]
    timestamp: datetime


@router.get("/health", response_model=HealthResponse, tags=["health"])
async def health_check() -> HealthResponse:
    """Report process status and the provider groups served."""
    registry = build_default_registry()
    return HealthResponse(
        status="healthy",
        service=SERVICE_NAME,
        tools=len(registry),
        servers=registry.groups(),
        timestamp=datetime.now(timezone.utc),
    )
