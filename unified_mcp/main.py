"""
FastAPI application for the unified MCP servers.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
import uvicorn
from fastapi import FastAPI
from starlette.exceptions import HTTPException as StarletteHTTPException

from .core.config import get_settings
from .core.exceptions import general_exception_handler, http_exception_handler
from .core.logging import setup_logging
from .mcp.protocol import ProviderGroup
from .mcp.registry import build_default_registry
from .mcp.routes import create_mcp_router
from .routers import health


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    app_settings = get_settings()
    setup_logging(app_settings.log_level)
    logger = structlog.get_logger()

    registry = build_default_registry()
    logger.info(
        "Starting MCP servers",
        version=app.version,
        port=app_settings.port,
        health="/health",
        mcp="/mcp",
        tools=len(registry),
        tools_per_group={
            group.value: len(registry.tools_in_group(group)) for group in ProviderGroup
        },
    )

    yield

    logger.info("Shutting down MCP servers")


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description=settings.app_description,
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    # Exception handlers
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    # Routers
    app.include_router(health.router, tags=["health"])
    app.include_router(create_mcp_router(build_default_registry()))

    return app


def run() -> None:
    app_settings = get_settings()
    uvicorn.run(
        "unified_mcp.main:create_app",
        factory=True,
        host=app_settings.host,
        port=app_settings.port,
        reload=app_settings.debug,
        log_level=app_settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
