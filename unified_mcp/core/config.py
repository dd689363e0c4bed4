"""
Configuration management for the MCP servers application.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Server
    host: str = Field(default="0.0.0.0", description="Host to bind the server")
    port: int = Field(default=3000, description="Port to bind the server")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Log level")

    # Application
    app_name: str = Field(default="Unified MCP Servers")
    app_version: str = Field(default="1.0.0")
    app_description: str = Field(
        default="Context7, Perplexity and BrightData tools over stateless MCP"
    )

    # Context7
    context7_api_key: Optional[str] = Field(default=None, description="Context7 API key")
    context7_base_url: str = Field(
        default="https://context7.upstash.io/api/v1",
        description="Context7 API base URL",
    )

    # Perplexity
    perplexity_api_key: Optional[str] = Field(default=None, description="Perplexity API key")
    perplexity_base_url: str = Field(
        default="https://api.perplexity.ai",
        description="Perplexity API base URL",
    )

    # BrightData
    brightdata_api_token: Optional[str] = Field(default=None, description="BrightData API token")
    brightdata_base_url: str = Field(
        default="https://api.brightdata.com",
        description="BrightData API base URL",
    )
    brightdata_zone: str = Field(default="mcp_unlocker", description="BrightData Web Unlocker zone")
    brightdata_live: bool = Field(
        default=False,
        description="Call the BrightData API instead of returning placeholder results",
    )

    # Upstream calls
    upstream_timeout_seconds: float = Field(
        default=60.0,
        gt=0,
        description="Timeout applied by the upstream HTTP client",
    )


@lru_cache()
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()
