"""Application settings loaded from environment variables and an optional .env file."""

from functools import lru_cache
from typing import Optional, Set

from pydantic_settings import BaseSettings, SettingsConfigDict

from . import __version__

SERVER_NAME = "smartbear-mcp"


class AppSettings(BaseSettings):
    """Main application settings loaded from environment variables."""

    server_name: str = SERVER_NAME
    server_version: str = __version__

    # Transport
    mcp_transport: str = "stdio"
    mcp_http_host: str = "127.0.0.1"
    mcp_http_port: int = 8000
    # Comma-separated client names; empty enables every client
    mcp_enabled_clients: str = ""

    # Cache
    cache_enabled: bool = True
    cache_ttl: int = 24 * 60 * 60
    cache_max_size: int = 1024

    # Logging and telemetry
    log_level: str = "INFO"
    log_file: str = ""
    debug_mode: bool = False
    telemetry_enabled: bool = False
    otlp_endpoint: str = ""
    release_stage: str = "development"

    # BugSnag
    bugsnag_auth_token: str = ""
    bugsnag_project_api_key: str = ""
    bugsnag_endpoint: str = ""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_prefix="",
    )

    @property
    def transport(self) -> str:
        return (self.mcp_transport or "stdio").strip().lower()

    @property
    def user_agent(self) -> str:
        return f"{self.server_name}/{self.server_version}"

    def enabled_clients(self) -> Optional[Set[str]]:
        """Lower-cased names from MCP_ENABLED_CLIENTS, or None when every client is enabled."""
        raw = self.mcp_enabled_clients.strip()
        if not raw:
            return None
        return {name.strip().lower() for name in raw.split(",") if name.strip()}


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    return AppSettings()
