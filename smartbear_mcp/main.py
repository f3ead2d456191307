"""
Server entry point.

Loads settings, configures logging/telemetry, builds the facade on top of a
fastmcp server, adds every configured client and serves over the selected
transport.
"""

import asyncio
import logging
import sys
from typing import Optional

from fastmcp import FastMCP

from .clients import default_client_registry
from .config import AppSettings, get_settings
from .managers.cache.cache_service import CacheService
from .managers.clients.client_registry import ClientRegistry, setup_clients_from_env
from .managers.server.runtime import FastMCPRuntime
from .managers.server.server import SmartBearMcpServer
from .telemetry import setup_telemetry

logger = logging.getLogger(__name__)


async def create_server(
    settings: AppSettings,
    registry: Optional[ClientRegistry] = None,
    reporter=None,
) -> tuple:
    """Build the fastmcp server and facade, and add every configured client.

    Returns:
        (mcp, server, client_defined)
    """
    mcp = FastMCP(settings.server_name)
    server = SmartBearMcpServer(
        FastMCPRuntime(mcp),
        reporter=reporter,
        cache=CacheService.from_settings(settings),
    )
    client_defined = await setup_clients_from_env(server, settings, registry or default_client_registry())
    return mcp, server, client_defined


def main() -> None:
    settings = get_settings()
    reporter = setup_telemetry(settings)
    logger.info(f"Starting {settings.server_name} {settings.server_version} ({settings.transport})")

    mcp, server, client_defined = asyncio.run(create_server(settings, reporter=reporter))
    if not client_defined:
        logger.error(
            "No clients configured. Set the credentials of at least one client, e.g. BUGSNAG_AUTH_TOKEN."
        )
        sys.exit(1)
    logger.info(f"Serving {len(server.tool_names)} tools")

    if settings.transport == "stdio":
        mcp.run(transport="stdio")
    else:
        mcp.run(transport=settings.transport, host=settings.mcp_http_host, port=settings.mcp_http_port)


if __name__ == "__main__":
    main()
