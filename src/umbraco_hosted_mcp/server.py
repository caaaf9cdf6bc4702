"""MCP Server setup with FastMCP."""

import logging
from typing import TYPE_CHECKING
from urllib.parse import urlparse

from mcp.server.fastmcp import FastMCP
from mcp.server.transport_security import TransportSecuritySettings

from .config import Settings, parse_csv
from .tools.filtering import load_collection_config
from .tools.umbraco_tools import register_tools

if TYPE_CHECKING:
    from .bridge import UmbracoBridge

logger = logging.getLogger(__name__)


def build_transport_security(settings: Settings) -> TransportSecuritySettings:
    """DNS rebinding protection for localhost, this server's host and the configured origins."""
    public = urlparse(settings.server_url)
    host = public.netloc

    return TransportSecuritySettings(
        enable_dns_rebinding_protection=True,
        allowed_hosts=["localhost:*", "127.0.0.1:*", host, f"{host}:*"],
        allowed_origins=[
            "http://localhost:*",
            "https://localhost:*",
            f"{public.scheme}://{host}",
            *parse_csv(settings.mcp_allowed_origins),
        ],
    )


def create_mcp_server(settings: Settings, bridge: "UmbracoBridge") -> FastMCP:
    """
    Create and configure the MCP server.

    Authentication is handled by BearerAuthMiddleware in front of the
    transport, not by FastMCP's built-in auth. Each tool call resolves the
    caller's AuthProps and talks to Umbraco with that user's stored token.

    Args:
        settings: Application settings
        bridge: The OAuth bridge (token storage and refresh)

    Returns:
        FastMCP server instance with the filtered Umbraco tools registered
    """
    # streamable_http_path="/" keeps the endpoint at /mcp rather than /mcp/mcp
    mcp = FastMCP(
        name=settings.server_name,
        streamable_http_path="/",
        transport_security=build_transport_security(settings),
    )

    tools = register_tools(mcp, bridge, load_collection_config(settings))
    logger.info(f"MCP server created with {len(tools)} Umbraco tools")

    return mcp
