"""Application entry point - creates and configures the Starlette application."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import HTMLResponse, JSONResponse
from starlette.routing import Mount, Route

from .auth.middleware import BearerAuthMiddleware
from .bridge import UmbracoBridge
from .config import Settings, settings
from .oauth.consent import render_landing_page
from .oauth.provider import OAuthProvider, load_provider
from .oauth.routes import get_oauth_routes
from .server import create_mcp_server
from .storage import KeyValueStore

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


async def healthz(request: Request) -> JSONResponse:
    """
    Health check endpoint.

    Returns 200 OK if the server is running.
    """
    app_settings: Settings = request.app.state.settings
    return JSONResponse(
        content={
            "status": "healthy",
            "service": app_settings.server_name,
            "version": app_settings.server_version,
        }
    )


async def root(request: Request) -> HTMLResponse:
    """Landing page naming the server and the Umbraco instance it fronts."""
    app_settings: Settings = request.app.state.settings
    return HTMLResponse(
        content=render_landing_page(
            name=app_settings.server_name,
            version=app_settings.server_version,
            umbraco_base_url=app_settings.umbraco_base_url,
        ),
        headers={"X-Frame-Options": "DENY"},
    )


def create_app(
    provider: Optional[OAuthProvider] = None,
    app_settings: Optional[Settings] = None,
    store: Optional[KeyValueStore] = None,
    http_client: Optional[httpx.AsyncClient] = None,
) -> Starlette:
    """
    Create the Starlette application with all routes and middleware.

    Args:
        provider: Outer OAuth provider; loaded from OAUTH_PROVIDER when omitted
        app_settings: Settings to use instead of the environment singleton
        store: Key-value store; built from settings when omitted
        http_client: Shared outbound client; created (and closed) by the bridge when omitted

    Returns:
        Configured Starlette application
    """
    app_settings = app_settings or settings

    if provider is None:
        if not app_settings.oauth_provider:
            raise ValueError("No OAuth provider given and OAUTH_PROVIDER is not set")
        provider = load_provider(app_settings.oauth_provider)

    bridge = UmbracoBridge(app_settings, provider, store=store, http_client=http_client)
    mcp_server = create_mcp_server(app_settings, bridge)

    @asynccontextmanager
    async def lifespan(app):
        logger.info(f"Starting {app_settings.server_name}...")
        logger.info(f"Server URL: {app_settings.server_url}")
        logger.info(f"Umbraco: {app_settings.umbraco_base_url}")

        # Session manager must run for the mounted streamable HTTP app
        async with mcp_server.session_manager.run():
            logger.info("Umbraco hosted MCP server ready")
            yield

        logger.info("Shutting down...")
        await bridge.aclose()
        logger.info("Shutdown complete")

    routes = [
        Route("/", endpoint=root, methods=["GET"]),
        Route("/healthz", endpoint=healthz, methods=["GET"]),
        # /authorize and /callback (unprotected)
        *get_oauth_routes(),
        # MCP Streamable HTTP transport (protected by middleware)
        Mount("/mcp", app=mcp_server.streamable_http_app()),
    ]

    app = Starlette(routes=routes, lifespan=lifespan)
    app.state.settings = app_settings
    app.state.bridge = bridge
    app.state.mcp_server = mcp_server

    app.add_middleware(
        BearerAuthMiddleware,
        provider=provider,
        server_url=app_settings.server_url,
        protected_paths=["/mcp"],
    )

    return app


def main():
    """Run the server using uvicorn."""
    import uvicorn

    uvicorn.run(
        "umbraco_hosted_mcp.main:create_app",
        factory=True,
        host=settings.server_host,
        port=settings.server_port,
        reload=False,
        log_level="info",
    )


if __name__ == "__main__":
    main()
