"""Bearer authentication middleware for the MCP transport."""

import logging
from typing import Callable, List, Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from ..oauth.provider import OAuthProvider
from .context import clear_current_props, set_current_props

logger = logging.getLogger(__name__)


def get_www_authenticate_header(server_url: str) -> str:
    """WWW-Authenticate value pointing at the provider's resource metadata (RFC 9728)."""
    metadata_url = f"{server_url.rstrip('/')}/.well-known/oauth-protected-resource"
    return f'Bearer resource_metadata="{metadata_url}"'


class BearerAuthMiddleware(BaseHTTPMiddleware):
    """
    Enforces downstream bearer tokens on protected paths.

    Tokens are issued by the outer OAuth provider; it maps each one to the
    AuthProps granted at callback time. Unprotected paths (landing page,
    /authorize, /callback, and any routes the provider serves) pass through.

    Returns 401 with a WWW-Authenticate header when:
    - No Authorization header present
    - Invalid token format
    - The provider does not recognise the token
    """

    def __init__(
        self,
        app,
        provider: OAuthProvider,
        server_url: str,
        protected_paths: Optional[List[str]] = None,
    ):
        super().__init__(app)
        self.provider = provider
        self.server_url = server_url
        self.protected_paths = protected_paths or ["/mcp"]

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if not self._is_protected(request.url.path):
            return await call_next(request)

        token = self._extract_bearer_token(request.headers.get("Authorization", ""))
        if not token:
            logger.debug(f"No bearer token for path: {request.url.path}")
            return self._unauthorized_response("No valid bearer token provided")

        props = await self.provider.load_props(token)
        if props is None:
            logger.debug(f"Unknown bearer token for path: {request.url.path}")
            return self._unauthorized_response("Invalid or expired token")

        request.state.auth_props = props

        # Tools reach props through the contextvar when the request is not at hand
        set_current_props(props)
        try:
            return await call_next(request)
        finally:
            clear_current_props()

    def _is_protected(self, path: str) -> bool:
        for protected in self.protected_paths:
            if path == protected or path.startswith(protected + "/"):
                return True
        return False

    def _extract_bearer_token(self, auth_header: str) -> Optional[str]:
        if not auth_header.startswith("Bearer "):
            return None
        return auth_header[7:].strip() or None

    def _unauthorized_response(self, detail: str) -> JSONResponse:
        return JSONResponse(
            status_code=401,
            content={
                "error": "invalid_token",
                "error_description": detail,
            },
            headers={
                "WWW-Authenticate": get_www_authenticate_header(self.server_url),
            },
        )
