"""/authorize and /callback endpoints of the Umbraco OAuth bridge."""

import logging
from typing import TYPE_CHECKING, List

from starlette.requests import Request
from starlette.responses import JSONResponse, RedirectResponse, Response
from starlette.routing import Route

from .errors import BridgeError
from .handler import CALLBACK_PATH

if TYPE_CHECKING:
    from ..bridge import UmbracoBridge

logger = logging.getLogger(__name__)


def _error_response(error: str, description: str) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={"error": error, "error_description": description},
    )


async def authorize_endpoint(request: Request) -> Response:
    """
    GET/POST /authorize - Consent screen and redirect to the Umbraco login.

    The outer provider parses the MCP client's authorization request. GET
    renders the consent screen; POST (action=approve|deny) resolves it.
    """
    bridge: "UmbracoBridge" = request.app.state.bridge

    try:
        auth_request = await bridge.provider.parse_auth_request(request)
        return await bridge.auth_handler.authorize(request, auth_request)
    except BridgeError as e:
        logger.warning(f"Authorize request rejected: {e.description}")
        return _error_response(e.error, e.description)
    except ValueError as e:
        logger.warning(f"Could not parse authorization request: {e}")
        return _error_response("invalid_request", str(e) or "Authorization request failed")


async def callback_endpoint(request: Request) -> Response:
    """
    GET /callback - Umbraco redirect target.

    Exchanges the code for Umbraco tokens, then lets the outer provider
    complete the MCP client's grant and redirects back to that client.
    """
    bridge: "UmbracoBridge" = request.app.state.bridge

    try:
        result = await bridge.auth_handler.callback(request)
    except BridgeError as e:
        logger.warning(f"Callback rejected: {e.description}")
        return _error_response(e.error, e.description)

    redirect_to = await bridge.provider.complete_authorization(
        request=result.auth_request,
        user_id=result.props.user_id,
        metadata={"user_name": result.props.user_name},
        scope=list(result.auth_request.scope),
        props=result.props,
    )
    return RedirectResponse(url=redirect_to, status_code=302)


def get_oauth_routes() -> List[Route]:
    """Return routes for the Umbraco OAuth bridge endpoints."""
    return [
        Route("/authorize", endpoint=authorize_endpoint, methods=["GET", "POST"]),
        Route(CALLBACK_PATH, endpoint=callback_endpoint, methods=["GET"]),
    ]
