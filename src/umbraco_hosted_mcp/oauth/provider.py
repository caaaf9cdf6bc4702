"""Contract with the outer OAuth provider that owns /authorize and /token."""

import importlib
from typing import Any, Dict, List, Optional, Protocol

from starlette.requests import Request

from .errors import ProtocolError
from .models import AuthorizationRequest, AuthProps


class OAuthProvider(Protocol):
    """
    The OAuth Authorization Server seen by MCP clients.

    It parses inbound authorization requests, issues the downstream grant
    once the bridge has obtained Umbraco tokens, and maps the bearer tokens
    it issued back to the props stored with the grant.
    """

    async def parse_auth_request(self, request: Request) -> AuthorizationRequest: ...

    async def complete_authorization(
        self,
        *,
        request: AuthorizationRequest,
        user_id: str,
        metadata: Dict[str, Any],
        scope: List[str],
        props: AuthProps,
    ) -> str:
        """Finalize the downstream grant and return the client redirect URL."""
        ...

    async def load_props(self, token: str) -> Optional[AuthProps]: ...


def parse_authorization_request(request: Request) -> AuthorizationRequest:
    """
    Parse a standard OAuth 2.1 authorization query into an AuthorizationRequest.

    Raises:
        ProtocolError: If client_id or redirect_uri is missing, or the
            response_type is not "code"
    """
    params = request.query_params
    response_type = params.get("response_type", "code")
    if response_type != "code":
        raise ProtocolError("Only 'code' response_type is supported")

    client_id = params.get("client_id")
    redirect_uri = params.get("redirect_uri")
    if not client_id or not redirect_uri:
        raise ProtocolError("Missing client_id or redirect_uri")

    resources = params.getlist("resource")
    return AuthorizationRequest(
        response_type=response_type,
        client_id=client_id,
        redirect_uri=redirect_uri,
        scope=params.get("scope", "").split(),
        state=params.get("state", ""),
        code_challenge=params.get("code_challenge"),
        code_challenge_method=params.get("code_challenge_method"),
        resource=resources[0] if len(resources) == 1 else (resources or None),
    )


def load_provider(path: str) -> OAuthProvider:
    """
    Import a provider object from a "package.module:attribute" path.

    If the attribute is a class it is instantiated with no arguments.
    """
    module_name, _, attribute = path.partition(":")
    if not module_name or not attribute:
        raise ValueError(f"OAUTH_PROVIDER must look like 'package.module:attribute', got {path!r}")
    target = getattr(importlib.import_module(module_name), attribute)
    return target() if isinstance(target, type) else target
