"""
Umbraco side of the third-party authorization flow.

The server is both an OAuth Authorization Server (to MCP clients, through
the outer provider) and an OAuth Client (to Umbraco's backoffice).

Flow:
1. MCP client hits /authorize; the provider parses the request
2. The user sees the consent screen and approves or denies
3. On approval, the user is redirected to the Umbraco backoffice login
   with a fresh PKCE challenge and a single-use state key
4. Umbraco redirects back to /callback with an authorization code
5. The code is exchanged for Umbraco tokens, stored encrypted under an
   opaque token key
6. The provider completes the original grant with AuthProps that only
   reference the token key
"""

import logging
import secrets
from dataclasses import dataclass
from typing import List, Optional
from urllib.parse import quote, urlencode

import httpx
import jwt
from jwt.exceptions import InvalidTokenError
from starlette.requests import Request
from starlette.responses import RedirectResponse, Response

from ..config import Settings
from .consent import ConsentScreenOptions, consent_response
from .endpoints import CURRENT_USER_PATH, get_backoffice_endpoints
from .errors import ProtocolError, ReplayOrExpiryError, UpstreamAuthError
from .models import (
    AuthorizationRequest,
    AuthProps,
    BackendTokenRecord,
    CallbackResult,
    OAuthStateRecord,
)
from .pkce import generate_pkce_pair
from .state import BackendTokenStore, OAuthStateStore
from .token_client import UmbracoTokenClient

logger = logging.getLogger(__name__)

CALLBACK_PATH = "/callback"
CONSENT_PREFIX = "consent:"


def callback_url_for(request: Request) -> str:
    """The bridge's callback URL, fixed to the origin the request arrived on."""
    return f"{request.url.scheme}://{request.url.netloc}{CALLBACK_PATH}"


@dataclass
class UmbracoUserInfo:
    sub: str
    name: Optional[str] = None
    email: Optional[str] = None


class UmbracoAuthHandler:
    """Runs the consent step, the Umbraco redirect and the callback exchange."""

    def __init__(
        self,
        settings: Settings,
        state_store: OAuthStateStore,
        token_store: BackendTokenStore,
        token_client: UmbracoTokenClient,
        http_client: httpx.AsyncClient,
        scopes: Optional[List[str]] = None,
    ):
        self._settings = settings
        self._state_store = state_store
        self._token_store = token_store
        self._token_client = token_client
        self._http = http_client
        self._scopes = list(scopes or settings.umbraco_scopes)

    # ------------------------------------------------------------------
    # Authorize
    # ------------------------------------------------------------------

    async def authorize(self, request: Request, auth_request: AuthorizationRequest) -> Response:
        """
        Handle /authorize for a parsed downstream authorization request.

        GET shows the consent screen. POST resolves it with form fields
        action=approve|deny and the consent token in state. Approval needs
        a valid consent token. Deny always redirects with access_denied and
        discards the token if one was sent.

        Raises:
            ProtocolError: If the consent submission is invalid
        """
        if request.method != "POST":
            return await self._show_consent(request, auth_request)

        form = await request.form()
        action = form.get("action")
        consent_token = form.get("state")

        if action == "deny":
            if consent_token:
                await self._state_store.consume(f"{CONSENT_PREFIX}{consent_token}")
            return self._deny(auth_request)
        if action == "approve":
            await self._verify_consent(consent_token, auth_request)
            return await self._approve(request, auth_request)
        raise ProtocolError(f"Unknown consent action: {action!r}")

    async def _show_consent(self, request: Request, auth_request: AuthorizationRequest) -> Response:
        consent_token = secrets.token_urlsafe(32)
        await self._state_store.save(
            f"{CONSENT_PREFIX}{consent_token}",
            OAuthStateRecord(client_id=auth_request.client_id),
        )
        return consent_response(
            ConsentScreenOptions(
                client_name=auth_request.client_id,
                umbraco_base_url=self._settings.umbraco_base_url,
                scopes=auth_request.scope or self._scopes,
                redirect_uri=auth_request.redirect_uri,
                action_url=str(request.url),
                state=consent_token,
            )
        )

    async def _verify_consent(self, consent_token: Optional[str], auth_request: AuthorizationRequest) -> None:
        """Consume the consent token issued with the consent screen."""
        if not consent_token:
            raise ProtocolError("Missing consent token")

        record = await self._state_store.consume(f"{CONSENT_PREFIX}{consent_token}")
        if record is None or record.client_id != auth_request.client_id:
            logger.warning(f"Rejected consent submission for client {auth_request.client_id}")
            raise ProtocolError("Invalid or expired consent token")

    def _deny(self, auth_request: AuthorizationRequest) -> RedirectResponse:
        """Send the user back to the MCP client with access_denied."""
        params = {
            "error": "access_denied",
            "error_description": "User denied the authorization request",
        }
        if auth_request.state:
            params["state"] = auth_request.state

        separator = "&" if "?" in auth_request.redirect_uri else "?"
        logger.info(f"User denied authorization for client {auth_request.client_id}")
        return RedirectResponse(
            url=f"{auth_request.redirect_uri}{separator}{urlencode(params)}",
            status_code=302,
        )

    async def _approve(self, request: Request, auth_request: AuthorizationRequest) -> RedirectResponse:
        """Redirect the user to the Umbraco backoffice login with PKCE."""
        code_verifier, code_challenge = generate_pkce_pair()
        umbraco_state = secrets.token_urlsafe(32)

        # Full request + verifier, needed again at callback time
        await self._state_store.save(
            umbraco_state,
            OAuthStateRecord(auth_request=auth_request, code_verifier=code_verifier),
        )

        # Browser redirect: always the browser-reachable base URL
        endpoints = get_backoffice_endpoints(self._settings.umbraco_base_url)
        params = {
            "response_type": "code",
            "client_id": self._settings.umbraco_oauth_client_id,
            "redirect_uri": callback_url_for(request),
            "scope": " ".join(self._scopes),
            "state": umbraco_state,
            "code_challenge": code_challenge,
            "code_challenge_method": "S256",
        }

        logger.info(f"Redirecting client {auth_request.client_id} to Umbraco backoffice login")
        return RedirectResponse(
            url=f"{endpoints.authorization_endpoint}?{urlencode(params, quote_via=quote)}",
            status_code=302,
        )

    # ------------------------------------------------------------------
    # Callback
    # ------------------------------------------------------------------

    async def callback(self, request: Request) -> CallbackResult:
        """
        Complete the Umbraco leg of the flow.

        Query params:
            code: Authorization code from Umbraco
            state: The single-use state key issued on approval
            error: Error code if authorization failed
            error_description: Error description

        Returns:
            CallbackResult with the AuthProps and the original AuthorizationRequest

        Raises:
            UpstreamAuthError: If Umbraco redirected with an error
            ProtocolError: If code/state is missing, or the state is unknown,
                expired, already used or not a flow record
            ExchangeFailure: If the token endpoint rejects the code
        """
        code = request.query_params.get("code")
        state = request.query_params.get("state")
        error = request.query_params.get("error")

        if error:
            raise UpstreamAuthError(error, request.query_params.get("error_description", ""))

        if not code or not state:
            raise ProtocolError("Missing code or state parameter in callback")

        # Single-use: the record is gone after this, whatever happens next
        record = await self._state_store.consume(state)
        if record is None:
            raise ReplayOrExpiryError()

        if record.auth_request is None or not record.code_verifier:
            logger.warning("Callback state is not an authorization flow record")
            raise ReplayOrExpiryError()

        tokens = await self._token_client.exchange_code(
            code=code,
            redirect_uri=callback_url_for(request),
            code_verifier=record.code_verifier,
        )

        token_key = secrets.token_urlsafe(32)
        await self._token_store.save(token_key, tokens)

        user = await self._resolve_user(tokens)
        logger.info(f"Stored Umbraco tokens {token_key[:8]}... for client {record.auth_request.client_id}")

        return CallbackResult(
            props=AuthProps(
                umbraco_token_key=token_key,
                user_id=user.sub,
                user_name=user.name,
                user_email=user.email,
            ),
            auth_request=record.auth_request,
        )

    async def _resolve_user(self, tokens: BackendTokenRecord) -> UmbracoUserInfo:
        """Identify the Umbraco user from the id_token, or the current-user endpoint."""
        if tokens.id_token:
            try:
                # Received straight from the token endpoint, so no signature check
                claims = jwt.decode(tokens.id_token, options={"verify_signature": False})
            except InvalidTokenError as e:
                logger.warning(f"Ignoring unreadable id_token: {e}")
            else:
                if claims.get("sub"):
                    return UmbracoUserInfo(
                        sub=str(claims["sub"]),
                        name=claims.get("name"),
                        email=claims.get("email"),
                    )

        return await self._fetch_current_user(tokens.access_token)

    async def _fetch_current_user(self, access_token: str) -> UmbracoUserInfo:
        url = f"{self._settings.umbraco_server_base_url}{CURRENT_USER_PATH}"
        try:
            response = await self._http.get(
                url,
                headers={
                    "Authorization": f"Bearer {access_token}",
                    "Accept": "application/json",
                },
            )
        except httpx.HTTPError as e:
            logger.warning(f"Could not fetch current Umbraco user: {e}")
            return UmbracoUserInfo(sub="unknown")

        if not response.is_success:
            logger.warning(f"Current Umbraco user lookup returned {response.status_code}")
            return UmbracoUserInfo(sub="unknown")

        try:
            data = response.json()
        except ValueError:
            data = None
        if not isinstance(data, dict):
            logger.warning("Current Umbraco user response is not a JSON object")
            return UmbracoUserInfo(sub="unknown")

        return UmbracoUserInfo(
            sub=str(data.get("id") or "unknown"),
            name=data.get("name"),
            email=data.get("email"),
        )
