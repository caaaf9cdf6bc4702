"""Async HTTP client for Umbraco Management API calls."""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, Union
from urllib.parse import quote, urlencode

import httpx

from ..config import Settings
from ..oauth.models import BackendTokenRecord
from ..oauth.state import BackendTokenStore

logger = logging.getLogger(__name__)


class UmbracoClientError(Exception):
    """Exception raised when an Umbraco API call returns a rejected status."""

    def __init__(self, status_code: int, message: str, data: Any = None):
        self.status_code = status_code
        self.message = message
        self.data = data
        super().__init__(message)


class AuthState(str, Enum):
    AUTHENTICATED = "authenticated"
    EXPIRED = "expired"
    REFRESHING = "refreshing"
    FAILED = "failed"


@dataclass
class RefreshContext:
    """Where the session's token record lives, and how to refresh it."""

    token_key: str
    refresh_token: str


@dataclass
class AuthSession:
    """
    Token state for one API client.

    Moves AUTHENTICATED -> EXPIRED (on a 401) -> REFRESHING, then back to
    AUTHENTICATED with the new token, or to FAILED.
    """

    access_token: str
    refresh_context: Optional[RefreshContext] = None
    state: AuthState = AuthState.AUTHENTICATED

    @property
    def authorization_header(self) -> str:
        return f"Bearer {self.access_token}"


# Refreshes a token record in storage: (token_key, refresh_token) -> new record or None
TokenRefresher = Callable[[str, str], Awaitable[Optional[BackendTokenRecord]]]


@dataclass(frozen=True)
class FetchOptions:
    """
    Controls how responses are returned.

    return_full_response: return an HttpResponse instead of just the body
    validate_status: statuses it rejects raise UmbracoClientError
        (defaults to rejecting >= 400)
    """

    return_full_response: bool = False
    validate_status: Optional[Callable[[int], bool]] = None


# Capture status and body for every response, never raise
CAPTURE_RAW_HTTP_RESPONSE = FetchOptions(
    return_full_response=True,
    validate_status=lambda status: True,
)


@dataclass
class HttpResponse:
    status: int
    status_text: str
    data: Any


def _param_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def serialize_params(params: Optional[Mapping[str, Any]]) -> str:
    """
    Serialize query params for Umbraco, arrays in repeat format (id=1&id=2).

    None values are skipped. Returns "" or a string starting with "?".
    """
    if not params:
        return ""
    pairs = []
    for key, value in params.items():
        if value is None:
            continue
        if isinstance(value, (list, tuple)):
            pairs.extend((key, _param_value(item)) for item in value)
        else:
            pairs.append((key, _param_value(value)))
    return f"?{urlencode(pairs, quote_via=quote)}" if pairs else ""


def _parse_body(response: httpx.Response) -> Any:
    content_type = response.headers.get("content-type", "")
    # Covers application/json and application/problem+json
    if "json" in content_type and response.content:
        try:
            return response.json()
        except ValueError:
            logger.debug(f"Unparseable JSON body from {response.request.url}")
    return response.text or None


class UmbracoFetchClient:
    """
    Bearer-authenticated client for the Umbraco Management API.

    On a 401, a session with refresh context gets exactly one silent refresh
    and, if that yields a new token, exactly one retry. Any other outcome
    returns the original response.
    """

    def __init__(
        self,
        base_url: str,
        session: AuthSession,
        http_client: httpx.AsyncClient,
        refresher: Optional[TokenRefresher] = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._session = session
        self._http = http_client
        self._refresher = refresher

    @property
    def session(self) -> AuthSession:
        return self._session

    async def request(
        self,
        method: str,
        url: str,
        *,
        params: Optional[Mapping[str, Any]] = None,
        data: Any = None,
        headers: Optional[Dict[str, str]] = None,
        options: Optional[FetchOptions] = None,
    ) -> Union[HttpResponse, Any]:
        """
        Issue an authenticated request.

        Args:
            method: HTTP method
            url: Path relative to the Umbraco base URL
            params: Query parameters (lists repeat the key)
            data: JSON body, omitted when None
            headers: Extra headers, overriding the defaults
            options: Response handling (see FetchOptions)

        Returns:
            HttpResponse when options.return_full_response, else the parsed body

        Raises:
            UmbracoClientError: If the status is rejected and the full response
                was not requested
        """
        options = options or FetchOptions()
        full_url = f"{self._base_url}{url}{serialize_params(params)}"

        response = await self._send(method, full_url, data, headers)

        if response.status_code == 401 and self._session.refresh_context is not None:
            if await self._refresh_session():
                response = await self._send(method, full_url, data, headers)

        body = _parse_body(response)

        if options.return_full_response:
            return HttpResponse(
                status=response.status_code,
                status_text=response.reason_phrase,
                data=body,
            )

        accept = options.validate_status or (lambda status: status < 400)
        if not accept(response.status_code):
            raise UmbracoClientError(
                response.status_code,
                f"Request failed with status {response.status_code}: {response.reason_phrase}",
                body,
            )
        return body

    async def _send(
        self,
        method: str,
        full_url: str,
        data: Any,
        headers: Optional[Dict[str, str]],
    ) -> httpx.Response:
        request_headers = {
            "Authorization": self._session.authorization_header,
            "Content-Type": "application/json",
            "Accept": "application/json",
            **(headers or {}),
        }
        kwargs: Dict[str, Any] = {"headers": request_headers}
        if data is not None:
            kwargs["json"] = data
        return await self._http.request(method.upper(), full_url, **kwargs)

    async def _refresh_session(self) -> bool:
        """Run one refresh attempt, updating the session. Returns True on success."""
        context = self._session.refresh_context
        self._session.state = AuthState.EXPIRED
        if self._refresher is None:
            self._session.state = AuthState.FAILED
            return False

        logger.info(f"Umbraco returned 401 - refreshing token {context.token_key[:8]}...")
        self._session.state = AuthState.REFRESHING

        record = await self._refresher(context.token_key, context.refresh_token)
        if record is None:
            self._session.state = AuthState.FAILED
            logger.warning("Token refresh unavailable - returning original 401")
            return False

        self._session.access_token = record.access_token
        if record.refresh_token:
            context.refresh_token = record.refresh_token
        self._session.state = AuthState.AUTHENTICATED
        return True


async def create_fetch_client_from_store(
    settings: Settings,
    token_store: BackendTokenStore,
    token_key: str,
    http_client: httpx.AsyncClient,
    refresher: Optional[TokenRefresher] = None,
) -> Optional[UmbracoFetchClient]:
    """
    Build a client from the stored Umbraco tokens for a token key.

    Uses the server-side base URL, so API calls go through the same route
    as the token exchange.

    Returns:
        Configured client, or None if no token is stored under the key
    """
    record = await token_store.get(token_key)
    if record is None:
        return None

    refresh_context = None
    if record.refresh_token:
        refresh_context = RefreshContext(token_key=token_key, refresh_token=record.refresh_token)

    return UmbracoFetchClient(
        base_url=settings.umbraco_server_base_url,
        session=AuthSession(access_token=record.access_token, refresh_context=refresh_context),
        http_client=http_client,
        refresher=refresher,
    )
