"""Umbraco OAuth bridge: consent, backoffice redirect, callback and refresh."""

from .errors import (
    BridgeError,
    ExchangeFailure,
    ProtocolError,
    RefreshUnavailable,
    ReplayOrExpiryError,
    TokenNotFoundError,
    UpstreamAuthError,
)
from .handler import UmbracoAuthHandler
from .models import (
    AuthorizationRequest,
    AuthProps,
    BackendTokenRecord,
    CallbackResult,
    OAuthStateRecord,
)
from .pkce import generate_pkce_pair
from .provider import OAuthProvider, parse_authorization_request
from .routes import get_oauth_routes
from .state import BackendTokenStore, OAuthStateStore
from .token_client import UmbracoTokenClient

__all__ = [
    "BridgeError",
    "ExchangeFailure",
    "ProtocolError",
    "RefreshUnavailable",
    "ReplayOrExpiryError",
    "TokenNotFoundError",
    "UpstreamAuthError",
    "UmbracoAuthHandler",
    "AuthorizationRequest",
    "AuthProps",
    "BackendTokenRecord",
    "CallbackResult",
    "OAuthStateRecord",
    "generate_pkce_pair",
    "OAuthProvider",
    "parse_authorization_request",
    "get_oauth_routes",
    "BackendTokenStore",
    "OAuthStateStore",
    "UmbracoTokenClient",
]
