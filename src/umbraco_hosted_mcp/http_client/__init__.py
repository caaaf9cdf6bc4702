"""HTTP client for the Umbraco Management API."""

from .umbraco_client import (
    CAPTURE_RAW_HTTP_RESPONSE,
    AuthSession,
    AuthState,
    FetchOptions,
    HttpResponse,
    RefreshContext,
    UmbracoClientError,
    UmbracoFetchClient,
    create_fetch_client_from_store,
    serialize_params,
)

__all__ = [
    "CAPTURE_RAW_HTTP_RESPONSE",
    "AuthSession",
    "AuthState",
    "FetchOptions",
    "HttpResponse",
    "RefreshContext",
    "UmbracoClientError",
    "UmbracoFetchClient",
    "create_fetch_client_from_store",
    "serialize_params",
]
