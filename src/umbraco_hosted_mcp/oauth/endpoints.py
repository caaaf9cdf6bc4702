"""
Umbraco backoffice endpoint resolution.

The backoffice does not publish its own discovery document (the generic
/.well-known/openid-configuration describes the member/delivery API), so
the OAuth endpoints are built from well-known Management API paths.
"""

from dataclasses import dataclass
from typing import Optional

MANAGEMENT_API_PREFIX = "/umbraco/management/api/v1"
AUTHORIZE_PATH = f"{MANAGEMENT_API_PREFIX}/security/back-office/authorize"
TOKEN_PATH = f"{MANAGEMENT_API_PREFIX}/security/back-office/token"
CURRENT_USER_PATH = f"{MANAGEMENT_API_PREFIX}/user/current"


@dataclass(frozen=True)
class BackofficeEndpoints:
    authorization_endpoint: str
    token_endpoint: str


def get_backoffice_endpoints(
    base_url: str, server_base_url: Optional[str] = None
) -> BackofficeEndpoints:
    """
    Resolve the backoffice authorize and token endpoints.

    Args:
        base_url: Browser-reachable Umbraco URL, used for the authorize redirect
        server_base_url: Optional server-side override, used only for the token
            endpoint (e.g. an HTTP proxy when the Umbraco dev cert is self-signed)

    Returns:
        BackofficeEndpoints with absolute URLs
    """
    browser_base = base_url.rstrip("/")
    server_base = server_base_url.rstrip("/") if server_base_url else browser_base
    return BackofficeEndpoints(
        authorization_endpoint=f"{browser_base}{AUTHORIZE_PATH}",
        token_endpoint=f"{server_base}{TOKEN_PATH}",
    )
