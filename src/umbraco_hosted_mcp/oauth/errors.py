"""Exception types for the Umbraco OAuth bridge."""

from typing import Optional


class BridgeError(Exception):
    """Base class for failures surfaced to the outer OAuth provider."""

    error = "server_error"

    def __init__(self, description: str):
        self.description = description
        super().__init__(description)


class ProtocolError(BridgeError):
    """Missing or invalid protocol parameters (code, state, consent token)."""

    error = "invalid_request"


class ReplayOrExpiryError(ProtocolError):
    """
    State key is absent at callback time.

    Replay, expiry, unknown keys and state confusion all share one message
    so a caller cannot tell which case occurred.
    """

    MESSAGE = "Invalid or expired OAuth state parameter"

    def __init__(self, description: str = MESSAGE):
        super().__init__(description)


class UpstreamAuthError(BridgeError):
    """Umbraco redirected back with an error= parameter."""

    error = "access_denied"

    def __init__(self, upstream_error: str, upstream_description: str = ""):
        self.upstream_error = upstream_error
        self.upstream_description = upstream_description
        super().__init__(
            f"Umbraco authorization error: {upstream_error} - {upstream_description}"
        )


class ExchangeFailure(BridgeError):
    """
    The authorization code exchange with Umbraco failed.

    status_code is None when the token endpoint could not be reached.
    """

    def __init__(self, status_code: Optional[int], reason: str, body: str):
        self.status_code = status_code
        self.body = body
        prefix = f"{status_code} {reason}" if status_code is not None else reason
        super().__init__(f"Token exchange failed: {prefix} - {body}")


class RefreshUnavailable(BridgeError):
    """A refresh attempt failed. Never escapes the refresh path."""

    def __init__(self, description: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(description)


class TokenNotFoundError(BridgeError):
    """No stored Umbraco token for the given token key."""

    error = "invalid_token"

    def __init__(self, description: str = "Umbraco token not found or expired. Re-authentication required."):
        super().__init__(description)
