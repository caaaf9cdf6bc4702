"""Context variables for passing the caller's AuthProps to MCP tools."""

from contextvars import ContextVar
from typing import Optional

from ..oauth.models import AuthProps

# Set by the bearer middleware for the lifetime of one request
current_auth_props: ContextVar[Optional[AuthProps]] = ContextVar(
    "current_auth_props", default=None
)


def get_current_props() -> Optional[AuthProps]:
    """Get the AuthProps for the current request context."""
    return current_auth_props.get()


def set_current_props(props: AuthProps) -> None:
    """Set the AuthProps for the current request context."""
    current_auth_props.set(props)


def clear_current_props() -> None:
    """Clear the AuthProps for the current request context."""
    current_auth_props.set(None)
