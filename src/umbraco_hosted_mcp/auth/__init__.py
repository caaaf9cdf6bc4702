"""Bearer authentication for the MCP transport."""

from .context import clear_current_props, get_current_props, set_current_props
from .middleware import BearerAuthMiddleware

__all__ = [
    "BearerAuthMiddleware",
    "clear_current_props",
    "get_current_props",
    "set_current_props",
]
