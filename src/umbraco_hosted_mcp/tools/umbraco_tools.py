"""MCP tools backed by the Umbraco Management API."""

import json
import logging
from typing import TYPE_CHECKING, Any, Callable, List, Optional, Sequence

from mcp.server.fastmcp import FastMCP

from ..auth.context import get_current_props
from ..http_client.umbraco_client import UmbracoClientError, UmbracoFetchClient
from ..oauth.endpoints import CURRENT_USER_PATH, MANAGEMENT_API_PREFIX
from ..oauth.errors import TokenNotFoundError
from ..oauth.models import AuthProps
from .filtering import CollectionConfiguration, create_tool_annotations, should_include_tool

if TYPE_CHECKING:
    from ..bridge import UmbracoBridge

logger = logging.getLogger(__name__)

DOCUMENT_PATH = f"{MANAGEMENT_API_PREFIX}/document"
DOCUMENT_ITEM_PATH = f"{MANAGEMENT_API_PREFIX}/item/document"
DOCUMENT_TREE_ROOT_PATH = f"{MANAGEMENT_API_PREFIX}/tree/document/root"


def _request_props(mcp: FastMCP) -> Optional[AuthProps]:
    """AuthProps stored on the Starlette request by the bearer middleware."""
    ctx = mcp.get_context()
    try:
        request_context = ctx.request_context
    except ValueError:
        # Called outside an MCP request
        return None

    request = getattr(request_context, "request", None)
    if request is None:
        return None
    return getattr(request.state, "auth_props", None)


def resolve_auth_props(mcp: FastMCP) -> AuthProps:
    """
    The caller's AuthProps, from the request state or the auth contextvar.

    Raises:
        ValueError: If the call is not authenticated
    """
    props = _request_props(mcp) or get_current_props()
    if props is None:
        logger.error("No AuthProps available for tool call")
        raise ValueError("Authentication required. No Umbraco session available.")
    return props


def _format_result(data: Any, empty_message: str) -> str:
    if data is None or data == "":
        return empty_message
    if isinstance(data, str):
        return data
    return json.dumps(data, indent=2)


def register_tools(
    mcp: FastMCP,
    bridge: "UmbracoBridge",
    config: CollectionConfiguration,
) -> List[str]:
    """
    Register the Umbraco tools that pass the filter configuration.

    Args:
        mcp: The FastMCP server instance
        bridge: Bridge used to build per-user API clients
        config: Tool filter configuration

    Returns:
        Names of the registered tools
    """
    registered: List[str] = []

    def umbraco_tool(name: str, title: str, description: str, collection: str, slices: Sequence[str]):
        def decorator(fn: Callable) -> Callable:
            if not should_include_tool(name, slices, collection, config):
                logger.info(f"Tool {name} filtered out")
                return fn
            mcp.tool(
                name=name,
                description=description,
                annotations=create_tool_annotations(title, slices),
            )(fn)
            registered.append(name)
            return fn

        return decorator

    async def api_client() -> UmbracoFetchClient:
        props = resolve_auth_props(mcp)
        try:
            return await bridge.create_api_client(props)
        except TokenNotFoundError as e:
            raise ValueError(e.description) from e

    async def call(method: str, path: str, **kwargs: Any) -> Any:
        client = await api_client()
        try:
            return await client.request(method, path, **kwargs)
        except UmbracoClientError as e:
            logger.error(f"Umbraco API call {method} {path} failed: {e}")
            if e.status_code == 401:
                raise ValueError("Umbraco session is invalid or expired. Re-authentication required.") from e
            if e.status_code == 403:
                raise ValueError("The Umbraco user is not allowed to perform this operation") from e
            if e.status_code == 404:
                raise ValueError("Not found in Umbraco") from e
            raise ValueError(f"Umbraco API error: {e.message}") from e

    @umbraco_tool(
        name="get-current-user",
        title="Get current user",
        description="Get the Umbraco backoffice user this session is signed in as.",
        collection="user",
        slices=["read"],
    )
    async def get_current_user() -> str:
        return _format_result(await call("GET", CURRENT_USER_PATH), "No user information returned")

    @umbraco_tool(
        name="get-document-by-id",
        title="Get document",
        description="Get a document (content node) by its id, including its variants and property values.",
        collection="document",
        slices=["read"],
    )
    async def get_document_by_id(id: str) -> str:
        return _format_result(await call("GET", f"{DOCUMENT_PATH}/{id}"), "Document not found")

    @umbraco_tool(
        name="get-document-items",
        title="Get document items",
        description="Get summary items for several documents at once by their ids.",
        collection="document",
        slices=["list"],
    )
    async def get_document_items(ids: List[str]) -> str:
        data = await call("GET", DOCUMENT_ITEM_PATH, params={"id": ids})
        return _format_result(data, "[]")

    @umbraco_tool(
        name="get-document-root",
        title="Get document root",
        description="List the documents at the root of the content tree, paged with skip/take.",
        collection="document",
        slices=["list"],
    )
    async def get_document_root(skip: int = 0, take: int = 100) -> str:
        data = await call("GET", DOCUMENT_TREE_ROOT_PATH, params={"skip": skip, "take": take})
        return _format_result(data, "No documents at the root")

    @umbraco_tool(
        name="move-document-to-recycle-bin",
        title="Move document to recycle bin",
        description="Move a document to the recycle bin. The document can be restored from there.",
        collection="document",
        slices=["delete"],
    )
    async def move_document_to_recycle_bin(id: str) -> str:
        await call("PUT", f"{DOCUMENT_PATH}/{id}/move-to-recycle-bin")
        return f"Document {id} moved to the recycle bin"

    logger.info(f"Registered Umbraco tools: {', '.join(registered) or 'none'}")
    return registered
