"""Umbraco MCP tools and their filtering."""

from .filtering import (
    ALL_MODE_NAMES,
    ALL_SLICE_NAMES,
    MODE_REGISTRY,
    CollectionConfiguration,
    ToolMode,
    load_collection_config,
    should_include_tool,
)
from .umbraco_tools import register_tools

__all__ = [
    "ALL_MODE_NAMES",
    "ALL_SLICE_NAMES",
    "MODE_REGISTRY",
    "CollectionConfiguration",
    "ToolMode",
    "load_collection_config",
    "register_tools",
    "should_include_tool",
]
