"""
Tool filtering by mode, slice and collection.

Every tool belongs to one collection (e.g. "document") and carries zero or
more slices describing the kind of operation it performs. Modes are named
groups of collections that operators enable through UMBRACO_TOOL_MODES.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Sequence

from mcp.types import ToolAnnotations

from ..config import WRITE_SLICES, Settings

logger = logging.getLogger(__name__)

ALL_SLICE_NAMES = ("create", "read", "update", "delete", "list", "other")


@dataclass(frozen=True)
class ToolMode:
    name: str
    display_name: str
    description: str
    collections: Sequence[str]


MODE_REGISTRY: List[ToolMode] = [
    ToolMode(
        name="content",
        display_name="Content",
        description="Documents, document items and the content tree",
        collections=("document",),
    ),
    ToolMode(
        name="users",
        display_name="Users",
        description="The signed-in backoffice user",
        collections=("user",),
    ),
]

ALL_MODE_NAMES = tuple(mode.name for mode in MODE_REGISTRY)


@dataclass
class CollectionConfiguration:
    """Resolved filter lists. Empty lists mean "no restriction"."""

    enabled_collections: List[str] = field(default_factory=list)
    disabled_collections: List[str] = field(default_factory=list)
    enabled_slices: List[str] = field(default_factory=list)
    disabled_slices: List[str] = field(default_factory=list)
    enabled_tools: List[str] = field(default_factory=list)
    disabled_tools: List[str] = field(default_factory=list)


def _known(values: Iterable[str], known: Sequence[str], kind: str) -> List[str]:
    result = []
    for value in values:
        if value in known:
            if value not in result:
                result.append(value)
        else:
            logger.warning(f"Ignoring unknown {kind}: {value}")
    return result


def expand_modes_to_collections(
    mode_names: Iterable[str], registry: Sequence[ToolMode] = MODE_REGISTRY
) -> List[str]:
    """Collections enabled by the given modes, without duplicates."""
    by_name = {mode.name: mode for mode in registry}
    collections: List[str] = []
    for name in _known(mode_names, list(by_name), "tool mode"):
        for collection in by_name[name].collections:
            if collection not in collections:
                collections.append(collection)
    return collections


def load_collection_config(
    settings: Settings,
    registry: Sequence[ToolMode] = MODE_REGISTRY,
    slice_names: Sequence[str] = ALL_SLICE_NAMES,
) -> CollectionConfiguration:
    """
    Build the filter configuration from settings.

    Args:
        settings: Application settings (modes, slices, readonly flag)
        registry: Known tool modes
        slice_names: Known slice names

    Returns:
        CollectionConfiguration; unknown modes and slices are dropped with a warning
    """
    config = CollectionConfiguration(
        enabled_collections=expand_modes_to_collections(settings.tool_modes, registry),
        enabled_slices=_known(settings.include_slices, slice_names, "slice"),
        disabled_slices=_known(settings.exclude_slices, slice_names, "slice"),
    )
    logger.debug(f"Tool filter configuration: {config}")
    return config


def should_include_tool(
    name: str,
    slices: Sequence[str],
    collection: str,
    config: CollectionConfiguration,
) -> bool:
    """
    Whether a tool survives the filter configuration.

    Checks run in order: tool exclusions, tool inclusions, slice exclusions,
    slice inclusions, collection exclusions, collection inclusions. A tool
    without slices only passes a slice inclusion list that names "other".
    """
    if name in config.disabled_tools:
        return False

    if config.enabled_tools:
        return name in config.enabled_tools

    if any(s in config.disabled_slices for s in slices):
        return False

    if config.enabled_slices:
        if not slices:
            return "other" in config.enabled_slices
        if not any(s in config.enabled_slices for s in slices):
            return False

    if collection in config.disabled_collections:
        return False

    if config.enabled_collections:
        return collection in config.enabled_collections

    return True


def create_tool_annotations(title: str, slices: Sequence[str]) -> ToolAnnotations:
    """MCP annotations for a tool: read-only unless it carries a write slice."""
    read_only = not any(s in WRITE_SLICES for s in slices)
    return ToolAnnotations(
        title=title,
        readOnlyHint=read_only,
        destructiveHint="delete" in slices,
        idempotentHint=read_only,
        openWorldHint=True,
    )
