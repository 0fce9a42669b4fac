"""
Tool Registry
=============

Maps externally visible tool names onto service operations. Names depend
on which changelog sources are enabled: with a single source the short
names (``search_changelog``, ``recent`` ...) are used, with both sources
every tool carries a ``dev_`` or ``platform_`` prefix and ``search_all``
is added.
"""

from dataclasses import dataclass
from typing import Dict, Optional, Type

from ..config.settings import ChangefeedSettings
from ..utils.logging import get_logger_for_component
from .tool_params import (
    BreakingChangesParams,
    CategoryParams,
    DevSearchParams,
    FetchChangelogParams,
    RecentParams,
    SearchAllParams,
    SearchParams,
    ToolParams,
)

logger = get_logger_for_component("tool_registry")


@dataclass(frozen=True)
class ToolSpec:
    """A registered tool."""
    name: str
    operation: str
    title: str
    description: str
    params_model: Type[ToolParams]


_OPERATIONS = {
    "fetch_changelog": (
        "Fetch Changelog",
        "Fetch recent Developer Changelog entries, optionally filtered by keywords, API version, API type or required action.",
        FetchChangelogParams,
    ),
    "dev_search": (
        "Search Developer Changelog",
        "Search the Shopify Developer Changelog for API updates, deprecations, and technical changes. "
        "Returns up to 15 recent matches.",
        DevSearchParams,
    ),
    "dev_breaking_changes": (
        "Developer Breaking Changes",
        "Get breaking changes, deprecations, and migration notices from the Developer Changelog. "
        "Essential for maintaining API compatibility.",
        BreakingChangesParams,
    ),
    "dev_recent": (
        "Recent Developer Updates",
        "Get recent updates from the Developer Changelog. Specify days to look back (1, 3, 7, 14, or 30).",
        RecentParams,
    ),
    "platform_search": (
        "Search Platform Changelog",
        "Search the Shopify Platform Changelog for product updates, new features, and merchant-facing changes. "
        "Returns up to 15 recent matches.",
        SearchParams,
    ),
    "platform_category": (
        "Platform Category Updates",
        "Get updates from specific platform categories like POS, Admin, Checkout, Payments, etc. "
        "Optionally filter by recent days.",
        CategoryParams,
    ),
    "platform_recent": (
        "Recent Platform Updates",
        "Get recent updates from the Platform Changelog. Specify days to look back (1, 3, 7, 14, or 30).",
        RecentParams,
    ),
    "search_all": (
        "Search All Changelogs",
        "Search across both Developer and Platform changelogs simultaneously. Returns combined results sorted by date.",
        SearchAllParams,
    ),
}

_SHORT_NAMES = {
    "dev_search": "search_changelog",
    "dev_breaking_changes": "breaking_changes",
    "dev_recent": "recent",
    "platform_search": "search_changelog",
    "platform_category": "category",
    "platform_recent": "recent",
}

_DEVELOPER_OPERATIONS = ("fetch_changelog", "dev_search", "dev_breaking_changes", "dev_recent")
_PLATFORM_OPERATIONS = ("platform_search", "platform_category", "platform_recent")


def operation_spec(operation: str, name: Optional[str] = None) -> ToolSpec:
    """ToolSpec for an operation, registered under ``name`` (defaults to the operation)."""
    title, description, params_model = _OPERATIONS[operation]
    return ToolSpec(
        name=name or operation,
        operation=operation,
        title=title,
        description=description,
        params_model=params_model,
    )


def build_tool_registry(settings: ChangefeedSettings) -> Dict[str, ToolSpec]:
    """Register tools for the enabled sources.

    Args:
        settings: Application settings

    Returns:
        Tool specs keyed by registered name, in registration order
    """
    developer = settings.sources.developer_enabled
    platform = settings.sources.platform_enabled

    if not developer and not platform:
        logger.warning("No changelog sources enabled. Enabling developer by default.")
        developer = True

    both = developer and platform
    operations = []
    if developer:
        operations.extend(_DEVELOPER_OPERATIONS)
    if platform:
        operations.extend(_PLATFORM_OPERATIONS)
    if both:
        operations.append("search_all")

    registry: Dict[str, ToolSpec] = {}
    for operation in operations:
        name = operation if both else _SHORT_NAMES.get(operation, operation)
        registry[name] = operation_spec(operation, name)

    logger.debug(
        f"Registered {len(registry)} tools (developer={developer}, platform={platform})",
        extra={"tools": list(registry)},
    )
    return registry
