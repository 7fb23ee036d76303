from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastmcp import FastMCP

from querycomposer.composer.placeholders import resolve_query
from querycomposer.server.server_runtime import ComposerRuntime
from querycomposer.server.server_tools_shared import parse_reference_time, tool_error
from querycomposer.shared.errors import ComposerError, NotFoundError

logger = logging.getLogger(__name__)


def _filter_listing(runtime: ComposerRuntime) -> Dict[str, Any]:
    filters = runtime.filters.list()
    default = runtime.filters.default()
    return {
        "filters": [f.to_dict() for f in filters],
        "default": default.name if default else None,
        "persistent": not runtime.degraded,
    }


def resolve_saved_filter(runtime: ComposerRuntime, name: Optional[str] = None, now: Optional[str] = None) -> Dict[str, Any]:
    """Resolve the named filter, or the default one when no name is given."""
    try:
        if name is None or not name.strip():
            saved = runtime.filters.default()
            if saved is None:
                raise NotFoundError("No default filter is set")
        else:
            saved = runtime.filters.get(name)
        reference = parse_reference_time(now, runtime.now())
        resolved = resolve_query(saved.query, reference)
    except ComposerError as exc:
        return tool_error(exc, "filters_resolve")
    return {"name": saved.name, "query": saved.query, "resolved": resolved, "now": reference.isoformat()}


def register_filter_tools(mcp: FastMCP, runtime: ComposerRuntime) -> None:
    """Register saved filter management tools with the MCP runtime."""

    def _mutate(tool_name: str, action) -> Dict[str, Any]:
        try:
            action()
        except ComposerError as exc:
            return tool_error(exc, tool_name)
        except OSError as exc:
            logger.error("%s could not persist saved filters: %s", tool_name, exc)
            return tool_error(exc, tool_name)
        return _filter_listing(runtime)

    @mcp.tool
    def filters_list() -> Dict[str, Any]:
        """List saved filters in the order they were created."""
        return _filter_listing(runtime)

    @mcp.tool
    def filters_save(name: str, query: str, is_default: bool = False) -> Dict[str, Any]:
        """
        Save a query under a name, replacing any filter with the same name.

        Args:
            name: Filter name (must not be blank)
            query: Query text; ${TIME:...} placeholders are stored unresolved
            is_default: Make this the default filter, clearing any previous default
        """
        return _mutate("filters_save", lambda: runtime.filters.save(name, query, is_default))

    @mcp.tool
    def filters_delete(name: str) -> Dict[str, Any]:
        """Delete a saved filter by name."""
        return _mutate("filters_delete", lambda: runtime.filters.delete(name))

    @mcp.tool
    def filters_set_default(name: str) -> Dict[str, Any]:
        """Mark a saved filter as the default."""
        return _mutate("filters_set_default", lambda: runtime.filters.set_default(name))

    @mcp.tool
    def filters_clear_default() -> Dict[str, Any]:
        """Remove the default flag from every saved filter."""
        return _mutate("filters_clear_default", runtime.filters.clear_default)

    @mcp.tool
    def filters_rename(old_name: str, new_name: str) -> Dict[str, Any]:
        """Rename a saved filter, keeping its query and default flag."""
        return _mutate("filters_rename", lambda: runtime.filters.rename(old_name, new_name))

    @mcp.tool
    def filters_resolve(name: Optional[str] = None, now: Optional[str] = None) -> Dict[str, Any]:
        """
        Resolve a saved filter's placeholders for execution.

        Args:
            name: Filter name; the default filter is used when omitted
            now: Optional ISO-8601 reference time
        """
        return resolve_saved_filter(runtime, name, now)
