from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastmcp import FastMCP

from querycomposer.composer.date_range import DateRangeSelector, TimeField, combine_with_query
from querycomposer.composer.duration import format_duration_shorthand, parse_duration
from querycomposer.composer.placeholders import encode_placeholder, find_malformed_placeholders, resolve_query
from querycomposer.composer.templates import fill_template, find_template, template_slots
from querycomposer.server.server_runtime import ComposerRuntime
from querycomposer.server.server_tools_shared import parse_reference_time, tool_error
from querycomposer.shared.errors import ComposerError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)


def suggest_completions(runtime: ComposerRuntime, text: str, cursor: Optional[int] = None) -> Dict[str, Any]:
    """Classify the cursor position and list completions."""
    position = len(text) if cursor is None else cursor
    context = runtime.provider.classify(text, position)
    suggestions = runtime.provider.suggest(text, position)
    return {
        "slot": context.slot.value,
        "current_token": context.current_token,
        "field_hint": context.field_hint,
        "suggestions": [s.to_dict() for s in suggestions],
    }


def accept_completion(runtime: ComposerRuntime, text: str, cursor: Optional[int], index: int) -> Dict[str, Any]:
    """Accept the ``index``-th suggestion and return the next completions."""
    position = len(text) if cursor is None else cursor
    suggestions = runtime.provider.suggest(text, position)
    if not 0 <= index < len(suggestions):
        return tool_error(
            NotFoundError(f"No suggestion at index {index} ({len(suggestions)} available)"),
            "composer_accept",
        )
    chosen = suggestions[index]
    new_text, new_cursor = runtime.provider.accept(text, position, chosen)
    return {
        "text": new_text,
        "cursor": new_cursor,
        "accepted": chosen.to_dict(),
        "suggestions": [s.to_dict() for s in runtime.provider.suggest(new_text, new_cursor)],
    }


def describe_duration(text: str) -> Dict[str, Any]:
    try:
        duration = parse_duration(text)
    except ComposerError as exc:
        return tool_error(exc, "composer_parse_duration")
    return {
        "value": duration.value,
        "unit": duration.unit.value,
        "total_minutes": duration.total_minutes,
        "shorthand": format_duration_shorthand(duration),
        "placeholder": encode_placeholder(duration),
    }


def resolve_for_execution(runtime: ComposerRuntime, query: str, now: Optional[str] = None) -> Dict[str, Any]:
    """Resolve placeholders and record the raw query in history."""
    try:
        reference = parse_reference_time(now, runtime.now())
        resolved = resolve_query(query, reference)
    except ComposerError as exc:
        return tool_error(exc, "composer_resolve_query")
    runtime.history.add(query)
    return {
        "query": query,
        "resolved": resolved,
        "now": reference.isoformat(),
        "unresolved": find_malformed_placeholders(resolved),
    }


def build_date_range(
    preset: Optional[str] = None,
    custom: Optional[str] = None,
    field: str = TimeField.START_TIME.value,
    base_query: str = "",
) -> Dict[str, Any]:
    """Build a date range fragment from a preset label or a custom duration."""
    try:
        time_field = TimeField(field)
    except ValueError:
        return tool_error(
            ValidationError(f"Unknown time field {field!r}; use StartTime or CloseTime"),
            "composer_date_range",
        )

    selector = DateRangeSelector(field=time_field)
    if custom is not None:
        selector.toggle_mode()
        selector.set_custom_input(custom)
    elif preset is not None:
        labels = [p.label.lower() for p in selector.presets]
        if preset.strip().lower() not in labels:
            return tool_error(NotFoundError(f"Unknown date range preset {preset!r}"), "composer_date_range")
        selector.selected_index = labels.index(preset.strip().lower())

    fragment = selector.confirm()
    result: Dict[str, Any] = {
        "fragment": fragment,
        "query": combine_with_query(base_query, fragment),
        "presets": [{"label": p.label, "description": p.description} for p in selector.presets],
    }
    if selector.error is not None:
        result["error"] = str(selector.error)
    return result


def register_composer_tools(mcp: FastMCP, runtime: ComposerRuntime) -> None:
    """Register visibility query composition tooling with the MCP runtime."""

    @mcp.tool
    def composer_suggest(text: str, cursor: Optional[int] = None) -> Dict[str, Any]:
        """
        Suggest completions for a partially typed visibility query.

        Args:
            text: Query text typed so far
            cursor: Cursor offset in the text (defaults to the end)

        Returns:
            Dictionary with the detected slot and up to 8 suggestions
        """
        return suggest_completions(runtime, text, cursor)

    @mcp.tool
    def composer_accept(text: str, index: int, cursor: Optional[int] = None) -> Dict[str, Any]:
        """
        Accept one of the current suggestions and return the updated text.

        Args:
            text: Query text typed so far
            index: Position of the chosen suggestion in composer_suggest output
            cursor: Cursor offset in the text (defaults to the end)
        """
        return accept_completion(runtime, text, cursor, index)

    @mcp.tool
    def composer_parse_duration(text: str) -> Dict[str, Any]:
        """Parse a duration such as '3d' and return its placeholder form."""
        return describe_duration(text)

    @mcp.tool
    def composer_resolve_query(query: str, now: Optional[str] = None) -> Dict[str, Any]:
        """
        Resolve ${TIME:...} placeholders and calendar macros for execution.

        Args:
            query: Query containing placeholders
            now: Optional ISO-8601 reference time (defaults to the current UTC time)
        """
        return resolve_for_execution(runtime, query, now)

    @mcp.tool
    def composer_validate_query(query: str) -> Dict[str, Any]:
        """Lint a visibility query for syntax, field, operator and placeholder problems."""
        result = runtime.validator.validate(query)
        logger.info("Validated query (valid=%s)", result["valid"])
        return result

    @mcp.tool
    def composer_list_catalog() -> Dict[str, Any]:
        """Return the fields, operators, status values and time expressions."""
        return runtime.catalog.to_dict()

    @mcp.tool
    def composer_list_templates() -> Dict[str, Any]:
        """Return canned query templates and the slots each one needs."""
        templates = [
            {**t.to_dict(), "slots": template_slots(t.query_text)} for t in runtime.catalog.templates
        ]
        return {"templates": templates}

    @mcp.tool
    def composer_apply_template(name: str, values: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        """
        Fill a query template.

        Args:
            name: Template name (case-insensitive)
            values: Values for the template's ${slot} placeholders
        """
        try:
            template = find_template(name, runtime.catalog.templates)
            return {"name": template.name, "query": fill_template(template, values or {})}
        except ComposerError as exc:
            return tool_error(exc, "composer_apply_template")

    @mcp.tool
    def composer_date_range(
        preset: Optional[str] = None,
        custom: Optional[str] = None,
        field: str = "StartTime",
        base_query: str = "",
    ) -> Dict[str, Any]:
        """
        Build a relative date range condition.

        Args:
            preset: One of 1h, 24h, 7d, 30d, All
            custom: Custom duration such as '3d' or '2w' (takes precedence over preset)
            field: StartTime or CloseTime
            base_query: Existing query to AND the condition onto
        """
        return build_date_range(preset, custom, field, base_query)

    @mcp.tool
    def composer_history() -> Dict[str, Any]:
        """Return executed queries, most recent first."""
        return {"history": runtime.history.entries()}
