"""
Tests for the composer MCP server tools.

This module tests the MCP tool integration, including:
- Tool registration
- Suggestion, duration, resolution and date range helpers
- Saved filter tools and error payloads
- Runtime start-up and degraded mode
"""

from __future__ import annotations

import asyncio

import pytest

from querycomposer.composer.filter_store import InMemoryFilterStore, JsonFilterStore
from querycomposer.server.main import create_server
from querycomposer.server.server_runtime import ComposerRuntime
from querycomposer.server.server_tools_composer import (
    accept_completion,
    build_date_range,
    describe_duration,
    resolve_for_execution,
    suggest_completions,
)
from querycomposer.server.server_tools_filters import resolve_saved_filter
from querycomposer.server.server_tools_shared import parse_reference_time
from querycomposer.shared.config import ComposerConfig
from querycomposer.shared.errors import ParseError

NOW = "2024-01-02T00:00:00Z"


@pytest.fixture
def runtime(tmp_path):
    """Create a ComposerRuntime writing to a temporary directory."""
    runtime = ComposerRuntime(config=ComposerConfig(data_dir=tmp_path / "data"))
    runtime.initialize_critical_components()
    return runtime


@pytest.fixture
def tools(runtime):
    """Register every tool and return them by name."""
    mcp = create_server(runtime)
    return asyncio.run(mcp.get_tools())


class TestToolRegistration:
    """Test tool registration."""

    def test_tools_registered(self, tools):
        expected_tools = [
            "composer_suggest",
            "composer_accept",
            "composer_parse_duration",
            "composer_resolve_query",
            "composer_validate_query",
            "composer_list_catalog",
            "composer_list_templates",
            "composer_apply_template",
            "composer_date_range",
            "composer_history",
            "filters_list",
            "filters_save",
            "filters_delete",
            "filters_set_default",
            "filters_clear_default",
            "filters_rename",
            "filters_resolve",
        ]
        for tool in expected_tools:
            assert tool in tools, f"Tool {tool} not registered"


class TestComposerTools:
    """Test composition helpers behind the tools."""

    def test_suggest(self, runtime):
        result = suggest_completions(runtime, "ExecutionStatus ")
        assert result["slot"] == "operator"
        assert result["field_hint"] == "ExecutionStatus"
        assert [s["display_text"] for s in result["suggestions"]][:2] == ["=", "!="]

    def test_accept(self, runtime):
        result = accept_completion(runtime, "Exec", None, 0)
        assert result["text"] == "ExecutionStatus"
        assert result["cursor"] == 15
        assert result["accepted"]["category"] == "Field"

    def test_accept_bad_index(self, runtime):
        result = accept_completion(runtime, "Exec", None, 10)
        assert result["error_type"] == "NotFoundError"

    def test_parse_duration(self):
        result = describe_duration("2w")
        assert result["total_minutes"] == 20160
        assert result["placeholder"] == "${TIME:14d}"

    def test_parse_duration_error(self):
        assert describe_duration("3x")["error_type"] == "ParseError"
        assert describe_duration("9" * 5000 + "h")["error_type"] == "ParseError"

    def test_resolve_records_history(self, runtime):
        result = resolve_for_execution(runtime, "StartTime > '${TIME:24h}'", NOW)
        assert result["resolved"] == "StartTime > '2024-01-01T00:00:00Z'"
        assert result["unresolved"] == []
        assert runtime.history.entries() == ["StartTime > '${TIME:24h}'"]

    def test_resolve_reports_unresolved(self, runtime):
        result = resolve_for_execution(runtime, "StartTime > '${TIME:3x}'", NOW)
        assert result["unresolved"] == ["${TIME:3x}"]

    def test_resolve_bad_reference_time(self, runtime):
        result = resolve_for_execution(runtime, "RunId = 'r'", "yesterday")
        assert result["error_type"] == "ParseError"
        assert len(runtime.history) == 0

    def test_date_range_preset(self):
        result = build_date_range(preset="7d", base_query="ExecutionStatus = 'Running'")
        assert result["fragment"] == "StartTime > '${TIME:7d}'"
        assert result["query"] == "ExecutionStatus = 'Running' AND StartTime > '${TIME:7d}'"

    def test_date_range_custom_error(self):
        result = build_date_range(custom="3x", field="CloseTime")
        assert result["fragment"] == ""
        assert "error" in result

    def test_date_range_unknown_preset(self):
        assert build_date_range(preset="2y")["error_type"] == "NotFoundError"

    def test_date_range_unknown_field(self):
        assert build_date_range(preset="1h", field="EndTime")["error_type"] == "ValidationError"

    def test_apply_template_tool(self, tools):
        result = tools["composer_apply_template"].fn("By Type", {"type": "Billing"})
        assert result == {"name": "By Type", "query": "WorkflowType = 'Billing'"}
        assert tools["composer_apply_template"].fn("Missing")["error_type"] == "NotFoundError"

    def test_validate_tool(self, tools):
        result = tools["composer_validate_query"].fn("ExecutionStatus == 'Running'")
        assert result["validation_results"]["operators"]["warning_count"] == 1


class TestFilterTools:
    """Test saved filter tools."""

    def test_save_and_list(self, tools, runtime):
        result = tools["filters_save"].fn("recent", "StartTime > '${TIME:1d}'", True)
        assert result["default"] == "recent"
        assert result["persistent"]
        assert isinstance(runtime.filter_store, JsonFilterStore)
        assert runtime.config.saved_filters_path.exists()

    def test_blank_name_error_payload(self, tools):
        result = tools["filters_save"].fn("", "q")
        assert result["error_type"] == "ValidationError"

    def test_delete_missing(self, tools):
        assert tools["filters_delete"].fn("nope")["error_type"] == "NotFoundError"

    def test_resolve_default(self, runtime):
        runtime.filters.save("recent", "StartTime > '${TIME:24h}'", is_default=True)
        result = resolve_saved_filter(runtime, None, NOW)
        assert result["name"] == "recent"
        assert result["resolved"] == "StartTime > '2024-01-01T00:00:00Z'"

    def test_resolve_without_default(self, runtime):
        assert resolve_saved_filter(runtime)["error_type"] == "NotFoundError"


class TestRuntime:
    """Test runtime start-up."""

    def test_ready(self, runtime):
        assert runtime.server_ready
        assert not runtime.degraded

    def test_unwritable_data_dir_degrades(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory", encoding="utf-8")
        runtime = ComposerRuntime(config=ComposerConfig(data_dir=blocker))
        runtime.initialize_critical_components()
        assert runtime.server_ready
        assert runtime.degraded
        assert isinstance(runtime.filter_store, InMemoryFilterStore)
        runtime.filters.save("a", "q")
        assert len(runtime.filters) == 1

    def test_explicit_store(self):
        runtime = ComposerRuntime(config=ComposerConfig(), store=InMemoryFilterStore())
        runtime.initialize_critical_components()
        assert not runtime.degraded


class TestParseReferenceTime:
    """Test reference time parsing."""

    def test_zulu(self):
        assert parse_reference_time(NOW, None).isoformat() == "2024-01-02T00:00:00+00:00"

    def test_naive_is_utc(self):
        assert parse_reference_time("2024-01-02T00:00:00", None).utcoffset().total_seconds() == 0

    def test_blank_uses_default(self):
        sentinel = object()
        assert parse_reference_time("  ", sentinel) is sentinel

    def test_invalid(self):
        with pytest.raises(ParseError):
            parse_reference_time("not a time", None)
