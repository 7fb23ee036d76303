"""
Tests for query templates.
"""

from __future__ import annotations

import pytest

from querycomposer.composer.catalog import DEFAULT_QUERY_TEMPLATES, QueryTemplate
from querycomposer.composer.templates import fill_template, find_template, template_slots
from querycomposer.shared.errors import NotFoundError, ValidationError


class TestTemplates:
    """Test template lookup and slot filling."""

    def test_default_template_names(self):
        assert [t.name for t in DEFAULT_QUERY_TEMPLATES] == [
            "Running", "Failed (24h)", "Timed Out", "Long Running", "Recently Completed", "By Type",
        ]

    def test_slots_exclude_time_placeholders(self):
        text = "WorkflowType = '${type}' AND StartTime > '${TIME:1h}' AND TaskQueue = '${queue}' OR x = '${type}'"
        assert template_slots(text) == ["type", "queue"]

    def test_find_is_case_insensitive(self):
        assert find_template(" failed (24h) ").name == "Failed (24h)"

    def test_find_missing(self):
        with pytest.raises(NotFoundError):
            find_template("nope")

    def test_fill(self):
        template = find_template("By Type")
        assert fill_template(template, {"type": "BillingWorkflow"}) == "WorkflowType = 'BillingWorkflow'"

    def test_fill_keeps_time_placeholders(self):
        template = find_template("Failed (24h)")
        assert fill_template(template, {}) == "ExecutionStatus = 'Failed' AND CloseTime > '${TIME:24h}'"

    def test_missing_value(self):
        with pytest.raises(ValidationError, match="type"):
            fill_template(find_template("By Type"), {})

    def test_quote_in_value_rejected(self):
        with pytest.raises(ValidationError):
            fill_template(find_template("By Type"), {"type": "it's"})

    def test_custom_template(self):
        template = QueryTemplate("Queue", "By queue", "TaskQueue = '${queue}' AND RunId = '${run}'")
        assert fill_template(template, {"queue": "main", "run": "r1"}) == "TaskQueue = 'main' AND RunId = 'r1'"
