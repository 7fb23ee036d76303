"""Shared utilities for MCP server tools."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from querycomposer.shared.errors import ParseError, error_payload

logger = logging.getLogger(__name__)


def parse_reference_time(value: Optional[str], default: datetime) -> datetime:
    """
    Parse an ISO-8601 reference time supplied by a tool caller.

    Args:
        value: Timestamp such as ``2024-01-02T00:00:00Z``; None or blank uses ``default``
        default: Reference time to fall back on

    Returns:
        Timezone-aware datetime (naive input is taken as UTC)

    Raises:
        ParseError: If the value is not a valid ISO-8601 timestamp
    """
    if value is None or not value.strip():
        return default
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        moment = datetime.fromisoformat(text)
    except ValueError as exc:
        raise ParseError(f"Invalid reference time {value!r}: expected ISO-8601") from exc
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment


def tool_error(exc: Exception, tool_name: str) -> Dict[str, Any]:
    """Log a recoverable composer error and return it as a tool result."""
    logger.info("%s rejected input: %s", tool_name, exc)
    return error_payload(exc)
