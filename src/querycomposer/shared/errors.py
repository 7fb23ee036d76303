"""Error types raised by the visibility query composer."""

from __future__ import annotations


class ComposerError(ValueError):
    """Base class for recoverable composer errors shown inline to the user."""


class ParseError(ComposerError):
    """Raised when duration or placeholder text cannot be parsed."""


class PlaceholderError(ParseError):
    """Raised when a calendar macro in a query is malformed."""


class ValidationError(ComposerError):
    """Raised when input is rejected before it reaches the filter store."""


class NotFoundError(ComposerError, LookupError):
    """Raised when a named filter or template does not exist."""


def error_payload(exc: Exception) -> dict:
    """Render an error as the dictionary returned by MCP tools."""
    return {"error": str(exc), "error_type": type(exc).__name__}
