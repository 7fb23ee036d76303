"""Relative time placeholders and their resolution to absolute timestamps.

Queries are stored with ``${TIME:<n><unit>}`` tokens so a saved filter such as
``CloseTime > '${TIME:24h}'`` always means "the last 24 hours". Tokens are
replaced with RFC 3339 UTC timestamps only when the query is executed.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Tuple

from querycomposer.shared.errors import PlaceholderError

from .duration import Duration, DurationUnit, format_duration_shorthand

logger = logging.getLogger(__name__)

TIME_PLACEHOLDER_PATTERN = re.compile(r'\$\{TIME:([0-9]+)([mhdw])\}')
# Anything shaped like a time placeholder, valid or not
_TIME_PLACEHOLDER_LIKE_PATTERN = re.compile(r'\$\{TIME:[^}]*\}?')

_MACRO_PATTERN = re.compile(
    r'\$(?:(TODAY|YESTERDAY|THIS_WEEK|HOUR_AGO)|(HOURS_AGO_|MINUTES_AGO_|DAYS_AGO_)([0-9]*))'
)

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


def encode_placeholder(duration: Duration) -> str:
    """Return the placeholder token for ``duration`` (``${TIME:7d}``)."""
    return "${TIME:" + format_duration_shorthand(duration) + "}"


def format_timestamp(moment: datetime) -> str:
    """Format ``moment`` as an RFC 3339 UTC timestamp with second precision."""
    return _as_utc(moment).strftime(TIMESTAMP_FORMAT)


def _as_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def _placeholder_duration(match: re.Match) -> Optional[Duration]:
    """Duration of a grammatical placeholder, or None when its magnitude cannot be read."""
    try:
        return Duration(int(match.group(1)), DurationUnit(match.group(2)))
    except ValueError:
        return None


def find_placeholders(query: str) -> List[Tuple[int, int, Duration]]:
    """Return ``(start, end, duration)`` for every valid time placeholder."""
    spans = []
    for match in TIME_PLACEHOLDER_PATTERN.finditer(query):
        duration = _placeholder_duration(match)
        if duration is not None:
            spans.append((match.start(), match.end(), duration))
    return spans


def find_malformed_placeholders(query: str) -> List[str]:
    """Return placeholder-like spans that ``resolve_placeholders`` leaves untouched."""
    malformed = []
    for match in _TIME_PLACEHOLDER_LIKE_PATTERN.finditer(query):
        valid = TIME_PLACEHOLDER_PATTERN.fullmatch(match.group(0))
        if valid is None or _placeholder_duration(valid) is None:
            malformed.append(match.group(0))
    return malformed


def resolve_placeholders(query: str, now: datetime) -> str:
    """Replace every ``${TIME:<n><unit>}`` token with ``now`` minus the duration.

    Only the placeholder span is replaced; surrounding quotes are left as
    written. Text that looks like a placeholder but does not match the
    grammar is passed through unchanged, and so is a placeholder whose
    magnitude reaches outside the representable calendar. A naive ``now`` is
    taken to be UTC.
    """
    reference = _as_utc(now)

    def _substitute(match: re.Match) -> str:
        duration = _placeholder_duration(match)
        if duration is not None:
            try:
                return format_timestamp(reference - duration.to_timedelta())
            except OverflowError:
                pass
        logger.warning("Time placeholder %.40s is out of range, leaving it unresolved", match.group(0))
        return match.group(0)

    return TIME_PLACEHOLDER_PATTERN.sub(_substitute, query)


def _start_of_day(moment: datetime) -> datetime:
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


def resolve_time_macros(query: str, now: datetime) -> str:
    """Replace calendar macros with single-quoted timestamps.

    Supported macros:
      - ``$TODAY``: start of today
      - ``$YESTERDAY``: start of yesterday
      - ``$THIS_WEEK``: start of the current week (Monday)
      - ``$HOUR_AGO``: one hour ago
      - ``$HOURS_AGO_N`` / ``$MINUTES_AGO_N``: N hours / minutes ago
      - ``$DAYS_AGO_N``: start of the day N days ago

    Day boundaries are taken in ``now``'s timezone (UTC when naive).

    Raises:
        PlaceholderError: When an ``_N`` macro has no number.
    """
    local_now = now if now.tzinfo is not None else now.replace(tzinfo=timezone.utc)

    def _substitute(match: re.Match) -> str:
        simple, prefix, number = match.group(1), match.group(2), match.group(3)
        if simple == "TODAY":
            moment = _start_of_day(local_now)
        elif simple == "YESTERDAY":
            moment = _start_of_day(local_now - timedelta(days=1))
        elif simple == "THIS_WEEK":
            moment = _start_of_day(local_now - timedelta(days=local_now.weekday()))
        elif simple == "HOUR_AGO":
            moment = local_now - timedelta(hours=1)
        else:
            if not number:
                raise PlaceholderError(f"Invalid placeholder: ${prefix} (missing number)")
            try:
                amount = int(number)
                if prefix == "HOURS_AGO_":
                    moment = local_now - timedelta(hours=amount)
                elif prefix == "MINUTES_AGO_":
                    moment = local_now - timedelta(minutes=amount)
                else:
                    moment = _start_of_day(local_now - timedelta(days=amount))
            except (ValueError, OverflowError) as exc:
                raise PlaceholderError(f"Placeholder ${prefix}{number[:20]} is out of range") from exc
        return "'" + format_timestamp(moment) + "'"

    return _MACRO_PATTERN.sub(_substitute, query)


def resolve_query(query: str, now: datetime) -> str:
    """Resolve calendar macros and time placeholders, ready for execution."""
    resolved = resolve_placeholders(resolve_time_macros(query, now), now)
    if resolved != query:
        logger.debug("Resolved query %r -> %r", query, resolved)
    return resolved
