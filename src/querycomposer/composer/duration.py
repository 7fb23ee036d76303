"""Compact duration literals such as ``30m``, ``4h``, ``3d`` and ``2w``."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import timedelta
from enum import Enum

from querycomposer.shared.errors import ParseError

# [0-9] rather than \d so non-ASCII digits are rejected
_DURATION_PATTERN = re.compile(r'([0-9]+)([mhdw])')

MINUTES_PER_HOUR = 60
MINUTES_PER_DAY = 24 * MINUTES_PER_HOUR
MINUTES_PER_WEEK = 7 * MINUTES_PER_DAY


class DurationUnit(Enum):
    """Units accepted in duration shorthand."""

    MINUTE = "m"
    HOUR = "h"
    DAY = "d"
    WEEK = "w"

    @property
    def minutes(self) -> int:
        return _UNIT_MINUTES[self]


_UNIT_MINUTES = {
    DurationUnit.MINUTE: 1,
    DurationUnit.HOUR: MINUTES_PER_HOUR,
    DurationUnit.DAY: MINUTES_PER_DAY,
    DurationUnit.WEEK: MINUTES_PER_WEEK,
}


@dataclass(frozen=True)
class Duration:
    """A non-negative magnitude tagged with its unit."""

    value: int
    unit: DurationUnit

    def __post_init__(self) -> None:
        if self.value < 0:
            raise ValueError("Duration value must be non-negative")

    @property
    def total_minutes(self) -> int:
        return self.value * self.unit.minutes

    @property
    def is_zero(self) -> bool:
        return self.value == 0

    def to_timedelta(self) -> timedelta:
        return timedelta(minutes=self.total_minutes)

    def __str__(self) -> str:
        return f"{self.value}{self.unit.value}"


def parse_duration(text: str) -> Duration:
    """Parse a duration literal like ``3d``.

    The input is trimmed and lower-cased and must consist of digits followed
    by exactly one of ``m``, ``h``, ``d`` or ``w``.

    Raises:
        ParseError: For empty input, a missing or unknown unit, decimals or
            negative values. Nothing is clamped.
    """
    if not isinstance(text, str):
        raise ParseError(f"Duration must be a string, got {type(text).__name__}")

    cleaned = text.strip().lower()
    if not cleaned:
        raise ParseError("Empty duration")

    match = _DURATION_PATTERN.fullmatch(cleaned)
    if match is None:
        raise ParseError(f"Invalid duration format: {text!r} (expected e.g. 30m, 4h, 3d, 2w)")

    try:
        value = int(match.group(1))
    except ValueError as exc:
        # int() refuses digit strings past sys.get_int_max_str_digits()
        raise ParseError(f"Duration value too large: {text[:20]!r}...") from exc
    return Duration(value, DurationUnit(match.group(2)))


def format_duration_shorthand(duration: Duration) -> str:
    """Return the canonical shorthand for ``duration``.

    Whole days are used from 24 hours upward, whole hours from one hour
    upward, minutes otherwise. Remainders are dropped, so ``25h`` formats as
    ``1d``. Weeks are never emitted: ``2w`` formats as ``14d``.
    """
    minutes = duration.total_minutes
    if minutes >= MINUTES_PER_DAY:
        return f"{minutes // MINUTES_PER_DAY}d"
    if minutes >= MINUTES_PER_HOUR:
        return f"{minutes // MINUTES_PER_HOUR}h"
    return f"{minutes}m"
