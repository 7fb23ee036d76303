"""Preset and custom relative date ranges turned into query fragments."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence, Tuple

from querycomposer.shared.errors import ParseError

from .duration import Duration, DurationUnit, parse_duration
from .placeholders import encode_placeholder

logger = logging.getLogger(__name__)

DEFAULT_FRAGMENT_TEMPLATE = "{field} > '{placeholder}'"
CUSTOM_INPUT_CHARACTERS = frozenset("0123456789mhdw")


class TimeField(Enum):
    """Time fields a date range can bound."""

    START_TIME = "StartTime"
    CLOSE_TIME = "CloseTime"


class SelectorMode(Enum):
    PRESET = "preset"
    CUSTOM = "custom"


@dataclass(frozen=True)
class DateRangePreset:
    """A named range. A zero duration means no time bound at all."""

    label: str
    description: str
    duration: Duration
    query_fragment_template: str = DEFAULT_FRAGMENT_TEMPLATE

    def fragment(self, field: TimeField) -> str:
        if self.duration.is_zero:
            return ""
        return self.query_fragment_template.format(
            field=field.value, placeholder=encode_placeholder(self.duration)
        )


DEFAULT_DATE_PRESETS: Tuple[DateRangePreset, ...] = (
    DateRangePreset("1h", "Last hour", Duration(1, DurationUnit.HOUR)),
    DateRangePreset("24h", "Last 24 hours", Duration(24, DurationUnit.HOUR)),
    DateRangePreset("7d", "Last 7 days", Duration(7, DurationUnit.DAY)),
    DateRangePreset("30d", "Last 30 days", Duration(30, DurationUnit.DAY)),
    DateRangePreset("All", "All time", Duration(0, DurationUnit.MINUTE)),
)


def build_fragment(field: TimeField, duration: Duration) -> str:
    """``<field> > '${TIME:<shorthand>}'``, or empty for a zero duration."""
    if duration.is_zero:
        return ""
    return DEFAULT_FRAGMENT_TEMPLATE.format(field=field.value, placeholder=encode_placeholder(duration))


def combine_with_query(query: str, fragment: str) -> str:
    """AND a date range fragment onto an existing query."""
    query = query.strip()
    if not fragment:
        return query
    if not query:
        return fragment
    return f"{query} AND {fragment}"


class DateRangeSelector:
    """Pick a relative range from presets or a typed duration.

    In PRESET mode a cursor moves over the preset list; in CUSTOM mode the
    user types a duration such as ``3d``. ``confirm`` returns the query
    fragment for the current state. A custom duration that fails to parse
    gives an empty fragment and leaves the error in ``error`` for display.
    """

    def __init__(
        self,
        presets: Sequence[DateRangePreset] = DEFAULT_DATE_PRESETS,
        field: TimeField = TimeField.START_TIME,
    ) -> None:
        if not presets:
            raise ValueError("At least one date range preset is required")
        self.presets: Tuple[DateRangePreset, ...] = tuple(presets)
        self.field = field
        self.mode = SelectorMode.PRESET
        self.selected_index = 0
        self.custom_input = ""
        self.error: Optional[ParseError] = None

    @property
    def selected_preset(self) -> DateRangePreset:
        return self.presets[self.selected_index]

    def set_field(self, field: TimeField) -> None:
        self.field = field

    def toggle_mode(self) -> SelectorMode:
        self.mode = SelectorMode.CUSTOM if self.mode is SelectorMode.PRESET else SelectorMode.PRESET
        return self.mode

    def move(self, delta: int) -> None:
        """Move the preset cursor, wrapping at either end."""
        if self.mode is SelectorMode.PRESET:
            self.selected_index = (self.selected_index + delta) % len(self.presets)

    def quick_select(self, number: int) -> Optional[str]:
        """Select the 1-based preset ``number`` and confirm it."""
        if self.mode is not SelectorMode.PRESET or not 1 <= number <= len(self.presets):
            return None
        self.selected_index = number - 1
        return self.confirm()

    def type_custom(self, char: str) -> bool:
        """Append a character to the custom duration; only digits and m/h/d/w are taken."""
        if self.mode is not SelectorMode.CUSTOM or len(char) != 1 or char not in CUSTOM_INPUT_CHARACTERS:
            return False
        self.custom_input += char
        self.error = None
        return True

    def backspace_custom(self) -> None:
        if self.mode is SelectorMode.CUSTOM and self.custom_input:
            self.custom_input = self.custom_input[:-1]
            self.error = None

    def set_custom_input(self, text: str) -> None:
        self.custom_input = text
        self.error = None

    def confirm(self) -> str:
        if self.mode is SelectorMode.PRESET:
            return self.selected_preset.fragment(self.field)

        try:
            duration = parse_duration(self.custom_input)
        except ParseError as exc:
            self.error = exc
            logger.debug("Custom date range %r rejected: %s", self.custom_input, exc)
            return ""
        self.error = None
        return build_fragment(self.field, duration)
