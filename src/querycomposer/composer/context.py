"""Classify the grammatical slot at the cursor of a partially typed query.

The detector is a small state machine over the last one or two completed
words before the cursor. It is a best-effort heuristic rather than a parser:
any input, however malformed, yields a slot.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from .catalog import DEFAULT_CATALOG, Catalog

logger = logging.getLogger(__name__)

TOKEN_DELIMITERS = " ()"
COMPARISON_TOKENS = frozenset({"=", "!=", ">", ">=", "<", "<=", "BETWEEN"})
CONNECTOR_TOKENS = frozenset({"AND", "OR"})
OPERATOR_CHARACTERS = "=<>!"

# Split comparison operators away from words they are glued to (StartTime>=)
_WORD_PATTERN = re.compile(r"[=<>!]+|[^\s=<>!]+")


class Slot(Enum):
    """What the token under the cursor is expected to be."""

    FIELD = "field"
    OPERATOR = "operator"
    VALUE = "value"
    CONNECTOR = "connector"
    ANY = "any"


@dataclass(frozen=True)
class QueryContext:
    """Result of classifying ``text`` at ``cursor``."""

    slot: Slot
    current_token: str
    token_start: int
    cursor: int
    words: Tuple[str, ...] = ()
    field_hint: Optional[str] = None
    after_connector: bool = False

    @property
    def prefix(self) -> str:
        """Lower-cased token used for prefix matching."""
        return self.current_token.lower()


def split_current_token(text: str, cursor: int) -> Tuple[str, str, int]:
    """Split the text before ``cursor`` into ``(prefix, current_token, token_start)``.

    The current token starts after the last space or parenthesis.
    """
    cursor = max(0, min(cursor, len(text)))
    up_to_cursor = text[:cursor]
    boundary = max(up_to_cursor.rfind(ch) for ch in TOKEN_DELIMITERS)
    token_start = boundary + 1
    return up_to_cursor[:token_start], up_to_cursor[token_start:], token_start


def tokenize(prefix: str) -> Tuple[str, ...]:
    """Split completed text into words, with comparison operators as separate words."""
    words = []
    for chunk in prefix.replace("(", " ").replace(")", " ").split():
        if chunk.startswith("'"):
            words.append(chunk)
            continue
        words.extend(_WORD_PATTERN.findall(chunk))
    return tuple(words)


def is_comparison_token(word: str) -> bool:
    return word.upper() in COMPARISON_TOKENS or word.endswith("=")


def _connector_at_end(words: Tuple[str, ...]) -> bool:
    last = words[-1].upper()
    if last in CONNECTOR_TOKENS:
        return True
    return last == "BY" and len(words) >= 2 and words[-2].upper() == "ORDER"


def _current_condition(words: Tuple[str, ...]) -> Tuple[str, ...]:
    """Words typed after the most recent logical connector."""
    for index in range(len(words) - 1, -1, -1):
        if words[index].upper() in CONNECTOR_TOKENS or words[index].upper() == "BY":
            return words[index + 1:]
    return words


def has_complete_condition(text: str) -> bool:
    """Heuristic: text ends in something that looks like a finished condition.

    True when the text holds an even, non-zero number of single quotes, or
    ends with a closing parenthesis, or ends with ``h``/``d`` as left by a
    duration literal.
    """
    stripped = text.rstrip()
    quotes = stripped.count("'")
    return (quotes > 0 and quotes % 2 == 0) or stripped.endswith((")", "h", "d"))


def classify(text: str, cursor: int, catalog: Catalog = DEFAULT_CATALOG) -> QueryContext:
    """Classify the slot being filled at ``cursor``."""
    cursor = max(0, min(cursor, len(text)))
    prefix, current_token, token_start = split_current_token(text, cursor)
    words = tokenize(prefix)

    def _context(slot: Slot, **extra) -> QueryContext:
        context = QueryContext(slot, current_token, token_start, cursor, words, **extra)
        logger.debug("Classified %r at %d as %s", text, cursor, slot.value)
        return context

    # ExpectField: nothing typed yet
    if not words:
        return _context(Slot.FIELD)

    last = words[-1]

    # ExpectConnector right after AND / OR / ORDER BY
    if _connector_at_end(words):
        return _context(Slot.CONNECTOR, after_connector=True)

    condition = _current_condition(words)
    condition_has_operator = any(is_comparison_token(word) for word in condition)

    # ExpectOperator after a bare field name
    if catalog.find_field(last) is not None and not condition_has_operator:
        return _context(Slot.OPERATOR, field_hint=catalog.find_field(last).name)

    # ExpectValue after a comparison operator
    if is_comparison_token(last):
        hint = words[-2] if len(words) >= 2 else None
        return _context(Slot.VALUE, field_hint=hint)

    if len(words) == 1 and not any(ch in prefix for ch in OPERATOR_CHARACTERS):
        return _context(Slot.FIELD)

    # ExpectConnector after a finished condition
    if has_complete_condition(prefix):
        return _context(Slot.CONNECTOR)

    return _context(Slot.ANY)
