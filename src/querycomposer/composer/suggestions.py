"""Context-aware completions for visibility queries."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable, List, Optional, Tuple

from querycomposer.shared.config import DEFAULT_MAX_SUGGESTIONS

from .catalog import DEFAULT_CATALOG, Catalog, FieldKind, Suggestion
from .context import QueryContext, Slot, classify, split_current_token
from .history import QueryHistory
from .placeholders import resolve_query

logger = logging.getLogger(__name__)


def _matches(suggestion: Suggestion, token: str) -> bool:
    return not token or suggestion.display_text.lower().startswith(token)


class SuggestionProvider:
    """Produce ordered, capped completion lists from a static catalog."""

    def __init__(self, catalog: Catalog = DEFAULT_CATALOG, max_suggestions: int = DEFAULT_MAX_SUGGESTIONS) -> None:
        if max_suggestions < 1:
            raise ValueError("max_suggestions must be at least 1")
        self.catalog = catalog
        self.max_suggestions = max_suggestions

    def classify(self, text: str, cursor: int) -> QueryContext:
        return classify(text, cursor, self.catalog)

    def suggest(self, text: str, cursor: int) -> List[Suggestion]:
        """Return up to ``max_suggestions`` completions for the token at ``cursor``."""
        context = self.classify(text, cursor)
        token = context.prefix
        if context.slot is Slot.VALUE:
            # values are inserted quoted; match what is inside the quote
            token = token.lstrip("'")
        suggestions = [s for s in self._candidates(context) if _matches(s, token)]
        return suggestions[: self.max_suggestions]

    def _candidates(self, context: QueryContext) -> Iterable[Suggestion]:
        catalog = self.catalog
        fields = [f.to_suggestion() for f in catalog.fields]
        comparisons = [op.to_suggestion() for op in catalog.comparison_operators()]

        if context.slot is Slot.FIELD:
            return fields
        if context.slot is Slot.OPERATOR:
            return comparisons
        if context.slot is Slot.VALUE:
            return self._value_candidates(context.field_hint)
        if context.slot is Slot.CONNECTOR:
            connectors = [op.to_suggestion() for op in catalog.connector_operators()]
            return connectors + fields if context.after_connector else connectors
        return fields + comparisons

    def _value_candidates(self, field_hint: Optional[str]) -> List[Suggestion]:
        descriptor = self.catalog.find_field(field_hint) if field_hint else None
        if descriptor is None:
            return []
        if descriptor.kind is FieldKind.STATUS:
            return [s.to_suggestion() for s in self.catalog.status_values]
        if descriptor.kind is FieldKind.DATETIME:
            return [t.to_suggestion() for t in self.catalog.time_expressions]
        return []

    @staticmethod
    def accept(text: str, cursor: int, suggestion: Suggestion) -> Tuple[str, int]:
        """Replace the token at ``cursor`` with the suggestion's insert text.

        Text after the cursor is kept. Returns the new text and the cursor
        position at the end of the inserted text.
        """
        cursor = max(0, min(cursor, len(text)))
        prefix, _, _ = split_current_token(text, cursor)
        new_text = prefix + suggestion.insert_text + text[cursor:]
        return new_text, len(prefix) + len(suggestion.insert_text)


_default_provider = SuggestionProvider()


def suggest(text: str, cursor: int) -> List[Suggestion]:
    """Suggest completions using the default catalog."""
    return _default_provider.suggest(text, cursor)


def accept(text: str, cursor: int, suggestion: Suggestion) -> Tuple[str, int]:
    """Splice ``suggestion`` into ``text`` at ``cursor``."""
    return SuggestionProvider.accept(text, cursor, suggestion)


class AutocompleteSession:
    """Text buffer, cursor and suggestion list of a query input.

    Every edit recomputes suggestions from scratch, so callers never see
    stale results.
    """

    def __init__(
        self,
        provider: Optional[SuggestionProvider] = None,
        history: Optional[QueryHistory] = None,
        text: str = "",
    ) -> None:
        self.provider = provider or SuggestionProvider()
        self.history = history if history is not None else QueryHistory()
        self.text = ""
        self.cursor = 0
        self.suggestions: List[Suggestion] = []
        self.selected_index = 0
        self.show_suggestions = False
        self.set_text(text)

    @property
    def selected(self) -> Optional[Suggestion]:
        if self.show_suggestions and 0 <= self.selected_index < len(self.suggestions):
            return self.suggestions[self.selected_index]
        return None

    def refresh(self) -> List[Suggestion]:
        self.suggestions = self.provider.suggest(self.text, self.cursor)
        self.selected_index = 0
        self.show_suggestions = bool(self.suggestions)
        return self.suggestions

    def set_text(self, text: str) -> None:
        self.text = text
        self.cursor = len(text)
        self.refresh()

    def insert(self, chars: str) -> None:
        self.text = self.text[: self.cursor] + chars + self.text[self.cursor:]
        self.cursor += len(chars)
        self.refresh()

    def backspace(self) -> None:
        if self.cursor == 0:
            return
        self.text = self.text[: self.cursor - 1] + self.text[self.cursor:]
        self.cursor -= 1
        self.refresh()

    def delete(self) -> None:
        if self.cursor >= len(self.text):
            return
        self.text = self.text[: self.cursor] + self.text[self.cursor + 1:]
        self.refresh()

    def move_left(self) -> None:
        self.cursor = max(0, self.cursor - 1)

    def move_right(self) -> None:
        self.cursor = min(len(self.text), self.cursor + 1)

    def move_home(self) -> None:
        self.cursor = 0

    def move_end(self) -> None:
        self.cursor = len(self.text)

    def clear(self) -> None:
        self.set_text("")

    def select_next(self) -> None:
        if self.show_suggestions and self.suggestions:
            self.selected_index = (self.selected_index + 1) % len(self.suggestions)

    def select_previous(self) -> None:
        if self.show_suggestions and self.suggestions:
            self.selected_index = (self.selected_index - 1) % len(self.suggestions)

    def dismiss(self) -> None:
        self.show_suggestions = False

    def accept_selected(self) -> Optional[Suggestion]:
        """Splice the selected suggestion in and offer the next completions."""
        chosen = self.selected
        if chosen is None:
            return None
        self.text, self.cursor = self.provider.accept(self.text, self.cursor, chosen)
        logger.debug("Accepted %s suggestion %r", chosen.category.value, chosen.display_text)
        self.refresh()
        return chosen

    def history_previous(self) -> None:
        entry = self.history.previous()
        if entry:
            self.set_text(entry)

    def history_next(self) -> None:
        entry = self.history.next()
        if entry is not None:
            self.set_text(entry)

    def submit(self, now: datetime) -> str:
        """Record the raw query in history and return it resolved for execution."""
        raw = self.text
        self.history.add(raw)
        self.show_suggestions = False
        return resolve_query(raw, now)
