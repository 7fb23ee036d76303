"""Bounded history of executed queries with up/down browsing."""

from __future__ import annotations

from typing import List, Optional

from querycomposer.shared.config import DEFAULT_HISTORY_SIZE


class QueryHistory:
    """Most recent executed queries, oldest first.

    Blank queries and repeats of the newest entry are not recorded. Browsing
    starts past the newest entry: ``previous`` walks back towards the oldest
    and ``next`` walks forward, returning an empty string once it moves past
    the newest entry.
    """

    def __init__(self, max_size: int = DEFAULT_HISTORY_SIZE) -> None:
        if max_size < 1:
            raise ValueError("History size must be at least 1")
        self.max_size = max_size
        self._entries: List[str] = []
        self._index: Optional[int] = None

    def __len__(self) -> int:
        return len(self._entries)

    def add(self, query: str) -> bool:
        """Record ``query``; returns False when it was skipped."""
        self._index = None
        if not query or not query.strip():
            return False
        if self._entries and self._entries[-1] == query:
            return False
        self._entries.append(query)
        if len(self._entries) > self.max_size:
            del self._entries[: len(self._entries) - self.max_size]
        return True

    def entries(self, newest_first: bool = True) -> List[str]:
        return list(reversed(self._entries)) if newest_first else list(self._entries)

    def previous(self) -> Optional[str]:
        """Step back one entry; None when there is no history."""
        if not self._entries:
            return None
        if self._index is None:
            self._index = len(self._entries) - 1
        elif self._index > 0:
            self._index -= 1
        return self._entries[self._index]

    def next(self) -> Optional[str]:
        """Step forward one entry; None when not browsing."""
        if self._index is None:
            return None
        if self._index < len(self._entries) - 1:
            self._index += 1
            return self._entries[self._index]
        self._index = None
        return ""

    def reset_navigation(self) -> None:
        self._index = None

    def clear(self) -> None:
        self._entries.clear()
        self._index = None
