"""Persistence backends for saved filters."""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Sequence

from .saved_filters import SavedFilter

logger = logging.getLogger(__name__)


class FilterStore(ABC):
    """Loads and replaces the full list of saved filters."""

    @abstractmethod
    def load(self) -> List[SavedFilter]:
        """Return stored filters in their saved order."""

    @abstractmethod
    def save_all(self, filters: Sequence[SavedFilter]) -> None:
        """Replace the stored filters with ``filters``."""


class InMemoryFilterStore(FilterStore):
    """Store kept in process memory; used by tests and ephemeral sessions."""

    def __init__(self, filters: Sequence[SavedFilter] = ()) -> None:
        self._filters = [f.copy() for f in filters]

    def load(self) -> List[SavedFilter]:
        return [f.copy() for f in self._filters]

    def save_all(self, filters: Sequence[SavedFilter]) -> None:
        self._filters = [f.copy() for f in filters]


class JsonFilterStore(FilterStore):
    """Keep saved filters in a JSON document.

    The file holds ``{"saved_filters": [{"name", "query", "is_default"}]}``.
    Writes go to a temporary file that replaces the target, so a crash never
    leaves a half-written document behind.
    """

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()

    def load(self) -> List[SavedFilter]:
        with self._lock:
            if not self.path.exists():
                logger.debug("No saved filter file at %s", self.path)
                return []
            with self.path.open("r", encoding="utf-8") as f:
                data = json.load(f)

        entries = data.get("saved_filters", []) if isinstance(data, dict) else []
        filters: List[SavedFilter] = []
        for entry in entries:
            if not isinstance(entry, dict) or not entry.get("name"):
                logger.warning("Skipping malformed saved filter entry in %s: %r", self.path, entry)
                continue
            filters.append(SavedFilter.from_dict(entry))
        logger.info("Loaded %d saved filters from %s", len(filters), self.path)
        return filters

    def save_all(self, filters: Sequence[SavedFilter]) -> None:
        payload: Dict[str, Any] = {"saved_filters": [f.to_dict() for f in filters]}
        with self._lock:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=".saved_filters.", dir=self.path.parent)
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(payload, f, indent=2)
                os.replace(tmp_name, self.path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        logger.debug("Persisted %d saved filters to %s", len(filters), self.path)
