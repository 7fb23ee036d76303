"""Named, placeholder-bearing queries with a single optional default."""

from __future__ import annotations

import logging
import threading
from dataclasses import asdict, dataclass, replace
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from querycomposer.shared.errors import NotFoundError, ValidationError

if TYPE_CHECKING:
    from .filter_store import FilterStore

logger = logging.getLogger(__name__)


@dataclass
class SavedFilter:
    """A saved query. ``query`` keeps its ``${TIME:...}`` placeholders unresolved."""

    name: str
    query: str
    is_default: bool = False

    def copy(self) -> SavedFilter:
        return replace(self)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> SavedFilter:
        return cls(
            name=str(data["name"]),
            query=str(data.get("query", "")),
            is_default=bool(data.get("is_default", False)),
        )


def _clean_name(name: Optional[str]) -> str:
    if not isinstance(name, str) or not name.strip():
        raise ValidationError("Filter name must not be empty")
    return name.strip()


class SavedFilterCollection:
    """Ordered collection of saved filters backed by a ``FilterStore``.

    Names are unique and at most one filter is the default. Every mutation is
    written through to the store; when the write fails the in-memory state
    is rolled back and the store error propagates.
    """

    def __init__(self, store: Optional[FilterStore] = None) -> None:
        if store is None:
            from .filter_store import InMemoryFilterStore

            store = InMemoryFilterStore()
        self.store = store
        self._lock = threading.RLock()
        self._filters: List[SavedFilter] = []
        self.reload()

    def reload(self) -> None:
        """Re-read filters from the store, repairing duplicate defaults."""
        with self._lock:
            filters = self.store.load()
            seen_default = False
            for saved in filters:
                if saved.is_default and seen_default:
                    logger.warning("Clearing extra default flag on saved filter %r", saved.name)
                    saved.is_default = False
                seen_default = seen_default or saved.is_default
            self._filters = filters

    def __len__(self) -> int:
        with self._lock:
            return len(self._filters)

    def __contains__(self, name: object) -> bool:
        if not isinstance(name, str):
            return False
        with self._lock:
            return self._index_of(name.strip()) is not None

    def _index_of(self, name: str) -> Optional[int]:
        for index, saved in enumerate(self._filters):
            if saved.name == name:
                return index
        return None

    def _require_index(self, name: str) -> int:
        index = self._index_of(name.strip() if isinstance(name, str) else name)
        if index is None:
            raise NotFoundError(f"Filter {name!r} not found")
        return index

    def _commit(self, filters: List[SavedFilter]) -> None:
        self.store.save_all(filters)
        self._filters = filters

    def list(self) -> List[SavedFilter]:
        """Filters in insertion order (copies)."""
        with self._lock:
            return [f.copy() for f in self._filters]

    def get(self, name: str) -> SavedFilter:
        with self._lock:
            return self._filters[self._require_index(name)].copy()

    def default(self) -> Optional[SavedFilter]:
        with self._lock:
            for saved in self._filters:
                if saved.is_default:
                    return saved.copy()
            return None

    def save(self, name: str, query: str, is_default: bool = False) -> SavedFilter:
        """Add a filter or replace the one with the same name in place.

        Raises:
            ValidationError: When ``name`` is blank. Nothing is written.
        """
        clean = _clean_name(name)
        entry = SavedFilter(clean, query, bool(is_default))
        with self._lock:
            filters = [f.copy() for f in self._filters]
            if entry.is_default:
                for saved in filters:
                    saved.is_default = False
            index = self._index_of(clean)
            if index is None:
                filters.append(entry)
            else:
                filters[index] = entry
            self._commit(filters)
        logger.info("Saved filter %r (default=%s)", clean, entry.is_default)
        return entry.copy()

    def delete(self, name: str) -> None:
        with self._lock:
            index = self._require_index(name)
            filters = [f.copy() for f in self._filters]
            removed = filters.pop(index)
            self._commit(filters)
        logger.info("Deleted filter %r", removed.name)

    def set_default(self, name: str) -> SavedFilter:
        with self._lock:
            index = self._require_index(name)
            filters = [f.copy() for f in self._filters]
            for position, saved in enumerate(filters):
                saved.is_default = position == index
            self._commit(filters)
            chosen = filters[index].copy()
        logger.info("Default filter set to %r", chosen.name)
        return chosen

    def clear_default(self) -> None:
        with self._lock:
            filters = [f.copy() for f in self._filters]
            for saved in filters:
                saved.is_default = False
            self._commit(filters)

    def rename(self, old_name: str, new_name: str) -> SavedFilter:
        """Rename a filter, keeping its position and default flag."""
        clean = _clean_name(new_name)
        with self._lock:
            index = self._require_index(old_name)
            existing = self._index_of(clean)
            if existing is not None and existing != index:
                raise ValidationError(f"A filter named {clean!r} already exists")
            filters = [f.copy() for f in self._filters]
            filters[index].name = clean
            self._commit(filters)
            renamed = filters[index].copy()
        logger.info("Renamed filter %r to %r", old_name, clean)
        return renamed
