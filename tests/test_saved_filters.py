"""
Tests for saved filters and their persistence backends.

This module tests:
- Upsert, delete, default handling and rename rules
- Rollback when the store cannot be written
- JSON store round trips, missing files and malformed entries
"""

from __future__ import annotations

import json
import threading

import pytest

from querycomposer.composer.filter_store import InMemoryFilterStore, JsonFilterStore
from querycomposer.composer.saved_filters import SavedFilter, SavedFilterCollection
from querycomposer.shared.errors import NotFoundError, ValidationError


class FailingStore(InMemoryFilterStore):
    """In-memory store whose writes can be made to fail."""

    def __init__(self) -> None:
        super().__init__()
        self.fail = False
        self.writes = 0

    def save_all(self, filters):
        if self.fail:
            raise OSError("disk full")
        self.writes += 1
        super().save_all(filters)


@pytest.fixture
def store():
    return FailingStore()


@pytest.fixture
def filters(store):
    return SavedFilterCollection(store)


class TestSaveFilter:
    """Test saving filters."""

    def test_save_and_get(self, filters):
        saved = filters.save("running", "ExecutionStatus = 'Running'")
        assert saved == SavedFilter("running", "ExecutionStatus = 'Running'", False)
        assert filters.get("running").query == "ExecutionStatus = 'Running'"
        assert "running" in filters
        assert len(filters) == 1

    def test_placeholders_are_stored_unresolved(self, filters, store):
        filters.save("recent", "StartTime > '${TIME:1d}'")
        assert store.load()[0].query == "StartTime > '${TIME:1d}'"

    def test_upsert_keeps_position(self, filters):
        filters.save("a", "q1")
        filters.save("b", "q2")
        filters.save("c", "q3")
        filters.save("b", "q2 updated")
        assert [f.name for f in filters.list()] == ["a", "b", "c"]
        assert filters.get("b").query == "q2 updated"

    def test_single_default(self, filters):
        """Saving a second default clears the first."""
        filters.save("f1", "q1", is_default=True)
        filters.save("f2", "q2", is_default=True)
        defaults = [f for f in filters.list() if f.is_default]
        assert [f.name for f in defaults] == ["f2"]
        assert filters.get("f1").is_default is False

    @pytest.mark.parametrize("name", ["", "   ", None])
    def test_blank_name_rejected_without_write(self, filters, store, name):
        filters.save("keep", "q")
        writes = store.writes
        with pytest.raises(ValidationError):
            filters.save(name, "q2")
        assert store.writes == writes
        assert [f.name for f in store.load()] == ["keep"]

    def test_name_is_trimmed(self, filters):
        filters.save("  spaced  ", "q")
        assert filters.get("spaced").name == "spaced"

    def test_list_returns_copies(self, filters):
        filters.save("a", "q")
        filters.list()[0].query = "mutated"
        assert filters.get("a").query == "q"


class TestDeleteAndDefaults:
    """Test delete, set_default and clear_default."""

    def test_delete(self, filters):
        filters.save("a", "q")
        filters.delete("a")
        assert filters.list() == []

    def test_delete_missing_raises(self, filters):
        with pytest.raises(NotFoundError):
            filters.delete("missing")

    def test_set_default(self, filters):
        filters.save("a", "q1", is_default=True)
        filters.save("b", "q2")
        chosen = filters.set_default("b")
        assert chosen.is_default
        assert filters.default().name == "b"
        assert not filters.get("a").is_default

    def test_set_default_missing_raises(self, filters):
        filters.save("a", "q1", is_default=True)
        with pytest.raises(NotFoundError):
            filters.set_default("missing")
        assert filters.default().name == "a"

    def test_clear_default(self, filters):
        filters.save("a", "q1", is_default=True)
        filters.clear_default()
        assert filters.default() is None

    def test_not_found_is_lookup_error(self, filters):
        with pytest.raises(LookupError):
            filters.get("missing")


class TestRename:
    """Test rename."""

    def test_rename_keeps_position_and_default(self, filters):
        filters.save("a", "q1")
        filters.save("b", "q2", is_default=True)
        filters.save("c", "q3")
        renamed = filters.rename("b", "beta")
        assert renamed.is_default
        assert [f.name for f in filters.list()] == ["a", "beta", "c"]

    def test_rename_to_existing_name_rejected(self, filters):
        filters.save("a", "q1")
        filters.save("b", "q2")
        with pytest.raises(ValidationError):
            filters.rename("a", "b")

    def test_rename_to_blank_rejected(self, filters):
        filters.save("a", "q1")
        with pytest.raises(ValidationError):
            filters.rename("a", " ")

    def test_rename_missing_raises(self, filters):
        with pytest.raises(NotFoundError):
            filters.rename("missing", "x")


class TestLocking:
    """Readers wait for a writer holding the collection lock."""

    @pytest.mark.parametrize("read", [len, lambda filters: "a" in filters])
    def test_reads_wait_for_lock(self, filters, read):
        filters.save("a", "q")
        results = []
        with filters._lock:
            reader = threading.Thread(target=lambda: results.append(read(filters)))
            reader.start()
            reader.join(timeout=0.2)
            assert results == []
        reader.join(timeout=5)
        assert results in ([1], [True])


class TestRollback:
    """Store failures leave the collection unchanged."""

    def test_failed_save_rolls_back(self, filters, store):
        filters.save("a", "q1", is_default=True)
        store.fail = True
        with pytest.raises(OSError):
            filters.save("b", "q2", is_default=True)
        assert [f.name for f in filters.list()] == ["a"]
        assert filters.default().name == "a"

    def test_failed_delete_rolls_back(self, filters, store):
        filters.save("a", "q1")
        store.fail = True
        with pytest.raises(OSError):
            filters.delete("a")
        assert "a" in filters


class TestJsonFilterStore:
    """Test the JSON file backend."""

    def test_missing_file_loads_empty(self, tmp_path):
        assert JsonFilterStore(tmp_path / "none.json").load() == []

    def test_round_trip(self, tmp_path):
        path = tmp_path / "filters" / "saved_filters.json"
        first = SavedFilterCollection(JsonFilterStore(path))
        first.save("running", "ExecutionStatus = 'Running'")
        first.save("recent", "StartTime > '${TIME:1d}'", is_default=True)

        reloaded = SavedFilterCollection(JsonFilterStore(path))
        assert reloaded.list() == first.list()
        assert reloaded.default().name == "recent"

        data = json.loads(path.read_text(encoding="utf-8"))
        assert data["saved_filters"][1] == {
            "name": "recent",
            "query": "StartTime > '${TIME:1d}'",
            "is_default": True,
        }
        assert [p.name for p in path.parent.iterdir()] == ["saved_filters.json"]

    def test_malformed_entries_skipped(self, tmp_path):
        path = tmp_path / "saved_filters.json"
        path.write_text(
            json.dumps({"saved_filters": [{"name": "a", "query": "q"}, {"query": "no name"}, "junk"]}),
            encoding="utf-8",
        )
        loaded = JsonFilterStore(path).load()
        assert loaded == [SavedFilter("a", "q", False)]

    def test_duplicate_defaults_repaired_on_load(self, tmp_path):
        path = tmp_path / "saved_filters.json"
        path.write_text(
            json.dumps({"saved_filters": [
                {"name": "a", "query": "q1", "is_default": True},
                {"name": "b", "query": "q2", "is_default": True},
            ]}),
            encoding="utf-8",
        )
        filters = SavedFilterCollection(JsonFilterStore(path))
        assert [f.name for f in filters.list() if f.is_default] == ["a"]

    def test_invalid_json_raises(self, tmp_path):
        path = tmp_path / "saved_filters.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(ValueError):
            JsonFilterStore(path).load()


def test_default_collection_uses_memory_store():
    filters = SavedFilterCollection()
    filters.save("a", "q")
    assert isinstance(filters.store, InMemoryFilterStore)
    assert filters.store.load()[0].name == "a"
