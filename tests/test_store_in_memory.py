"""Tests for the in-memory analysis store and the store factory."""

from __future__ import annotations

from typing import Any

import pytest

from mfa.analysis.record import AnalysisRecord
from mfa.persistence.store import (
    SAVED_FIELDS,
    AnalysisNotFoundError,
    AnalysisStore,
    InMemoryAnalysisStore,
    SqlAnalysisStore,
    StoreError,
    clear_in_memory_store,
    get_analysis_store,
)


def _document(record_id: str, created_at: str | None = None) -> dict[str, Any]:
    document = AnalysisRecord.new(f"Analysis {record_id}").to_document()
    document["id"] = record_id
    document["created_at"] = created_at
    return document


class TestInMemoryStore:
    """CRUD on the in-memory store."""

    def test_create_and_load(self, store: InMemoryAnalysisStore) -> None:
        """A created document loads back with a created_at stamp."""
        created = store.create(_document("a"))

        loaded = store.load("a")

        assert loaded == created
        assert loaded["created_at"].endswith("Z")

    def test_create_keeps_given_created_at(self, store: InMemoryAnalysisStore) -> None:
        """An explicit created_at is preserved."""
        store.create(_document("a", "2025-12-31T23:59:59Z"))

        assert store.load("a")["created_at"] == "2025-12-31T23:59:59Z"

    def test_duplicate_id_rejected(self, store: InMemoryAnalysisStore) -> None:
        """Creating the same id twice raises StoreError."""
        store.create(_document("a"))

        with pytest.raises(StoreError):
            store.create(_document("a"))

    def test_load_missing(self, store: InMemoryAnalysisStore) -> None:
        """Unknown ids raise AnalysisNotFoundError."""
        with pytest.raises(AnalysisNotFoundError) as exc_info:
            store.load("missing")

        assert exc_info.value.record_id == "missing"

    def test_save_overwrites_saved_fields_only(self, store: InMemoryAnalysisStore) -> None:
        """save() replaces the saved fields and keeps id and created_at."""
        store.create(_document("a", "2026-01-01T00:00:00Z"))
        payload = {name: None for name in SAVED_FIELDS}
        payload.update(name="Renamed", attributes=[], scenarios=[], results=[])

        store.save("a", payload)
        loaded = store.load("a")

        assert loaded["name"] == "Renamed"
        assert loaded["attributes"] == []
        assert loaded["created_at"] == "2026-01-01T00:00:00Z"
        assert loaded["id"] == "a"

    def test_save_requires_every_field(self, store: InMemoryAnalysisStore) -> None:
        """A partial payload raises StoreError."""
        store.create(_document("a"))

        with pytest.raises(StoreError, match="missing fields"):
            store.save("a", {"attributes": []})

    def test_save_missing_record(self, store: InMemoryAnalysisStore) -> None:
        """Saving an unknown id raises AnalysisNotFoundError."""
        payload = {name: None for name in SAVED_FIELDS}

        with pytest.raises(AnalysisNotFoundError):
            store.save("missing", payload)

    def test_documents_are_copied(self, store: InMemoryAnalysisStore) -> None:
        """Mutating a returned document does not affect the store."""
        store.create(_document("a"))

        loaded = store.load("a")
        loaded["attributes"].clear()

        assert len(store.load("a")["attributes"]) == 6

    def test_delete(self, store: InMemoryAnalysisStore) -> None:
        """Deleted documents are gone; deleting twice raises."""
        store.create(_document("a"))

        store.delete("a")

        with pytest.raises(AnalysisNotFoundError):
            store.load("a")
        with pytest.raises(AnalysisNotFoundError):
            store.delete("a")

    def test_list_newest_first(self, store: InMemoryAnalysisStore) -> None:
        """list() orders by created_at descending, then id."""
        store.create(_document("old", "2026-01-01T00:00:00Z"))
        store.create(_document("new", "2026-03-01T00:00:00Z"))
        store.create(_document("b-mid", "2026-02-01T00:00:00Z"))
        store.create(_document("a-mid", "2026-02-01T00:00:00Z"))

        ids = [d["id"] for d in store.list()]

        assert ids == ["new", "a-mid", "b-mid", "old"]

    def test_list_limit(self, store: InMemoryAnalysisStore) -> None:
        """list() returns at most ``limit`` documents."""
        for index in range(5):
            store.create(_document(f"r{index}", f"2026-01-0{index + 1}T00:00:00Z"))

        assert [d["id"] for d in store.list(limit=2)] == ["r4", "r3"]

    def test_satisfies_protocol(self, store: InMemoryAnalysisStore) -> None:
        """The in-memory store implements AnalysisStore."""
        assert isinstance(store, AnalysisStore)


class TestStoreFactory:
    """get_analysis_store() selection."""

    def test_in_memory_without_database_url(self) -> None:
        """Without MFA_DATABASE_URL the shared in-memory store is returned."""
        first = get_analysis_store()
        second = get_analysis_store()

        assert isinstance(first, InMemoryAnalysisStore)
        assert first is second

    def test_clear_in_memory_store(self) -> None:
        """clear_in_memory_store() empties the shared store."""
        shared = get_analysis_store()
        shared.create(_document("a"))

        clear_in_memory_store()

        assert shared.list() == []

    def test_sql_with_database_url(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """With MFA_DATABASE_URL set the SQL store is returned with its table."""
        monkeypatch.setenv("MFA_DATABASE_URL", "sqlite+pysqlite:///:memory:")

        store = get_analysis_store()

        assert isinstance(store, SqlAnalysisStore)
        assert store.list() == []
