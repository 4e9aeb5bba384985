"""Analysis stores.

The engine's only external boundary. Two implementations share the
AnalysisStore protocol:
- SqlAnalysisStore: SQLAlchemy Core, works on PostgreSQL and SQLite
- InMemoryAnalysisStore: process-local fallback for development and tests

Documents are plain JSON-compatible dicts:
    {id, name, description, attributes, scenarios, matrix, results,
     weight_source, created_at, updated_at}
"""

from __future__ import annotations

import copy
import json
import logging
import threading
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from mfa.persistence.db import get_engine, is_database_configured

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger(__name__)

DEFAULT_LIST_LIMIT = 50

SAVED_FIELDS: tuple[str, ...] = (
    "name",
    "description",
    "attributes",
    "scenarios",
    "matrix",
    "results",
    "weight_source",
    "updated_at",
)

_JSON_COLUMNS: tuple[str, ...] = ("attributes", "scenarios", "matrix", "results", "weight_source")


class StoreError(Exception):
    """Raised when the store cannot complete an operation.

    Recoverable: callers keep their in-memory state and retry later.
    """


class AnalysisNotFoundError(Exception):
    """Raised when an analysis does not exist in the store."""

    def __init__(self, record_id: str) -> None:
        self.record_id = record_id
        super().__init__(f"Analysis {record_id} not found")


@runtime_checkable
class AnalysisStore(Protocol):
    """Persistence boundary for analysis documents."""

    def create(self, document: dict[str, Any]) -> dict[str, Any]:
        """Insert a new document and return it as stored."""
        ...

    def load(self, record_id: str) -> dict[str, Any]:
        """Return the stored document. Raises AnalysisNotFoundError."""
        ...

    def save(self, record_id: str, payload: dict[str, Any]) -> None:
        """Overwrite the SAVED_FIELDS of an existing document."""
        ...

    def delete(self, record_id: str) -> None:
        """Remove a document. Raises AnalysisNotFoundError."""
        ...

    def list(self, limit: int = DEFAULT_LIST_LIMIT) -> list[dict[str, Any]]:
        """Return documents, newest first."""
        ...


def utc_now_iso() -> str:
    """Current UTC time as ISO-8601 with a Z suffix."""
    return datetime.now(UTC).isoformat().replace("+00:00", "Z")


def _saved_subset(payload: dict[str, Any]) -> dict[str, Any]:
    missing = [name for name in SAVED_FIELDS if name not in payload]
    if missing:
        raise StoreError(f"Save payload missing fields: {missing}")
    return {name: payload[name] for name in SAVED_FIELDS}


class SqlAnalysisStore:
    """SQLAlchemy-backed store over the ``analyses`` table.

    JSON fields are stored as text so the same statements run on PostgreSQL
    and SQLite. Every call runs in its own transaction; any SQLAlchemy
    failure is raised as StoreError.
    """

    _CREATE_TABLE_SQL = """
        CREATE TABLE IF NOT EXISTS analyses (
            id VARCHAR(64) PRIMARY KEY,
            name TEXT NOT NULL,
            description TEXT,
            attributes TEXT NOT NULL,
            scenarios TEXT NOT NULL,
            matrix TEXT,
            results TEXT NOT NULL,
            weight_source TEXT,
            created_at VARCHAR(40) NOT NULL,
            updated_at VARCHAR(40)
        )
    """

    _COLUMNS = (
        "id, name, description, attributes, scenarios, matrix, results, "
        "weight_source, created_at, updated_at"
    )

    def __init__(self, engine: Engine | None = None) -> None:
        """Initialize the store.

        Args:
            engine: SQLAlchemy engine. Defaults to the engine configured via
                MFA_DATABASE_URL.
        """
        self._engine = engine if engine is not None else get_engine()

    def ensure_schema(self) -> None:
        """Create the analyses table if it does not exist."""
        try:
            with self._engine.begin() as conn:
                conn.execute(text(self._CREATE_TABLE_SQL))
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to create analyses table: {e}") from e
        logger.info("Ensured analyses table exists")

    def create(self, document: dict[str, Any]) -> dict[str, Any]:
        stored = dict(document)
        stored.setdefault("description", None)
        stored.setdefault("matrix", None)
        stored.setdefault("weight_source", None)
        stored.setdefault("updated_at", None)
        stored["created_at"] = stored.get("created_at") or utc_now_iso()

        params = self._to_params(stored)
        try:
            with self._engine.begin() as conn:
                conn.execute(
                    text(
                        f"INSERT INTO analyses ({self._COLUMNS}) VALUES ("
                        ":id, :name, :description, :attributes, :scenarios, :matrix, "
                        ":results, :weight_source, :created_at, :updated_at)"
                    ),
                    params,
                )
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to create analysis {stored.get('id')}: {e}") from e

        logger.info("Created analysis %s", stored["id"])
        return copy.deepcopy(stored)

    def load(self, record_id: str) -> dict[str, Any]:
        try:
            with self._engine.begin() as conn:
                row = conn.execute(
                    text(f"SELECT {self._COLUMNS} FROM analyses WHERE id = :id"),
                    {"id": record_id},
                ).fetchone()
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to load analysis {record_id}: {e}") from e

        if row is None:
            raise AnalysisNotFoundError(record_id)
        return self._row_to_dict(row)

    def save(self, record_id: str, payload: dict[str, Any]) -> None:
        params = self._to_params(_saved_subset(payload))
        params["id"] = record_id
        try:
            with self._engine.begin() as conn:
                result = conn.execute(
                    text(
                        """
                        UPDATE analyses
                        SET name = :name,
                            description = :description,
                            attributes = :attributes,
                            scenarios = :scenarios,
                            matrix = :matrix,
                            results = :results,
                            weight_source = :weight_source,
                            updated_at = :updated_at
                        WHERE id = :id
                        """
                    ),
                    params,
                )
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to save analysis {record_id}: {e}") from e

        if result.rowcount == 0:
            raise AnalysisNotFoundError(record_id)
        logger.debug("Saved analysis %s", record_id)

    def delete(self, record_id: str) -> None:
        try:
            with self._engine.begin() as conn:
                result = conn.execute(
                    text("DELETE FROM analyses WHERE id = :id"),
                    {"id": record_id},
                )
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to delete analysis {record_id}: {e}") from e

        if result.rowcount == 0:
            raise AnalysisNotFoundError(record_id)
        logger.info("Deleted analysis %s", record_id)

    def list(self, limit: int = DEFAULT_LIST_LIMIT) -> list[dict[str, Any]]:
        effective_limit = max(1, limit)
        try:
            with self._engine.begin() as conn:
                rows = conn.execute(
                    text(
                        f"SELECT {self._COLUMNS} FROM analyses "
                        "ORDER BY created_at DESC, id ASC LIMIT :limit"
                    ),
                    {"limit": effective_limit},
                ).fetchall()
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to list analyses: {e}") from e
        return [self._row_to_dict(row) for row in rows]

    def _to_params(self, values: dict[str, Any]) -> dict[str, Any]:
        params = dict(values)
        for column in _JSON_COLUMNS:
            if column in params and params[column] is not None:
                params[column] = json.dumps(params[column], separators=(",", ":"))
        return params

    def _row_to_dict(self, row: Any) -> dict[str, Any]:
        """Convert a database row to a document dict."""
        document = dict(row._mapping)
        for column in _JSON_COLUMNS:
            value = document.get(column)
            if isinstance(value, str):
                try:
                    document[column] = json.loads(value)
                except json.JSONDecodeError as e:
                    raise StoreError(
                        f"Stored column {column} of analysis {document.get('id')} is not JSON"
                    ) from e
        return document


class InMemoryAnalysisStore:
    """In-memory store for when no database is configured.

    Documents are deep-copied on the way in and out so callers never share
    state with the store.
    """

    def __init__(self) -> None:
        self._documents: dict[str, dict[str, Any]] = {}
        self._lock = threading.Lock()

    def create(self, document: dict[str, Any]) -> dict[str, Any]:
        stored = copy.deepcopy(document)
        stored.setdefault("description", None)
        stored.setdefault("matrix", None)
        stored.setdefault("weight_source", None)
        stored.setdefault("updated_at", None)
        stored["created_at"] = stored.get("created_at") or utc_now_iso()
        with self._lock:
            if stored["id"] in self._documents:
                raise StoreError(f"Analysis {stored['id']} already exists")
            self._documents[stored["id"]] = stored
        logger.info("Created analysis %s", stored["id"])
        return copy.deepcopy(stored)

    def load(self, record_id: str) -> dict[str, Any]:
        with self._lock:
            document = self._documents.get(record_id)
            if document is None:
                raise AnalysisNotFoundError(record_id)
            return copy.deepcopy(document)

    def save(self, record_id: str, payload: dict[str, Any]) -> None:
        update = copy.deepcopy(_saved_subset(payload))
        with self._lock:
            document = self._documents.get(record_id)
            if document is None:
                raise AnalysisNotFoundError(record_id)
            document.update(update)

    def delete(self, record_id: str) -> None:
        with self._lock:
            if self._documents.pop(record_id, None) is None:
                raise AnalysisNotFoundError(record_id)
        logger.info("Deleted analysis %s", record_id)

    def list(self, limit: int = DEFAULT_LIST_LIMIT) -> list[dict[str, Any]]:
        with self._lock:
            documents = sorted(self._documents.values(), key=lambda d: d["id"])
            documents.sort(key=lambda d: d["created_at"], reverse=True)
            return [copy.deepcopy(d) for d in documents[: max(1, limit)]]

    def clear(self) -> None:
        """Remove every document. For testing only."""
        with self._lock:
            self._documents.clear()


_in_memory_store = InMemoryAnalysisStore()


def clear_in_memory_store() -> None:
    """Clear the process-wide in-memory store. For testing only."""
    _in_memory_store.clear()


def get_analysis_store() -> SqlAnalysisStore | InMemoryAnalysisStore:
    """Factory for the configured store.

    Returns the SQL store when MFA_DATABASE_URL is set, otherwise the
    process-wide in-memory store.
    """
    if is_database_configured():
        store = SqlAnalysisStore()
        store.ensure_schema()
        return store
    return _in_memory_store
