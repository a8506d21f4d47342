"""SQLite persistence layer for the combat tracker.

Stores every record kind in one table as a JSON payload, keyed by kind,
id and encounter. Transient lock errors are retried with tenacity before
a PersistenceError is raised.

Storage location: configured by COMBAT_TRACKER_STORAGE_DATABASE_PATH.
"""

from __future__ import annotations

import json
import sqlite3
from collections.abc import Callable, Generator
from contextlib import contextmanager
from pathlib import Path
from typing import Any, TypeVar

from pydantic import BaseModel
from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from combat_tracker.core.config import Settings, get_settings
from combat_tracker.core.exceptions import ConfigurationError, PersistenceError
from combat_tracker.core.logging import get_logger
from combat_tracker.storage.record_store import (
    ENCOUNTER_KIND,
    InMemoryRecordStore,
    RecordStore,
    RecordT,
    encounter_key,
    record_kind,
)

logger = get_logger(__name__)

ResultT = TypeVar("ResultT")


def _log_retry(retry_state: RetryCallState) -> None:
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    logger.warning(
        "Database busy, retrying",
        attempt=retry_state.attempt_number,
        error=str(exc),
    )


def _payload(record: BaseModel) -> str:
    """Serialize a record without its id and derived fields."""
    exclude = {"id", *type(record).model_computed_fields}
    return record.model_dump_json(exclude=exclude)


# =============================================================================
# SQLite Record Store
# =============================================================================


class SqliteRecordStore:
    """SQLite database implementing the RecordStore protocol.

    Every operation opens its own connection, commits on success and
    rolls back on error.
    """

    SCHEMA_VERSION = 1

    def __init__(self, db_path: str | Path, *, max_retries: int = 3) -> None:
        """Initialize database.

        Args:
            db_path: Path to the database file. ':memory:' is not supported
                because each operation opens a new connection.
            max_retries: Attempts made on a locked database.
        """
        self.db_path = Path(db_path)
        self.max_retries = max_retries

        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._run("init", "schema", None, self._init_schema)

        logger.info("Database initialized", path=str(self.db_path))

    @contextmanager
    def _get_connection(self) -> Generator[sqlite3.Connection, None, None]:
        """Get a database connection with proper cleanup."""
        conn = sqlite3.connect(str(self.db_path), timeout=5.0)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _init_schema(self) -> None:
        """Initialize database schema."""
        with self._get_connection() as conn:
            cursor = conn.cursor()

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS schema_version (
                    version INTEGER PRIMARY KEY
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS records (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    kind TEXT NOT NULL,
                    encounter_id INTEGER NOT NULL DEFAULT 0,
                    payload TEXT NOT NULL
                )
            """)

            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_records_kind_encounter
                ON records(kind, encounter_id)
            """)

            cursor.execute("""
                INSERT OR REPLACE INTO schema_version (version) VALUES (?)
            """, (self.SCHEMA_VERSION,))

    def _run(
        self,
        operation: str,
        kind: str,
        record_id: int | None,
        func: Callable[[], ResultT],
    ) -> ResultT:
        """Run a database operation, retrying while the database is locked.

        Raises:
            PersistenceError: If the operation still fails after all attempts,
                or a stored payload cannot be decoded.
        """
        retrying = Retrying(
            retry=retry_if_exception_type(sqlite3.OperationalError),
            stop=stop_after_attempt(self.max_retries),
            wait=wait_exponential(multiplier=0.1, min=0.1, max=2),
            before_sleep=_log_retry,
            reraise=True,
        )
        try:
            return retrying(func)
        except (sqlite3.Error, ValueError) as exc:
            logger.error(
                "Database operation failed",
                operation=operation,
                kind=kind,
                record_id=record_id,
                error=str(exc),
            )
            raise PersistenceError(
                f"Failed to {operation} {kind} record: {exc}",
                record_type=kind,
                record_id=record_id,
                operation=operation,
            ) from exc

    @staticmethod
    def _from_row(record_type: type[RecordT], row: sqlite3.Row) -> RecordT:
        data: dict[str, Any] = json.loads(row["payload"])
        data["id"] = row["id"]
        return record_type.model_validate(data)

    # =========================================================================
    # RecordStore Operations
    # =========================================================================

    def get(self, record_type: type[RecordT], record_id: int) -> RecordT | None:
        """Load a record by id.

        Returns:
            The record if found, None otherwise.
        """
        kind = record_kind(record_type)

        def query() -> RecordT | None:
            with self._get_connection() as conn:
                cursor = conn.cursor()
                cursor.execute(
                    "SELECT id, payload FROM records WHERE kind = ? AND id = ?",
                    (kind, record_id),
                )
                row = cursor.fetchone()
                return self._from_row(record_type, row) if row else None

        return self._run("get", kind, record_id, query)

    def save(self, record: BaseModel) -> int:
        """Insert a record with id 0, otherwise update it.

        Returns:
            The record id.
        """
        kind = record_kind(type(record))
        record_id: int = getattr(record, "id", 0)
        payload = _payload(record)

        def write() -> int:
            with self._get_connection() as conn:
                cursor = conn.cursor()
                if record_id:
                    cursor.execute("""
                        INSERT OR REPLACE INTO records (id, kind, encounter_id, payload)
                        VALUES (?, ?, ?, ?)
                    """, (record_id, kind, encounter_key(record, record_id), payload))
                    return record_id

                cursor.execute(
                    "INSERT INTO records (kind, encounter_id, payload) VALUES (?, ?, ?)",
                    (kind, encounter_key(record, 0), payload),
                )
                new_id = int(cursor.lastrowid or 0)
                if kind == ENCOUNTER_KIND:
                    cursor.execute(
                        "UPDATE records SET encounter_id = ? WHERE id = ?",
                        (new_id, new_id),
                    )
                return new_id

        saved_id = self._run("save", kind, record_id or None, write)
        logger.debug("Record saved", kind=kind, record_id=saved_id)
        return saved_id

    def delete(self, record_type: type[BaseModel], record_id: int) -> bool:
        """Delete a record.

        Returns:
            True if deleted, False if not found.
        """
        kind = record_kind(record_type)

        def remove() -> bool:
            with self._get_connection() as conn:
                cursor = conn.cursor()
                cursor.execute(
                    "DELETE FROM records WHERE kind = ? AND id = ?",
                    (kind, record_id),
                )
                return cursor.rowcount > 0

        deleted = self._run("delete", kind, record_id, remove)
        if deleted:
            logger.debug("Record deleted", kind=kind, record_id=record_id)
        return deleted

    def list_by_encounter(self, record_type: type[RecordT], encounter_id: int) -> list[RecordT]:
        """Load every record of a kind belonging to an encounter, in id order."""
        kind = record_kind(record_type)

        def query() -> list[RecordT]:
            with self._get_connection() as conn:
                cursor = conn.cursor()
                cursor.execute("""
                    SELECT id, payload FROM records
                    WHERE kind = ? AND encounter_id = ?
                    ORDER BY id
                """, (kind, encounter_id))
                return [self._from_row(record_type, row) for row in cursor.fetchall()]

        return self._run("list", kind, None, query)

    def count(self, record_type: type[BaseModel] | None = None) -> int:
        """Get the number of stored records, optionally of one kind."""

        def query() -> int:
            with self._get_connection() as conn:
                cursor = conn.cursor()
                if record_type is None:
                    cursor.execute("SELECT COUNT(*) FROM records")
                else:
                    cursor.execute(
                        "SELECT COUNT(*) FROM records WHERE kind = ?",
                        (record_kind(record_type),),
                    )
                return int(cursor.fetchone()[0])

        return self._run("count", record_kind(record_type) if record_type else "any", None, query)


# =============================================================================
# Factory
# =============================================================================


def create_record_store(settings: Settings | None = None) -> RecordStore:
    """Create the record store selected by configuration.

    Args:
        settings: Settings to read. Defaults to the application settings.

    Returns:
        A new record store.

    Raises:
        ConfigurationError: If the configured backend is unknown.
    """
    storage = (settings or get_settings()).storage
    if storage.backend == "memory":
        return InMemoryRecordStore()
    if storage.backend == "sqlite":
        return SqliteRecordStore(storage.database_path, max_retries=storage.max_retries)
    raise ConfigurationError(
        f"Unknown storage backend: {storage.backend}",
        config_key="storage.backend",
    )


__all__ = [
    "SqliteRecordStore",
    "create_record_store",
]
