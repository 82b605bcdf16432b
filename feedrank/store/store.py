"""SQLite key-value store implementation."""

import json
import sqlite3
import time
import uuid
from collections.abc import Generator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any

import structlog

from feedrank.store.errors import ConnectionError as StoreConnectionError
from feedrank.store.migrations import CURRENT_VERSION, MigrationManager


logger = structlog.get_logger()

MEMORY_DB = ":memory:"


@dataclass(frozen=True)
class StoredValue:
    """A decoded value together with its last write time."""

    value: Any
    updated_at: datetime

    def age(self, now: datetime | None = None) -> timedelta:
        """Get how long ago the value was written."""
        return (now or datetime.now(UTC)) - self.updated_at


class KeyValueStore:
    """SQLite store mapping string keys to JSON documents.

    Holds the user identity, weight maps and cached account features.
    Uses WAL mode for reliability and supports schema migrations.
    """

    def __init__(self, db_path: Path | str) -> None:
        """Initialize the store.

        Args:
            db_path: Path to SQLite database file, or ":memory:".
        """
        self._db_path = db_path if db_path == MEMORY_DB else Path(db_path)
        self._conn: sqlite3.Connection | None = None
        self._log = logger.bind(component="store", db_path=str(self._db_path))

    @property
    def is_connected(self) -> bool:
        """Check if connected to database."""
        return self._conn is not None

    def connect(self) -> None:
        """Open connection to database and apply migrations.

        Creates the database file and parent directories if they don't exist.
        """
        if self._conn is not None:
            return

        if isinstance(self._db_path, Path):
            self._db_path.parent.mkdir(parents=True, exist_ok=True)

        self._conn = sqlite3.connect(str(self._db_path))
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute("PRAGMA synchronous=NORMAL")

        migration_mgr = MigrationManager(self._conn)
        old_version = migration_mgr.get_current_version()
        applied = migration_mgr.apply_migrations()

        self._log.info(
            "database_connected",
            old_version=old_version,
            new_version=CURRENT_VERSION,
            migrations_applied=applied,
        )

    def close(self) -> None:
        """Close the database connection."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None
            self._log.debug("database_closed")

    def __enter__(self) -> "KeyValueStore":
        """Context manager entry."""
        self.connect()
        return self

    def __exit__(
        self,
        exc_type: type | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        """Context manager exit."""
        self.close()

    def _ensure_connected(self) -> sqlite3.Connection:
        """Ensure database is connected.

        Raises:
            StoreConnectionError: If not connected.
        """
        if self._conn is None:
            raise StoreConnectionError("Database not connected. Call connect() first.")
        return self._conn

    @contextmanager
    def _transaction(self, operation: str) -> Generator[sqlite3.Connection]:
        """Context manager for transactions with timing and logging.

        Args:
            operation: Name of the operation for logging.

        Yields:
            The open connection.
        """
        conn = self._ensure_connected()
        tx_id = str(uuid.uuid4())[:8]
        start_ns = time.perf_counter_ns()

        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            self._log.error("transaction_failed", tx_id=tx_id, op=operation)
            raise

        self._log.debug(
            "transaction_complete",
            tx_id=tx_id,
            op=operation,
            duration_ms=round((time.perf_counter_ns() - start_ns) / 1_000_000, 2),
        )

    # ===== Values =====

    def get_entry(self, key: str) -> StoredValue | None:
        """Get a value and its write time.

        Args:
            key: Fully qualified key.

        Returns:
            The stored value, or None if the key is absent.
        """
        conn = self._ensure_connected()
        row = conn.execute(
            "SELECT value_json, updated_at FROM kv_store WHERE key = ?",
            (key,),
        ).fetchone()

        if row is None:
            return None

        return StoredValue(
            value=json.loads(row["value_json"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )

    def get_json(self, key: str, max_age: timedelta | None = None) -> Any:
        """Get a decoded value.

        Args:
            key: Fully qualified key.
            max_age: Treat values older than this as absent.

        Returns:
            The decoded value, or None if absent or expired.
        """
        entry = self.get_entry(key)
        if entry is None:
            return None
        if max_age is not None and entry.age() > max_age:
            self._log.debug("value_expired", key=key, age_s=entry.age().total_seconds())
            return None
        return entry.value

    def set_json(self, key: str, value: Any) -> None:
        """Insert or replace a value.

        Args:
            key: Fully qualified key.
            value: JSON-serializable value.
        """
        payload = json.dumps(value, sort_keys=True, ensure_ascii=False)
        with self._transaction("set_json") as conn:
            conn.execute(
                """
                INSERT INTO kv_store (key, value_json, updated_at)
                VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET
                    value_json = excluded.value_json,
                    updated_at = excluded.updated_at
                """,
                (key, payload, datetime.now(UTC).isoformat()),
            )

    def delete(self, key: str) -> bool:
        """Delete a value.

        Args:
            key: Fully qualified key.

        Returns:
            True if a value was deleted.
        """
        with self._transaction("delete") as conn:
            cursor = conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))
            return cursor.rowcount > 0

    def keys(self, prefix: str = "") -> list[str]:
        """List stored keys, optionally restricted to a prefix."""
        conn = self._ensure_connected()
        cursor = conn.execute(
            "SELECT key FROM kv_store WHERE substr(key, 1, ?) = ? ORDER BY key",
            (len(prefix), prefix),
        )
        return [row["key"] for row in cursor.fetchall()]

    def get_schema_version(self) -> int:
        """Get current schema version."""
        return MigrationManager(self._ensure_connected()).get_current_version()
