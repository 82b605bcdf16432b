"""SQLite schema migrations for the key-value store."""

import sqlite3
from dataclasses import dataclass
from datetime import UTC, datetime

import structlog

from feedrank.store.errors import MigrationError


logger = structlog.get_logger()

CURRENT_VERSION = 1


@dataclass(frozen=True)
class Migration:
    """One forward step of the schema.

    Attributes:
        version: Schema version after the step.
        description: Recorded in ``schema_version``.
        sql: Script creating or altering tables.
    """

    version: int
    description: str
    sql: str


MIGRATIONS: list[Migration] = [
    Migration(
        version=1,
        description="Key-value table for identity, weights and cached features",
        sql="""
CREATE TABLE IF NOT EXISTS kv_store (
    key TEXT PRIMARY KEY,
    value_json TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
""",
    ),
]


def get_migrations_to_apply(current_version: int) -> list[Migration]:
    """Get the migrations newer than ``current_version``, oldest first."""
    return sorted(
        (m for m in MIGRATIONS if m.version > current_version),
        key=lambda m: m.version,
    )


class MigrationManager:
    """Brings a connection's schema up to ``CURRENT_VERSION``.

    Applied versions are recorded in a ``schema_version`` table, so a
    database written by a newer release is refused instead of being
    silently misread.
    """

    def __init__(self, connection: sqlite3.Connection) -> None:
        """Initialize the migration manager.

        Args:
            connection: SQLite connection to migrate.
        """
        self._conn = connection
        self._log = logger.bind(component="store", operation="migration")

    def get_current_version(self) -> int:
        """Get the highest applied version, 0 for a fresh database."""
        self._conn.execute(
            """
            CREATE TABLE IF NOT EXISTS schema_version (
                version INTEGER PRIMARY KEY,
                applied_at TEXT NOT NULL,
                description TEXT
            )
            """
        )
        self._conn.commit()
        (version,) = self._conn.execute("SELECT MAX(version) FROM schema_version").fetchone()
        return version or 0

    def apply_migrations(self) -> list[int]:
        """Apply pending migrations in order.

        Returns:
            Versions applied by this call.

        Raises:
            MigrationError: If the database is newer than this release or a
                migration script fails.
        """
        current = self.get_current_version()
        if current > CURRENT_VERSION:
            raise MigrationError(
                current, f"database schema is newer than supported version {CURRENT_VERSION}"
            )

        applied: list[int] = []
        for migration in get_migrations_to_apply(current):
            self._apply(migration)
            applied.append(migration.version)

        if applied:
            self._log.info("schema_migrated", from_version=current, applied=applied)
        return applied

    def _apply(self, migration: Migration) -> None:
        try:
            self._conn.executescript(migration.sql)
            self._conn.execute(
                "INSERT INTO schema_version (version, applied_at, description) VALUES (?, ?, ?)",
                (migration.version, datetime.now(UTC).isoformat(), migration.description),
            )
            self._conn.commit()
        except sqlite3.Error as e:
            self._conn.rollback()
            self._log.error("migration_failed", version=migration.version, error=str(e))
            raise MigrationError(migration.version, str(e)) from e
