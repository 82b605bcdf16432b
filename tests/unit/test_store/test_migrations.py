"""Unit tests for schema migrations."""

import sqlite3
from collections.abc import Generator

import pytest

from feedrank.store.errors import MigrationError
from feedrank.store.migrations import (
    CURRENT_VERSION,
    MIGRATIONS,
    MigrationManager,
    get_migrations_to_apply,
)


@pytest.fixture
def temp_db() -> Generator[sqlite3.Connection]:
    """Create a temporary in-memory database."""
    conn = sqlite3.connect(":memory:")
    yield conn
    conn.close()


def _table_exists(conn: sqlite3.Connection, name: str) -> bool:
    cursor = conn.execute(
        "SELECT name FROM sqlite_master WHERE type='table' AND name=?", (name,)
    )
    return cursor.fetchone() is not None


class TestMigrationConstants:
    """Tests for migration constants."""

    def test_current_version_positive(self) -> None:
        """Test current version is positive."""
        assert CURRENT_VERSION > 0

    def test_migrations_in_order(self) -> None:
        """Test migrations are in ascending version order."""
        versions = [m.version for m in MIGRATIONS]
        assert versions == sorted(versions)

    def test_migrations_have_sql(self) -> None:
        """Every migration carries a script."""
        for migration in MIGRATIONS:
            assert migration.sql.strip()

    def test_current_version_matches_latest_migration(self) -> None:
        """Test current version matches the latest migration."""
        assert MIGRATIONS[-1].version == CURRENT_VERSION


class TestGetMigrationsToApply:
    """Tests for get_migrations_to_apply function."""

    def test_from_zero(self) -> None:
        """Test getting all migrations from version 0."""
        assert len(get_migrations_to_apply(0)) == len(MIGRATIONS)

    def test_from_current(self) -> None:
        """Test no migrations when at current version."""
        assert get_migrations_to_apply(CURRENT_VERSION) == []


class TestMigrationManager:
    """Tests for MigrationManager."""

    def test_get_current_version_zero_when_empty(
        self, temp_db: sqlite3.Connection
    ) -> None:
        """Test version is 0 when no migrations applied."""
        assert MigrationManager(temp_db).get_current_version() == 0

    def test_apply_migrations_creates_kv_table(self, temp_db: sqlite3.Connection) -> None:
        """Test applying all migrations creates the key-value table."""
        manager = MigrationManager(temp_db)

        applied = manager.apply_migrations()

        assert applied == [m.version for m in MIGRATIONS]
        assert manager.get_current_version() == CURRENT_VERSION
        assert _table_exists(temp_db, "kv_store")

    def test_apply_migrations_idempotent(self, temp_db: sqlite3.Connection) -> None:
        """Test applying migrations twice is idempotent."""
        manager = MigrationManager(temp_db)
        manager.apply_migrations()

        assert manager.apply_migrations() == []
        assert manager.get_current_version() == CURRENT_VERSION

    def test_newer_schema_refused(self, temp_db: sqlite3.Connection) -> None:
        """A database written by a newer release is not migrated."""
        manager = MigrationManager(temp_db)
        manager.apply_migrations()
        temp_db.execute(
            "INSERT INTO schema_version (version, applied_at, description) VALUES (?, ?, ?)",
            (CURRENT_VERSION + 1, "2024-05-01T12:00:00+00:00", "future"),
        )
        temp_db.commit()

        with pytest.raises(MigrationError) as exc_info:
            manager.apply_migrations()

        assert exc_info.value.version == CURRENT_VERSION + 1
