"""Unit tests for the SQLite key-value store."""

from collections.abc import Generator
from datetime import timedelta
from pathlib import Path

import pytest

from feedrank.store.errors import ConnectionError as StoreConnectionError
from feedrank.store.migrations import CURRENT_VERSION
from feedrank.store.store import KeyValueStore


@pytest.fixture
def kv(tmp_path: Path) -> Generator[KeyValueStore]:
    """Create a connected store in a temporary directory."""
    store = KeyValueStore(tmp_path / "state.sqlite")
    store.connect()
    yield store
    store.close()


class TestConnection:
    """Tests for store connection and setup."""

    def test_connect_creates_parent_dirs(self, tmp_path: Path) -> None:
        """Connecting creates the database file and its directories."""
        db_path = tmp_path / "nested" / "dir" / "state.sqlite"

        with KeyValueStore(db_path) as store:
            assert store.is_connected

        assert db_path.exists()
        assert not store.is_connected

    def test_schema_version(self, kv: KeyValueStore) -> None:
        """Migrations are applied on connect."""
        assert kv.get_schema_version() == CURRENT_VERSION

    def test_memory_database(self) -> None:
        """The in-memory database works without touching disk."""
        with KeyValueStore(":memory:") as store:
            store.set_json("k", 1)
            assert store.get_json("k") == 1

    def test_use_before_connect_raises(self, tmp_path: Path) -> None:
        """Operations need an open connection."""
        store = KeyValueStore(tmp_path / "state.sqlite")

        with pytest.raises(StoreConnectionError):
            store.get_json("k")


class TestValues:
    """Tests for get/set/delete."""

    def test_round_trip_nested_json(self, kv: KeyValueStore) -> None:
        """Nested JSON values are stored and decoded."""
        value = {"favs": 2.5, "names": ["a", "b"], "nested": {"x": None}}

        kv.set_json("42_weights", value)

        assert kv.get_json("42_weights") == value

    def test_missing_key(self, kv: KeyValueStore) -> None:
        """Absent keys read as None."""
        assert kv.get_json("nope") is None
        assert kv.get_entry("nope") is None

    def test_overwrite(self, kv: KeyValueStore) -> None:
        """Setting a key twice keeps the last value."""
        kv.set_json("k", {"a": 1})
        kv.set_json("k", {"a": 2})

        assert kv.get_json("k") == {"a": 2}
        assert kv.keys() == ["k"]

    def test_max_age_expires_value(self, kv: KeyValueStore) -> None:
        """Values older than max_age read as None."""
        kv.set_json("k", 1)

        assert kv.get_json("k", max_age=timedelta(hours=1)) == 1
        assert kv.get_json("k", max_age=timedelta(seconds=-1)) is None

    def test_delete(self, kv: KeyValueStore) -> None:
        """Deleting reports whether something was removed."""
        kv.set_json("k", 1)

        assert kv.delete("k") is True
        assert kv.delete("k") is False
        assert kv.get_json("k") is None

    def test_keys_by_prefix(self, kv: KeyValueStore) -> None:
        """keys() filters by prefix and sorts."""
        for key in ["42_favs", "7_favs", "42_weights", "algouser"]:
            kv.set_json(key, 0)

        assert kv.keys("42_") == ["42_favs", "42_weights"]
        assert len(kv.keys()) == 4

    def test_persists_across_connections(self, tmp_path: Path) -> None:
        """Values survive closing and reopening the database."""
        db_path = tmp_path / "state.sqlite"
        with KeyValueStore(db_path) as store:
            store.set_json("k", [1, 2, 3])

        with KeyValueStore(db_path) as store:
            assert store.get_json("k") == [1, 2, 3]
