"""Unit tests for the trending posts fetcher."""

from collections.abc import Generator

import pytest

from feedrank.features.store import FeatureStore
from feedrank.fetchers.top_posts import TopPostsFetcher
from feedrank.settings.app import AppSettings
from feedrank.store.keys import StorageKey
from feedrank.store.scoped import UserScopedStorage
from feedrank.store.store import KeyValueStore
from tests.helpers.factories import FakeMastodon, account_json, make_account, status_json


TRENDS = "/api/v1/trends/statuses"
FOLLOWING = "/api/v1/accounts/42/following"


@pytest.fixture
def storage() -> Generator[UserScopedStorage]:
    """Create storage scoped to the test user."""
    with KeyValueStore(":memory:") as kv:
        yield UserScopedStorage(kv, make_account("me", "42"))


def _make_fetcher(storage: UserScopedStorage, **overrides: object) -> TopPostsFetcher:
    settings = AppSettings(**overrides)
    return TopPostsFetcher(FeatureStore(storage, settings), settings)


class TestTopPostsFetcher:
    """Tests for TopPostsFetcher."""

    @pytest.mark.asyncio
    async def test_collects_from_core_servers(self, storage: UserScopedStorage) -> None:
        """Trending statuses come from servers hosting followed accounts."""
        fake = FakeMastodon()
        fake.add(
            "home.example",
            FOLLOWING,
            [
                account_json("a@one.example"),
                account_json("b@one.example"),
                account_json("c@two.example"),
                account_json("local"),
            ],
        )
        fake.add("one.example", TRENDS, [status_json(f"one-{i}") for i in range(12)])
        fake.add("two.example", TRENDS, 500)
        fake.add("home.example", TRENDS, [status_json("home-0")])
        fetcher = _make_fetcher(storage)

        async with fake.client() as api:
            statuses = await fetcher(api, make_account("me", "42"))

        ids = [s.id for s in statuses]
        assert ids == [f"one-{i}" for i in range(10)] + ["home-0"]
        assert all(s.top_post for s in statuses)

    @pytest.mark.asyncio
    async def test_limits_server_count(self, storage: UserScopedStorage) -> None:
        """Only the busiest servers are asked."""
        fake = FakeMastodon()
        fake.add(
            "home.example",
            FOLLOWING,
            [
                account_json("a@big.example"),
                account_json("b@big.example"),
                account_json("c@small.example"),
            ],
        )
        fake.add("big.example", TRENDS, [status_json("big")])
        fake.add("small.example", TRENDS, [status_json("small")])
        fetcher = _make_fetcher(storage, trending_servers_limit=1)

        async with fake.client() as api:
            statuses = await fetcher(api, make_account("me", "42"))

        assert [s.id for s in statuses] == ["big"]
        assert fake.calls("small.example", TRENDS) == 0

    @pytest.mark.asyncio
    async def test_core_servers_unavailable(self, storage: UserScopedStorage) -> None:
        """Without the follow list there is nothing to fetch."""
        fake = FakeMastodon()
        fake.add("home.example", FOLLOWING, 403)
        fetcher = _make_fetcher(storage)

        async with fake.client() as api:
            assert await fetcher(api, make_account("me", "42")) == []

    @pytest.mark.asyncio
    async def test_blank_server_skipped(self, storage: UserScopedStorage) -> None:
        """Cached blank server names are never requested."""
        await storage.set(StorageKey.CORE_SERVER, {" ": 5, "one.example": 1})
        fake = FakeMastodon()
        fake.add("one.example", TRENDS, [status_json("x")])
        fetcher = _make_fetcher(storage)

        async with fake.client() as api:
            statuses = await fetcher(api, make_account("me", "42"))

        assert [s.id for s in statuses] == ["x"]
        assert len(fake.requests) == 1
