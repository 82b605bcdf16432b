"""Builders and in-memory fakes shared by engine and scorer tests."""

import asyncio
from collections.abc import Iterable, Mapping, Sequence
from datetime import timedelta
from typing import Any

import httpx

from feedrank.fetch.client import MastodonClient
from feedrank.fetch.config import FetchConfig
from feedrank.fetch.models import RetryPolicy
from feedrank.scorers.base import FeatureScorer, FeedScorer
from feedrank.timeline.models import Account, Status
from tests.helpers.time import FIXED_NOW


def make_account(acct: str = "alice", account_id: str = "1") -> Account:
    """Create a test account."""
    username = acct.split("@", 1)[0]
    return Account(id=account_id, username=username, acct=acct)


def make_status(
    status_id: str = "1",
    uri: str | None = None,
    acct: str = "alice",
    age: timedelta = timedelta(0),
    content: str = "<p>hello</p>",
    in_reply_to_id: str | None = None,
    reblogged: bool = False,
    reblog: Status | None = None,
) -> Status:
    """Create a test status created ``age`` before FIXED_NOW."""
    return Status(
        id=status_id,
        uri=uri or f"https://example.social/statuses/{status_id}",
        created_at=FIXED_NOW - age,
        content=content,
        in_reply_to_id=in_reply_to_id,
        reblogged=reblogged,
        account=make_account(acct),
        reblog=reblog,
    )


def status_json(
    status_id: str,
    acct: str = "alice",
    created_at: str = "2024-05-01T11:00:00.000Z",
    **extra: Any,
) -> dict[str, Any]:
    """Create a status as the Mastodon API renders it."""
    data: dict[str, Any] = {
        "id": status_id,
        "uri": f"https://example.social/users/{acct}/statuses/{status_id}",
        "created_at": created_at,
        "content": "<p>post</p>",
        "in_reply_to_id": None,
        "reblogged": False,
        "account": {"id": f"acc-{acct}", "username": acct.split("@")[0], "acct": acct},
        "reblog": None,
        "favourites_count": 0,
        "reblogs_count": 0,
        "replies_count": 0,
        "visibility": "public",
    }
    data.update(extra)
    return data


class StaticFetcher:
    """Fetcher returning fresh copies of a fixed status list."""

    def __init__(self, statuses: Sequence[Status | None], name: str = "static") -> None:
        self.name = name
        self._statuses = list(statuses)
        self.calls = 0

    async def __call__(self, api: Any, user: Account) -> list[Status | None]:
        self.calls += 1
        return [s.model_copy(deep=True) if s is not None else None for s in self._statuses]


class SharedFetcher:
    """Fetcher returning the very same status objects on every call."""

    def __init__(self, statuses: Sequence[Status], name: str = "shared") -> None:
        self.name = name
        self._statuses = list(statuses)

    async def __call__(self, api: Any, user: Account) -> list[Status]:
        return list(self._statuses)


class FailingFetcher:
    """Fetcher that always raises."""

    name = "failing"

    def __init__(self) -> None:
        self.calls = 0

    async def __call__(self, api: Any, user: Account) -> list[Status]:
        self.calls += 1
        raise RuntimeError("source unavailable")


class SlowFetcher:
    """Fetcher that never finishes within a short timeout."""

    name = "slow"

    async def __call__(self, api: Any, user: Account) -> list[Status]:
        await asyncio.sleep(10)
        return []


class TableFeatureScorer(FeatureScorer):
    """Feature scorer reading per-status scores from a table keyed by id."""

    verbose_name = "table"

    def __init__(
        self,
        table: Mapping[str, float],
        name: str | None = None,
        fail_feature: bool = False,
        fail_score: bool = False,
    ) -> None:
        super().__init__()
        self._table = dict(table)
        self._fail_feature = fail_feature
        self._fail_score = fail_score
        if name is not None:
            self.verbose_name = name  # type: ignore[misc]
        self.feature_calls = 0
        self.score_calls = 0

    async def compute_feature(self, api: Any) -> dict[str, float]:
        self.feature_calls += 1
        if self._fail_feature:
            raise RuntimeError("feature unavailable")
        return self._table

    async def score(self, api: Any, status: Status) -> float:
        self.score_calls += 1
        if self._fail_score:
            raise RuntimeError("cannot score")
        return float(self.feature.get(status.id, 0.0))


class TableFeedScorer(FeedScorer):
    """Feed scorer reading per-status scores from a table keyed by id."""

    verbose_name = "feedTable"

    def __init__(
        self,
        table: Mapping[str, float],
        name: str | None = None,
        fail_feed: bool = False,
    ) -> None:
        self._table = dict(table)
        self._fail_feed = fail_feed
        if name is not None:
            self.verbose_name = name  # type: ignore[misc]
        self.seen_feed: list[Status] = []
        self.set_feed_calls = 0
        self.score_calls = 0
        self.scored_before_feed = False

    async def set_feed(self, feed: Sequence[Status]) -> None:
        self.set_feed_calls += 1
        if self._fail_feed:
            raise RuntimeError("feed context unavailable")
        self.seen_feed = list(feed)

    async def score(self, status: Status) -> float:
        self.score_calls += 1
        if not self.set_feed_calls:
            self.scored_before_feed = True
        return self._table.get(status.id, 0.0)


class InMemoryWeightStore:
    """WeightStore keeping weights in a dict and counting lookups."""

    def __init__(self, weights: Mapping[str, float] | None = None) -> None:
        self.weights: dict[str, float] = dict(weights or {})
        self.get_calls = 0
        self.set_calls = 0

    async def get_weights_multi(self, names: Iterable[str]) -> dict[str, float]:
        self.get_calls += 1
        return {name: self.weights[name] for name in names if name in self.weights}

    async def set_weights_multi(self, weights: Mapping[str, float]) -> None:
        self.set_calls += 1
        self.weights.update(weights)


def account_json(
    acct: str, account_id: str | None = None, url: str | None = None
) -> dict[str, Any]:
    """Create an account as the Mastodon API renders it."""
    return {
        "id": account_id or f"acc-{acct}",
        "username": acct.split("@")[0],
        "acct": acct,
        "url": url,
    }


class FakeMastodon:
    """Routes mocked HTTP requests by ``(host, path)`` and records them."""

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], Any] = {}
        self.requests: list[httpx.Request] = []

    def add(self, host: str, path: str, response: Any) -> None:
        """Register a JSON body, an int status code or a request handler."""
        self.routes[(host, path)] = response

    def calls(self, host: str, path: str) -> int:
        """Count requests made to a route."""
        return sum(1 for r in self.requests if (r.url.host, r.url.path) == (host, path))

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get((request.url.host, request.url.path))
        if route is None:
            return httpx.Response(404, json={"error": "Record not found"})
        if callable(route):
            return route(request)
        if isinstance(route, int):
            return httpx.Response(route)
        return httpx.Response(200, json=route)

    def client(self, base_url: str = "https://home.example") -> MastodonClient:
        """Create a client talking to this fake."""
        return MastodonClient(
            base_url,
            access_token="secret",
            config=FetchConfig(
                retry_policy=RetryPolicy(max_retries=1, base_delay_ms=0, jitter_factor=0.0)
            ),
            transport=httpx.MockTransport(self.handler),
        )
