"""Cached account-level features used by scorers and fetchers."""

from collections import Counter
from collections.abc import Awaitable, Callable
from datetime import timedelta

import structlog

from feedrank.fetch.client import MastodonClient
from feedrank.settings.app import AppSettings
from feedrank.store.keys import StorageKey
from feedrank.store.scoped import UserScopedStorage


logger = structlog.get_logger()

FeatureCounts = dict[str, int]


class FeatureStore:
    """Computes and caches per-user account features.

    Each feature is a count keyed by account ``acct`` (or by server for
    core servers). Values are cached under the user's storage keys and
    recomputed once older than ``feature_cache_ttl_hours``.
    """

    def __init__(self, storage: UserScopedStorage, settings: AppSettings) -> None:
        """Initialize the feature store.

        Args:
            storage: Storage scoped to the user the features describe.
            settings: Application settings.
        """
        self._storage = storage
        self._sample_size = settings.feature_sample_size
        self._max_age = timedelta(hours=settings.feature_cache_ttl_hours)
        self._log = logger.bind(component="features", account_id=storage.identity.id)

    async def _cached(
        self,
        key: StorageKey,
        compute: Callable[[], Awaitable[FeatureCounts]],
    ) -> FeatureCounts:
        cached = await self._storage.get(key, max_age=self._max_age)
        if cached is not None:
            self._log.debug("feature_cache_hit", feature=key.value)
            return {str(k): int(v) for k, v in cached.items()}

        counts = await compute()
        await self._storage.set(key, counts)
        self._log.info("feature_computed", feature=key.value, entries=len(counts))
        return counts

    async def top_favs(self, api: MastodonClient) -> FeatureCounts:
        """Count the user's recent favourites per author."""

        async def compute() -> FeatureCounts:
            favourites = await api.favourites(limit=self._sample_size)
            return dict(Counter(status.author_acct for status in favourites))

        return await self._cached(StorageKey.TOP_FAVS, compute)

    async def top_reblogs(self, api: MastodonClient) -> FeatureCounts:
        """Count the user's recent boosts per original author."""

        async def compute() -> FeatureCounts:
            statuses = await api.account_statuses(
                self._storage.identity.id, limit=self._sample_size
            )
            return dict(
                Counter(s.reblog.account.acct for s in statuses if s.reblog is not None)
            )

        return await self._cached(StorageKey.TOP_REBLOGS, compute)

    async def top_interacts(self, api: MastodonClient) -> FeatureCounts:
        """Count recent notifications per sending account."""

        async def compute() -> FeatureCounts:
            notifications = await api.notifications(limit=self._sample_size)
            return dict(Counter(n.account.acct for n in notifications))

        return await self._cached(StorageKey.TOP_INTERACTS, compute)

    async def core_servers(self, api: MastodonClient) -> FeatureCounts:
        """Count followed accounts per home server."""

        async def compute() -> FeatureCounts:
            following = await api.following(
                self._storage.identity.id, limit=self._sample_size
            )
            servers = (account.server(default=api.host) for account in following)
            return dict(Counter(server for server in servers if server))

        return await self._cached(StorageKey.CORE_SERVER, compute)
