"""Trending statuses from the servers most of the user's follows live on."""

import asyncio

import structlog

from feedrank.features.store import FeatureStore
from feedrank.fetch.client import MastodonClient
from feedrank.fetch.models import FetchFailedError
from feedrank.settings.app import AppSettings
from feedrank.timeline.models import Account, Status


logger = structlog.get_logger()


class TopPostsFetcher:
    """Collects trending statuses from the user's core servers.

    The top ``trending_servers_limit`` servers by followed-account count
    are asked concurrently; each contributes at most
    ``trending_statuses_per_server`` statuses, marked as top posts.
    """

    name = "top_posts"

    def __init__(self, features: FeatureStore, settings: AppSettings) -> None:
        """Initialize the fetcher.

        Args:
            features: Feature store providing core servers.
            settings: Application settings.
        """
        self._features = features
        self._servers_limit = settings.trending_servers_limit
        self._per_server = settings.trending_statuses_per_server

    async def __call__(self, api: MastodonClient, user: Account) -> list[Status]:
        """Fetch trending statuses from the user's core servers."""
        log = logger.bind(component="fetchers", fetcher=self.name, account_id=user.id)

        try:
            core_servers = await self._features.core_servers(api)
        except FetchFailedError as e:
            log.warning("core_servers_unavailable", error=str(e))
            return []

        servers = sorted(core_servers, key=lambda s: core_servers[s], reverse=True)
        servers = servers[: self._servers_limit]

        results = await asyncio.gather(
            *(self._fetch_server(api, server, log) for server in servers)
        )
        statuses = [status for batch in results for status in batch]

        log.info("top_posts_fetched", servers=len(servers), statuses=len(statuses))
        return statuses

    async def _fetch_server(
        self,
        api: MastodonClient,
        server: str,
        log: structlog.stdlib.BoundLogger,
    ) -> list[Status]:
        if not server.strip():
            return []

        try:
            trending = await api.trending_statuses(server, limit=self._per_server)
        except FetchFailedError as e:
            log.warning("trending_server_failed", server=server, error=str(e))
            return []

        top = trending[: self._per_server]
        for status in top:
            status.top_post = True
        return top
