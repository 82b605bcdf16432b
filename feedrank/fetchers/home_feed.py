"""Home timeline source."""

from datetime import UTC, datetime, timedelta

import structlog

from feedrank.fetch.client import MastodonClient
from feedrank.fetch.constants import MAX_PAGE_SIZE
from feedrank.fetch.models import FetchFailedError
from feedrank.settings.app import AppSettings
from feedrank.timeline.models import Account, Status


logger = structlog.get_logger()


class HomeFeedFetcher:
    """Pages through the user's home timeline.

    Stops after ``home_timeline_max_statuses`` statuses or at the first
    status older than ``home_timeline_lookback_hours``.
    """

    name = "home_feed"

    def __init__(self, settings: AppSettings, now: datetime | None = None) -> None:
        """Initialize the fetcher.

        Args:
            settings: Application settings.
            now: Fixed current time (defaults to the time of each call).
        """
        self._max_statuses = settings.home_timeline_max_statuses
        self._lookback = timedelta(hours=settings.home_timeline_lookback_hours)
        self._now = now

    async def __call__(self, api: MastodonClient, user: Account) -> list[Status]:
        """Fetch recent home timeline statuses, newest first."""
        log = logger.bind(component="fetchers", fetcher=self.name, account_id=user.id)
        cutoff = (self._now or datetime.now(UTC)) - self._lookback
        statuses: list[Status] = []
        max_id: str | None = None

        try:
            while len(statuses) < self._max_statuses:
                page = await api.home_timeline(limit=MAX_PAGE_SIZE, max_id=max_id)
                if not page:
                    break

                recent = [s for s in page if s.created_at >= cutoff]
                statuses.extend(recent)
                if len(recent) < len(page):
                    break
                max_id = page[-1].id
        except FetchFailedError as e:
            log.warning("fetcher_source_failed", error=str(e))
            return []

        statuses = statuses[: self._max_statuses]
        log.info("home_feed_fetched", statuses=len(statuses))
        return statuses
