"""Fetcher interface."""

from typing import Protocol, runtime_checkable

from feedrank.fetch.client import MastodonClient
from feedrank.timeline.models import Account, Status


@runtime_checkable
class Fetcher(Protocol):
    """Protocol for candidate status sources.

    A fetcher should not raise: on remote failure it logs and returns an
    empty list so that other sources still contribute to the feed.
    """

    async def __call__(self, api: MastodonClient, user: Account) -> list[Status]:
        """Fetch candidate statuses for a user.

        Args:
            api: Client for the user's instance.
            user: Account the feed is ranked for.

        Returns:
            Candidate statuses in source order.
        """
        ...


def fetcher_name(fetcher: object) -> str:
    """Get a readable name for logs and pass reports."""
    name = getattr(fetcher, "name", None) or getattr(fetcher, "__name__", None)
    return str(name) if name else type(fetcher).__name__
