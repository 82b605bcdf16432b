"""Scorer interfaces.

Two capabilities exist side by side:

- FeatureScorer: scores a status from account-level data computed once per
  ranking pass by ``get_feature``.
- FeedScorer: scores a status from feed-wide context built once per pass by
  ``set_feed`` over the whole candidate list.
"""

from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Any, ClassVar

from feedrank.fetch.client import MastodonClient
from feedrank.timeline.models import Status


class ScorerNotReadyError(Exception):
    """Raised when a scorer is asked to score before its precomputation ran."""

    def __init__(self, verbose_name: str) -> None:
        """Initialize the error.

        Args:
            verbose_name: Name of the scorer that is not ready.
        """
        self.verbose_name = verbose_name
        super().__init__(f"Scorer '{verbose_name}' has no precomputed data for this pass")


class FeatureScorer(ABC):
    """Scorer backed by account-level precomputed data."""

    verbose_name: ClassVar[str]

    def __init__(self) -> None:
        """Initialize the scorer with no precomputed data."""
        self._feature: Any = None
        self._ready = False

    async def get_feature(self, api: MastodonClient) -> Any:
        """Compute this pass's account-level data.

        A failure leaves the scorer not ready, so it can never score a
        status from stale or partial data.

        Args:
            api: Client for the user's instance.

        Returns:
            The precomputed data.
        """
        self._ready = False
        self._feature = await self.compute_feature(api)
        self._ready = True
        return self._feature

    @property
    def feature(self) -> Any:
        """Get the precomputed data.

        Raises:
            ScorerNotReadyError: If ``get_feature`` has not completed.
        """
        if not self._ready:
            raise ScorerNotReadyError(self.verbose_name)
        return self._feature

    @abstractmethod
    async def compute_feature(self, api: MastodonClient) -> Any:
        """Build the account-level data this scorer reads."""

    @abstractmethod
    async def score(self, api: MastodonClient, status: Status) -> float:
        """Score one status from the precomputed data."""


class FeedScorer(ABC):
    """Scorer backed by context built from the whole candidate list."""

    verbose_name: ClassVar[str]

    def get_verbose_name(self) -> str:
        """Get the name joining this scorer's output to its weight."""
        return self.verbose_name

    @abstractmethod
    async def set_feed(self, feed: Sequence[Status]) -> None:
        """Build feed-wide context for this pass."""

    @abstractmethod
    async def score(self, status: Status) -> float:
        """Score one status against the feed-wide context."""
