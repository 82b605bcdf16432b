"""Reference feed scorers built on the current candidate list."""

from collections import Counter
from collections.abc import Sequence

from feedrank.scorers.base import FeedScorer
from feedrank.timeline.models import Status


class ReblogsFeedScorer(FeedScorer):
    """Counts how many candidates boost the same original status."""

    verbose_name = "reblogsFeed"

    def __init__(self) -> None:
        """Initialize with an empty feed."""
        self._boosts: Counter[str] = Counter()

    async def set_feed(self, feed: Sequence[Status]) -> None:
        self._boosts = Counter(s.original.uri for s in feed if s.reblog is not None)

    async def score(self, status: Status) -> float:
        return float(self._boosts.get(status.original.uri, 0))


class DiversityFeedScorer(FeedScorer):
    """Penalises authors that crowd the candidate list.

    The score is minus the number of candidates by the same original
    author, boosts counting for the boosted author as in the feature
    scorers. A single post from a quiet author outranks the tenth post
    from a busy one at equal weights.
    """

    verbose_name = "diversity"

    def __init__(self) -> None:
        """Initialize with an empty feed."""
        self._per_author: Counter[str] = Counter()

    async def set_feed(self, feed: Sequence[Status]) -> None:
        self._per_author = Counter(s.author_acct for s in feed)

    async def score(self, status: Status) -> float:
        return -float(self._per_author.get(status.author_acct, 0))
