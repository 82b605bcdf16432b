"""Reference feature scorers built on the user's account activity."""

from feedrank.features.store import FeatureCounts, FeatureStore
from feedrank.fetch.client import MastodonClient
from feedrank.scorers.base import FeatureScorer
from feedrank.timeline.models import Status


class AccountCountScorer(FeatureScorer):
    """Scores a status by how often the user engaged with its original author."""

    def __init__(self, features: FeatureStore) -> None:
        """Initialize the scorer.

        Args:
            features: Feature store providing account counts.
        """
        super().__init__()
        self._features = features

    async def score(self, api: MastodonClient, status: Status) -> float:
        counts: FeatureCounts = self.feature
        return float(counts.get(status.author_acct, 0))


class FavsFeatureScorer(AccountCountScorer):
    """Favourites the user gave to the author."""

    verbose_name = "favs"

    async def compute_feature(self, api: MastodonClient) -> FeatureCounts:
        return await self._features.top_favs(api)


class ReblogsFeatureScorer(AccountCountScorer):
    """Boosts the user gave to the author."""

    verbose_name = "reblogs"

    async def compute_feature(self, api: MastodonClient) -> FeatureCounts:
        return await self._features.top_reblogs(api)


class InteractsFeatureScorer(AccountCountScorer):
    """Notifications the user received from the author."""

    verbose_name = "interacts"

    async def compute_feature(self, api: MastodonClient) -> FeatureCounts:
        return await self._features.top_interacts(api)
