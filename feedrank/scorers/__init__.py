"""Pluggable scorers and the reference implementations."""

from feedrank.scorers.base import FeatureScorer, FeedScorer, ScorerNotReadyError
from feedrank.scorers.feature import (
    FavsFeatureScorer,
    InteractsFeatureScorer,
    ReblogsFeatureScorer,
)
from feedrank.scorers.feed import DiversityFeedScorer, ReblogsFeedScorer


__all__ = [
    "DiversityFeedScorer",
    "FavsFeatureScorer",
    "FeatureScorer",
    "FeedScorer",
    "InteractsFeatureScorer",
    "ReblogsFeatureScorer",
    "ReblogsFeedScorer",
    "ScorerNotReadyError",
]
