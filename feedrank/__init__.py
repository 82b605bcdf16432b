"""Personalized ranking of Mastodon timeline statuses."""

from feedrank.ranker.engine import ScoringEngine
from feedrank.ranker.models import PassReport, ScorerFailurePolicy
from feedrank.timeline.models import Account, Status


__all__ = [
    "Account",
    "PassReport",
    "ScorerFailurePolicy",
    "ScoringEngine",
    "Status",
]
