"""Scoring engine: combines pluggable scorers into a ranked, decayed feed."""

from feedrank.ranker.decay import apply_time_decay, decay_factor
from feedrank.ranker.engine import ScoringEngine
from feedrank.ranker.errors import DuplicateScorerError, FeedRankError, RankingPassError
from feedrank.ranker.filters import (
    FilterReason,
    dedup_by_uri,
    filter_statuses,
    sort_by_value,
)
from feedrank.ranker.metrics import RankerMetrics
from feedrank.ranker.models import (
    Combiner,
    PassReport,
    ScorerFailure,
    ScorerFailurePolicy,
    linear_weighted_sum,
)
from feedrank.ranker.state_machine import (
    PassState,
    PassStateMachine,
    PassStateTransitionError,
)


__all__ = [
    "Combiner",
    "DuplicateScorerError",
    "FeedRankError",
    "FilterReason",
    "PassReport",
    "PassState",
    "PassStateMachine",
    "PassStateTransitionError",
    "RankerMetrics",
    "RankingPassError",
    "ScorerFailure",
    "ScorerFailurePolicy",
    "ScoringEngine",
    "apply_time_decay",
    "decay_factor",
    "dedup_by_uri",
    "filter_statuses",
    "linear_weighted_sum",
    "sort_by_value",
]
