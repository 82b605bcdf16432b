"""Data models for the scoring engine."""

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field

from feedrank.settings.app import ScorerFailurePolicy


Combiner = Callable[[Mapping[str, float], Mapping[str, float]], float]
"""Folds a status's per-scorer scores and a weights snapshot into one value."""


def linear_weighted_sum(scores: Mapping[str, float], weights: Mapping[str, float]) -> float:
    """Combine scores as the sum of score times weight.

    Scorers without a weight contribute nothing.

    Args:
        scores: Scorer name to score.
        weights: Scorer name to weight.

    Returns:
        Weighted sum of the scores.
    """
    return sum(score * weights.get(name, 0.0) for name, score in scores.items())


@dataclass(frozen=True)
class ScorerFailure:
    """Record of a scorer removed from a pass.

    Attributes:
        scorer: Verbose name of the scorer.
        stage: Pipeline stage where it failed.
        error: Description of the failure.
    """

    scorer: str
    stage: str
    error: str


class PassReport(BaseModel):
    """Summary of one ranking or re-weighting pass.

    Attributes:
        pass_id: Identifier of the pass.
        rescored_only: True when only weights were re-applied.
        statuses_in: Candidate statuses produced by fetchers.
        statuses_out: Statuses in the final feed.
        filtered: Excluded status count per filter reason.
        duplicates_removed: Statuses dropped by uri deduplication.
        failed_fetchers: Names of fetchers that raised or timed out.
        excluded_scorers: Names of scorers removed from the pass.
        weights: Weights snapshot used for combining.
        duration_ms: Wall time of the pass.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    pass_id: str
    rescored_only: bool = False
    statuses_in: Annotated[int, Field(ge=0)] = 0
    statuses_out: Annotated[int, Field(ge=0)] = 0
    filtered: dict[str, int] = Field(default_factory=dict)
    duplicates_removed: Annotated[int, Field(ge=0)] = 0
    failed_fetchers: list[str] = Field(default_factory=list)
    excluded_scorers: list[str] = Field(default_factory=list)
    weights: dict[str, float] = Field(default_factory=dict)
    duration_ms: Annotated[float, Field(ge=0)] = 0.0


__all__ = [
    "Combiner",
    "PassReport",
    "ScorerFailure",
    "ScorerFailurePolicy",
    "linear_weighted_sum",
]
