"""Unit tests for ranker models and errors."""

import pytest
from pydantic import ValidationError

from feedrank.ranker.errors import DuplicateScorerError, FeedRankError, RankingPassError
from feedrank.ranker.models import PassReport, linear_weighted_sum


class TestLinearWeightedSum:
    """Tests for the default combiner."""

    def test_weighted_sum(self) -> None:
        """Scores are multiplied by weights and summed."""
        assert linear_weighted_sum({"a": 0.8, "b": 0.3}, {"a": 0.6, "b": 0.4}) == pytest.approx(
            0.6
        )

    def test_missing_weight_is_zero(self) -> None:
        """Scores without a weight contribute nothing."""
        assert linear_weighted_sum({"a": 5.0, "b": 7.0}, {"a": 1.0}) == 5.0

    def test_extra_weights_ignored(self) -> None:
        """Weights without a score do nothing."""
        assert linear_weighted_sum({"a": 1.0}, {"a": 2.0, "z": 100.0}) == 2.0

    def test_empty_scores(self) -> None:
        """No scores give zero."""
        assert linear_weighted_sum({}, {"a": 1.0}) == 0


class TestPassReport:
    """Tests for PassReport."""

    def test_defaults(self) -> None:
        """Only the pass id is required."""
        report = PassReport(pass_id="p1")

        assert report.statuses_in == 0
        assert report.failed_fetchers == []
        assert report.rescored_only is False

    def test_frozen(self) -> None:
        """Reports cannot be modified."""
        report = PassReport(pass_id="p1")

        with pytest.raises(ValidationError):
            report.statuses_out = 3  # type: ignore[misc]

    def test_negative_counts_rejected(self) -> None:
        """Counts are non-negative."""
        with pytest.raises(ValidationError):
            PassReport(pass_id="p1", statuses_in=-1)


class TestErrors:
    """Tests for engine errors."""

    def test_hierarchy(self) -> None:
        """Engine errors share a base class."""
        assert issubclass(RankingPassError, FeedRankError)
        assert issubclass(DuplicateScorerError, FeedRankError)

    def test_ranking_pass_error_message(self) -> None:
        """The message names the stage and scorers."""
        error = RankingPassError("score", {"b": "boom", "a": "bang"})

        assert error.stage == "score"
        assert str(error) == "Ranking pass failed during score: a, b"

    def test_duplicate_scorer_error_sorted(self) -> None:
        """Duplicate names are reported sorted."""
        error = DuplicateScorerError(["z", "a"])
        assert error.names == ["a", "z"]
