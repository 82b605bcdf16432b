"""Errors raised by the scoring engine."""

from collections.abc import Iterable


class FeedRankError(Exception):
    """Base exception for ranking errors."""


class RankingPassError(FeedRankError):
    """Raised when a ranking pass cannot complete.

    The engine keeps its previously cached feed when this is raised.
    """

    def __init__(self, stage: str, failures: dict[str, str]) -> None:
        """Initialize the error.

        Args:
            stage: Pipeline stage that failed (get_feature, set_feed, score).
            failures: Scorer name to error description.
        """
        self.stage = stage
        self.failures = failures
        names = ", ".join(sorted(failures))
        super().__init__(f"Ranking pass failed during {stage}: {names}")


class DuplicateScorerError(FeedRankError):
    """Raised when two active scorers share a verbose name."""

    def __init__(self, names: Iterable[str]) -> None:
        """Initialize the error.

        Args:
            names: Verbose names used more than once.
        """
        self.names = sorted(names)
        super().__init__(f"Duplicate scorer names: {', '.join(self.names)}")
