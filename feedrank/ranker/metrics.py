"""Metrics collection for the ranker module."""

from dataclasses import dataclass, field
from typing import ClassVar


@dataclass
class RankerMetrics:
    """Metrics for scoring engine operations.

    Attributes:
        passes_total: Completed full passes.
        passes_failed: Passes that raised.
        rescores_total: Completed weight-only re-scorings.
        statuses_in: Candidate count of the last pass.
        statuses_out: Feed size of the last pass.
        filtered_by_reason: Excluded statuses per filter reason.
        duplicates_removed: Statuses dropped by uri deduplication.
        fetcher_failures: Failure count per fetcher name.
        scorer_exclusions: Exclusion count per scorer name.
        value_samples: Final values of the last pass for percentiles.
        pass_duration_ms: Duration of the last pass.
    """

    passes_total: int = 0
    passes_failed: int = 0
    rescores_total: int = 0
    statuses_in: int = 0
    statuses_out: int = 0
    filtered_by_reason: dict[str, int] = field(default_factory=dict)
    duplicates_removed: int = 0
    fetcher_failures: dict[str, int] = field(default_factory=dict)
    scorer_exclusions: dict[str, int] = field(default_factory=dict)
    value_samples: list[float] = field(default_factory=list)
    pass_duration_ms: float = 0.0

    _instance: ClassVar["RankerMetrics | None"] = None

    @classmethod
    def get_instance(cls) -> "RankerMetrics":
        """Get singleton metrics instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Reset metrics (primarily for testing)."""
        cls._instance = None

    def record_pass(
        self,
        statuses_in: int,
        values: list[float],
        duration_ms: float,
        rescored_only: bool = False,
    ) -> None:
        """Record a completed pass.

        Args:
            statuses_in: Candidate statuses entering the pass.
            values: Final values of the feed, in ranked order.
            duration_ms: Duration in milliseconds.
            rescored_only: Whether only weights were re-applied.
        """
        if rescored_only:
            self.rescores_total += 1
        else:
            self.passes_total += 1
        self.statuses_in = statuses_in
        self.statuses_out = len(values)
        self.value_samples = list(values)
        self.pass_duration_ms = duration_ms

    def record_pass_failed(self) -> None:
        """Record a pass that raised."""
        self.passes_failed += 1

    def record_filtered(self, reason: str, count: int = 1) -> None:
        """Record excluded statuses.

        Args:
            reason: Filter reason.
            count: Number excluded.
        """
        self.filtered_by_reason[reason] = self.filtered_by_reason.get(reason, 0) + count

    def record_duplicates(self, count: int) -> None:
        """Record statuses dropped by deduplication."""
        self.duplicates_removed += count

    def record_fetcher_failure(self, fetcher: str) -> None:
        """Record a failed fetcher."""
        self.fetcher_failures[fetcher] = self.fetcher_failures.get(fetcher, 0) + 1

    def record_scorer_exclusion(self, scorer: str) -> None:
        """Record a scorer removed from a pass."""
        self.scorer_exclusions[scorer] = self.scorer_exclusions.get(scorer, 0) + 1

    def get_value_percentiles(self) -> dict[str, float]:
        """Calculate final value percentiles (p50/p90/p99).

        Returns:
            Dictionary with p50, p90, p99 values.
        """
        if not self.value_samples:
            return {"p50": 0.0, "p90": 0.0, "p99": 0.0}

        sorted_values = sorted(self.value_samples)
        n = len(sorted_values)

        def percentile(p: float) -> float:
            idx = int(p * n / 100)
            return sorted_values[min(idx, n - 1)]

        return {
            "p50": percentile(50),
            "p90": percentile(90),
            "p99": percentile(99),
        }

    def to_dict(self) -> dict[str, object]:
        """Convert metrics to dictionary.

        Returns:
            Dictionary of metric name to value.
        """
        return {
            "passes_total": self.passes_total,
            "passes_failed": self.passes_failed,
            "rescores_total": self.rescores_total,
            "statuses_in": self.statuses_in,
            "statuses_out": self.statuses_out,
            "filtered_by_reason": self.filtered_by_reason,
            "duplicates_removed": self.duplicates_removed,
            "fetcher_failures": self.fetcher_failures,
            "scorer_exclusions": self.scorer_exclusions,
            "pass_duration_ms": self.pass_duration_ms,
            "value_percentiles": self.get_value_percentiles(),
        }
