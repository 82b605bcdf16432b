"""Scoring engine: fetch, score, combine, decay, filter, sort and dedup."""

import asyncio
import math
import time
import uuid
from collections import Counter
from collections.abc import Awaitable, Callable, Mapping, Sequence
from datetime import UTC, datetime
from typing import Any

import structlog

from feedrank.features.store import FeatureStore
from feedrank.fetch.client import MastodonClient
from feedrank.fetchers.base import Fetcher, fetcher_name
from feedrank.fetchers.home_feed import HomeFeedFetcher
from feedrank.fetchers.top_posts import TopPostsFetcher
from feedrank.observability.logging import bind_run_context, clear_run_context
from feedrank.ranker.decay import apply_time_decay
from feedrank.ranker.errors import DuplicateScorerError, RankingPassError
from feedrank.ranker.filters import FilterReason, dedup_by_uri, filter_statuses, sort_by_value
from feedrank.ranker.metrics import RankerMetrics
from feedrank.ranker.models import (
    Combiner,
    PassReport,
    ScorerFailure,
    linear_weighted_sum,
)
from feedrank.ranker.state_machine import PassStateMachine
from feedrank.scorers.base import FeatureScorer, FeedScorer
from feedrank.scorers.feature import (
    FavsFeatureScorer,
    InteractsFeatureScorer,
    ReblogsFeatureScorer,
)
from feedrank.scorers.feed import DiversityFeedScorer, ReblogsFeedScorer
from feedrank.settings.app import AppSettings, ScorerFailurePolicy
from feedrank.store.scoped import IdentityStore, UserScopedStorage
from feedrank.store.store import KeyValueStore
from feedrank.store.weights import UserWeightStore, WeightsMap, WeightStore
from feedrank.timeline.models import Account, Status


logger = structlog.get_logger()

Clock = Callable[[], datetime]

# Marks a scorer call that failed or timed out
_FAILED = object()


def _utcnow() -> datetime:
    return datetime.now(UTC)


class ScoringEngine:
    """Ranks candidate statuses for one user.

    A pass runs every fetcher concurrently, lets each scorer precompute its
    data once, scores every candidate with every scorer concurrently,
    combines the scores with one weights snapshot, applies the recency
    penalty and finally filters, sorts and deduplicates the candidates.
    The result replaces the cached feed only when the whole pass succeeds.

    At most one pass per engine is in flight at a time.
    """

    def __init__(
        self,
        api: MastodonClient,
        user: Account,
        weight_store: WeightStore,
        fetchers: Sequence[Fetcher] = (),
        feature_scorers: Sequence[FeatureScorer] = (),
        feed_scorers: Sequence[FeedScorer] = (),
        combiner: Combiner | None = None,
        settings: AppSettings | None = None,
        clock: Clock | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            api: Client for the user's instance, handed to fetchers and scorers.
            user: Account the feed is ranked for.
            weight_store: Persistent weights of the user.
            fetchers: Candidate sources, in registration order.
            feature_scorers: Scorers backed by account-level data.
            feed_scorers: Scorers backed by feed-wide context.
            combiner: Folds scores and weights into a value (default: weighted sum).
            settings: Application settings (timeouts, failure policy).
            clock: Source of the current time for the recency penalty.
        """
        settings = settings or AppSettings()
        self.api = api
        self.user = user
        self.weight_store = weight_store
        self.fetchers: list[Fetcher] = list(fetchers)
        self.feature_scorers: list[FeatureScorer] = list(feature_scorers)
        self.feed_scorers: list[FeedScorer] = list(feed_scorers)
        self.combiner: Combiner = combiner or linear_weighted_sum
        self.failure_policy = settings.scorer_failure_policy
        self._fetcher_timeout = settings.fetcher_timeout_seconds
        self._scorer_timeout = settings.scorer_timeout_seconds
        self._clock = clock or _utcnow
        self._lock = asyncio.Lock()
        self._feed: list[Status] = []
        self._last_report: PassReport | None = None
        self._metrics = RankerMetrics.get_instance()
        self._log = logger.bind(component="ranker", account_id=user.id)

    @classmethod
    async def create(
        cls,
        api: MastodonClient,
        user: Account,
        kv: KeyValueStore,
        settings: AppSettings | None = None,
        combiner: Combiner | None = None,
        clock: Clock | None = None,
    ) -> "ScoringEngine":
        """Build an engine with the reference fetchers and scorers.

        The user is recorded as the current identity before anything else
        touches storage, so every key the engine writes is scoped to them.

        Args:
            api: Client for the user's instance.
            user: Account the feed is ranked for.
            kv: Key-value store holding identity, weights and features.
            settings: Application settings.
            combiner: Optional custom combiner.
            clock: Optional clock.

        Returns:
            Ready-to-use engine.
        """
        settings = settings or AppSettings()
        identity_store = IdentityStore(kv)
        await identity_store.set_identity(user)
        storage: UserScopedStorage = await identity_store.scoped()
        features = FeatureStore(storage, settings)

        return cls(
            api,
            user,
            UserWeightStore(storage),
            fetchers=[HomeFeedFetcher(settings), TopPostsFetcher(features, settings)],
            feature_scorers=[
                FavsFeatureScorer(features),
                ReblogsFeatureScorer(features),
                InteractsFeatureScorer(features),
            ],
            feed_scorers=[ReblogsFeedScorer(), DiversityFeedScorer()],
            combiner=combiner,
            settings=settings,
            clock=clock,
        )

    # ===== Public API =====

    @property
    def feed(self) -> list[Status]:
        """Get the feed produced by the last successful pass."""
        return list(self._feed)

    @property
    def last_report(self) -> PassReport | None:
        """Get the report of the last successful pass, if any."""
        return self._last_report

    @property
    def scorer_names(self) -> list[str]:
        """Get the verbose names of all registered scorers."""
        return [s.verbose_name for s in self.feature_scorers] + [
            s.get_verbose_name() for s in self.feed_scorers
        ]

    async def get_feed(self) -> list[Status]:
        """Run a full ranking pass and return the ranked feed.

        Raises:
            DuplicateScorerError: If two registered scorers share a name.
            RankingPassError: If a scorer fails under the FAIL policy.
        """
        async with self._lock:
            return await self._run_pass()

    async def get_feed_advanced(
        self,
        fetchers: Sequence[Fetcher],
        feature_scorers: Sequence[FeatureScorer],
        feed_scorers: Sequence[FeedScorer],
    ) -> list[Status]:
        """Replace fetchers and scorers, then run a full pass.

        Args:
            fetchers: New candidate sources.
            feature_scorers: New feature scorers.
            feed_scorers: New feed scorers.

        Returns:
            Ranked feed.
        """
        async with self._lock:
            self.fetchers = list(fetchers)
            self.feature_scorers = list(feature_scorers)
            self.feed_scorers = list(feed_scorers)
            return await self._run_pass()

    async def get_weights(self) -> WeightsMap:
        """Get the stored weights of every registered scorer."""
        return await self.weight_store.get_weights_multi(self.scorer_names)

    async def set_weights(self, weights: Mapping[str, float]) -> list[Status]:
        """Persist weights and re-rank the cached feed without refetching.

        Cached per-status scores are recombined with the new weights and
        multiplied by the recency penalty recorded when they were ranked.
        If any cached status has no scores a full pass runs instead.

        Args:
            weights: Scorer name to weight.

        Returns:
            Re-ranked feed.
        """
        async with self._lock:
            await self.weight_store.set_weights_multi(weights)

            if any(status.scores is None for status in self._feed):
                self._log.info("cached_scores_missing", statuses=len(self._feed))
                return await self._run_pass()

            return await self._rescore()

    # ===== Passes =====

    async def _run_pass(self) -> list[Status]:
        self._check_unique_names()

        pass_id = uuid.uuid4().hex[:12]
        bind_run_context(pass_id, self.user.id)
        machine = PassStateMachine(pass_id)
        start_ns = time.perf_counter_ns()

        self._log.info(
            "pass_started",
            fetchers=len(self.fetchers),
            scorers=self.scorer_names,
            policy=self.failure_policy.value,
        )

        try:
            candidates, dropped_missing, failed_fetchers = await self._fetch_all()
            machine.to_fetched()

            failures: dict[str, ScorerFailure] = {}
            await self._prepare(candidates, failures)
            machine.to_prepared()

            await self._score_all(candidates, failures)
            machine.to_scored()

            active = [name for name in self.scorer_names if name not in failures]
            weights = await self.weight_store.get_weights_multi(active)
            for status in candidates:
                status.value = self.combiner(status.scores or {}, weights)
            apply_time_decay(candidates, self._clock())

            kept, filtered = filter_statuses(candidates)
            filtered[FilterReason.MISSING] += dropped_missing
            ranked = sort_by_value(kept)
            feed = dedup_by_uri(ranked)
            machine.to_ranked()
        except Exception:
            machine.to_failed()
            self._metrics.record_pass_failed()
            self._log.warning("pass_failed", state=machine.state.value)
            clear_run_context()
            raise

        duration_ms = (time.perf_counter_ns() - start_ns) / 1_000_000
        report = PassReport(
            pass_id=pass_id,
            statuses_in=len(candidates) + dropped_missing,
            statuses_out=len(feed),
            filtered={reason.value: count for reason, count in filtered.items() if count},
            duplicates_removed=len(ranked) - len(feed),
            failed_fetchers=failed_fetchers,
            excluded_scorers=sorted(failures),
            weights=weights,
            duration_ms=round(duration_ms, 2),
        )
        self._commit(feed, report)
        clear_run_context()
        return self.feed

    async def _rescore(self) -> list[Status]:
        pass_id = uuid.uuid4().hex[:12]
        bind_run_context(pass_id, self.user.id)
        try:
            machine = PassStateMachine(pass_id)
            start_ns = time.perf_counter_ns()

            names = sorted({name for status in self._feed for name in status.scores or {}})
            weights = await self.weight_store.get_weights_multi(names)

            rescored = [status.model_copy() for status in self._feed]
            for status in rescored:
                decay = status.time_decay if status.time_decay is not None else 1.0
                status.value = self.combiner(status.scores or {}, weights) * decay
            machine.to_scored()
            feed = sort_by_value(rescored)
            machine.to_ranked()

            duration_ms = (time.perf_counter_ns() - start_ns) / 1_000_000
            report = PassReport(
                pass_id=pass_id,
                rescored_only=True,
                statuses_in=len(rescored),
                statuses_out=len(feed),
                weights=weights,
                duration_ms=round(duration_ms, 2),
            )
            self._commit(feed, report)
        finally:
            clear_run_context()
        return self.feed

    def _commit(self, feed: list[Status], report: PassReport) -> None:
        self._feed = feed
        self._last_report = report

        self._metrics.record_pass(
            statuses_in=report.statuses_in,
            values=[status.value or 0.0 for status in feed],
            duration_ms=report.duration_ms,
            rescored_only=report.rescored_only,
        )
        for reason, count in report.filtered.items():
            self._metrics.record_filtered(reason, count)
        self._metrics.record_duplicates(report.duplicates_removed)

        self._log.info(
            "pass_complete",
            rescored_only=report.rescored_only,
            statuses_in=report.statuses_in,
            statuses_out=report.statuses_out,
            filtered=report.filtered,
            duplicates_removed=report.duplicates_removed,
            failed_fetchers=report.failed_fetchers,
            excluded_scorers=report.excluded_scorers,
            duration_ms=report.duration_ms,
        )

    def _check_unique_names(self) -> None:
        counts = Counter(self.scorer_names)
        duplicates = [name for name, count in counts.items() if count > 1]
        if duplicates:
            raise DuplicateScorerError(duplicates)

    # ===== Stages =====

    async def _fetch_all(self) -> tuple[list[Status], int, list[str]]:
        """Run every fetcher concurrently.

        Returns:
            Tuple of (candidates in registration order, count of None
            entries dropped, names of failed fetchers).
        """
        results = await asyncio.gather(*(self._run_fetcher(f) for f in self.fetchers))

        candidates: list[Status] = []
        dropped_missing = 0
        failed: list[str] = []
        for fetcher, result in zip(self.fetchers, results, strict=True):
            if result is None:
                failed.append(fetcher_name(fetcher))
                continue
            for status in result:
                if status is None:
                    dropped_missing += 1
                else:
                    # Ranking writes to the candidate; fetchers may share instances
                    candidates.append(status.model_copy())

        return candidates, dropped_missing, failed

    async def _run_fetcher(self, fetcher: Fetcher) -> list[Status | None] | None:
        name = fetcher_name(fetcher)
        try:
            result = await asyncio.wait_for(
                fetcher(self.api, self.user), timeout=self._fetcher_timeout
            )
        except Exception as e:
            self._metrics.record_fetcher_failure(name)
            self._log.warning("fetcher_failed", fetcher=name, error=repr(e))
            return None

        if not isinstance(result, list):
            self._metrics.record_fetcher_failure(name)
            self._log.warning(
                "fetcher_failed", fetcher=name, error=f"returned {type(result).__name__}"
            )
            return None
        return result

    async def _guard(
        self,
        name: str,
        stage: str,
        call: Awaitable[Any],
        failures: dict[str, ScorerFailure],
    ) -> Any:
        """Await one scorer call under the timeout, recording any failure."""
        try:
            return await asyncio.wait_for(call, timeout=self._scorer_timeout)
        except Exception as e:
            self._exclude(name, stage, repr(e), failures)
            return _FAILED

    def _exclude(
        self, name: str, stage: str, error: str, failures: dict[str, ScorerFailure]
    ) -> None:
        if name in failures:
            return
        failures[name] = ScorerFailure(scorer=name, stage=stage, error=error)
        self._metrics.record_scorer_exclusion(name)
        self._log.warning(
            "scorer_excluded",
            scorer=name,
            stage=stage,
            error=error,
            policy=self.failure_policy.value,
        )

    def _raise_if_failing(self, stage: str, failures: dict[str, ScorerFailure]) -> None:
        if failures and self.failure_policy == ScorerFailurePolicy.FAIL:
            raise RankingPassError(stage, {name: f.error for name, f in failures.items()})

    async def _prepare(
        self, candidates: list[Status], failures: dict[str, ScorerFailure]
    ) -> None:
        """Run per-pass precomputation: features first, then feed context."""
        await asyncio.gather(
            *(
                self._guard(s.verbose_name, "get_feature", s.get_feature(self.api), failures)
                for s in self.feature_scorers
            )
        )
        self._raise_if_failing("get_feature", failures)

        feed: Sequence[Status] = tuple(candidates)
        await asyncio.gather(
            *(
                self._guard(s.get_verbose_name(), "set_feed", s.set_feed(feed), failures)
                for s in self.feed_scorers
            )
        )
        self._raise_if_failing("set_feed", failures)

    async def _score_all(
        self, candidates: list[Status], failures: dict[str, ScorerFailure]
    ) -> None:
        """Score every candidate with every scorer still in the pass."""
        feature_scorers = [s for s in self.feature_scorers if s.verbose_name not in failures]
        feed_scorers = [s for s in self.feed_scorers if s.get_verbose_name() not in failures]

        async def score_status(status: Status) -> dict[str, Any]:
            calls: list[tuple[str, Awaitable[Any]]] = [
                (s.verbose_name, s.score(self.api, status)) for s in feature_scorers
            ]
            calls.extend((s.get_verbose_name(), s.score(status)) for s in feed_scorers)
            values = await asyncio.gather(
                *(self._guard(name, "score", call, failures) for name, call in calls)
            )
            return {name: value for (name, _), value in zip(calls, values, strict=True)}

        raw_scores = await asyncio.gather(*(score_status(s) for s in candidates))

        for raw in raw_scores:
            for name, value in raw.items():
                if value is _FAILED or name in failures:
                    continue
                if not _is_number(value):
                    self._exclude(name, "score", f"non-numeric score {value!r}", failures)

        self._raise_if_failing("score", failures)

        for status, raw in zip(candidates, raw_scores, strict=True):
            status.scores = {
                name: float(value) for name, value in raw.items() if name not in failures
            }


def _is_number(value: object) -> bool:
    if isinstance(value, bool) or not isinstance(value, int | float):
        return False
    return math.isfinite(value)

