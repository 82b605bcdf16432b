"""Exclusion filters, ordering and deduplication of ranked statuses."""

from collections import Counter
from collections.abc import Iterable, Sequence
from enum import Enum

from feedrank.ranker.constants import LEGACY_RETWEET_MARKER
from feedrank.timeline.models import Status


class FilterReason(str, Enum):
    """Why a status was excluded from the final feed."""

    MISSING = "missing"
    REPLY = "reply"
    LEGACY_RETWEET = "legacy_retweet"
    ALREADY_REBLOGGED = "already_reblogged"


def exclusion_reason(status: Status | None) -> FilterReason | None:
    """Get the first reason a status must be excluded, if any.

    Args:
        status: Candidate status.

    Returns:
        The reason, or None if the status is kept.
    """
    if status is None:
        return FilterReason.MISSING
    if status.in_reply_to_id is not None:
        return FilterReason.REPLY
    if LEGACY_RETWEET_MARKER in status.content:
        return FilterReason.LEGACY_RETWEET
    if status.reblogged:
        return FilterReason.ALREADY_REBLOGGED
    return None


def filter_statuses(
    statuses: Iterable[Status | None],
) -> tuple[list[Status], Counter[FilterReason]]:
    """Drop replies, legacy retweets, already boosted and missing statuses.

    Args:
        statuses: Candidate statuses.

    Returns:
        Tuple of (kept statuses in input order, exclusion counts by reason).
    """
    kept: list[Status] = []
    excluded: Counter[FilterReason] = Counter()

    for status in statuses:
        reason = exclusion_reason(status)
        if reason is None and status is not None:
            kept.append(status)
        elif reason is not None:
            excluded[reason] += 1

    return kept, excluded


def sort_by_value(statuses: Iterable[Status]) -> list[Status]:
    """Sort statuses by value, highest first; ties keep their input order."""
    return sorted(statuses, key=lambda s: s.value or 0.0, reverse=True)


def dedup_by_uri(statuses: Sequence[Status]) -> list[Status]:
    """Keep the last occurrence of each uri, at its own position.

    Applied after ``sort_by_value`` this keeps the lowest-ranked duplicate
    and the result stays sorted.

    Args:
        statuses: Statuses in ranked order.

    Returns:
        Statuses with pairwise distinct uris.
    """
    last_index = {status.uri: index for index, status in enumerate(statuses)}
    return [s for index, s in enumerate(statuses) if last_index[s.uri] == index]
