"""Recency penalty applied to combined status values."""

import math
from collections.abc import Iterable
from datetime import datetime

from feedrank.ranker.constants import DECAY_BASE, SECONDS_PER_HOUR
from feedrank.timeline.models import Status


def decay_factor(age_seconds: float) -> float:
    """Compute the multiplicative recency penalty for a status age.

    The penalty falls off with the square of the age in hours, so a post
    one hour old keeps ~88% of its value and a post three hours old ~31%.

    Args:
        age_seconds: Seconds since the status was created. Negative ages
            (clock skew between servers) count as zero.

    Returns:
        Factor in (0, 1], exactly 1 at age zero.
    """
    hours = max(age_seconds, 0.0) / SECONDS_PER_HOUR
    return DECAY_BASE ** -(hours**2)


def status_age_seconds(status: Status, now: datetime) -> int:
    """Get the age of a status in whole seconds."""
    return math.floor((now - status.created_at).total_seconds())


def apply_time_decay(statuses: Iterable[Status], now: datetime) -> None:
    """Multiply each status value by its recency penalty.

    The factor used is kept on ``status.time_decay`` so later re-weighting
    can reuse it without recomputing age.

    Args:
        statuses: Statuses with a combined value.
        now: Reference time for ages.
    """
    for status in statuses:
        factor = decay_factor(status_age_seconds(status, now))
        status.time_decay = factor
        status.value = (status.value or 0.0) * factor
