"""Async Mastodon API access with retries and typed failures."""

from feedrank.fetch.client import MastodonClient
from feedrank.fetch.config import FetchConfig
from feedrank.fetch.models import (
    FetchError,
    FetchErrorClass,
    FetchFailedError,
    RetryPolicy,
)


__all__ = [
    "FetchConfig",
    "FetchError",
    "FetchErrorClass",
    "FetchFailedError",
    "MastodonClient",
    "RetryPolicy",
]
