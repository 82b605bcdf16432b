"""Candidate status sources."""

from feedrank.fetchers.base import Fetcher, fetcher_name
from feedrank.fetchers.home_feed import HomeFeedFetcher
from feedrank.fetchers.top_posts import TopPostsFetcher


__all__ = ["Fetcher", "HomeFeedFetcher", "TopPostsFetcher", "fetcher_name"]
