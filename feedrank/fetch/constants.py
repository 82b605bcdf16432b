"""Limits of the Mastodon REST API as used by the fetch layer."""

# Largest page Mastodon serves for timeline and account list endpoints
MAX_PAGE_SIZE = 40

# Longest Retry-After we are willing to sleep on (seconds)
MAX_RETRY_AFTER_SECONDS = 60
