"""Constants for the ranker module."""

# Base of the recency penalty: value *= DECAY_BASE ** -(age_hours ** 2)
DECAY_BASE: float = 1 + 0.7 * 0.2

SECONDS_PER_HOUR: int = 3600

# Legacy cross-posted retweets carry this marker in their content
LEGACY_RETWEET_MARKER: str = "RT @"
