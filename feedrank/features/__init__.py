"""Account-level features derived from the user's own activity."""

from feedrank.features.store import FeatureStore


__all__ = ["FeatureStore"]
