"""YAML weight profiles."""

from feedrank.profile.loader import ProfileValidationError, load_weight_profile
from feedrank.profile.schema import WeightProfile


__all__ = ["ProfileValidationError", "WeightProfile", "load_weight_profile"]
