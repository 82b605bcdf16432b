"""Application settings loading."""

from .app import AppSettings, ScorerFailurePolicy, get_settings


__all__ = ["AppSettings", "ScorerFailurePolicy", "get_settings"]
