"""Application settings powered by Pydantic BaseSettings."""

from enum import Enum
from pathlib import Path
from typing import Annotated

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ScorerFailurePolicy(str, Enum):
    """What a ranking pass does when a scorer raises or times out.

    - EXCLUDE: drop the scorer from the pass and report it
    - FAIL: abort the pass and keep the previously cached feed
    """

    EXCLUDE = "EXCLUDE"
    FAIL = "FAIL"


class AppSettings(BaseSettings):
    """Centralized environment configuration.

    Every field can be set through a ``FEEDRANK_``-prefixed environment
    variable or a ``.env`` file in the working directory.
    """

    model_config = SettingsConfigDict(
        env_prefix="FEEDRANK_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    instance_url: str = "https://mastodon.social"
    access_token: str | None = Field(default=None, repr=False)
    db_path: Path = Path("state/feedrank.sqlite")

    fetcher_timeout_seconds: Annotated[float, Field(gt=0, le=600)] = 30.0
    scorer_timeout_seconds: Annotated[float, Field(gt=0, le=600)] = 30.0
    scorer_failure_policy: ScorerFailurePolicy = ScorerFailurePolicy.EXCLUDE

    home_timeline_max_statuses: Annotated[int, Field(ge=1, le=800)] = 200
    home_timeline_lookback_hours: Annotated[int, Field(ge=1, le=168)] = 24
    trending_servers_limit: Annotated[int, Field(ge=0, le=50)] = 10
    trending_statuses_per_server: Annotated[int, Field(ge=1, le=40)] = 10

    feature_sample_size: Annotated[int, Field(ge=1, le=80)] = 80
    feature_cache_ttl_hours: Annotated[float, Field(ge=0)] = 24.0

    log_level: str = "INFO"
    log_json: bool = True


def get_settings() -> AppSettings:
    """Get a settings instance."""
    return AppSettings()
