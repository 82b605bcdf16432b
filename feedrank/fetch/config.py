"""Configuration models for the Mastodon fetch layer."""

from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field

from feedrank.fetch.models import RetryPolicy


class FetchConfig(BaseModel):
    """Configuration for all Mastodon HTTP calls."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    user_agent: Annotated[str, Field(min_length=1, max_length=500)] = "feedrank/0.1"
    timeout_seconds: Annotated[float, Field(ge=1.0, le=300.0)] = 20.0
    retry_policy: RetryPolicy = Field(default_factory=RetryPolicy)
