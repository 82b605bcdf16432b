"""Data models for the Mastodon fetch layer."""

import random
from enum import Enum
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field

from feedrank.fetch.constants import MAX_RETRY_AFTER_SECONDS


class FetchErrorClass(str, Enum):
    """Classification of fetch errors for retry decisions and logging.

    - NETWORK_TIMEOUT: Request timed out
    - CONNECTION_ERROR: Could not establish connection
    - HTTP_4XX: Non-retryable 4xx client error (except 429)
    - HTTP_5XX: Retryable 5xx server error
    - RATE_LIMITED: 429 Too Many Requests
    - PARSE: Response body was not the expected JSON
    - UNKNOWN: Unclassified error
    """

    NETWORK_TIMEOUT = "NETWORK_TIMEOUT"
    CONNECTION_ERROR = "CONNECTION_ERROR"
    HTTP_4XX = "HTTP_4XX"
    HTTP_5XX = "HTTP_5XX"
    RATE_LIMITED = "RATE_LIMITED"
    PARSE = "PARSE"
    UNKNOWN = "UNKNOWN"


class FetchError(BaseModel):
    """Typed error from a fetch operation."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    error_class: FetchErrorClass = Field(description="Classification of the error")
    message: Annotated[str, Field(min_length=1, description="Human-readable message")]
    status_code: int | None = Field(
        default=None, description="HTTP status code if available"
    )
    retry_after: int | None = Field(
        default=None, description="Retry-After seconds (for 429)"
    )


class FetchFailedError(Exception):
    """Raised when a Mastodon API call fails after all retries."""

    def __init__(self, url: str, error: FetchError) -> None:
        """Initialize the error.

        Args:
            url: URL that failed (credentials already redacted).
            error: Typed error describing the failure.
        """
        self.url = url
        self.error = error
        super().__init__(f"{error.error_class.value} fetching {url}: {error.message}")


RETRYABLE_ERROR_CLASSES = frozenset(
    {
        FetchErrorClass.NETWORK_TIMEOUT,
        FetchErrorClass.CONNECTION_ERROR,
        FetchErrorClass.HTTP_5XX,
        FetchErrorClass.RATE_LIMITED,
    }
)


class RetryPolicy(BaseModel):
    """Backoff for transient Mastodon failures.

    The n-th retry (0-indexed) waits ``base_delay_ms * exponential_base ** n``
    capped at ``max_delay_ms``, plus up to ``jitter_factor`` of random
    jitter. A 429 carrying ``Retry-After`` waits what the server asked for.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    max_retries: Annotated[int, Field(ge=0, le=10)] = 2
    base_delay_ms: Annotated[int, Field(ge=0, le=60000)] = 500
    max_delay_ms: Annotated[int, Field(ge=0, le=300000)] = 10000
    exponential_base: Annotated[float, Field(ge=1.0, le=5.0)] = 2.0
    jitter_factor: Annotated[float, Field(ge=0.0, le=1.0)] = 0.1

    def should_retry(self, error: FetchError, attempt: int) -> bool:
        """Check whether a failed attempt is worth repeating.

        Args:
            error: The error of the failed attempt.
            attempt: Number of the failed attempt (0-indexed).

        Returns:
            True for transient errors while retries remain.
        """
        return attempt < self.max_retries and error.error_class in RETRYABLE_ERROR_CLASSES

    def get_delay_ms(self, attempt: int) -> int:
        """Get the backoff before retrying after ``attempt``."""
        delay = min(self.base_delay_ms * self.exponential_base**attempt, self.max_delay_ms)
        return int(delay + delay * self.jitter_factor * random.random())  # noqa: S311

    def delay_seconds(self, error: FetchError, attempt: int) -> float:
        """Get how long to sleep before the next attempt.

        Args:
            error: The error of the failed attempt.
            attempt: Number of the failed attempt (0-indexed).

        Returns:
            Seconds to wait.
        """
        if error.error_class == FetchErrorClass.RATE_LIMITED and error.retry_after is not None:
            return float(min(error.retry_after, MAX_RETRY_AFTER_SECONDS))
        return self.get_delay_ms(attempt) / 1000.0
