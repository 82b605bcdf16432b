"""Data models for Mastodon accounts and statuses."""

from __future__ import annotations

from datetime import UTC, datetime
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Account(BaseModel):
    """A Mastodon account as returned by the REST API.

    Attributes:
        id: Server-local account id.
        username: Username without the server part.
        acct: ``user`` for local accounts, ``user@server`` for remote ones.
        url: Profile URL.
    """

    model_config = ConfigDict(extra="ignore")

    id: str
    username: str = ""
    acct: str
    url: str | None = None

    def server(self, default: str | None = None) -> str | None:
        """Get the home server of this account.

        Args:
            default: Server to report for local accounts without a profile URL.

        Returns:
            Host name of the account's server.
        """
        if "@" in self.acct:
            return self.acct.split("@", 1)[1]
        if self.url:
            return urlparse(self.url).netloc or default
        return default


class Status(BaseModel):
    """A candidate post to be ranked.

    ``scores``, ``time_decay`` and ``value`` are populated by the
    scoring engine; everything else comes from the fetchers.
    """

    model_config = ConfigDict(extra="ignore")

    id: str
    uri: str
    created_at: datetime
    content: str = ""
    in_reply_to_id: str | None = None
    reblogged: bool | None = False
    account: Account
    reblog: Status | None = None
    favourites_count: int = 0
    reblogs_count: int = 0
    replies_count: int = 0
    top_post: bool = False

    scores: dict[str, float] | None = None
    time_decay: float | None = None
    value: float | None = None

    @field_validator("created_at")
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        """Read timestamps without an offset as UTC."""
        if v.tzinfo is None:
            return v.replace(tzinfo=UTC)
        return v

    @property
    def original(self) -> Status:
        """Get the boosted status for boosts, otherwise the status itself."""
        return self.reblog if self.reblog is not None else self

    @property
    def author_acct(self) -> str:
        """Get the acct of the original author."""
        return self.original.account.acct


class ScoredStatusView(BaseModel):
    """Compact serializable view of a ranked status."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str
    uri: str
    author: str
    created_at: datetime
    value: float
    scores: dict[str, float] = Field(default_factory=dict)

    @classmethod
    def from_status(cls, status: Status) -> ScoredStatusView:
        """Build a view from a ranked status.

        Args:
            status: Status after a ranking pass.

        Returns:
            ScoredStatusView instance.
        """
        return cls(
            id=status.id,
            uri=status.uri,
            author=status.author_acct,
            created_at=status.created_at,
            value=status.value or 0.0,
            scores=dict(status.scores or {}),
        )


class Notification(BaseModel):
    """A notification addressed to the user (mention, favourite, boost...)."""

    model_config = ConfigDict(extra="ignore")

    id: str
    type: str
    account: Account
    status: Status | None = None
