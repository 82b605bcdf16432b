"""Timeline data model: accounts and statuses."""

from feedrank.timeline.models import Account, Notification, ScoredStatusView, Status


__all__ = ["Account", "Notification", "ScoredStatusView", "Status"]
