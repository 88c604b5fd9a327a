"""Data models for monitored sources."""

from dataclasses import dataclass
from typing import Literal

NotifierPlatform = Literal["discord", "slack"]


@dataclass(frozen=True)
class Destination:
    """Where announcements for a source are delivered.

    Attributes:
        webhook_url: Incoming webhook endpoint.
        role_id: Role to ping with each announcement. ``None`` sends the
            message without pinging anyone.
        platform: Chat platform that owns the webhook (selects payload format).
    """

    webhook_url: str
    role_id: str | None = None
    platform: NotifierPlatform = "discord"


@dataclass(frozen=True)
class MonitoredSource:
    """A feed-to-destination monitoring unit.

    ``key`` is the unique name of the configuration block. The spool groups
    announced items by key, so two configurations watching the same feed
    keep separate histories, and renaming a key resets its history.
    """

    key: str
    source_id: str
    destination: Destination
    poll_interval_minutes: int = 10

    @property
    def poll_interval_seconds(self) -> float:
        return self.poll_interval_minutes * 60.0
