"""
Error taxonomy for the feedwatch daemon.

Startup errors (ConfigError, StoreInitError) abort the process.
Per-source errors (FetchError, NotifyError) are isolated to one source
and retried on its next due cycle. StoreError means the spool can no
longer tell what was already announced, so the daemon stops.
"""


class FeedwatchError(Exception):
    """Base exception for all feedwatch errors."""


class ConfigError(FeedwatchError):
    """Configuration file is missing, unreadable or invalid."""


class StoreInitError(FeedwatchError):
    """The spool could not be opened or its schema created."""


class StoreError(FeedwatchError):
    """A spool read or write failed after initialization."""


class FetchError(FeedwatchError):
    """The feed for a source could not be fetched or parsed."""

    def __init__(
        self,
        message: str,
        source_id: str | None = None,
        status_code: int | None = None,
    ):
        super().__init__(message)
        self.source_id = source_id
        self.status_code = status_code


class NotifyError(FeedwatchError):
    """The notifier failed to deliver an announcement."""

    def __init__(
        self,
        message: str,
        item_id: str | None = None,
        status_code: int | None = None,
    ):
        super().__init__(message)
        self.item_id = item_id
        self.status_code = status_code
