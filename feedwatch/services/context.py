"""
Execution context of a daemon run.

Built once at startup from the config file and environment settings and
passed explicitly to the announcer and the scheduler.
"""

import logging
from dataclasses import dataclass

from feedwatch.config.daemon import DaemonConfig
from feedwatch.config.settings import Settings, get_settings
from feedwatch.feeds.base import FeedSource
from feedwatch.feeds.http_client import RetryConfig
from feedwatch.feeds.youtube import YouTubeFeedSource
from feedwatch.notify.channels import Notifier, WebhookNotifier
from feedwatch.sources.schemas import MonitoredSource
from feedwatch.sources.state import SourceStateRegistry
from feedwatch.storage.spool import Spool

logger = logging.getLogger(__name__)


@dataclass
class AnnouncerContext:
    """Everything the announcer needs, with no global lookups.

    Attributes:
        sources: Monitored sources, in config order.
        states: Per-source runtime state (staleness gate, locks).
        spool: Store of already announced items.
        feed: Feed source used to fetch items.
        notifier: Delivery of announcements.
        announce: False in dry-run mode (spool advances, nothing is sent).
        autospool: Run the startup baseline pass before the first tick.
        tick_interval_seconds: Cadence of the scheduler loop.
    """

    sources: list[MonitoredSource]
    states: SourceStateRegistry
    spool: Spool
    feed: FeedSource
    notifier: Notifier
    announce: bool = True
    autospool: bool = True
    tick_interval_seconds: float = 60.0

    async def close(self) -> None:
        await self.spool.close()


async def build_context(
    config: DaemonConfig,
    settings: Settings | None = None,
    dry_run: bool = False,
    feed: FeedSource | None = None,
    notifier: Notifier | None = None,
) -> AnnouncerContext:
    """
    Open the spool and wire the feed source and notifier.

    Args:
        config: Validated daemon configuration
        settings: Environment settings (defaults to get_settings())
        dry_run: Force dry-run mode regardless of the config file
        feed: Feed source override (e.g. MockFeedSource)
        notifier: Notifier override

    Raises:
        StoreInitError: If the spool cannot be opened
    """
    settings = settings or get_settings()
    retry_config = RetryConfig(
        max_retries=settings.max_http_retries,
        max_backoff_seconds=settings.max_backoff_seconds,
    )

    spool = await Spool.open(config.spool)

    sources = config.monitored_sources()
    context = AnnouncerContext(
        sources=sources,
        states=SourceStateRegistry(sources, needs_baseline=config.autospool_on_startup),
        spool=spool,
        feed=feed or YouTubeFeedSource(
            feed_url=settings.youtube_feed_url,
            retry_config=retry_config,
            timeout=settings.http_timeout_seconds,
            user_agent=settings.user_agent,
        ),
        notifier=notifier or WebhookNotifier(
            retry_config=retry_config,
            timeout=settings.http_timeout_seconds,
        ),
        announce=not (dry_run or config.dry_run_disable_notify),
        autospool=config.autospool_on_startup,
        tick_interval_seconds=config.tick_interval_minutes * 60.0,
    )

    logger.info(
        "Context ready: %d sources, announce=%s, autospool=%s",
        len(sources), context.announce, context.autospool,
    )
    return context
