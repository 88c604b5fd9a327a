"""
Announcer - the poll-and-notify and autospool procedures.

For each due source the announcer fetches the feed, finds the first
item missing from the spool, announces it, and records it. Only one
item is announced per source per check: a channel that uploaded ten
videos while the daemon was down drains one video per poll interval
instead of pinging ten times at once.

Failure policy:
- FetchError: logged, the source is retried on its next due check
- NotifyError: logged, the item stays unmarked and is retried next time
- StoreError: never caught here; the spool cannot be trusted anymore
"""

import time
from enum import Enum

import structlog

from feedwatch.errors import FetchError, NotifyError
from feedwatch.feeds.schemas import FeedItem
from feedwatch.observability.metrics import get_metrics
from feedwatch.services.context import AnnouncerContext
from feedwatch.sources.schemas import MonitoredSource

logger = structlog.get_logger(__name__)


class PollOutcome(str, Enum):
    """Result of one poll-and-notify run for a source."""

    NOT_DUE = "not_due"
    FETCH_FAILED = "fetch_failed"
    BASELINE = "baseline"
    NOTIFIED = "notified"
    DRY_RUN = "dry_run"
    NOTIFY_FAILED = "notify_failed"
    UP_TO_DATE = "up_to_date"


class Announcer:
    """
    Runs the per-source procedures against an AnnouncerContext.

    Every procedure holds the source's ``run_lock`` while it runs, so a
    source is never checked twice at the same time.
    """

    def __init__(self, context: AnnouncerContext):
        self._ctx = context
        self._metrics = get_metrics()

    async def poll_and_notify(self, source: MonitoredSource) -> PollOutcome:
        """
        Check one source and announce at most one new item.

        Does nothing (no fetch) unless the source's staleness gate grants
        a check.
        """
        state = self._ctx.states.get(source.key)

        async with state.run_lock:
            if not state.try_acquire_check():
                return PollOutcome.NOT_DUE

            items = await self._fetch(source)
            if items is None:
                return PollOutcome.FETCH_FAILED

            if state.needs_baseline:
                marked = await self._mark_all(source, items, reason="baseline")
                state.needs_baseline = False
                logger.info(
                    "Recorded feed baseline",
                    source_key=source.key,
                    marked=marked,
                )
                return PollOutcome.BASELINE

            for item in items:
                if await self._ctx.spool.is_notified(source.key, item.item_id):
                    continue
                # only one item per check, prevents ping storms
                return await self._announce(source, item)

            return PollOutcome.UP_TO_DATE

    async def autospool(self) -> dict[str, int]:
        """
        Mark everything currently in every feed as announced, without notifying.

        Fetches bypass the staleness gate. A source whose fetch fails keeps
        its ``needs_baseline`` flag, so its first successful check records
        the baseline instead of announcing old items.

        Returns:
            Number of newly marked items per source key (failed sources omitted)
        """
        results: dict[str, int] = {}

        for source in self._ctx.sources:
            state = self._ctx.states.get(source.key)
            async with state.run_lock:
                try:
                    items = await self._fetch(source)
                except Exception as e:
                    # isolated per source, like a scheduler tick
                    logger.error(
                        "Unexpected error fetching source for autospool",
                        source_key=source.key,
                        error=str(e),
                        exc_info=e,
                    )
                    items = None

                if items is None:
                    logger.warning(
                        "Autospool skipped source, baseline deferred",
                        source_key=source.key,
                    )
                    continue

                results[source.key] = await self._mark_all(
                    source, items, reason="autospool"
                )
                state.needs_baseline = False

        logger.info("Autospool completed", marked=results)
        return results

    async def _fetch(self, source: MonitoredSource) -> list[FeedItem] | None:
        start_time = time.monotonic()
        try:
            items = await self._ctx.feed.fetch(source.source_id)
        except FetchError as e:
            self._metrics.record_fetch(source.key, "error")
            logger.error(
                "Feed fetch failed",
                source_key=source.key,
                source_id=source.source_id,
                status_code=e.status_code,
                error=str(e),
            )
            return None

        elapsed = time.monotonic() - start_time
        self._metrics.record_fetch(source.key, "success", latency=elapsed)
        logger.debug(
            "Feed fetched",
            source_key=source.key,
            items=len(items),
            elapsed_seconds=round(elapsed, 2),
        )
        return items

    async def _announce(self, source: MonitoredSource, item: FeedItem) -> PollOutcome:
        log = logger.bind(source_key=source.key, item_id=item.item_id)

        if self._ctx.announce:
            try:
                await self._ctx.notifier.send(item, source.destination)
            except NotifyError as e:
                self._metrics.record_notification(source.key, "failed")
                log.error("Announcement failed, will retry", error=str(e))
                return PollOutcome.NOTIFY_FAILED
            self._metrics.record_notification(source.key, "sent")
            outcome = PollOutcome.NOTIFIED
        else:
            log.info("Skipping announcement because running in dry-run mode")
            self._metrics.record_notification(source.key, "dry_run")
            outcome = PollOutcome.DRY_RUN

        await self._ctx.spool.mark_notified(source.key, item.item_id)
        self._metrics.record_marked(source.key, "notified")
        log.info("Item announced", outcome=outcome.value, title=item.title)
        return outcome

    async def _mark_all(
        self,
        source: MonitoredSource,
        items: list[FeedItem],
        reason: str,
    ) -> int:
        marked = 0
        for item in items:
            if await self._ctx.spool.is_notified(source.key, item.item_id):
                continue
            if await self._ctx.spool.mark_notified(source.key, item.item_id):
                marked += 1
        self._metrics.record_marked(source.key, reason, marked)
        return marked
