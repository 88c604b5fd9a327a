"""
Scheduler service - drives the announcer on a fixed tick.

Runs continuously: on every tick each monitored source is offered a
check, and the staleness gate of each source decides whether it is
actually fetched. Sources are independent and run concurrently.

Features:
- Optional autospool pass before the first tick
- Fixed-rate ticks (a slow tick does not shift the cadence)
- Graceful shutdown: the in-flight tick always completes
- Spool failures stop the service
"""

import asyncio
import time

import structlog

from feedwatch.errors import StoreError
from feedwatch.observability.logging import log_context
from feedwatch.observability.metrics import get_metrics
from feedwatch.services.announcer import Announcer, PollOutcome
from feedwatch.services.context import AnnouncerContext

logger = structlog.get_logger(__name__)


class SchedulerService:
    """
    Service that polls every monitored source on a recurring tick.

    Usage:
        service = SchedulerService(context)
        await service.start()  # Runs until stop() is called
    """

    def __init__(
        self,
        context: AnnouncerContext,
        announcer: Announcer | None = None,
    ):
        """
        Initialize scheduler service.

        Args:
            context: Execution context of this run
            announcer: Announcer to drive (or create one for the context)
        """
        self._ctx = context
        self._announcer = announcer or Announcer(context)
        self._tick_interval = context.tick_interval_seconds
        self._running = False
        self._stop_event = asyncio.Event()
        self._metrics = get_metrics()
        self._ticks = 0

        logger.info(
            "Scheduler initialized",
            sources=[s.key for s in context.sources],
            tick_interval=self._tick_interval,
            announce=context.announce,
        )

    @property
    def is_running(self) -> bool:
        """Check if service is running."""
        return self._running

    @property
    def ticks(self) -> int:
        """Number of completed ticks."""
        return self._ticks

    async def start(self) -> None:
        """
        Start the scheduler.

        Runs the autospool pass first if enabled, then ticks until stop()
        is called or a StoreError is raised. A stop() issued before start()
        is honored, and a stopped service does not start again.

        Raises:
            StoreError: If the spool fails during operation
        """
        if self._stop_event.is_set():
            logger.info("Scheduler already stopped, not starting")
            return

        self._running = True
        logger.info("Starting scheduler")

        try:
            if self._ctx.autospool:
                await self._announcer.autospool()

            while not self._stop_event.is_set():
                started = time.monotonic()
                await self.run_tick()

                # Fixed-rate: the next tick is due one interval after this one started
                delay = max(0.0, self._tick_interval - (time.monotonic() - started))
                try:
                    await asyncio.wait_for(self._stop_event.wait(), timeout=delay)
                except asyncio.TimeoutError:
                    pass
        except StoreError as e:
            logger.error("Spool failure, stopping scheduler", error=str(e))
            raise
        finally:
            self._running = False
            logger.info("Scheduler stopped", ticks=self._ticks)

    async def stop(self) -> None:
        """
        Stop the scheduler gracefully.

        The current tick is allowed to finish; no new tick starts.
        """
        logger.info("Stopping scheduler")
        self._running = False
        self._stop_event.set()

    async def run_tick(self) -> dict[str, PollOutcome]:
        """
        Offer a check to every source once.

        A failure in one source never stops the others. A StoreError is
        re-raised once every source of the tick has finished.

        Returns:
            Outcome per source key (sources that raised are omitted)
        """
        started = time.monotonic()
        sources = list(self._ctx.sources)

        with log_context(tick=self._ticks + 1):
            results = await asyncio.gather(
                *(self._announcer.poll_and_notify(source) for source in sources),
                return_exceptions=True,
            )

        outcomes: dict[str, PollOutcome] = {}
        store_error: StoreError | None = None

        for source, result in zip(sources, results):
            if isinstance(result, StoreError):
                logger.error("Spool error", source_key=source.key, error=str(result))
                store_error = store_error or result
            elif isinstance(result, Exception):
                logger.error(
                    "Unexpected error checking source",
                    source_key=source.key,
                    error=str(result),
                    exc_info=result,
                )
            elif isinstance(result, BaseException):
                raise result
            else:
                outcomes[source.key] = result

        self._ticks += 1
        elapsed = time.monotonic() - started
        self._metrics.record_tick(elapsed)

        checked = {k: v.value for k, v in outcomes.items() if v is not PollOutcome.NOT_DUE}
        if checked:
            logger.info("Tick completed", outcomes=checked, elapsed_seconds=round(elapsed, 2))
        else:
            logger.debug("Tick completed, no source due")

        if store_error is not None:
            raise store_error
        return outcomes

    async def run_once(self) -> dict[str, PollOutcome]:
        """
        Run the autospool pass (if enabled) and a single tick.

        Useful for testing or cron-style invocations.
        """
        if self._ctx.autospool:
            await self._announcer.autospool()
        return await self.run_tick()
