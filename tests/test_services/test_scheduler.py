"""Tests for the scheduler loop."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
import structlog

from feedwatch.errors import StoreError
from feedwatch.feeds.mock import make_item
from feedwatch.services.announcer import Announcer, PollOutcome
from feedwatch.services.scheduler import SchedulerService
from feedwatch.sources.schemas import Destination, MonitoredSource


def _sources(*keys: str) -> list[MonitoredSource]:
    return [
        MonitoredSource(
            key=key,
            source_id=f"UC_{key}",
            destination=Destination(webhook_url="https://example.com/hook"),
        )
        for key in keys
    ]


class TestRunTick:
    """Tests for SchedulerService.run_tick."""

    @pytest.mark.asyncio
    async def test_offers_every_source(self, make_context, feed, notifier):
        sources = _sources("a", "b")
        feed.set_items("UC_a", [make_item("a1")])
        ctx = await make_context(sources=sources)

        outcomes = await SchedulerService(ctx).run_tick()

        assert outcomes == {"a": PollOutcome.NOTIFIED, "b": PollOutcome.UP_TO_DATE}
        assert notifier.sent_ids == ["a1"]

    @pytest.mark.asyncio
    async def test_second_tick_not_due(self, make_context, feed):
        """With a 1 minute tick and 10 minute interval, the next tick skips."""
        ctx = await make_context(sources=_sources("a"))
        service = SchedulerService(ctx)

        await service.run_tick()
        outcomes = await service.run_tick()

        assert outcomes == {"a": PollOutcome.NOT_DUE}
        assert feed.fetch_count["UC_a"] == 1
        assert service.ticks == 2

    @pytest.mark.asyncio
    async def test_unexpected_error_is_isolated(self, make_context):
        """An unexpected exception in one source does not affect the others."""
        sources = _sources("a", "b")
        ctx = await make_context(sources=sources)

        announcer = MagicMock(spec=Announcer)

        async def poll(source):
            if source.key == "a":
                raise ValueError("bad feed data")
            return PollOutcome.UP_TO_DATE

        announcer.poll_and_notify = AsyncMock(side_effect=poll)

        outcomes = await SchedulerService(ctx, announcer=announcer).run_tick()

        assert outcomes == {"b": PollOutcome.UP_TO_DATE}

    @pytest.mark.asyncio
    async def test_store_error_raised_after_tick(self, make_context):
        """A spool failure is raised only once every source has finished."""
        sources = _sources("a", "b")
        ctx = await make_context(sources=sources)
        finished = []

        async def poll(source):
            if source.key == "a":
                raise StoreError("disk I/O error")
            await asyncio.sleep(0)
            finished.append(source.key)
            return PollOutcome.UP_TO_DATE

        announcer = MagicMock(spec=Announcer)
        announcer.poll_and_notify = AsyncMock(side_effect=poll)
        service = SchedulerService(ctx, announcer=announcer)

        with pytest.raises(StoreError):
            await service.run_tick()
        assert finished == ["b"]
        assert service.ticks == 1

    @pytest.mark.asyncio
    async def test_tick_number_in_log_context(self, make_context):
        """Source tasks see the tick number; caller-bound fields survive the tick."""
        ctx = await make_context(sources=_sources("a"))
        seen = []

        async def poll(source):
            seen.append(structlog.contextvars.get_contextvars())
            return PollOutcome.UP_TO_DATE

        announcer = MagicMock(spec=Announcer)
        announcer.poll_and_notify = AsyncMock(side_effect=poll)
        service = SchedulerService(ctx, announcer=announcer)

        structlog.contextvars.bind_contextvars(run_id="r1")
        try:
            await service.run_tick()
            await service.run_tick()
            after = structlog.contextvars.get_contextvars()
        finally:
            structlog.contextvars.clear_contextvars()

        assert [s["tick"] for s in seen] == [1, 2]
        assert all(s["run_id"] == "r1" for s in seen)
        assert after == {"run_id": "r1"}


class TestSchedulerLifecycle:
    """Tests for start/stop/run_once."""

    @pytest.mark.asyncio
    async def test_run_once_with_autospool(self, make_context, feed, notifier):
        feed.set_items("UC_a", [make_item("a2"), make_item("a1")])
        ctx = await make_context(sources=_sources("a"), autospool=True)

        outcomes = await SchedulerService(ctx).run_once()

        assert outcomes == {"a": PollOutcome.UP_TO_DATE}
        assert notifier.sent == []
        assert await ctx.spool.count() == 2

    @pytest.mark.asyncio
    async def test_start_and_stop(self, make_context):
        ctx = await make_context(sources=_sources("a"))
        ctx.tick_interval_seconds = 0.01
        service = SchedulerService(ctx)

        task = asyncio.create_task(service.start())
        while service.ticks < 3:
            await asyncio.sleep(0.01)
        assert service.is_running is True

        await service.stop()
        await asyncio.wait_for(task, timeout=1.0)

        assert service.is_running is False
        assert task.exception() is None

    @pytest.mark.asyncio
    async def test_start_stops_on_store_error(self, make_context):
        ctx = await make_context(sources=_sources("a"))
        announcer = MagicMock(spec=Announcer)
        announcer.poll_and_notify = AsyncMock(side_effect=StoreError("disk full"))
        service = SchedulerService(ctx, announcer=announcer)

        with pytest.raises(StoreError):
            await asyncio.wait_for(service.start(), timeout=1.0)
        assert service.is_running is False

    @pytest.mark.asyncio
    async def test_stop_before_start(self, make_context, feed):
        """A stop requested before start() is not lost."""
        ctx = await make_context(sources=_sources("a"), autospool=True)
        service = SchedulerService(ctx)

        await service.stop()
        await asyncio.wait_for(service.start(), timeout=1.0)

        assert service.ticks == 0
        assert service.is_running is False
        assert feed.fetch_count == {}
