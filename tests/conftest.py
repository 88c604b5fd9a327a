"""Pytest fixtures for feedwatch tests."""

from collections.abc import Awaitable, Callable

import pytest

from feedwatch.feeds.mock import MockFeedSource, make_item
from feedwatch.feeds.schemas import FeedItem
from feedwatch.notify.channels import Notifier
from feedwatch.services.context import AnnouncerContext
from feedwatch.sources.schemas import Destination, MonitoredSource
from feedwatch.sources.state import SourceStateRegistry
from feedwatch.storage.spool import Spool


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingNotifier(Notifier):
    """Notifier that records every delivery and can be told to fail."""

    def __init__(self):
        self.sent: list[tuple[FeedItem, Destination]] = []
        self.error: Exception | None = None

    @property
    def name(self) -> str:
        return "recording"

    async def send(self, item: FeedItem, destination: Destination) -> None:
        if self.error is not None:
            raise self.error
        self.sent.append((item, destination))

    @property
    def sent_ids(self) -> list[str]:
        return [item.item_id for item, _ in self.sent]


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def feed() -> MockFeedSource:
    return MockFeedSource()


@pytest.fixture
def destination() -> Destination:
    return Destination(
        webhook_url="https://discord.com/api/webhooks/1/token",
        role_id="12341234",
    )


@pytest.fixture
def source(destination) -> MonitoredSource:
    return MonitoredSource(
        key="main_channel",
        source_id="UC_main",
        destination=destination,
        poll_interval_minutes=10,
    )


@pytest.fixture
def items() -> list[FeedItem]:
    """Five items, newest first, as the YouTube feed lists them."""
    return [make_item(f"vid{i}") for i in range(5, 0, -1)]


@pytest.fixture
def make_context(
    feed, notifier, clock, source
) -> Callable[..., Awaitable[AnnouncerContext]]:
    """Factory for an AnnouncerContext backed by an in-memory spool."""

    async def build(
        sources: list[MonitoredSource] | None = None,
        announce: bool = True,
        autospool: bool = False,
        spool: Spool | None = None,
    ) -> AnnouncerContext:
        sources = sources or [source]
        return AnnouncerContext(
            sources=sources,
            states=SourceStateRegistry(sources, needs_baseline=autospool, clock=clock),
            spool=spool or await Spool.open(":memory:"),
            feed=feed,
            notifier=notifier,
            announce=announce,
            autospool=autospool,
            tick_interval_seconds=60.0,
        )

    return build
