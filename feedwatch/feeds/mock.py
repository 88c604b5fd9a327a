"""
Mock feed source for testing and development.

Keeps feeds in memory. Useful for:
- Testing the announcer without network access
- Running the daemon locally (``feedwatch run --mock``) against a fake
  channel that uploads from time to time
"""

import random
import uuid
from collections.abc import Iterable
from datetime import datetime, timezone

from feedwatch.errors import FetchError
from feedwatch.feeds.base import FeedSource
from feedwatch.feeds.schemas import FeedItem

SAMPLE_TITLES = [
    "Weekly devlog #{n}",
    "Live Q&A highlights ({n})",
    "Building a feed watcher, part {n}",
    "Patch notes {n}.0 explained",
    "Behind the scenes: episode {n}",
]

# The public YouTube feed lists at most 15 uploads
FEED_PAGE_SIZE = 15


def make_item(item_id: str, title: str | None = None, author: str = "Mock Channel") -> FeedItem:
    """Build a FeedItem with plausible display metadata."""
    return FeedItem(
        item_id=item_id,
        title=title or f"Video {item_id}",
        description=f"Description of {item_id}.\n\nSecond paragraph.",
        url=f"https://www.youtube.com/watch?v={item_id}",
        thumbnail_url=f"https://i1.ytimg.com/vi/{item_id}/maxresdefault.jpg",
        author=author,
        published_at=datetime.now(timezone.utc),
    )


class MockFeedSource(FeedSource):
    """
    In-memory feed source.

    Feeds are ordered newest first, like the YouTube feed. With
    ``upload_probability`` > 0, each fetch may synthesize a new upload.
    """

    def __init__(
        self,
        feeds: dict[str, Iterable[FeedItem]] | None = None,
        upload_probability: float = 0.0,
        seed: int | None = None,
    ):
        self._feeds: dict[str, list[FeedItem]] = {
            source_id: list(items) for source_id, items in (feeds or {}).items()
        }
        self._failures: dict[str, int] = {}
        self._upload_probability = upload_probability
        self._random = random.Random(seed)
        self._counter = 0
        self.fetch_count: dict[str, int] = {}

    @property
    def name(self) -> str:
        return "mock"

    def set_items(self, source_id: str, items: Iterable[FeedItem]) -> None:
        """Replace the feed contents for a source."""
        self._feeds[source_id] = list(items)

    def publish(self, source_id: str, item: FeedItem) -> None:
        """Add a new item at the top of the feed."""
        items = self._feeds.setdefault(source_id, [])
        items.insert(0, item)
        del items[FEED_PAGE_SIZE:]

    def fail_next(self, source_id: str, times: int = 1) -> None:
        """Make the next ``times`` fetches of this source raise FetchError."""
        self._failures[source_id] = self._failures.get(source_id, 0) + times

    def _synthesize(self, source_id: str) -> None:
        self._counter += 1
        title = self._random.choice(SAMPLE_TITLES).format(n=self._counter)
        self.publish(source_id, make_item(f"mock-{uuid.uuid4().hex[:11]}", title=title))

    async def fetch(self, source_id: str) -> list[FeedItem]:
        self.fetch_count[source_id] = self.fetch_count.get(source_id, 0) + 1

        remaining = self._failures.get(source_id, 0)
        if remaining:
            self._failures[source_id] = remaining - 1
            raise FetchError(f"Simulated fetch failure for {source_id}", source_id=source_id)

        if self._upload_probability and self._random.random() < self._upload_probability:
            self._synthesize(source_id)

        return list(self._feeds.get(source_id, []))
