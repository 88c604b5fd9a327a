"""Feed sources - fetch the current items of a monitored feed."""

from feedwatch.feeds.base import FeedSource
from feedwatch.feeds.mock import MockFeedSource
from feedwatch.feeds.schemas import FeedItem
from feedwatch.feeds.youtube import YouTubeFeedSource

__all__ = [
    "FeedItem",
    "FeedSource",
    "MockFeedSource",
    "YouTubeFeedSource",
]
