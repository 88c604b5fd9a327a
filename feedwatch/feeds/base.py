"""
Feed source interface.

A feed source turns a source identifier into the ordered list of items
currently published in that feed. The announcer treats it as a black
box: transport and parsing stay behind ``fetch()``.
"""

from abc import ABC, abstractmethod

from feedwatch.feeds.schemas import FeedItem


class FeedSource(ABC):
    """Abstract base for feed sources."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Identifier for this feed source (e.g. 'youtube', 'mock')."""

    @abstractmethod
    async def fetch(self, source_id: str) -> list[FeedItem]:
        """
        Fetch the items currently in the feed.

        Args:
            source_id: Feed identifier (e.g. a YouTube channel ID)

        Returns:
            Items in feed order (newest first for YouTube). Never re-sorted.

        Raises:
            FetchError: If the feed is unreachable or the response is invalid
        """
