"""
YouTube channel feed source.

Reads the public Atom feed of a YouTube channel, which carries the most
recent uploads (newest first), and maps each entry to a FeedItem.
Handles:
- Atom parsing with feedparser
- Video ID extraction (yt:videoId, falling back to the entry id)
- HD thumbnail upgrade (maxresdefault rendition)
"""

import calendar
import logging
from datetime import datetime, timezone
from typing import Any

import feedparser
import httpx

from feedwatch.errors import FetchError
from feedwatch.feeds.base import FeedSource
from feedwatch.feeds.http_client import HTTPClient, HTTPClientError, RetryConfig
from feedwatch.feeds.schemas import FeedItem

logger = logging.getLogger(__name__)

DEFAULT_FEED_URL = "https://www.youtube.com/feeds/videos.xml?channel_id={channel_id}"

THUMBNAIL_URL = "https://i1.ytimg.com/vi/{video_id}/maxresdefault.jpg"


class YouTubeFeedSource(FeedSource):
    """
    Feed source for YouTube channel uploads.

    Polling: the feed only lists the latest ~15 uploads, and YouTube caches
    it for several minutes, so polling more than every few minutes is
    pointless.
    """

    def __init__(
        self,
        feed_url: str = DEFAULT_FEED_URL,
        retry_config: RetryConfig | None = None,
        timeout: float = 30.0,
        user_agent: str = "feedwatch/0.1.0",
    ):
        """
        Initialize YouTube feed source.

        Args:
            feed_url: URL template with a ``{channel_id}`` placeholder
            retry_config: HTTP retry behavior
            timeout: Request timeout in seconds
            user_agent: User-Agent header for feed requests
        """
        self._feed_url = feed_url
        self._retry_config = retry_config or RetryConfig()
        self._timeout = timeout
        self._user_agent = user_agent

    @property
    def name(self) -> str:
        return "youtube"

    def _get_feed_url(self, channel_id: str) -> str:
        return self._feed_url.format(channel_id=channel_id)

    async def fetch(self, source_id: str) -> list[FeedItem]:
        url = self._get_feed_url(source_id)
        logger.debug("Downloading feed from %s", url)

        try:
            async with HTTPClient(
                self._retry_config,
                timeout=self._timeout,
                headers={"User-Agent": self._user_agent},
            ) as client:
                response = await client.get(url)
        except HTTPClientError as e:
            raise FetchError(
                f"Feed request failed for channel {source_id}: {e}",
                source_id=source_id,
                status_code=e.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise FetchError(
                f"Feed request failed for channel {source_id}: {e}",
                source_id=source_id,
            ) from e

        return self.parse(response.text, source_id)

    def parse(self, document: str, source_id: str = "") -> list[FeedItem]:
        """
        Parse an Atom document into FeedItems, preserving feed order.

        Raises:
            FetchError: If the document is not a parseable feed
        """
        feed = feedparser.parse(document)
        entries = feed.get("entries", [])

        if feed.get("bozo") and not entries:
            raise FetchError(
                f"Invalid feed document for channel {source_id}: "
                f"{feed.get('bozo_exception')}",
                source_id=source_id,
            )
        if not entries and "title" not in feed.get("feed", {}):
            raise FetchError(
                f"Response for channel {source_id} is not a feed",
                source_id=source_id,
            )

        channel_name = feed.get("feed", {}).get("title", "")
        items = []
        for entry in entries:
            item = self._transform(entry, channel_name)
            if item is None:
                logger.debug("Skipping feed entry without video id in %s", source_id)
                continue
            items.append(item)

        logger.debug("Parsed %d entries from feed %s", len(items), source_id)
        return items

    def _transform(self, entry: dict[str, Any], channel_name: str) -> FeedItem | None:
        """Transform an Atom entry into a FeedItem (None when it has no video id)."""
        video_id = self._get_video_id(entry)
        if not video_id:
            return None

        return FeedItem(
            item_id=video_id,
            title=entry.get("title", ""),
            description=entry.get("media_description") or entry.get("summary", ""),
            url=entry.get("link", f"https://www.youtube.com/watch?v={video_id}"),
            # The feed carries a low resolution thumbnail; the maxresdefault
            # rendition of the same video is used instead.
            thumbnail_url=THUMBNAIL_URL.format(video_id=video_id),
            author=entry.get("author") or channel_name,
            published_at=self._parse_timestamp(entry),
        )

    def _get_video_id(self, entry: dict[str, Any]) -> str:
        video_id = entry.get("yt_videoid")
        if video_id:
            return str(video_id)

        entry_id = str(entry.get("id", ""))
        if entry_id.startswith("yt:video:"):
            return entry_id[len("yt:video:"):]
        return ""

    def _parse_timestamp(self, entry: dict[str, Any]) -> datetime | None:
        for field in ("published_parsed", "updated_parsed"):
            parsed = entry.get(field)
            if parsed:
                return datetime.fromtimestamp(calendar.timegm(parsed), tz=timezone.utc)
        return None
