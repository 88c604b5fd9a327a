"""Notifier implementations for announcing feed items.

Provides an ABC for notifiers plus a webhook notifier that speaks both
Discord and Slack incoming-webhook formats, selected per destination.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any

import httpx

from feedwatch.errors import NotifyError
from feedwatch.feeds.http_client import HTTPClient, HTTPClientError, RetryConfig
from feedwatch.feeds.schemas import FeedItem
from feedwatch.sources.schemas import Destination

logger = logging.getLogger(__name__)

DESCRIPTION_LIMIT = 240


class Notifier(ABC):
    """Abstract base for announcement delivery."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique identifier for this notifier (e.g. 'webhook')."""

    @abstractmethod
    async def send(self, item: FeedItem, destination: Destination) -> None:
        """Announce an item at a destination.

        Args:
            item: Item to announce.
            destination: Where to announce it.

        Raises:
            NotifyError: If the announcement was not delivered.
        """


def cleanup_description(description: str) -> str:
    """Keep the first paragraph, truncated to fit in an embed."""
    paragraph = description.split("\n")[0]
    if len(paragraph) > DESCRIPTION_LIMIT:
        return paragraph[: DESCRIPTION_LIMIT - 3] + "..."
    return paragraph


def discord_payload(item: FeedItem, destination: Destination) -> dict[str, Any]:
    """Build a Discord webhook message: title and link, role ping, one embed."""
    content = f"**{item.title}**\n<{item.url}>"
    if destination.role_id:
        content += f" <@&{destination.role_id}>"

    embed: dict[str, Any] = {
        "author": {"name": item.author},
        "title": item.title,
        "description": cleanup_description(item.description),
        "url": item.url,
    }
    if item.thumbnail_url:
        embed["image"] = {"url": item.thumbnail_url}

    return {
        "content": content,
        "embeds": [embed],
        "allowed_mentions": {
            "parse": [],
            "roles": [destination.role_id] if destination.role_id else [],
        },
    }


def slack_payload(item: FeedItem, destination: Destination) -> dict[str, Any]:
    """Build a Slack Block Kit message for an item."""
    mention = f" <!subteam^{destination.role_id}>" if destination.role_id else ""
    blocks: list[dict[str, Any]] = [
        {
            "type": "header",
            "text": {"type": "plain_text", "text": item.title or item.item_id},
        },
        {
            "type": "section",
            "text": {
                "type": "mrkdwn",
                "text": f"<{item.url}|{item.author or 'Watch now'}>{mention}\n"
                f"{cleanup_description(item.description)}",
            },
        },
    ]
    if item.thumbnail_url:
        blocks.append(
            {"type": "image", "image_url": item.thumbnail_url, "alt_text": item.title}
        )

    return {"text": f"{item.title} {item.url}", "blocks": blocks}


class WebhookNotifier(Notifier):
    """Posts announcements to Discord or Slack incoming webhooks.

    Creates a short-lived ``HTTPClient`` per call; 429 and 5xx responses
    are retried with backoff before giving up.
    """

    def __init__(
        self,
        retry_config: RetryConfig | None = None,
        timeout: float = 10.0,
    ) -> None:
        self._retry_config = retry_config or RetryConfig()
        self._timeout = timeout

    @property
    def name(self) -> str:
        return "webhook"

    def build_payload(self, item: FeedItem, destination: Destination) -> dict[str, Any]:
        if destination.platform == "slack":
            return slack_payload(item, destination)
        return discord_payload(item, destination)

    async def send(self, item: FeedItem, destination: Destination) -> None:
        logger.info("Announcing item %s via %s webhook", item.item_id, destination.platform)
        payload = self.build_payload(item, destination)
        try:
            async with HTTPClient(self._retry_config, timeout=self._timeout) as client:
                await client.post(destination.webhook_url, json_body=payload)
        except HTTPClientError as e:
            logger.warning(
                "Webhook returned %s for item %s", e.status_code, item.item_id,
            )
            raise NotifyError(
                f"Webhook delivery failed for item {item.item_id}: {e}",
                item_id=item.item_id,
                status_code=e.status_code,
            ) from e
        except httpx.HTTPError as e:
            logger.warning("Webhook failed for item %s: %s", item.item_id, e)
            raise NotifyError(
                f"Webhook delivery failed for item {item.item_id}: {e}",
                item_id=item.item_id,
            ) from e

        logger.info("Announced item %s", item.item_id)
