"""Notifiers - deliver announcements about new feed items."""

from feedwatch.notify.channels import (
    Notifier,
    WebhookNotifier,
    cleanup_description,
    discord_payload,
    slack_payload,
)

__all__ = [
    "Notifier",
    "WebhookNotifier",
    "cleanup_description",
    "discord_payload",
    "slack_payload",
]
