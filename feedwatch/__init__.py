"""feedwatch - announce new feed items to chat webhooks without duplicates."""

__version__ = "0.1.0"
