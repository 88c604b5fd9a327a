"""
Prometheus metrics for monitoring the announcer daemon.

Defines and exposes metrics for:
- Feed fetches and fetch latency per source
- Notifications sent, failed, or skipped in dry-run mode
- Items marked in the spool and why
- Scheduler tick duration

Metrics are exposed via HTTP endpoint for Prometheus scraping.
"""

import logging
import time

from prometheus_client import (
    REGISTRY,
    Counter,
    Gauge,
    Histogram,
    start_http_server,
)

from feedwatch.config.settings import get_settings

logger = logging.getLogger(__name__)

# Buckets for latency histograms (in seconds)
LATENCY_BUCKETS = (0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0)


class MetricsCollector:
    """
    Prometheus metrics collector for the feedwatch daemon.

    Usage:
        metrics = get_metrics()
        metrics.start_server()
        metrics.record_fetch("main_channel", "success", latency=0.3)
    """

    def __init__(self):
        """Initialize Prometheus metrics."""

        self.feed_fetches = Counter(
            "feedwatch_feed_fetches_total",
            "Total feed fetch attempts",
            ["source", "status"],  # status: success, error
        )

        self.notifications = Counter(
            "feedwatch_notifications_total",
            "Total announcement attempts",
            ["source", "status"],  # status: sent, failed, dry_run
        )

        self.items_marked = Counter(
            "feedwatch_items_marked_total",
            "Total items recorded in the spool",
            ["source", "reason"],  # reason: notified, autospool, baseline
        )

        self.fetch_latency = Histogram(
            "feedwatch_fetch_latency_seconds",
            "Time to fetch and parse a feed",
            ["source"],
            buckets=LATENCY_BUCKETS,
        )

        self.tick_duration = Histogram(
            "feedwatch_tick_duration_seconds",
            "Time to process every source in one scheduler tick",
            buckets=LATENCY_BUCKETS,
        )

        self.last_tick = Gauge(
            "feedwatch_last_tick_timestamp",
            "Unix timestamp of the last completed scheduler tick",
        )

        logger.info("Prometheus metrics initialized")

    def start_server(self, port: int | None = None) -> None:
        """
        Start Prometheus metrics HTTP server.

        Args:
            port: Port to expose metrics on (default from settings)
        """
        settings = get_settings()
        port = port or settings.metrics_port

        start_http_server(port, registry=REGISTRY)
        logger.info("Prometheus metrics server started on port %d", port)

    # Convenience methods

    def record_fetch(self, source: str, status: str, latency: float | None = None) -> None:
        """Record a feed fetch attempt for a source."""
        self.feed_fetches.labels(source=source, status=status).inc()
        if latency is not None:
            self.fetch_latency.labels(source=source).observe(latency)

    def record_notification(self, source: str, status: str) -> None:
        """Record an announcement outcome for a source."""
        self.notifications.labels(source=source, status=status).inc()

    def record_marked(self, source: str, reason: str, count: int = 1) -> None:
        """Record items written to the spool."""
        if count > 0:
            self.items_marked.labels(source=source, reason=reason).inc(count)

    def record_tick(self, duration: float) -> None:
        """Record a completed scheduler tick."""
        self.tick_duration.observe(duration)
        self.last_tick.set(time.time())


# Global metrics instance
_metrics: MetricsCollector | None = None


def get_metrics() -> MetricsCollector:
    """Get global metrics collector instance."""
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
    return _metrics
