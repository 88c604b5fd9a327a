"""Observability layer - logging and metrics."""

from feedwatch.observability.logging import log_context, setup_logging
from feedwatch.observability.metrics import MetricsCollector, get_metrics

__all__ = ["setup_logging", "log_context", "MetricsCollector", "get_metrics"]
