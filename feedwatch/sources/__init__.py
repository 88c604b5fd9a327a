"""Sources: monitored feed configurations and their runtime state."""

from feedwatch.sources.schemas import Destination, MonitoredSource
from feedwatch.sources.state import SourceState, SourceStateRegistry

__all__ = [
    "Destination",
    "MonitoredSource",
    "SourceState",
    "SourceStateRegistry",
]
