"""Services that check feeds and announce new items."""

from feedwatch.services.announcer import Announcer, PollOutcome
from feedwatch.services.context import AnnouncerContext, build_context
from feedwatch.services.scheduler import SchedulerService

__all__ = [
    "Announcer",
    "AnnouncerContext",
    "PollOutcome",
    "SchedulerService",
    "build_context",
]
