"""
Logging setup for the feedwatch daemon.

Services emit structlog key/value events (source_key, item_id, outcome);
storage, feed and notifier modules use plain stdlib loggers. Both end up
on stdout through the root handler configured here: one JSON object per
line in production, colored console lines otherwise.
"""

import logging
import sys
from contextlib import AbstractContextManager
from typing import Any

import structlog
from structlog.types import Processor

from feedwatch.config.settings import get_settings

# Libraries that log every request or loop event at INFO/DEBUG
QUIET_LOGGERS = ("httpx", "httpcore", "asyncio")


def setup_logging(level: str | None = None) -> None:
    """Configure structlog and the root logger; ``level`` overrides LOG_LEVEL."""
    settings = get_settings()
    log_level = level or settings.log_level

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]
    if settings.is_production:
        processors += [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level),
    )

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def log_context(**kwargs: Any) -> AbstractContextManager[None]:
    """
    Bind fields to every log event emitted inside the ``with`` block.

    Tasks created inside the block inherit the fields. On exit only these
    keys are restored to their previous values; anything else bound by the
    caller is left alone.
    """
    return structlog.contextvars.bound_contextvars(**kwargs)
