"""
Command-line interface for feedwatch.

Usage:
    feedwatch run --config config.json         # Run the daemon
    feedwatch run --config config.json --noannounce
    feedwatch run-once --config config.json    # Single check of every channel
    feedwatch autospool --config config.json   # Mark current feed items as announced
    feedwatch init-spool --config config.json  # Create the spool schema
    feedwatch health --config config.json      # Show spool and config status
"""

import asyncio
import signal
import sys
from collections.abc import Awaitable, Callable
from typing import TypeVar

import click

from feedwatch.config.daemon import DaemonConfig, load_config
from feedwatch.config.settings import get_settings
from feedwatch.errors import ConfigError, StoreError, StoreInitError
from feedwatch.feeds.base import FeedSource
from feedwatch.observability.logging import setup_logging
from feedwatch.observability.metrics import get_metrics

T = TypeVar("T")

EXIT_CONFIG_ERROR = 2
EXIT_STORE_INIT_ERROR = 3
EXIT_STORE_ERROR = 4


config_option = click.option(
    "--config",
    "config_path",
    required=True,
    envvar="FEEDWATCH_CONFIG",
    type=click.Path(dir_okay=False),
    help="The config file to use",
)


def _load(config_path: str) -> DaemonConfig:
    try:
        return load_config(config_path)
    except ConfigError as e:
        click.echo(click.style(f"Config error: {e}", fg="red"), err=True)
        sys.exit(EXIT_CONFIG_ERROR)


def _run(coro_fn: Callable[[], Awaitable[T]]) -> T:
    """Run a coroutine, mapping fatal feedwatch errors to exit codes."""
    try:
        return asyncio.run(coro_fn())
    except StoreInitError as e:
        click.echo(click.style(f"Spool initialization failed: {e}", fg="red"), err=True)
        sys.exit(EXIT_STORE_INIT_ERROR)
    except StoreError as e:
        click.echo(click.style(f"Spool failure: {e}", fg="red"), err=True)
        sys.exit(EXIT_STORE_ERROR)


def _mock_feed(config: DaemonConfig) -> FeedSource:
    from feedwatch.feeds.mock import MockFeedSource, make_item

    feeds = {
        channel.channel_id: [make_item(f"{key}-seed-{i}") for i in range(3)]
        for key, channel in config.channels.items()
    }
    return MockFeedSource(feeds=feeds, upload_probability=0.3)


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
def main(debug: bool) -> None:
    """feedwatch - announce new YouTube uploads to chat webhooks."""
    setup_logging("DEBUG" if debug else None)


@main.command()
@config_option
@click.option("--noannounce", is_flag=True, help="Don't announce the items (dry run)")
@click.option("--mock", is_flag=True, help="Use a mock feed instead of YouTube")
@click.option("--metrics/--no-metrics", default=None, help="Expose Prometheus metrics")
def run(config_path: str, noannounce: bool, mock: bool, metrics: bool | None) -> None:
    """Run the daemon until SIGINT or SIGTERM."""
    from feedwatch.services.context import build_context
    from feedwatch.services.scheduler import SchedulerService

    config = _load(config_path)
    settings = get_settings()

    async def run_daemon() -> None:
        context = await build_context(
            config,
            settings,
            dry_run=noannounce,
            feed=_mock_feed(config) if mock else None,
        )
        try:
            service = SchedulerService(context)

            if settings.metrics_enabled if metrics is None else metrics:
                get_metrics().start_server()

            # Handle shutdown signals
            loop = asyncio.get_running_loop()
            for sig in (signal.SIGTERM, signal.SIGINT):
                loop.add_signal_handler(sig, lambda: asyncio.create_task(service.stop()))

            await service.start()
        finally:
            await context.close()

    _run(run_daemon)


@main.command("run-once")
@config_option
@click.option("--noannounce", is_flag=True, help="Don't announce the items (dry run)")
@click.option("--mock", is_flag=True, help="Use a mock feed instead of YouTube")
def run_once(config_path: str, noannounce: bool, mock: bool) -> None:
    """Check every channel once and exit."""
    from feedwatch.services.context import build_context
    from feedwatch.services.scheduler import SchedulerService

    config = _load(config_path)

    async def run_single() -> dict:
        context = await build_context(
            config,
            dry_run=noannounce,
            feed=_mock_feed(config) if mock else None,
        )
        try:
            return await SchedulerService(context).run_once()
        finally:
            await context.close()

    outcomes = _run(run_single)

    click.echo("\nCheck Results:")
    click.echo("-" * 40)
    for key in config.channels:
        outcome = outcomes.get(key)
        label = outcome.value if outcome is not None else "error"
        color = "red" if label in ("error", "fetch_failed", "notify_failed") else "green"
        click.echo(click.style(f"  {key}: {label}", fg=color))


@main.command()
@config_option
@click.option("--mock", is_flag=True, help="Use a mock feed instead of YouTube")
def autospool(config_path: str, mock: bool) -> None:
    """Mark every item currently in the feeds as announced."""
    from feedwatch.services.announcer import Announcer
    from feedwatch.services.context import build_context

    config = _load(config_path)

    async def run_autospool() -> dict[str, int]:
        context = await build_context(
            config,
            dry_run=True,
            feed=_mock_feed(config) if mock else None,
        )
        try:
            return await Announcer(context).autospool()
        finally:
            await context.close()

    marked = _run(run_autospool)

    for key in config.channels:
        if key in marked:
            click.echo(f"  {key}: {marked[key]} items marked")
        else:
            click.echo(click.style(f"  {key}: fetch failed", fg="red"))


@main.command("init-spool")
@config_option
def init_spool(config_path: str) -> None:
    """Create the spool schema."""
    from feedwatch.storage.spool import Spool

    config = _load(config_path)

    async def run_init() -> None:
        spool = await Spool.open(config.spool)
        await spool.close()

    _run(run_init)
    click.echo(f"Spool initialized at {config.spool}")


@main.command()
@config_option
def health(config_path: str) -> None:
    """Check the config file and the spool."""
    from feedwatch.storage.spool import Spool

    config = _load(config_path)

    async def check() -> tuple[bool, dict[str, int]]:
        spool = await Spool.open(config.spool)
        try:
            return await spool.health_check(), await spool.count_by_source()
        finally:
            await spool.close()

    healthy, counts = _run(check)

    click.echo("\nHealth Check Results:")
    click.echo("-" * 40)
    icon, color = ("✓", "green") if healthy else ("✗", "red")
    click.echo(click.style(f"  {icon} spool: {config.spool}", fg=color))
    for key, channel in config.channels.items():
        click.echo(
            f"  {key}: channel={channel.channel_id} "
            f"announced={counts.get(key, 0)} "
            f"role={'yes' if channel.role_id else 'no'}"
        )
    click.echo("-" * 40)

    if not healthy:
        sys.exit(1)


if __name__ == "__main__":
    main()
