"""
Daemon configuration file.

The JSON file names the spool, the startup policy flags and the channels
to monitor. Each key of ``channels`` is the unique name of a monitoring
configuration; the same YouTube channel may appear under several keys
to announce it to several webhooks.

Example:
    {
      "spool": "./data/spool.db",
      "autodiscard": true,
      "channels": {
        "main_channel": {
          "channel_id": "UC_TheMainChannelID",
          "webhook_url": "https://discord.com/api/webhooks/1/abc",
          "role_id": "12341234"
        }
      }
    }
"""

import logging
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from feedwatch.errors import ConfigError
from feedwatch.sources.schemas import Destination, MonitoredSource

logger = logging.getLogger(__name__)


class ChannelConfig(BaseModel):
    """One entry of the ``channels`` object."""

    model_config = ConfigDict(extra="ignore")

    channel_id: str = Field(min_length=1, description="Feed identifier (YouTube channel ID)")
    webhook_url: str = Field(min_length=1, description="Webhook receiving the announcements")
    role_id: str | None = Field(default=None, description="Role to ping; omit to not ping")
    platform: Literal["discord", "slack"] = "discord"
    poll_interval_minutes: int | None = Field(
        default=None,
        ge=1,
        description="Minutes between feed checks (defaults to the top-level value)",
    )

    @field_validator("role_id", mode="before")
    @classmethod
    def _normalize_role(cls, value: object) -> object:
        if value is None:
            return None
        if isinstance(value, int):
            return str(value)
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("webhook_url")
    @classmethod
    def _check_url(cls, value: str) -> str:
        if not value.startswith(("http://", "https://")):
            raise ValueError("webhook_url must be an http(s) URL")
        return value


class DaemonConfig(BaseModel):
    """Complete settings of a feedwatch daemon run."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    spool: str = Field(min_length=1, description="Spool file path (or ':memory:')")
    autospool_on_startup: bool = Field(
        default=True,
        alias="autodiscard",
        description="Mark everything currently in the feeds as announced on startup",
    )
    dry_run_disable_notify: bool = Field(
        default=False,
        alias="noannounce",
        description="Advance the spool without sending announcements",
    )
    tick_interval_minutes: int = Field(default=1, ge=1)
    poll_interval_minutes: int = Field(default=10, ge=1)
    channels: dict[str, ChannelConfig]

    @field_validator("channels")
    @classmethod
    def _require_channels(cls, value: dict[str, ChannelConfig]) -> dict[str, ChannelConfig]:
        if not value:
            raise ValueError("at least one channel must be configured")
        for key in value:
            if not key.strip():
                raise ValueError("channel keys must not be blank")
        return value

    def monitored_sources(self) -> list[MonitoredSource]:
        """Build the monitored sources, in file order."""
        sources = []
        for key, channel in self.channels.items():
            sources.append(
                MonitoredSource(
                    key=key,
                    source_id=channel.channel_id,
                    destination=Destination(
                        webhook_url=channel.webhook_url,
                        role_id=channel.role_id,
                        platform=channel.platform,
                    ),
                    poll_interval_minutes=(
                        channel.poll_interval_minutes or self.poll_interval_minutes
                    ),
                )
            )
        return sources


def parse_config(data: str | bytes) -> DaemonConfig:
    """
    Parse a JSON configuration document.

    Args:
        data: JSON text

    Returns:
        Validated DaemonConfig

    Raises:
        ConfigError: If the document is not valid JSON or fails validation
    """
    try:
        return DaemonConfig.model_validate_json(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid config: {e}") from e


def load_config(path: str | Path) -> DaemonConfig:
    """
    Read and validate the configuration file at ``path``.

    Raises:
        ConfigError: If the file cannot be read or is invalid
    """
    path = Path(path)
    try:
        data = path.read_bytes()
    except OSError as e:
        raise ConfigError(f"Cannot read config file {path}: {e}") from e

    config = parse_config(data)
    logger.info("Loaded config %s with %d channels", path, len(config.channels))
    return config
