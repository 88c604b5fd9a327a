"""Configuration: environment settings and the daemon config file."""

from feedwatch.config.daemon import ChannelConfig, DaemonConfig, load_config, parse_config
from feedwatch.config.settings import Settings, get_settings

__all__ = [
    "ChannelConfig",
    "DaemonConfig",
    "Settings",
    "get_settings",
    "load_config",
    "parse_config",
]
