"""Configuration management module."""

from pricetrack.core.config.settings import (
    ConfigManager,
    LoggingConfig,
    MetricKindConfig,
    StorageConfig,
    TrackerConfig,
    get_default_config,
    load_config_from_env,
    parse_optional_int,
)

__all__ = [
    "ConfigManager",
    "TrackerConfig",
    "StorageConfig",
    "LoggingConfig",
    "MetricKindConfig",
    "get_default_config",
    "load_config_from_env",
    "parse_optional_int",
]
