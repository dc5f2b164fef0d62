"""Logging utilities for monitoring and debugging."""

from pricetrack.core.logging.config import LogConfig
from pricetrack.core.logging.logger import (
    StructuredLogger,
    configure_logging,
    get_logger,
    log_context,
    logger,
)

__all__ = [
    "LogConfig",
    "StructuredLogger",
    "get_logger",
    "configure_logging",
    "log_context",
    "logger",
]
