"""Canonical error codes shared across the pricetrack error hierarchy."""

from __future__ import annotations

from enum import Enum


class ErrorCode(str, Enum):
    """Stable identifiers attached to every :class:`PriceTrackError`."""

    GENERAL_ERROR = "GENERAL_ERROR"
    INVALID_INPUT = "INVALID_INPUT"
    NORMALIZATION_DROP = "NORMALIZATION_DROP"
    PERSISTENCE_UNAVAILABLE = "PERSISTENCE_UNAVAILABLE"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    UNKNOWN_METRIC_KIND = "UNKNOWN_METRIC_KIND"


__all__ = ["ErrorCode"]
