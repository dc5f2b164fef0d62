"""Domain models."""

from pricetrack.core.models.metric import BUILTIN_KINDS, NET_PRICE, PRICE, MetricKind
from pricetrack.core.models.observation import (
    DEFAULT_SCOPE,
    LatestValue,
    PendingRecord,
    ReconciliationPair,
    ResolvedRecord,
    Sample,
    Series,
    format_timestamp,
)

__all__ = [
    "MetricKind",
    "PRICE",
    "NET_PRICE",
    "BUILTIN_KINDS",
    "DEFAULT_SCOPE",
    "Sample",
    "Series",
    "PendingRecord",
    "ReconciliationPair",
    "ResolvedRecord",
    "LatestValue",
    "format_timestamp",
]
