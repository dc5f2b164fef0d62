"""Metric kind value object.

A metric kind names one family of observations (price, net price) and carries
everything the generic series store and pending queue need to know about it:
where its objects live and how long and how many entries are retained.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator


class MetricKind(BaseModel):
    """Storage and retention parameters for one metric family."""

    model_config = ConfigDict(frozen=True)

    name: str
    key_prefix: str
    value_field: str = "value"
    retention_window_days: int | None = None
    recent_window_days: int = 30
    max_series_entries: int | None = 400
    max_pending_entries: int | None = 1000
    pending_retention_days: int | None = 120
    require_numeric: bool = False
    description: str = Field(default="", repr=False)

    @field_validator("name", "key_prefix")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip().strip("/")
        if not value:
            raise ValueError("must not be blank")
        return value

    @field_validator("max_series_entries", "max_pending_entries")
    @classmethod
    def _non_positive_means_unbounded(cls, value: int | None) -> int | None:
        if value is not None and value <= 0:
            return None
        return value

    def series_key(self, entity_key: str) -> str:
        """Object key of the series for ``entity_key`` (already trimmed)."""
        return f"{self.key_prefix}/{entity_key}.json"

    @property
    def pending_key(self) -> str:
        return f"{self.key_prefix}/pending.json"


PRICE = MetricKind(
    name="price",
    key_prefix="price-history",
    value_field="price",
    retention_window_days=90,
    recent_window_days=30,
    max_series_entries=400,
    max_pending_entries=1000,
    pending_retention_days=120,
    require_numeric=False,
    description="Listed price with its full marketplace breakdown",
)

NET_PRICE = MetricKind(
    name="net_price",
    key_prefix="net-price",
    value_field="net_price",
    retention_window_days=None,
    recent_window_days=90,
    max_series_entries=400,
    max_pending_entries=1000,
    pending_retention_days=180,
    require_numeric=True,
    description="Net price (cost) kept indefinitely, bounded by count only",
)

BUILTIN_KINDS: dict[str, MetricKind] = {PRICE.name: PRICE, NET_PRICE.name: NET_PRICE}


__all__ = ["MetricKind", "PRICE", "NET_PRICE", "BUILTIN_KINDS"]
