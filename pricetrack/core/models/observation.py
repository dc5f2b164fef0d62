"""Observation models: series samples, pending records and reconciliation pairs."""

from __future__ import annotations

from datetime import UTC, datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator, model_validator

DEFAULT_SCOPE = "default"


def _ensure_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def format_timestamp(value: datetime) -> str:
    """Render a timestamp as a UTC ISO-8601 string with a ``Z`` suffix."""
    return _ensure_utc(value).isoformat().replace("+00:00", "Z")


class _WireModel(BaseModel):
    """Shared config: snake_case attributes, camelCase on the wire."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @field_validator("timestamp", check_fields=False)
    @classmethod
    def _utc_timestamp(cls, value: datetime) -> datetime:
        return _ensure_utc(value)

    @field_serializer("timestamp", when_used="json", check_fields=False)
    def _serialize_timestamp(self, value: datetime) -> str:
        return format_timestamp(value)

    @field_serializer("numeric_value", when_used="json", check_fields=False)
    def _serialize_numeric(self, value: Decimal | None) -> float | None:
        """Persisted values are JSON numbers (IEEE doubles).

        Up to 15 significant digits survive a write/read cycle exactly;
        longer values are rounded to the nearest double. The in-process
        ``Decimal`` is never rounded.
        """
        if value is None:
            return None
        return float(value)

    def to_wire(self) -> dict[str, Any]:
        """JSON-ready mapping in the persisted object layout."""
        return self.model_dump(mode="json", by_alias=True)


class Sample(_WireModel):
    """单个时间序列观测值."""

    timestamp: datetime
    numeric_value: Decimal | None = Field(default=None, alias="numericValue")
    raw_payload: dict[str, Any] | None = Field(default=None, alias="rawPayload")

    @model_validator(mode="after")
    def _has_value(self) -> Sample:
        if self.numeric_value is None and self.raw_payload is None:
            raise ValueError("sample needs a numeric value or a raw payload")
        return self


Series = list[Sample]


class PendingRecord(_WireModel):
    """An observation keyed by an offer code, waiting for its stable identifier."""

    volatile_id: str = Field(alias="volatileId", min_length=1)
    numeric_value: Decimal = Field(alias="numericValue")
    raw_payload: dict[str, Any] | None = Field(default=None, alias="rawPayload")
    batch_id: str | None = Field(default=None, alias="batchId")
    scope_id: str | None = Field(default=None, alias="scopeId")
    timestamp: datetime

    @property
    def dedup_key(self) -> tuple[str, str]:
        return (self.scope_id or DEFAULT_SCOPE, self.volatile_id)


class ReconciliationPair(BaseModel):
    """A volatile identifier that is now known to map to a stable one."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    volatile_id: str = Field(alias="volatileId", min_length=1)
    stable_id: str = Field(alias="stableId", min_length=1)
    scope_id: str | None = Field(default=None, alias="scopeId")


class ResolvedRecord(PendingRecord):
    """A pending record matched to a stable identifier.

    ``volatile_id`` keeps the offer code the observation was submitted under;
    ``entity_key`` is the stable identifier the record now belongs to.
    """

    stable_id: str = Field(alias="stableId", min_length=1)

    @property
    def entity_key(self) -> str:
        return self.stable_id

    def to_sample(self) -> Sample:
        return Sample(
            timestamp=self.timestamp,
            numeric_value=self.numeric_value,
            raw_payload=self.raw_payload,
        )


class LatestValue(BaseModel):
    """Newest sample of one entity, or empty fields when it has no history."""

    entity_key: str
    timestamp: datetime | None = None
    numeric_value: Decimal | None = None
    raw_payload: dict[str, Any] | None = None


__all__ = [
    "DEFAULT_SCOPE",
    "Sample",
    "Series",
    "PendingRecord",
    "ReconciliationPair",
    "ResolvedRecord",
    "LatestValue",
    "format_timestamp",
]
