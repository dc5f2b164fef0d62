"""Coercion and sanitizing of samples, pending records and reconciliation pairs.

Inputs come from three places: callers (loose mappings or models), stored
objects written by older versions (legacy field names such as ``ts``,
``offer_id`` or ``profileId``), and status checks. Everything is funnelled
through the helpers here so the stores only ever handle validated models.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import UTC, date, datetime, time
from decimal import Decimal, InvalidOperation
from typing import Any

from pydantic import ValidationError

from pricetrack.core.exceptions import InvalidInputError, NormalizationDropError
from pricetrack.core.logging import get_logger
from pricetrack.core.models import (
    MetricKind,
    PendingRecord,
    ReconciliationPair,
    Sample,
    Series,
)

logger = get_logger(__name__)

TIMESTAMP_FIELDS = ("timestamp", "ts", "date")
PAYLOAD_FIELDS = ("rawPayload", "raw_payload", "data", "price_data", "priceData")
VOLATILE_ID_FIELDS = ("volatileId", "volatile_id", "offer_id", "offerId")
BATCH_ID_FIELDS = ("batchId", "batch_id", "task_id", "taskId")
SCOPE_ID_FIELDS = ("scopeId", "scope_id", "profileId", "profile_id")
STABLE_ID_FIELDS = ("stableId", "stable_id", "sku", "product_id", "productId", "id")


def _value_fields(kind: MetricKind) -> tuple[str, ...]:
    fields = ["numericValue", "numeric_value", kind.value_field, "price", "net_price", "value"]
    return tuple(dict.fromkeys(fields))


def _first(entry: Mapping[str, Any], names: Iterable[str]) -> Any:
    for name in names:
        value = entry.get(name)
        if value is not None:
            return value
    return None


def _optional_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def parse_timestamp(value: Any) -> datetime:
    """Parse ``value`` into an aware UTC datetime.

    Accepts datetimes (naive ones are taken as UTC), dates, ISO-8601 strings
    and epoch seconds. Raises ``ValueError`` for anything else.
    """
    if isinstance(value, datetime):
        return value.replace(tzinfo=UTC) if value.tzinfo is None else value.astimezone(UTC)
    if isinstance(value, date):
        return datetime.combine(value, time(), tzinfo=UTC)
    if isinstance(value, bool):
        raise ValueError("boolean is not a timestamp")
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value, tz=UTC)
        except (OverflowError, OSError) as exc:
            raise ValueError(f"epoch value out of range: {value}") from exc
    if isinstance(value, str):
        text = value.strip()
        if not text:
            raise ValueError("empty timestamp")
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        return parse_timestamp(datetime.fromisoformat(text))
    raise ValueError(f"unsupported timestamp type: {type(value).__name__}")


def parse_decimal(value: Any) -> Decimal | None:
    """Return a finite Decimal for numeric input, None otherwise."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        number = value
    elif isinstance(value, (int, float, str)):
        try:
            number = Decimal(str(value).strip())
        except InvalidOperation:
            return None
    else:
        return None
    return number if number.is_finite() else None


def resolve_value(kind: MetricKind, entry: Mapping[str, Any]) -> tuple[Decimal | None, dict[str, Any] | None]:
    """Extract the numeric value and raw payload of an entry.

    An explicit numeric value wins over the payload's ``kind.value_field``.
    A mapping found under a value field (legacy ``price: {...}``) is treated
    as the raw payload.
    """
    payload = _first(entry, PAYLOAD_FIELDS)
    raw_value = _first(entry, _value_fields(kind))
    if isinstance(raw_value, Mapping):
        if not isinstance(payload, Mapping):
            payload = raw_value
        raw_value = None
    payload_dict = dict(payload) if isinstance(payload, Mapping) else None

    numeric = parse_decimal(raw_value)
    if numeric is None and payload_dict is not None:
        numeric = parse_decimal(payload_dict.get(kind.value_field))
    return numeric, payload_dict


def _checked_sample(kind: MetricKind, sample: Sample) -> Sample:
    numeric = sample.numeric_value
    if numeric is None and sample.raw_payload is not None:
        numeric = parse_decimal(sample.raw_payload.get(kind.value_field))
        if numeric is not None:
            sample = sample.model_copy(update={"numeric_value": numeric})
    if kind.require_numeric and numeric is None:
        raise ValueError(f"{kind.name} samples need a numeric value")
    return sample


def build_sample(
    kind: MetricKind,
    *,
    timestamp: Any,
    value: Any = None,
    raw_payload: Mapping[str, Any] | None = None,
) -> Sample:
    """Build a validated sample, raising :class:`InvalidInputError`."""
    entry: dict[str, Any] = {"timestamp": timestamp, "numericValue": value, "rawPayload": raw_payload}
    return coerce_sample(kind, entry)


def coerce_sample(kind: MetricKind, sample: Sample | Mapping[str, Any]) -> Sample:
    """Validate a caller-supplied sample for ``kind``.

    Raises :class:`InvalidInputError`; callers asked to record this sample
    explicitly, so it is never dropped silently.
    """
    if isinstance(sample, Sample):
        try:
            return _checked_sample(kind, sample)
        except ValueError as exc:
            raise InvalidInputError(str(exc), context={"kind": kind.name}) from exc

    if not isinstance(sample, Mapping):
        raise InvalidInputError("sample must be a Sample or a mapping", context={"kind": kind.name})

    raw_ts = _first(sample, TIMESTAMP_FIELDS)
    if raw_ts is None:
        raise InvalidInputError("sample timestamp is required", context={"kind": kind.name})
    try:
        timestamp = parse_timestamp(raw_ts)
    except ValueError as exc:
        raise InvalidInputError(
            "sample timestamp cannot be parsed", context={"kind": kind.name, "timestamp": str(raw_ts)}
        ) from exc

    numeric, payload = resolve_value(kind, sample)
    if numeric is None and payload is None:
        raise InvalidInputError("sample needs a numeric value or a raw payload", context={"kind": kind.name})
    if kind.require_numeric and numeric is None:
        raise InvalidInputError(f"{kind.name} samples need a numeric value", context={"kind": kind.name})
    return Sample(timestamp=timestamp, numeric_value=numeric, raw_payload=payload)


def _stored_sample(kind: MetricKind, item: Any) -> Sample:
    if not isinstance(item, Mapping):
        raise NormalizationDropError("stored sample is not an object")
    raw_ts = _first(item, TIMESTAMP_FIELDS)
    try:
        timestamp = parse_timestamp(raw_ts)
    except ValueError as exc:
        raise NormalizationDropError("unparseable timestamp", context={"timestamp": str(raw_ts)}) from exc
    numeric, payload = resolve_value(kind, item)
    if numeric is None and (payload is None or kind.require_numeric):
        raise NormalizationDropError("no usable value", context={"timestamp": str(raw_ts)})
    return Sample(timestamp=timestamp, numeric_value=numeric, raw_payload=payload)


def sanitize_series(kind: MetricKind, items: Any, *, source: str = "storage") -> Series:
    """Deserialize a stored series, dropping malformed entries, newest first."""
    if items is None:
        return []
    if not isinstance(items, list):
        logger.warning("Stored series is not a list, ignoring it", metric_kind=kind.name, source=source)
        return []
    samples: Series = []
    for item in items:
        try:
            samples.append(_stored_sample(kind, item))
        except NormalizationDropError as drop:
            _log_drop(kind, drop, source)
    samples.sort(key=lambda sample: sample.timestamp, reverse=True)
    return samples


def normalize_pending_record(kind: MetricKind, entry: PendingRecord | Mapping[str, Any]) -> PendingRecord:
    """Validate one pending record, raising :class:`NormalizationDropError`."""
    if isinstance(entry, PendingRecord):
        return entry
    if not isinstance(entry, Mapping):
        raise NormalizationDropError("pending record is not an object")

    volatile_id = _optional_text(_first(entry, VOLATILE_ID_FIELDS))
    if volatile_id is None:
        raise NormalizationDropError("missing volatile id")

    raw_ts = _first(entry, TIMESTAMP_FIELDS)
    if raw_ts is None:
        raise NormalizationDropError("missing timestamp", context={"volatile_id": volatile_id})
    try:
        timestamp = parse_timestamp(raw_ts)
    except ValueError as exc:
        raise NormalizationDropError(
            "unparseable timestamp", context={"volatile_id": volatile_id, "timestamp": str(raw_ts)}
        ) from exc

    numeric, payload = resolve_value(kind, entry)
    if numeric is None:
        raise NormalizationDropError("missing value", context={"volatile_id": volatile_id})

    try:
        return PendingRecord(
            volatile_id=volatile_id,
            numeric_value=numeric,
            raw_payload=payload,
            batch_id=_optional_text(_first(entry, BATCH_ID_FIELDS)),
            scope_id=_optional_text(_first(entry, SCOPE_ID_FIELDS)),
            timestamp=timestamp,
        )
    except ValidationError as exc:
        raise NormalizationDropError("invalid pending record", context={"volatile_id": volatile_id}) from exc


def normalize_pending_records(kind: MetricKind, entries: Any, *, source: str = "input") -> list[PendingRecord]:
    """Normalize a batch, logging and skipping every invalid record."""
    if entries is None:
        return []
    if not isinstance(entries, (list, tuple)):
        logger.warning("Pending records are not a list, ignoring them", metric_kind=kind.name, source=source)
        return []
    records: list[PendingRecord] = []
    for entry in entries:
        try:
            records.append(normalize_pending_record(kind, entry))
        except NormalizationDropError as drop:
            _log_drop(kind, drop, source)
    return records


def normalize_pair(
    entry: ReconciliationPair | Mapping[str, Any],
    fallback_scope_id: str | None = None,
) -> ReconciliationPair | None:
    """Normalize a reconciliation pair; unscoped pairs inherit the caller's scope."""
    if isinstance(entry, ReconciliationPair):
        if entry.scope_id is None and fallback_scope_id:
            return entry.model_copy(update={"scope_id": fallback_scope_id})
        return entry
    if not isinstance(entry, Mapping):
        return None
    volatile_id = _optional_text(_first(entry, VOLATILE_ID_FIELDS))
    stable_id = _optional_text(_first(entry, STABLE_ID_FIELDS))
    if volatile_id is None or stable_id is None:
        return None
    scope_id = _optional_text(_first(entry, SCOPE_ID_FIELDS)) or fallback_scope_id
    return ReconciliationPair(volatile_id=volatile_id, stable_id=stable_id, scope_id=scope_id)


def normalize_pairs(entries: Any, fallback_scope_id: str | None = None) -> list[ReconciliationPair]:
    if not entries or not isinstance(entries, (list, tuple)):
        return []
    pairs = [normalize_pair(entry, fallback_scope_id) for entry in entries]
    return [pair for pair in pairs if pair is not None]


def _log_drop(kind: MetricKind, drop: NormalizationDropError, source: str) -> None:
    logger.warning(
        "Dropped invalid entry: " + drop.reason,
        metric_kind=kind.name,
        error_code=drop.error_code,
        source=source,
        **drop.context,
    )


__all__ = [
    "parse_timestamp",
    "parse_decimal",
    "resolve_value",
    "build_sample",
    "coerce_sample",
    "sanitize_series",
    "normalize_pending_record",
    "normalize_pending_records",
    "normalize_pair",
    "normalize_pairs",
]
