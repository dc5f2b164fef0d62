"""Caller-facing price tracking flows.

``PriceTracker`` wires one :class:`SeriesStore` and one :class:`PendingQueue`
per metric kind and implements the three flows the dashboard relies on:
recording observations at import time, promoting pending observations once a
status check reveals stable identifiers, and reading history back.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from pricetrack.core.exceptions import (
    InvalidInputError,
    NormalizationDropError,
    UnknownMetricKindError,
)
from pricetrack.core.logging import get_logger, log_context
from pricetrack.core.models import (
    BUILTIN_KINDS,
    NET_PRICE,
    PRICE,
    LatestValue,
    MetricKind,
    ReconciliationPair,
    ResolvedRecord,
    Series,
)
from pricetrack.core.services.normalization import build_sample, normalize_pending_record, parse_decimal
from pricetrack.core.services.pending import Backlog, PendingQueue
from pricetrack.core.services.series import SeriesStore
from pricetrack.core.storage import FallbackCache, InMemoryFallbackCache, ObjectStore

logger = get_logger(__name__)


@dataclass(frozen=True)
class RecordOutcome:
    """Where a recorded observation went."""

    kind: str
    key: str
    queued: bool
    size: int


@dataclass
class ReconcileReport:
    """Result of promoting resolved pending records into their series."""

    resolved: dict[str, list[ResolvedRecord]] = field(default_factory=dict)
    appended: dict[str, int] = field(default_factory=dict)
    failed: dict[str, int] = field(default_factory=dict)

    @property
    def total_resolved(self) -> int:
        return sum(len(records) for records in self.resolved.values())


class PriceTracker:
    """Facade over the per-kind series stores and pending queues."""

    def __init__(
        self,
        object_store: ObjectStore,
        fallback_cache: FallbackCache | None = None,
        *,
        kinds: Iterable[MetricKind] | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.object_store = object_store
        self.fallback_cache = fallback_cache or InMemoryFallbackCache()
        self._clock = clock or (lambda: datetime.now(UTC))
        selected = list(kinds) if kinds is not None else list(BUILTIN_KINDS.values())
        self.kinds: dict[str, MetricKind] = {kind.name: kind for kind in selected}
        self._series = {
            name: SeriesStore(kind, object_store, self.fallback_cache, clock=self._clock)
            for name, kind in self.kinds.items()
        }
        self._pending = {
            name: PendingQueue(kind, object_store, self.fallback_cache, clock=self._clock)
            for name, kind in self.kinds.items()
        }

    def _kind_name(self, kind: str | MetricKind) -> str:
        name = kind.name if isinstance(kind, MetricKind) else str(kind).strip()
        if name not in self.kinds:
            raise UnknownMetricKindError(name, sorted(self.kinds))
        return name

    def series(self, kind: str | MetricKind) -> SeriesStore:
        return self._series[self._kind_name(kind)]

    def pending(self, kind: str | MetricKind) -> PendingQueue:
        return self._pending[self._kind_name(kind)]

    async def record(
        self,
        kind: str | MetricKind,
        *,
        value: Any = None,
        raw_payload: Mapping[str, Any] | None = None,
        stable_id: Any = None,
        volatile_id: Any = None,
        timestamp: Any = None,
        batch_id: str | None = None,
        scope_id: str | None = None,
    ) -> RecordOutcome:
        """Record one observation.

        Goes straight to the series when ``stable_id`` is known, otherwise
        into the pending queue under ``volatile_id``. A missing timestamp
        means "now". Invalid observations raise :class:`InvalidInputError`.
        """
        name = self._kind_name(kind)
        ts = timestamp if timestamp is not None else self._clock()
        stable = str(stable_id).strip() if stable_id is not None else ""
        volatile = str(volatile_id).strip() if volatile_id is not None else ""

        if stable:
            sample = build_sample(self.kinds[name], timestamp=ts, value=value, raw_payload=raw_payload)
            series = await self._series[name].append(stable, sample)
            return RecordOutcome(kind=name, key=stable, queued=False, size=len(series))

        if not volatile:
            raise InvalidInputError("either a stable or a volatile identifier is required", context={"kind": name})

        entry = {
            "volatileId": volatile,
            "numericValue": value,
            "rawPayload": raw_payload,
            "batchId": batch_id,
            "scopeId": scope_id,
            "timestamp": ts,
        }
        try:
            record = normalize_pending_record(self.kinds[name], entry)
        except NormalizationDropError as drop:
            raise InvalidInputError(drop.reason, context={"kind": name, **drop.context}) from drop
        backlog = await self._pending[name].add([record])
        return RecordOutcome(kind=name, key=volatile, queued=True, size=len(backlog))

    async def record_payload(
        self,
        stable_id: Any,
        raw_payload: Mapping[str, Any],
        *,
        timestamp: Any = None,
    ) -> list[str]:
        """Log one marketplace price breakdown into the price and net-price series.

        The full breakdown goes to the price series; its ``net_price`` field,
        when present and numeric, to the net-price series; a non-numeric
        net price is logged and skipped. Returns the kinds written.
        Kinds that are not configured are skipped.
        """
        ts = timestamp if timestamp is not None else self._clock()
        net_value = raw_payload.get(NET_PRICE.value_field)
        net_number = parse_decimal(net_value)
        if net_value is not None and net_number is None:
            logger.warning(
                "Skipping non-numeric net price of price breakdown",
                metric_kind=NET_PRICE.name,
                stable_id=str(stable_id),
                net_price=str(net_value),
            )

        logged: list[str] = []
        if PRICE.name in self.kinds:
            await self.record(PRICE.name, stable_id=stable_id, raw_payload=raw_payload, timestamp=ts)
            logged.append(PRICE.name)
        if NET_PRICE.name in self.kinds and net_number is not None:
            await self.record(NET_PRICE.name, stable_id=stable_id, value=net_number, timestamp=ts)
            logged.append(NET_PRICE.name)
        return logged

    async def reconcile(
        self,
        pairs: Sequence[ReconciliationPair | Mapping[str, Any]],
        *,
        kinds: Iterable[str | MetricKind] | None = None,
        fallback_scope_id: str | None = None,
    ) -> ReconcileReport:
        """Resolve pending records for every kind and append them to their series.

        A resolved record that cannot be appended is logged and skipped; the
        rest are still promoted.
        """
        names = [self._kind_name(kind) for kind in kinds] if kinds is not None else list(self.kinds)
        report = ReconcileReport()
        with log_context(operation="reconcile"):
            for name in names:
                resolved = await self._pending[name].resolve(pairs, fallback_scope_id)
                report.resolved[name] = resolved
                appended = failed = 0
                for record in resolved:
                    try:
                        await self._series[name].append(record.entity_key, record.to_sample())
                        appended += 1
                    except InvalidInputError as exc:
                        failed += 1
                        logger.warning(
                            "Could not promote resolved record",
                            metric_kind=name,
                            error_code=exc.error_code,
                            volatile_id=record.volatile_id,
                            stable_id=record.stable_id,
                            error=exc.message,
                        )
                report.appended[name] = appended
                report.failed[name] = failed
        return report

    async def history(
        self,
        kind: str | MetricKind,
        entity_key: Any,
        window_days: int | None = None,
    ) -> Series:
        """Full history, or the last ``window_days`` when given."""
        store = self.series(kind)
        if window_days is None:
            return await store.get(entity_key)
        return await store.get_recent(entity_key, window_days)

    async def latest(self, kind: str | MetricKind, entity_keys: Iterable[Any]) -> list[LatestValue]:
        """Newest sample per entity key; a failing key yields an empty entry."""
        store = self.series(kind)
        results: list[LatestValue] = []
        for entity_key in entity_keys:
            key = str(entity_key).strip() if entity_key is not None else ""
            try:
                sample = await store.latest(key)
            except InvalidInputError as exc:
                logger.warning("Skipping invalid entity key", metric_kind=store.kind.name, error=exc.message)
                results.append(LatestValue(entity_key=key))
                continue
            if sample is None:
                results.append(LatestValue(entity_key=key))
            else:
                results.append(
                    LatestValue(
                        entity_key=key,
                        timestamp=sample.timestamp,
                        numeric_value=sample.numeric_value,
                        raw_payload=sample.raw_payload,
                    )
                )
        return results

    async def backlog(self, kind: str | MetricKind) -> Backlog:
        return await self.pending(kind).list()

    async def close(self) -> None:
        await self.object_store.close()


__all__ = ["PriceTracker", "RecordOutcome", "ReconcileReport"]
