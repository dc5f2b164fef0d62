"""Append-only, age- and count-bounded time series per entity."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from datetime import UTC, datetime
from typing import Any

from pricetrack.core.exceptions import InvalidInputError
from pricetrack.core.logging import get_logger
from pricetrack.core.models import MetricKind, Sample, Series
from pricetrack.core.services.normalization import coerce_sample, sanitize_series
from pricetrack.core.services.persistence import DocumentGateway
from pricetrack.core.services.reconciler import retention_cutoff
from pricetrack.core.storage import FallbackCache, ObjectStore

logger = get_logger(__name__)

_UNSET: Any = object()


def trim_series(
    samples: Series,
    *,
    now: datetime,
    retention_days: int | None,
    max_entries: int | None,
    keep: Sample | None = None,
) -> Series:
    """Order newest first, drop samples outside the window, cap the length.

    ``keep`` (the freshly appended sample) survives both the age filter and
    the cap, so it is stored even when it is older than the window or than
    every other sample of a full series. The cap then falls on the others.
    """
    others = [sample for sample in samples if sample is not keep]
    others.sort(key=lambda sample: sample.timestamp, reverse=True)
    cutoff = retention_cutoff(now, retention_days)
    if cutoff is not None:
        others = [sample for sample in others if sample.timestamp >= cutoff]
    if max_entries is not None and max_entries > 0:
        others = others[: max_entries - 1] if keep is not None else others[:max_entries]
    if keep is None:
        return others
    # new before old on equal timestamps
    ordered = [keep, *others]
    ordered.sort(key=lambda sample: sample.timestamp, reverse=True)
    return ordered


class SeriesStore:
    """Series of samples for one metric kind, one object per entity key."""

    def __init__(
        self,
        kind: MetricKind,
        object_store: ObjectStore,
        fallback_cache: FallbackCache | None = None,
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.kind = kind
        self._gateway = DocumentGateway(object_store, fallback_cache, metric_kind=kind.name)
        self._clock = clock or (lambda: datetime.now(UTC))

    def _key(self, entity_key: Any) -> str:
        normalized = str(entity_key).strip() if entity_key is not None else ""
        if not normalized:
            raise InvalidInputError(
                f"entity key is required for {self.kind.name} history", context={"kind": self.kind.name}
            )
        key = self.kind.series_key(normalized)
        if key == self.kind.pending_key:
            raise InvalidInputError(
                f"entity key '{normalized}' is reserved for the {self.kind.name} pending backlog",
                context={"kind": self.kind.name, "entity_key": normalized},
            )
        return key

    async def append(
        self,
        entity_key: Any,
        sample: Sample | Mapping[str, Any],
        *,
        retention_window_days: int | None = _UNSET,
        max_entries: int | None = _UNSET,
    ) -> Series:
        """Prepend ``sample`` to the entity's series and persist the trimmed result.

        Raises :class:`InvalidInputError` for a blank key or an invalid
        sample. Persistence failures are logged and the computed series is
        still returned.
        """
        key = self._key(entity_key)
        checked = coerce_sample(self.kind, sample)
        retention = self.kind.retention_window_days if retention_window_days is _UNSET else retention_window_days
        cap = self.kind.max_series_entries if max_entries is _UNSET else max_entries

        existing = await self._read(key)
        updated = trim_series(
            [checked, *existing],
            now=self._clock(),
            retention_days=retention,
            max_entries=cap,
            keep=checked,
        )
        await self._gateway.write(key, [item.to_wire() for item in updated])
        logger.debug("Appended sample", metric_kind=self.kind.name, key=key, size=len(updated))
        return updated

    async def get(self, entity_key: Any) -> Series:
        """Persisted series for ``entity_key``, newest first (empty when none)."""
        return await self._read(self._key(entity_key))

    async def get_recent(self, entity_key: Any, window_days: int | None = None) -> Series:
        """Samples newer than ``window_days`` ago (the kind's default window when None)."""
        history = await self.get(entity_key)
        days = self.kind.recent_window_days if window_days is None else window_days
        cutoff = retention_cutoff(self._clock(), days)
        return [sample for sample in history if cutoff is None or sample.timestamp >= cutoff]

    async def latest(self, entity_key: Any) -> Sample | None:
        history = await self.get(entity_key)
        return history[0] if history else None

    async def _read(self, key: str) -> Series:
        stored = await self._gateway.read(key)
        return sanitize_series(self.kind, stored, source=key)


__all__ = ["SeriesStore", "trim_series"]
