"""Backlog of observations whose stable identifier is not known yet."""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from datetime import UTC, datetime
from typing import Any

from pricetrack.core.logging import get_logger
from pricetrack.core.models import MetricKind, PendingRecord, ReconciliationPair, ResolvedRecord
from pricetrack.core.services.normalization import normalize_pairs, normalize_pending_records
from pricetrack.core.services.persistence import DocumentGateway
from pricetrack.core.services.reconciler import merge_backlog, partition_backlog
from pricetrack.core.storage import FallbackCache, ObjectStore

logger = get_logger(__name__)

Backlog = list[PendingRecord]


class PendingQueue:
    """Deduplicated, bounded backlog for one metric kind.

    The whole backlog lives in a single object (``{prefix}/pending.json``)
    and is rewritten on every change.
    """

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

    @property
    def key(self) -> str:
        return self.kind.pending_key

    async def add(self, records: Sequence[PendingRecord | Mapping[str, Any]]) -> Backlog:
        """Merge ``records`` into the backlog and return the persisted result.

        Invalid records are logged and skipped. Re-adding the same records
        leaves the backlog unchanged.
        """
        normalized = normalize_pending_records(self.kind, list(records))
        if not normalized:
            return await self.list()

        existing = await self.list()
        backlog = merge_backlog(
            normalized,
            existing,
            now=self._clock(),
            retention_days=self.kind.pending_retention_days,
            max_entries=self.kind.max_pending_entries,
        )
        await self._persist(backlog)
        logger.info(
            "Queued pending records",
            metric_kind=self.kind.name,
            added=len(normalized),
            backlog=len(backlog),
        )
        return backlog

    async def list(self) -> Backlog:
        """The persisted backlog (or the fallback copy when storage is down)."""
        stored = await self._gateway.read(self.key)
        return normalize_pending_records(self.kind, stored, source=self.key)

    async def resolve(
        self,
        pairs: Sequence[ReconciliationPair | Mapping[str, Any]],
        fallback_scope_id: str | None = None,
    ) -> list[ResolvedRecord]:
        """Remove and return the records claimed by ``pairs``.

        Returned records carry the pair's stable identifier. Nothing is
        written when there is nothing to resolve.
        """
        normalized_pairs = normalize_pairs(list(pairs), fallback_scope_id)
        if not normalized_pairs:
            return []

        backlog = await self.list()
        if not backlog:
            return []

        resolved, remaining = partition_backlog(backlog, normalized_pairs, fallback_scope_id)
        if resolved:
            await self._persist(remaining)
            logger.info(
                "Resolved pending records",
                metric_kind=self.kind.name,
                resolved=len(resolved),
                remaining=len(remaining),
            )
        return resolved

    async def _persist(self, backlog: Backlog) -> None:
        await self._gateway.write(self.key, [record.to_wire() for record in backlog])


__all__ = ["PendingQueue", "Backlog"]
