"""Pure backlog algorithms: merging new pending records and matching pairs.

Nothing here touches storage; :class:`PendingQueue` reads the backlog, calls
into these functions and writes the result back.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timedelta

from pricetrack.core.models import PendingRecord, ReconciliationPair, ResolvedRecord


def retention_cutoff(now: datetime, days: int | None) -> datetime | None:
    """Oldest timestamp kept by a window of ``days`` (at least one day)."""
    if days is None:
        return None
    return now - timedelta(days=max(days, 1))


def merge_backlog(
    new_records: Sequence[PendingRecord],
    existing: Sequence[PendingRecord],
    *,
    now: datetime,
    retention_days: int | None,
    max_entries: int | None,
) -> list[PendingRecord]:
    """Merge ``new_records`` before ``existing`` into a deduplicated backlog.

    Records older than the retention window are dropped, the rest sorted
    newest first (ties keep new before old) and deduplicated by
    ``(scope or "default", volatile id)``, keeping the first occurrence. The
    result is capped at ``max_entries``.
    """
    cutoff = retention_cutoff(now, retention_days)
    merged = [*new_records, *existing]
    if cutoff is not None:
        merged = [record for record in merged if record.timestamp >= cutoff]
    merged.sort(key=lambda record: record.timestamp, reverse=True)

    deduped: list[PendingRecord] = []
    seen: set[tuple[str, str]] = set()
    for record in merged:
        if record.dedup_key in seen:
            continue
        seen.add(record.dedup_key)
        deduped.append(record)
        if max_entries is not None and len(deduped) >= max_entries:
            break
    return deduped


def pair_matches(
    record: PendingRecord,
    pair: ReconciliationPair,
    fallback_scope_id: str | None = None,
) -> bool:
    """Whether ``pair`` may claim ``record``.

    A scoped record is only claimed by a pair of the same scope. An unscoped
    record is claimed by an unscoped pair, or by a scoped pair unless the
    caller's own scope differs from the pair's.
    """
    if pair.volatile_id != record.volatile_id:
        return False
    if record.scope_id is not None:
        return pair.scope_id is not None and pair.scope_id == record.scope_id
    if pair.scope_id is not None and fallback_scope_id and pair.scope_id != fallback_scope_id:
        return False
    return True


def partition_backlog(
    records: Sequence[PendingRecord],
    pairs: Sequence[ReconciliationPair],
    fallback_scope_id: str | None = None,
) -> tuple[list[ResolvedRecord], list[PendingRecord]]:
    """Split the backlog into resolved and still-pending records.

    Each record is claimed by the first matching pair. A pair is not used
    up by a match, so callers must not send two pairs for the same volatile
    id in one call.
    """
    resolved: list[ResolvedRecord] = []
    remaining: list[PendingRecord] = []
    for record in records:
        match = next((pair for pair in pairs if pair_matches(record, pair, fallback_scope_id)), None)
        if match is None:
            remaining.append(record)
            continue
        data = record.model_dump()
        data["scope_id"] = match.scope_id or record.scope_id
        resolved.append(ResolvedRecord(**data, stable_id=match.stable_id))
    return resolved, remaining


__all__ = ["retention_cutoff", "merge_backlog", "pair_matches", "partition_backlog"]
