"""Pending queue: dedup, bounds, resolution and degraded persistence."""

from datetime import timedelta
from decimal import Decimal

import pytest

from pricetrack.core.models import NET_PRICE, PRICE, ReconciliationPair
from pricetrack.core.services import PendingQueue


def entry(now, volatile_id, value, *, days_ago=0, scope_id=None, batch_id=None):
    return {
        "volatileId": volatile_id,
        "numericValue": value,
        "timestamp": now - timedelta(days=days_ago),
        "scopeId": scope_id,
        "batchId": batch_id,
    }


@pytest.fixture
def queue(object_store, fallback_cache, clock):
    return PendingQueue(PRICE, object_store, fallback_cache, clock=clock)


class TestAdd:
    @pytest.mark.asyncio
    async def test_add_and_list(self, queue, object_store, now):
        backlog = await queue.add([entry(now, "PL-7", "123.50", batch_id="t1"), entry(now, "PL-8", 5, days_ago=1)])

        assert [r.volatile_id for r in backlog] == ["PL-7", "PL-8"]
        assert await queue.list() == backlog
        assert object_store.keys() == ["price-history/pending.json"]

    @pytest.mark.asyncio
    async def test_re_adding_is_idempotent(self, queue, object_store, now):
        records = [entry(now, "A", 1), entry(now, "B", 2, days_ago=1)]
        first = await queue.add(records)
        second = await queue.add(records)

        assert second == first

    @pytest.mark.asyncio
    async def test_newer_record_replaces_older(self, queue, now):
        await queue.add([entry(now, "A", 1, days_ago=2)])
        backlog = await queue.add([entry(now, "A", 2)])

        assert [(r.volatile_id, r.numeric_value) for r in backlog] == [("A", Decimal("2"))]

    @pytest.mark.asyncio
    async def test_same_offer_in_two_scopes(self, queue, now):
        backlog = await queue.add([entry(now, "A", 1, scope_id="p1"), entry(now, "A", 2, scope_id="p2")])

        assert len(backlog) == 2

    @pytest.mark.asyncio
    async def test_invalid_records_are_skipped(self, queue, object_store, now):
        backlog = await queue.add([{"volatileId": "A"}, {"numericValue": 1, "timestamp": now}])

        assert backlog == []
        assert object_store.writes == 0

    @pytest.mark.asyncio
    async def test_retention_drops_stale_records(self, queue, now):
        backlog = await queue.add([entry(now, "OLD", 1, days_ago=121), entry(now, "NEW", 2)])

        assert [r.volatile_id for r in backlog] == ["NEW"]

    @pytest.mark.asyncio
    async def test_net_price_pending_retention_is_longer(self, object_store, clock, now):
        queue = PendingQueue(NET_PRICE, object_store, clock=clock)

        backlog = await queue.add([entry(now, "A", 1, days_ago=150)])

        assert len(backlog) == 1
        assert queue.key == "net-price/pending.json"

    @pytest.mark.asyncio
    async def test_cap(self, object_store, clock, now):
        kind = PRICE.model_copy(update={"max_pending_entries": 2})
        queue = PendingQueue(kind, object_store, clock=clock)

        backlog = await queue.add([entry(now, f"R{i}", i, days_ago=i) for i in range(4)])

        assert [r.volatile_id for r in backlog] == ["R0", "R1"]


class TestResolve:
    @pytest.mark.asyncio
    async def test_resolve_removes_claimed_records(self, queue, now):
        await queue.add([entry(now, "PL-7", "123.50"), entry(now, "PL-8", 1)])

        resolved = await queue.resolve([{"volatileId": "PL-7", "stableId": "998877"}])

        assert [(r.volatile_id, r.entity_key, r.numeric_value) for r in resolved] == [
            ("PL-7", "998877", Decimal("123.5"))
        ]
        assert [r.volatile_id for r in await queue.list()] == ["PL-8"]

    @pytest.mark.asyncio
    async def test_scoped_record_needs_matching_scope(self, queue, now):
        await queue.add([entry(now, "A", 1, scope_id="p1")])

        assert await queue.resolve([ReconciliationPair(volatile_id="A", stable_id="1")]) == []
        assert await queue.resolve([ReconciliationPair(volatile_id="A", stable_id="1", scope_id="p2")]) == []
        resolved = await queue.resolve([ReconciliationPair(volatile_id="A", stable_id="1")], fallback_scope_id="p1")

        assert [r.scope_id for r in resolved] == ["p1"]
        assert await queue.list() == []

    @pytest.mark.asyncio
    async def test_nothing_to_resolve_writes_nothing(self, queue, object_store, now):
        await queue.add([entry(now, "A", 1)])
        writes = object_store.writes

        assert await queue.resolve([{"volatileId": "Z", "stableId": "9"}]) == []
        assert await queue.resolve([]) == []
        assert object_store.writes == writes

    @pytest.mark.asyncio
    async def test_resolve_on_empty_backlog(self, queue, object_store):
        assert await queue.resolve([{"volatileId": "A", "stableId": "1"}]) == []
        assert object_store.writes == 0


class TestDegradedPersistence:
    @pytest.mark.asyncio
    async def test_failed_write_kept_in_process(self, queue, object_store, now):
        object_store.fail_writes = True

        backlog = await queue.add([entry(now, "A", 1)])

        assert len(backlog) == 1
        assert await queue.list() == backlog

    @pytest.mark.asyncio
    async def test_unreadable_store_serves_last_known_backlog(self, queue, object_store, now):
        backlog = await queue.add([entry(now, "A", 1)])
        object_store.fail_reads = True

        assert await queue.list() == backlog
