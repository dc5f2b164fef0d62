"""PriceTracker: record, reconcile and read flows across both metric kinds."""

from datetime import UTC, datetime
from decimal import Decimal

import pytest

from pricetrack.core.exceptions import InvalidInputError, UnknownMetricKindError
from pricetrack.core.models import NET_PRICE, PRICE
from pricetrack.core.services import PriceTracker


@pytest.fixture
def tracker(object_store, fallback_cache, clock):
    return PriceTracker(object_store, fallback_cache, clock=clock)


@pytest.mark.asyncio
async def test_offer_observation_is_promoted_once_sku_is_known(tracker):
    await tracker.pending(PRICE).add(
        [
            {
                "volatileId": "PL-7",
                "numericValue": "123.50",
                "batchId": "task-1",
                "timestamp": "2024-01-01T00:00:00Z",
            }
        ]
    )

    report = await tracker.reconcile([{"volatileId": "PL-7", "stableId": "998877"}], kinds=[PRICE])

    history = await tracker.history(PRICE, "998877")
    assert len(history) == 1
    assert history[0].numeric_value == Decimal("123.50")
    assert history[0].timestamp == datetime(2024, 1, 1, tzinfo=UTC)
    assert await tracker.backlog(PRICE) == []
    assert report.total_resolved == 1
    assert report.appended == {"price": 1}
    assert report.failed == {"price": 0}
    assert report.resolved["price"][0].volatile_id == "PL-7"


@pytest.mark.asyncio
async def test_record_with_stable_id_goes_to_series(tracker, now):
    outcome = await tracker.record("net_price", value="80.10", stable_id=42)

    assert outcome.queued is False
    assert outcome.key == "42"
    assert outcome.size == 1
    latest = await tracker.series(NET_PRICE).latest("42")
    assert latest.timestamp == now
    assert latest.numeric_value == Decimal("80.10")


@pytest.mark.asyncio
async def test_record_with_offer_code_is_queued(tracker, now):
    outcome = await tracker.record(PRICE, value=99, volatile_id="PL-9", scope_id="p1", batch_id="t7")

    assert outcome.queued is True
    backlog = await tracker.backlog(PRICE)
    assert [(r.volatile_id, r.scope_id, r.batch_id, r.timestamp) for r in backlog] == [("PL-9", "p1", "t7", now)]


@pytest.mark.asyncio
async def test_record_requires_an_identifier(tracker):
    with pytest.raises(InvalidInputError):
        await tracker.record(PRICE, value=1)


@pytest.mark.asyncio
async def test_pending_record_requires_a_value(tracker):
    with pytest.raises(InvalidInputError) as exc_info:
        await tracker.record(PRICE, raw_payload={"note": "x"}, volatile_id="PL-1")
    assert exc_info.value.message == "missing value"


@pytest.mark.asyncio
async def test_unknown_kind(tracker):
    with pytest.raises(UnknownMetricKindError):
        await tracker.record("promo", value=1, stable_id="1")


@pytest.mark.asyncio
async def test_record_payload_logs_both_kinds(tracker):
    breakdown = {"price": 150, "net_price": 120, "commission": 30}

    logged = await tracker.record_payload("998877", breakdown)

    assert logged == ["price", "net_price"]
    price = await tracker.history(PRICE, "998877")
    net = await tracker.history(NET_PRICE, "998877")
    assert price[0].raw_payload == breakdown
    assert price[0].numeric_value == Decimal("150")
    assert net[0].numeric_value == Decimal("120")
    assert net[0].raw_payload is None


@pytest.mark.asyncio
async def test_record_payload_without_net_price(tracker):
    assert await tracker.record_payload("1", {"price": 10}) == ["price"]
    assert await tracker.history(NET_PRICE, "1") == []


@pytest.mark.asyncio
async def test_record_payload_skips_non_numeric_net_price(tracker, object_store):
    breakdown = {"price": 10, "net_price": "n/a"}

    assert await tracker.record_payload("1", breakdown) == ["price"]
    assert (await tracker.history(PRICE, "1"))[0].raw_payload == breakdown
    assert await tracker.history(NET_PRICE, "1") == []
    assert object_store.keys() == ["price-history/1.json"]


@pytest.mark.asyncio
async def test_latest_does_not_read_the_backlog_as_a_series(tracker, now):
    await tracker.record(PRICE, volatile_id="PL-1", value=5, timestamp=now)

    [entry] = await tracker.latest(PRICE, ["pending"])

    assert entry.entity_key == "pending"
    assert entry.numeric_value is None
    assert len(await tracker.backlog(PRICE)) == 1


@pytest.mark.asyncio
async def test_reconcile_all_kinds_with_scope(tracker):
    await tracker.record(PRICE, value=10, volatile_id="A", scope_id="p1", timestamp="2024-02-01T00:00:00Z")
    await tracker.record(NET_PRICE, value=8, volatile_id="A", scope_id="p1", timestamp="2024-02-01T00:00:00Z")
    await tracker.record(PRICE, value=11, volatile_id="A", scope_id="p2", timestamp="2024-02-01T00:00:00Z")

    report = await tracker.reconcile([{"volatileId": "A", "stableId": "555"}], fallback_scope_id="p1")

    assert report.appended == {"price": 1, "net_price": 1}
    assert [s.numeric_value for s in await tracker.history(PRICE, "555")] == [Decimal("10")]
    assert [s.numeric_value for s in await tracker.history(NET_PRICE, "555")] == [Decimal("8")]
    assert [r.scope_id for r in await tracker.backlog(PRICE)] == ["p2"]


@pytest.mark.asyncio
async def test_history_window(tracker):
    await tracker.record(PRICE, value=1, stable_id="1", timestamp="2024-02-25T00:00:00Z")
    await tracker.record(PRICE, value=2, stable_id="1", timestamp="2024-01-15T00:00:00Z")

    assert len(await tracker.history(PRICE, "1")) == 2
    assert len(await tracker.history(PRICE, "1", window_days=7)) == 1


@pytest.mark.asyncio
async def test_latest_for_several_keys(tracker):
    await tracker.record(PRICE, value=1, stable_id="1", timestamp="2024-02-25T00:00:00Z")
    await tracker.record(PRICE, value=2, stable_id="1", timestamp="2024-02-26T00:00:00Z")

    values = await tracker.latest(PRICE, ["1", "2", " "])

    assert [v.entity_key for v in values] == ["1", "2", ""]
    assert values[0].numeric_value == Decimal("2")
    assert values[1].timestamp is None
    assert values[2].numeric_value is None


@pytest.mark.asyncio
async def test_storage_outage_does_not_fail_recording(tracker, object_store):
    object_store.fail_writes = True
    object_store.fail_reads = True

    outcome = await tracker.record(PRICE, value=1, stable_id="1")

    assert outcome.size == 1
    assert len(await tracker.history(PRICE, "1")) == 1


def test_configured_kinds_only(object_store):
    tracker = PriceTracker(object_store, kinds=[NET_PRICE])

    assert list(tracker.kinds) == ["net_price"]
    with pytest.raises(UnknownMetricKindError):
        tracker.series(PRICE)
