"""CLI tests driven through Typer's CliRunner with an in-memory tracker."""

from __future__ import annotations

import asyncio
import io
import json

import pytest
from typer.testing import CliRunner

from pricetrack.cli import utils as cli_utils
from pricetrack.cli.main import app
from pricetrack.cli.pending import parse_pair
from pricetrack.core.logging import configure_logging
from pricetrack.core.services import PriceTracker

runner = CliRunner()


@pytest.fixture
def tracker(object_store, fallback_cache, clock, monkeypatch):
    tracker = PriceTracker(object_store, fallback_cache, clock=clock)
    monkeypatch.setattr(cli_utils, "build_tracker", lambda config_path: tracker)
    return tracker


def invoke(*args: str):
    return runner.invoke(app, ["--log-level", "ERROR", *args])


def json_lines(output: str) -> list[dict]:
    return [json.loads(line) for line in output.splitlines() if line.startswith("{")]


def test_record_to_series_and_show_history(tracker):
    result = invoke("record", "price", "123.50", "--sku", "998877", "--at", "2024-02-01T00:00:00Z")

    assert result.exit_code == 0, result.output
    assert "Recorded price for 998877 in series (1 entries)" in result.stdout

    result = invoke("--format", "jsonl", "history", "show", "price", "998877")

    assert result.exit_code == 0, result.output
    assert json_lines(result.stdout) == [{"timestamp": "2024-02-01T00:00:00Z", "value": 123.5, "payload": None}]


def test_offer_round_trip_through_pending_queue(tracker):
    result = invoke("record", "price", "123.50", "--offer", "PL-7", "--batch", "task-1", "--at", "2024-01-01T00:00:00Z")
    assert result.exit_code == 0, result.output
    assert "in pending queue (1 entries)" in result.stdout

    result = invoke("--format", "jsonl", "pending", "list", "price")
    rows = json_lines(result.stdout)
    assert [row["volatile_id"] for row in rows] == ["PL-7"]
    assert rows[0]["batch_id"] == "task-1"

    result = invoke("--format", "jsonl", "pending", "resolve", "PL-7=998877", "--kind", "price")
    assert result.exit_code == 0, result.output
    assert json_lines(result.stdout) == [
        {
            "kind": "price",
            "volatile_id": "PL-7",
            "stable_id": "998877",
            "scope_id": None,
            "timestamp": "2024-01-01T00:00:00Z",
            "value": 123.5,
        }
    ]

    result = invoke("--format", "jsonl", "history", "latest", "price", "998877", "unknown")
    assert json_lines(result.stdout) == [
        {"entity": "998877", "timestamp": "2024-01-01T00:00:00Z", "value": 123.5},
        {"entity": "unknown", "timestamp": None, "value": None},
    ]


def test_table_output(tracker):
    invoke("record", "net_price", "80", "--sku", "42", "--at", "2024-02-01T00:00:00Z")

    result = invoke("--no-color", "history", "show", "net_price", "42")

    assert result.exit_code == 0, result.output
    assert "2024-02-01T00:00:00Z" in result.stdout
    assert "80" in result.stdout


def test_empty_table_output(tracker):
    result = invoke("--no-color", "pending", "list", "net_price")

    assert result.exit_code == 0
    assert "No data available." in result.stdout


def test_output_file(tracker, tmp_path):
    invoke("record", "price", "10", "--sku", "1", "--at", "2024-02-01T00:00:00Z")
    target = tmp_path / "history.jsonl"

    result = invoke("--format", "jsonl", "--output", str(target), "history", "show", "price", "1")

    assert result.exit_code == 0
    assert json_lines(target.read_text(encoding="utf-8"))[0]["value"] == 10.0


def test_record_without_identifier_fails(tracker):
    result = invoke("record", "price", "1")

    assert result.exit_code == 2
    assert "IDENTIFIER_MISSING" in result.output


def test_unknown_kind_fails_with_validation_code(tracker):
    result = invoke("record", "promo", "1", "--sku", "1")

    assert result.exit_code == 2
    assert "UNKNOWN_METRIC_KIND" in result.output


def test_invalid_value_fails(tracker):
    result = invoke("record", "net_price", "cheap", "--sku", "1")

    assert result.exit_code == 2
    assert "INVALID_INPUT" in result.output


def test_invalid_pair_fails(tracker):
    result = invoke("pending", "resolve", "PL-7")

    assert result.exit_code == 2
    assert "INVALID_PAIR" in result.output


def test_invalid_format_rejected(tracker):
    result = invoke("--format", "xml", "pending", "list", "price")

    assert result.exit_code == 2


def test_parse_pair():
    pair = parse_pair(" PL-7 = 998877 ")

    assert (pair.volatile_id, pair.stable_id, pair.scope_id) == ("PL-7", "998877", None)
    with pytest.raises(ValueError):
        parse_pair("PL-7=")


@pytest.fixture
def log_buffer():
    buffer = io.StringIO()
    configure_logging(level="WARNING", console_stream=buffer)
    yield buffer
    configure_logging(level="WARNING")


def test_memory_backend_warns_that_history_is_not_kept(log_buffer, tmp_path, monkeypatch):
    monkeypatch.setenv("PRICETRACK_STORAGE_BACKEND", "memory")

    cli_utils.build_tracker(tmp_path / "missing.toml")

    [record] = [r for r in json_lines(log_buffer.getvalue()) if "In-memory storage" in r["message"]]
    assert record["level"] == "WARNING"
    assert "PRICETRACK_STORAGE_BACKEND=duckdb" in record["message"]
    assert record["context"]["backend"] == "memory"


def test_duckdb_backend_does_not_warn(log_buffer, tmp_path, monkeypatch):
    monkeypatch.setenv("PRICETRACK_STORAGE_BACKEND", "duckdb")
    monkeypatch.setenv("PRICETRACK_DUCKDB_PATH", str(tmp_path / "store.duckdb"))

    tracker = cli_utils.build_tracker(tmp_path / "missing.toml")
    asyncio.run(tracker.close())

    assert not [r for r in json_lines(log_buffer.getvalue()) if "In-memory storage" in r["message"]]
