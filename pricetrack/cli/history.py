"""History read commands."""

from __future__ import annotations

import typer

from .utils import get_tracker, render, run_tracker_call

history_app = typer.Typer(help="Read price and net-price history.")

SERIES_COLUMNS = ["timestamp", "value", "payload"]
LATEST_COLUMNS = ["entity", "timestamp", "value"]


def register(app: typer.Typer) -> None:
    """Register history commands on the provided application."""

    app.add_typer(history_app, name="history", help="Read stored history")


@history_app.command("show")
def show_command(
    ctx: typer.Context,
    kind: str = typer.Argument(..., help="Metric kind (price or net_price)."),
    entity: str = typer.Argument(..., help="Stable product identifier."),
    days: int | None = typer.Option(None, "--days", "-d", help="Only samples from the last N days."),
) -> None:
    """Print the stored series of one entity, newest first."""

    tracker = get_tracker(ctx)
    series = run_tracker_call(lambda: tracker.history(kind, entity, days))
    rows = [
        {"timestamp": sample.timestamp, "value": sample.numeric_value, "payload": sample.raw_payload}
        for sample in series
    ]
    render(ctx, rows, SERIES_COLUMNS)


@history_app.command("latest")
def latest_command(
    ctx: typer.Context,
    kind: str = typer.Argument(..., help="Metric kind (price or net_price)."),
    entities: list[str] = typer.Argument(..., metavar="ENTITY...", help="Stable product identifiers."),
) -> None:
    """Print the newest value of each entity."""

    tracker = get_tracker(ctx)
    latest = run_tracker_call(lambda: tracker.latest(kind, entities))
    rows = [{"entity": item.entity_key, "timestamp": item.timestamp, "value": item.numeric_value} for item in latest]
    render(ctx, rows, LATEST_COLUMNS)
