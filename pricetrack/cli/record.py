"""Record command."""

from __future__ import annotations

import typer

from .constants import VALIDATION_EXIT_CODE
from .utils import emit_error, get_tracker, run_tracker_call


def register(app: typer.Typer) -> None:
    """Register the record command on the provided application."""

    app.command("record")(record_command)


def record_command(
    ctx: typer.Context,
    kind: str = typer.Argument(..., help="Metric kind (price or net_price)."),
    value: str = typer.Argument(..., help="Observed value."),
    sku: str | None = typer.Option(None, "--sku", help="Stable product identifier, when known."),
    offer: str | None = typer.Option(None, "--offer", help="Offer code, when the stable id is not known yet."),
    scope: str | None = typer.Option(None, "--scope", help="Scope (profile) of the observation."),
    batch: str | None = typer.Option(None, "--batch", help="Submission batch id."),
    at: str | None = typer.Option(None, "--at", help="Observation time (ISO-8601), defaults to now."),
) -> None:
    """Record one observation in its series or in the pending queue."""

    if not sku and not offer:
        emit_error("Pass --sku or --offer.", "IDENTIFIER_MISSING")
        raise typer.Exit(code=VALIDATION_EXIT_CODE)

    tracker = get_tracker(ctx)
    outcome = run_tracker_call(
        lambda: tracker.record(
            kind,
            value=value,
            stable_id=sku,
            volatile_id=offer,
            timestamp=at,
            batch_id=batch,
            scope_id=scope,
        )
    )
    target = "pending queue" if outcome.queued else "series"
    typer.echo(f"Recorded {outcome.kind} for {outcome.key} in {target} ({outcome.size} entries)")
