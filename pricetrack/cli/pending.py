"""Pending queue commands."""

from __future__ import annotations

import typer

from pricetrack.core.models import ReconciliationPair

from .constants import VALIDATION_EXIT_CODE
from .utils import emit_error, get_tracker, render, run_tracker_call

pending_app = typer.Typer(help="Inspect and resolve pending observations.")

BACKLOG_COLUMNS = ["volatile_id", "scope_id", "batch_id", "timestamp", "value"]
RESOLVED_COLUMNS = ["kind", "volatile_id", "stable_id", "scope_id", "timestamp", "value"]


def register(app: typer.Typer) -> None:
    """Register pending queue commands on the provided application."""

    app.add_typer(pending_app, name="pending", help="Pending queue operations")


@pending_app.command("list")
def list_command(
    ctx: typer.Context,
    kind: str = typer.Argument(..., help="Metric kind (price or net_price)."),
) -> None:
    """Print the backlog of one metric kind, newest first."""

    tracker = get_tracker(ctx)
    backlog = run_tracker_call(lambda: tracker.backlog(kind))
    rows = [
        {
            "volatile_id": record.volatile_id,
            "scope_id": record.scope_id,
            "batch_id": record.batch_id,
            "timestamp": record.timestamp,
            "value": record.numeric_value,
        }
        for record in backlog
    ]
    render(ctx, rows, BACKLOG_COLUMNS)


def parse_pair(text: str) -> ReconciliationPair:
    """Parse ``OFFER=SKU`` into a reconciliation pair."""

    offer, sep, sku = text.partition("=")
    if not sep or not offer.strip() or not sku.strip():
        raise ValueError(f"Expected OFFER=SKU, got '{text}'")
    return ReconciliationPair(volatile_id=offer.strip(), stable_id=sku.strip())


@pending_app.command("resolve")
def resolve_command(
    ctx: typer.Context,
    pairs: list[str] = typer.Argument(..., metavar="OFFER=SKU...", help="Offer codes and their stable ids."),
    kind: list[str] | None = typer.Option(None, "--kind", "-k", help="Limit to these metric kinds."),
    scope: str | None = typer.Option(None, "--scope", help="Scope (profile) of the caller."),
) -> None:
    """Resolve pending records and append them to their series."""

    try:
        parsed = [parse_pair(text) for text in pairs]
    except ValueError as exc:
        emit_error(str(exc), "INVALID_PAIR")
        raise typer.Exit(code=VALIDATION_EXIT_CODE) from exc

    tracker = get_tracker(ctx)
    report = run_tracker_call(lambda: tracker.reconcile(parsed, kinds=kind or None, fallback_scope_id=scope))
    rows = [
        {
            "kind": name,
            "volatile_id": record.volatile_id,
            "stable_id": record.stable_id,
            "scope_id": record.scope_id,
            "timestamp": record.timestamp,
            "value": record.numeric_value,
        }
        for name, records in report.resolved.items()
        for record in records
    ]
    render(ctx, rows, RESOLVED_COLUMNS)
