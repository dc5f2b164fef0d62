"""Utility helpers shared across CLI commands."""

from __future__ import annotations

import asyncio
import json
import sys
from collections.abc import Awaitable, Callable
from contextlib import ExitStack
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Sequence, TextIO, TypeVar

import typer

from pricetrack.core.config import ConfigManager
from pricetrack.core.exceptions import PriceTrackError
from pricetrack.core.logging import get_logger
from pricetrack.core.services import PriceTracker

from .constants import SYSTEM_EXIT_CODE, VALIDATION_EXIT_CODE
from .formatters import OutputFormatter, create_formatter

T = TypeVar("T")

logger = get_logger(__name__)


@dataclass(slots=True)
class CLIOptions:
    """Resolved options derived from the Typer context."""

    format: str = "table"
    output_path: Path | None = None
    config_path: Path | None = None
    no_color: bool = False


def get_cli_options(ctx: typer.Context) -> CLIOptions:
    """Extract :class:`CLIOptions` from the Typer context object."""

    ctx.ensure_object(dict)
    data = ctx.obj or {}
    return CLIOptions(
        format=str(data.get("format", "table")),
        output_path=data.get("output_path"),
        config_path=data.get("config_path"),
        no_color=bool(data.get("no_color", False)),
    )


def build_tracker(config_path: Path | None) -> PriceTracker:
    """Factory hook for obtaining a tracker; replaced in tests."""

    from pricetrack import create_tracker

    config = ConfigManager(config_path).get_config()
    if config.storage.backend == "memory":
        logger.warning(
            "In-memory storage does not outlive this command; set PRICETRACK_STORAGE_BACKEND=duckdb "
            "or [storage] backend in the config file",
            backend=config.storage.backend,
        )
    return create_tracker(config, configure_logs=False)


def get_tracker(ctx: typer.Context) -> PriceTracker:
    ctx.ensure_object(dict)
    tracker = ctx.obj.get("tracker")
    if tracker is None:
        tracker = build_tracker(get_cli_options(ctx).config_path)
        ctx.obj["tracker"] = tracker
    return tracker


def run_tracker_call(call: Callable[[], Awaitable[T]]) -> T:
    """Run one async tracker call, mapping library errors to exit codes."""

    try:
        return asyncio.run(call())
    except PriceTrackError as error:
        emit_error(error.message, error.error_code, details=error.details)
        code = VALIDATION_EXIT_CODE if error.is_validation_error else SYSTEM_EXIT_CODE
        raise typer.Exit(code=code) from error


def prepare_output(ctx: typer.Context) -> tuple[OutputFormatter, TextIO, ExitStack, CLIOptions]:
    """Resolve formatter and writable stream for the current command."""

    options = get_cli_options(ctx)
    formatter = create_formatter(options.format, no_color=options.no_color)

    stack = ExitStack()
    stream: TextIO
    if options.output_path is not None:
        try:
            stream = stack.enter_context(open(options.output_path, "w", encoding="utf-8"))
        except OSError as exc:
            stack.close()
            emit_error(f"Unable to open '{options.output_path}': {exc}", "OUTPUT_WRITE_ERROR")
            raise typer.Exit(code=VALIDATION_EXIT_CODE) from exc
    else:
        stream = sys.stdout

    return formatter, stream, stack, options


def render(ctx: typer.Context, rows: Sequence[Mapping[str, object]], columns: Sequence[str]) -> None:
    formatter, stream, stack, _ = prepare_output(ctx)
    with stack:
        formatter.render(rows, stream=stream, columns=columns)


def emit_error(message: str, code: str, *, details: Mapping[str, object] | None = None) -> None:
    """Print a structured error payload to stderr."""

    payload: dict[str, object] = {"code": code, "message": message}
    if details:
        payload["details"] = _sanitize_details(details)
    typer.echo(json.dumps(payload, ensure_ascii=False, default=str), err=True)


def _sanitize_details(details: Mapping[str, object]) -> Mapping[str, object]:
    sanitized: dict[str, object] = {}
    for key, value in details.items():
        if isinstance(value, (str, int, float, bool)) or value is None:
            sanitized[key] = value
        elif isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray)):
            sanitized[key] = [str(item) for item in value]
        else:
            sanitized[key] = str(value)
    return sanitized


__all__ = [
    "CLIOptions",
    "get_cli_options",
    "build_tracker",
    "get_tracker",
    "run_tracker_call",
    "prepare_output",
    "render",
    "emit_error",
]
