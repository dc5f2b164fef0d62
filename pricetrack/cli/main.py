"""Main entry point for the pricetrack command line interface."""

from __future__ import annotations

from pathlib import Path

import typer

from pricetrack.core.logging import configure_logging

from .formatters import create_formatter
from .history import register as register_history_commands
from .pending import register as register_pending_commands
from .record import register as register_record_command


def create_app() -> typer.Typer:
    """Create a Typer application instance for pricetrack."""

    app = typer.Typer(add_completion=False, help="pricetrack command line interface")

    @app.callback()
    def main(
        ctx: typer.Context,
        format: str = typer.Option(
            "table",
            "--format",
            "-f",
            help="Output format (table or jsonl).",
            show_default=True,
        ),
        output: Path | None = typer.Option(
            None,
            "--output",
            "-o",
            help="Write output to a file instead of stdout.",
        ),
        config: Path | None = typer.Option(
            None,
            "--config",
            "-c",
            help="Path to a config.toml file.",
        ),
        log_level: str = typer.Option(
            "WARNING",
            "--log-level",
            help="Logging level.",
            show_default=True,
        ),
        no_color: bool = typer.Option(
            False,
            "--no-color",
            help="Disable colorized output for table format.",
        ),
    ) -> None:
        ctx.ensure_object(dict)
        normalized_format = format.strip().lower()
        try:
            create_formatter(normalized_format, no_color=no_color)
        except ValueError as exc:
            raise typer.BadParameter(str(exc), param_hint="--format") from exc

        ctx.obj.update(
            {
                "format": normalized_format,
                "output_path": output,
                "config_path": config,
                "no_color": no_color,
            }
        )
        configure_logging(level=log_level.upper())

    register_history_commands(app)
    register_pending_commands(app)
    register_record_command(app)
    return app


app = create_app()


if __name__ == "__main__":  # pragma: no cover
    app()
