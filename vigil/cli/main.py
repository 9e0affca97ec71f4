"""Main entry point for the vigil command line interface."""

from __future__ import annotations

import typer

from vigil.core.logging import configure_logging

from .events import register as register_event_commands
from .formatters import create_formatter
from .health import register as register_health_commands


def create_app() -> typer.Typer:
    """Create a Typer application instance for vigil."""

    app = typer.Typer(add_completion=False, help="vigil command line interface")

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
        log_level: str = typer.Option(
            "WARNING",
            "--log-level",
            help="Structured log level written to stderr.",
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

        ctx.obj.update({"format": normalized_format, "no_color": no_color})
        configure_logging(level=log_level.upper())

    register_health_commands(app)
    register_event_commands(app)
    return app


app = create_app()


if __name__ == "__main__":  # pragma: no cover
    app()
