"""Commands for inspecting persisted telemetry."""

from __future__ import annotations

import json
import sys
from pathlib import Path

import typer

from vigil.core.exceptions import StorageError
from vigil.core.telemetry import JsonLinesStore

from .formatters import create_formatter

events_app = typer.Typer(help="Persisted event utilities.")

EVENT_COLUMNS = ["timestamp_ms", "level", "kind", "name", "value"]

STORAGE_EXIT_CODE = 3


def register(app: typer.Typer) -> None:
    app.add_typer(events_app, name="events", help="Inspect events that could not be delivered")


@events_app.command("persisted")
def persisted_command(
    ctx: typer.Context,
    path: Path = typer.Option(..., "--path", help="JSON lines store written by the event logger."),
    clear: bool = typer.Option(False, "--clear", help="Delete the store after listing it."),
) -> None:
    """List events held in a durable store."""

    options = ctx.obj or {}
    formatter = create_formatter(options.get("format", "table"), no_color=options.get("no_color", False))
    store = JsonLinesStore(path)

    try:
        events = store.load_persisted()
        if clear:
            store.clear()
    except StorageError as error:
        typer.echo(json.dumps({"code": error.error_code, "message": error.message, "details": error.details}), err=True)
        raise typer.Exit(code=STORAGE_EXIT_CODE) from error

    rows = [
        {
            "timestamp_ms": event.timestamp_ms,
            "level": event.level.value,
            "kind": event.kind.value,
            "name": event.name,
            "value": event.value,
        }
        for event in events
    ]
    formatter.render(rows, stream=sys.stdout, columns=EVENT_COLUMNS)
