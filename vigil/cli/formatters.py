"""Output formatters for CLI commands."""

from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import TextIO

from rich.box import SIMPLE
from rich.console import Console
from rich.table import Table


class OutputFormatter:
    """Renders a list of flat rows to a stream."""

    name: str

    def render(self, rows: Sequence[Mapping[str, object]], *, stream: TextIO, columns: Sequence[str]) -> None:
        raise NotImplementedError


@dataclass(slots=True)
class TableFormatter(OutputFormatter):
    """Render rows as a Rich table."""

    name: str = "table"
    no_color: bool = False

    def render(self, rows: Sequence[Mapping[str, object]], *, stream: TextIO, columns: Sequence[str]) -> None:
        console = Console(file=stream, color_system=None if self.no_color else "auto", no_color=self.no_color, width=160)
        table = Table(box=SIMPLE, show_lines=False)
        for column in columns:
            table.add_column(column, header_style="" if self.no_color else "bold")
        for row in rows:
            table.add_row(*("-" if row.get(column) is None else str(row.get(column)) for column in columns))
        console.print(table)
        if not rows:
            console.print("No data available.")


@dataclass(slots=True)
class JSONLFormatter(OutputFormatter):
    """Render rows as JSON Lines."""

    name: str = "jsonl"

    def render(self, rows: Sequence[Mapping[str, object]], *, stream: TextIO, columns: Sequence[str]) -> None:
        for row in rows:
            json.dump({column: row.get(column) for column in columns}, stream, ensure_ascii=False, default=str)
            stream.write("\n")
        stream.flush()


def create_formatter(name: str, *, no_color: bool = False) -> OutputFormatter:
    normalized = name.strip().lower()
    if normalized == "table":
        return TableFormatter(no_color=no_color)
    if normalized == "jsonl":
        return JSONLFormatter()
    raise ValueError(f"Unsupported format '{name}'. Available formats: table, jsonl.")


__all__ = ["OutputFormatter", "TableFormatter", "JSONLFormatter", "create_formatter"]
