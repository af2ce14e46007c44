"""Rich formatting helpers for the docstore CLI.

Rich auto-detects TTY and degrades gracefully when piped (no ANSI codes).
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from rich.console import Console
from rich.markup import escape
from rich.table import Table

if TYPE_CHECKING:
    from docstore.models.schema import IndexColumn, Schema


def get_console() -> Console:
    """Create a Rich Console that auto-detects TTY for graceful pipe degradation."""
    return Console(stderr=False)


def _cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (dict, list)):
        return json.dumps(value, default=str)
    return str(value)


def format_documents(documents: list[dict[str, Any]], console: Console) -> None:
    """Display documents as a table, one column per document key."""
    if not documents:
        console.print("[dim]No documents.[/dim]")
        return

    columns = list(dict.fromkeys(key for doc in documents for key in doc))
    table = Table(show_header=True, header_style="bold", box=None, pad_edge=False)
    for column in columns:
        table.add_column(escape(column))
    for doc in documents:
        table.add_row(*(escape(_cell(doc.get(column))) for column in columns))
    console.print(table)


def format_json(value: Any, console: Console) -> None:
    """Display any JSON-compatible value (non-JSON values rendered as strings)."""
    console.print_json(json.dumps(value, default=str))


def format_schema(schema: Schema, index: list[IndexColumn], console: Console) -> None:
    """Display a general schema with storage types and unique index membership."""
    if not schema:
        console.print("[dim]No dataset.[/dim]")
        return

    directions = {entry.column: entry.direction.value for entry in index}
    table = Table(show_header=True, header_style="bold", box=None, pad_edge=False)
    table.add_column("Column")
    table.add_column("Type", style="cyan")
    table.add_column("Index", style="yellow")
    for column, general_type in schema.items():
        table.add_row(escape(column), general_type.value, directions.get(column, ""))
    console.print(table)


def format_count(label: str, count: int, console: Console) -> None:
    """Display a single count."""
    console.print(f"{label}: [green]{count}[/green]")


def format_error(message: str, console: Console) -> None:
    """Display an error message."""
    console.print(f"[red]Error:[/red] {escape(message)}", highlight=False)
