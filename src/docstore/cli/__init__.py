"""docstore CLI -- terminal interface for docstore databases.

This module is NEVER imported from docstore/__init__.py.
It is only loaded via the ``docstore`` entry point defined in pyproject.toml.
"""

from __future__ import annotations

import json
import os
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

import click

from docstore.cli.formatting import format_error, get_console
from docstore.storage.engine import MEMORY_PATH

if TYPE_CHECKING:
    from collections.abc import Iterator

    from rich.console import Console

    from docstore.store import DocumentStore


@click.group()
@click.option(
    "--db",
    default="docstore.db",
    envvar="DOCSTORE_DB",
    help="Path to the docstore database.",
)
@click.option(
    "--mode",
    default="w+",
    type=click.Choice(["w+", "rw", "r"]),
    help="Open mode: create (w+), read/write (rw) or read-only (r).",
)
@click.option(
    "--query-limit",
    default=None,
    type=int,
    help="Cap on documents returned by a single query.",
)
@click.pass_context
def cli(ctx: click.Context, db: str, mode: str, query_limit: int | None) -> None:
    """docstore: schema-typed document storage on SQLite."""
    ctx.ensure_object(dict)
    ctx.obj["db_path"] = db
    ctx.obj["mode"] = mode
    ctx.obj["query_limit"] = query_limit


def _open_store(ctx: click.Context) -> "DocumentStore":
    """Open a DocumentStore from Click context."""
    from docstore.models.config import DocstoreConfig
    from docstore.store import DocumentStore

    config = DocstoreConfig()
    if ctx.obj["query_limit"] is not None:
        config = DocstoreConfig(query_limit=ctx.obj["query_limit"])
    return DocumentStore.open(ctx.obj["db_path"], mode=ctx.obj["mode"], config=config)


@contextmanager
def _store_session(
    ctx: click.Context, *, create: bool = False
) -> Iterator[tuple[DocumentStore, Console]]:
    """Open a store, yield (store, console), and handle cleanup.

    Only commands that pass *create* may open a database file that does not
    exist yet.  Exceptions are formatted as CLI errors and exit with status 1.
    """
    console = get_console()
    db_path = ctx.obj["db_path"]
    if not create and db_path != MEMORY_PATH and not os.path.exists(db_path):
        format_error(f"Database not found: {db_path}", console)
        raise SystemExit(1)
    try:
        store = _open_store(ctx)
        try:
            yield store, console
        finally:
            store.close()
    except SystemExit:
        raise
    except Exception as e:
        format_error(str(e), console)
        raise SystemExit(1) from None


def parse_json_option(value: str | None, name: str) -> Any:
    """Parse a JSON command-line option, raising a Click error on bad input."""
    if value is None:
        return None
    try:
        return json.loads(value)
    except ValueError as exc:
        raise click.BadParameter(f"invalid JSON: {exc}", param_hint=name) from None


# Register subcommands after cli group is defined
from docstore.cli.commands.dataset import create, info  # noqa: E402
from docstore.cli.commands.data import add, delete, truncate, update  # noqa: E402
from docstore.cli.commands.query import count, distinct, query  # noqa: E402

cli.add_command(create)
cli.add_command(info)
cli.add_command(add)
cli.add_command(update)
cli.add_command(delete)
cli.add_command(truncate)
cli.add_command(query)
cli.add_command(count)
cli.add_command(distinct)
