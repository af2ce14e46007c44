"""docstore create / info -- dataset lifecycle commands."""

from __future__ import annotations

import json

import click

from docstore.cli.formatting import format_json, format_schema


@click.command()
@click.argument("schema_file", type=click.File("r"))
@click.option("--id", "dataset_id", default=None, help="Dataset id (generated if omitted).")
@click.option("--name", default=None, help="Dataset name.")
@click.pass_context
def create(ctx: click.Context, schema_file, dataset_id: str | None, name: str | None) -> None:  # type: ignore[no-untyped-def]
    """Create the dataset from a JSON schema file.

    SCHEMA_FILE holds {"dataSchema": {...}, "uniqueIndex": [...]}; use - for stdin.
    """
    from docstore.cli import _store_session

    with _store_session(ctx, create=True) as (store, console):
        options: dict = {"schema": json.load(schema_file)}
        if dataset_id:
            options["id"] = dataset_id
        if name:
            options["name"] = name
        created = store.create_dataset(options)
        console.print(f"Created dataset [yellow]{created}[/yellow]")


@click.command()
@click.option("--json", "as_json", is_flag=True, help="Print all resource properties as JSON.")
@click.pass_context
def info(ctx: click.Context, as_json: bool) -> None:
    """Show the dataset schema and unique index."""
    from docstore.cli import _store_session

    with _store_session(ctx) as (store, console):
        if as_json:
            format_json(store.get_resource(), console)
            return
        if store.dataset_id:
            console.print(f"Dataset [yellow]{store.dataset_id}[/yellow]")
        format_schema(store.get_general_schema(), store.get_unique_index(), console)
