"""docstore add / update / delete / truncate -- write commands."""

from __future__ import annotations

import json

import click

from docstore.cli.formatting import format_count


def _load_documents(data_file) -> list[dict]:  # type: ignore[no-untyped-def]
    documents = json.load(data_file)
    return [documents] if isinstance(documents, dict) else list(documents)


@click.command()
@click.argument("data_file", type=click.File("r"))
@click.pass_context
def add(ctx: click.Context, data_file) -> None:  # type: ignore[no-untyped-def]
    """Insert documents from a JSON file (one object or a list); - for stdin."""
    from docstore.cli import _store_session

    with _store_session(ctx) as (store, console):
        format_count("Added", store.add_data(_load_documents(data_file)), console)


@click.command()
@click.argument("data_file", type=click.File("r"))
@click.option("--upsert", is_flag=True, help="Insert documents that do not exist yet.")
@click.pass_context
def update(ctx: click.Context, data_file, upsert: bool) -> None:  # type: ignore[no-untyped-def]
    """Update documents by unique index from a JSON file."""
    from docstore.cli import _store_session

    with _store_session(ctx) as (store, console):
        count = store.update_data(_load_documents(data_file), upsert=upsert)
        format_count("Upserted" if upsert else "Updated", count, console)


@click.command()
@click.argument("data_file", type=click.File("r"))
@click.pass_context
def delete(ctx: click.Context, data_file) -> None:  # type: ignore[no-untyped-def]
    """Delete documents by unique index from a JSON file."""
    from docstore.cli import _store_session

    with _store_session(ctx) as (store, console):
        format_count("Deleted", store.delete_data(_load_documents(data_file)), console)


@click.command()
@click.confirmation_option(prompt="Delete every document in the dataset?")
@click.pass_context
def truncate(ctx: click.Context) -> None:
    """Delete every document and reclaim space."""
    from docstore.cli import _store_session

    with _store_session(ctx) as (store, console):
        format_count("Deleted", store.truncate_resource(), console)
