"""docstore query / count / distinct -- read commands."""

from __future__ import annotations

import click

from docstore.cli.formatting import format_count, format_documents, format_json


@click.command()
@click.option("-f", "--filter", "filter_json", default=None, help="MongoDB-style filter (JSON).")
@click.option("-p", "--projection", "projection_json", default=None, help="Projection (JSON).")
@click.option("-s", "--sort", "sort_json", default=None, help='Sort, e.g. \'{"count": -1}\'.')
@click.option("-n", "--limit", default=None, type=int, help="Maximum number of documents.")
@click.option("--skip", default=0, type=int, help="Number of documents to skip.")
@click.option("--json", "as_json", is_flag=True, help="Print documents as JSON.")
@click.pass_context
def query(
    ctx: click.Context,
    filter_json: str | None,
    projection_json: str | None,
    sort_json: str | None,
    limit: int | None,
    skip: int,
    as_json: bool,
) -> None:
    """Show documents matching a filter."""
    from docstore.cli import _store_session, parse_json_option

    filter_ = parse_json_option(filter_json, "--filter")
    projection = parse_json_option(projection_json, "--projection")
    options = {"sort": parse_json_option(sort_json, "--sort"), "skip": skip}
    if limit is not None:
        options["limit"] = limit

    with _store_session(ctx) as (store, console):
        result = store.get_dataset_data(filter_, projection, options)
        if as_json:
            format_json(result.data, console)
        else:
            format_documents(result.data, console)


@click.command()
@click.option("-f", "--filter", "filter_json", default=None, help="MongoDB-style filter (JSON).")
@click.pass_context
def count(ctx: click.Context, filter_json: str | None) -> None:
    """Count documents matching a filter."""
    from docstore.cli import _store_session, parse_json_option

    filter_ = parse_json_option(filter_json, "--filter")
    with _store_session(ctx) as (store, console):
        format_count("Count", store.get_dataset_data_count(filter_), console)


@click.command()
@click.argument("key")
@click.option("-f", "--filter", "filter_json", default=None, help="MongoDB-style filter (JSON).")
@click.pass_context
def distinct(ctx: click.Context, key: str, filter_json: str | None) -> None:
    """Show the distinct values of column KEY."""
    from docstore.cli import _store_session, parse_json_option

    filter_ = parse_json_option(filter_json, "--filter")
    with _store_session(ctx) as (store, console):
        format_json(store.get_distinct(key, filter_), console)
