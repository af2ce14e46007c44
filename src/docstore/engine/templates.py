"""Row-shape-aware statement templates.

Each factory returns a callable ``(key) -> sql`` for the batch executor.
Placeholders are SQLite numbered parameters: ``?N`` binds the N-th column of
the key, so parameters are always bound in key order even when the WHERE
clause comes after the SET clause.
"""

from __future__ import annotations

from typing import Sequence

from sqlalchemy.dialects import sqlite

from docstore.models.schema import IndexColumn
from docstore.protocols import ColumnSetKey, StatementTemplate

_preparer = sqlite.dialect().identifier_preparer


def quote(identifier: str) -> str:
    """Quote an identifier for SQLite when it needs quoting."""
    return _preparer.quote(identifier)


def _positions(key: ColumnSetKey) -> dict[str, int]:
    return {column: position for position, column in enumerate(key, start=1)}


def _require_index(key: ColumnSetKey, index: Sequence[IndexColumn]) -> dict[str, int]:
    positions = _positions(key)
    missing = [entry.column for entry in index if entry.column not in positions]
    if missing:
        raise ValueError(f"row is missing unique index column(s): {', '.join(missing)}")
    return positions


def _where_index(index: Sequence[IndexColumn], positions: dict[str, int]) -> str:
    return " AND ".join(
        f"{quote(entry.column)} = ?{positions[entry.column]}" for entry in index
    )


def insert_template(table: str) -> StatementTemplate:
    """``INSERT INTO table (cols) VALUES (?1, ...)``."""

    def template(key: ColumnSetKey) -> str:
        if not key:
            return f"INSERT INTO {quote(table)} DEFAULT VALUES"
        columns = ", ".join(quote(column) for column in key)
        placeholders = ", ".join(f"?{position}" for position in range(1, len(key) + 1))
        return f"INSERT INTO {quote(table)} ({columns}) VALUES ({placeholders})"

    return template


def update_template(table: str, index: Sequence[IndexColumn]) -> StatementTemplate:
    """``UPDATE table SET col = ?N ... WHERE index_col = ?M ...``.

    A row holding only index columns updates them to themselves, so it
    still reports whether the document exists.
    """
    index_columns = {entry.column for entry in index}

    def template(key: ColumnSetKey) -> str:
        positions = _require_index(key, index)
        targets = [column for column in key if column not in index_columns] or [
            entry.column for entry in index
        ]
        assignments = ", ".join(f"{quote(column)} = ?{positions[column]}" for column in targets)
        return (
            f"UPDATE {quote(table)} SET {assignments} "
            f"WHERE {_where_index(index, positions)}"
        )

    return template


def upsert_template(table: str, index: Sequence[IndexColumn]) -> StatementTemplate:
    """``INSERT ... ON CONFLICT (index) DO UPDATE SET col = excluded.col``."""
    index_columns = {entry.column for entry in index}
    insert = insert_template(table)

    def template(key: ColumnSetKey) -> str:
        _require_index(key, index)
        conflict = ", ".join(quote(entry.column) for entry in index)
        targets = [column for column in key if column not in index_columns]
        if not targets:
            return f"{insert(key)} ON CONFLICT ({conflict}) DO NOTHING"
        assignments = ", ".join(
            f"{quote(column)} = excluded.{quote(column)}" for column in targets
        )
        return f"{insert(key)} ON CONFLICT ({conflict}) DO UPDATE SET {assignments}"

    return template


def delete_template(table: str, index: Sequence[IndexColumn]) -> StatementTemplate:
    """``DELETE FROM table WHERE index_col = ?N ...``.

    Callers pass rows projected to the index columns so every key column
    is bound.
    """

    def template(key: ColumnSetKey) -> str:
        positions = _require_index(key, index)
        extra = [column for column in key if column not in {e.column for e in index}]
        if extra:
            raise ValueError(f"delete rows may only hold index columns, got: {', '.join(extra)}")
        return f"DELETE FROM {quote(table)} WHERE {_where_index(index, positions)}"

    return template
