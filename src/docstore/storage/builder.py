"""Query builder: QueryDescriptor -> parameterized SQL.

Translates MongoDB-style filters into SQLAlchemy Core expressions and
compiles them for the SQLite dialect, producing qmark SQL text plus the
positional values to bind.
"""

from __future__ import annotations

from typing import Any, Callable, Mapping

from sqlalchemy import (
    ColumnElement,
    and_,
    column,
    delete,
    func,
    not_,
    or_,
    select,
    table,
    true,
    update,
)
from sqlalchemy.dialects import sqlite
from sqlalchemy.sql.expression import TableClause

from docstore.exceptions import QueryError
from docstore.models.query import BuiltQuery, QueryDescriptor
from docstore.models.schema import SortDirection

_dialect = sqlite.dialect(paramstyle="qmark")

_COMPARISONS: dict[str, Callable[[ColumnElement[Any], Any], ColumnElement[bool]]] = {
    "$gt": lambda col, value: col > value,
    "$gte": lambda col, value: col >= value,
    "$lt": lambda col, value: col < value,
    "$lte": lambda col, value: col <= value,
    "$like": lambda col, value: col.like(value),
}


def _equals(col: ColumnElement[Any], value: Any) -> ColumnElement[bool]:
    return col.is_(None) if value is None else col == value


def _not_equals(col: ColumnElement[Any], value: Any) -> ColumnElement[bool]:
    return col.is_not(None) if value is None else or_(col != value, col.is_(None))


def _as_list(operator: str, value: Any) -> list[Any]:
    if not isinstance(value, (list, tuple, set)):
        raise QueryError(f"{operator} expects a list, got {type(value).__name__}")
    return list(value)


def _field_condition(name: str, condition: Any) -> ColumnElement[bool]:
    col = column(name)
    if not isinstance(condition, Mapping) or not any(
        str(key).startswith("$") for key in condition
    ):
        return _equals(col, condition)

    clauses: list[ColumnElement[bool]] = []
    for operator, value in condition.items():
        if operator == "$eq":
            clauses.append(_equals(col, value))
        elif operator == "$ne":
            clauses.append(_not_equals(col, value))
        elif operator in _COMPARISONS:
            clauses.append(_COMPARISONS[operator](col, value))
        elif operator == "$in":
            clauses.append(col.in_(_as_list(operator, value)))
        elif operator == "$nin":
            clauses.append(col.not_in(_as_list(operator, value)))
        elif operator == "$exists":
            clauses.append(col.is_not(None) if value else col.is_(None))
        elif operator == "$not":
            clauses.append(not_(_field_condition(name, value)))
        else:
            raise QueryError(f"Unsupported filter operator '{operator}' on '{name}'")
    return and_(*clauses)


def translate_filter(where: Mapping[str, Any] | None) -> ColumnElement[bool]:
    """Translate a MongoDB-style filter into a boolean SQL expression."""
    clauses: list[ColumnElement[bool]] = []
    for key, value in (where or {}).items():
        if key in ("$and", "$or", "$nor"):
            parts = [translate_filter(part) for part in _as_list(key, value)]
            if not parts:
                raise QueryError(f"{key} expects a non-empty list")
            if key == "$and":
                clauses.append(and_(*parts))
            elif key == "$or":
                clauses.append(or_(*parts))
            else:
                clauses.append(not_(or_(*parts)))
        elif key.startswith("$"):
            raise QueryError(f"Unsupported top-level filter operator '{key}'")
        else:
            clauses.append(_field_condition(key, value))

    if not clauses:
        return true()
    return and_(*clauses) if len(clauses) > 1 else clauses[0]


class QueryBuilder:
    """Compiles QueryDescriptors for SQLite."""

    def __init__(self, all_columns: tuple[str, ...] = ()) -> None:
        self._all_columns = all_columns

    def _table(self, descriptor: QueryDescriptor) -> TableClause:
        names = dict.fromkeys(
            self._all_columns + descriptor.columns + tuple(descriptor.updates)
        )
        return table(descriptor.table, *(column(name) for name in names))

    def to_statement(self, descriptor: QueryDescriptor):  # type: ignore[no-untyped-def]
        """Return the SQLAlchemy statement for *descriptor*."""
        tbl = self._table(descriptor)
        where = translate_filter(descriptor.where)

        if descriptor.kind == "count":
            return select(func.count().label("count")).select_from(tbl).where(where)
        if descriptor.kind == "delete":
            return delete(tbl).where(where)
        if descriptor.kind == "update":
            if not descriptor.updates:
                raise QueryError("update descriptor has no columns to set")
            return update(tbl).where(where).values(
                {tbl.c[name]: value for name, value in descriptor.updates.items()}
            )

        if descriptor.distinct:
            if descriptor.distinct_column is None:
                raise QueryError("distinct query needs exactly one column")
            stmt = select(tbl.c[descriptor.distinct_column]).distinct()
        elif descriptor.columns:
            stmt = select(*(tbl.c[name] for name in descriptor.columns))
        else:
            stmt = select(tbl)
        stmt = stmt.where(where)

        for name, direction in descriptor.order.items():
            col = column(name)
            stmt = stmt.order_by(col.desc() if direction is SortDirection.DESC else col.asc())
        if descriptor.limit is not None:
            stmt = stmt.limit(descriptor.limit)
        if descriptor.offset:
            stmt = stmt.offset(descriptor.offset)
        return stmt

    def build(self, descriptor: QueryDescriptor) -> BuiltQuery:
        """Compile *descriptor* into SQL text and positional values."""
        compiled = self.to_statement(descriptor).compile(
            dialect=_dialect,
            compile_kwargs={"render_postcompile": True},
        )
        params = compiled.params
        values = [params[name] for name in (compiled.positiontup or [])]
        return BuiltQuery(query=str(compiled), values=values)
