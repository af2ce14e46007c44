"""Query domain models for docstore.

QueryDescriptor is the SQL-free description of one read or bulk write.
BuiltQuery is what the query builder produces from it.  DatasetData is the
SDK-facing result of a read.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Optional

from pydantic import BaseModel

from docstore.models.schema import SortDirection

QueryKind = Literal["select", "update", "delete", "count"]


@dataclass(frozen=True)
class QueryDescriptor:
    """Bounded description of a query, independent of SQL syntax.

    Attributes:
        table: Data table name.
        kind: Statement kind.
        where: MongoDB-style filter object.
        columns: Resolved column list.  Empty means every column.
        order: Column -> direction, in sort priority order.
        limit: Clamped row limit (select only).
        offset: Rows to skip, or None.
        distinct: Whether the read returns distinct values of one column.
        distinct_column: The single distinct column when ``distinct``.
        updates: Column -> storage value (update only).
        skip_read: The caller should return an empty result without
            issuing a read.
    """

    table: str
    kind: QueryKind = "select"
    where: dict[str, Any] = field(default_factory=dict)
    columns: tuple[str, ...] = ()
    order: dict[str, SortDirection] = field(default_factory=dict)
    limit: Optional[int] = None
    offset: Optional[int] = None
    distinct: bool = False
    distinct_column: Optional[str] = None
    updates: dict[str, Any] = field(default_factory=dict)
    skip_read: bool = False


@dataclass(frozen=True)
class BuiltQuery:
    """Parameterized SQL text plus positional bind values."""

    query: str
    values: list[Any]


class DatasetData(BaseModel):
    """Documents returned by DocumentStore.get_dataset_data()."""

    metadata: Optional[dict[str, Any]] = None  # Populated when options["meta"] is set
    metadata_url: str = ""
    data: list[dict[str, Any]] = []
