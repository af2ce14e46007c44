"""Query shaping: filter, projection and options -> QueryDescriptor.

The shaper knows the dataset schema and the query limit cap but nothing
about SQL.  It decides which columns a read returns, how results are
ordered and bounded, and when a read can be skipped entirely.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

from docstore.exceptions import UnsupportedOperationError
from docstore.models.config import DEFAULT_QUERY_LIMIT
from docstore.models.query import QueryDescriptor
from docstore.models.schema import GeneralType, SortDirection

logger = logging.getLogger(__name__)

_SORT_VALUES = {1: SortDirection.ASC, -1: SortDirection.DESC}


class QueryShaper:
    """Builds bounded QueryDescriptors for one dataset."""

    def __init__(
        self,
        table: str,
        schema: Mapping[str, GeneralType],
        *,
        query_limit: int = DEFAULT_QUERY_LIMIT,
    ) -> None:
        self.table = table
        self.schema = schema
        self.query_limit = query_limit

    # ------------------------------------------------------------------
    # Option helpers
    # ------------------------------------------------------------------

    def clamp_limit(self, limit: Any) -> int:
        """Clamp a requested limit into ``(0, query_limit]``."""
        if isinstance(limit, bool) or not isinstance(limit, (int, float)):
            return self.query_limit
        if isinstance(limit, float) and not limit.is_integer():
            return self.query_limit
        if 0 < limit <= self.query_limit:
            return int(limit)
        return self.query_limit

    @staticmethod
    def resolve_sort(sort: Mapping[str, Any] | None) -> dict[str, SortDirection]:
        """Map ``{col: 1 | -1}`` to directions, ignoring other values."""
        order: dict[str, SortDirection] = {}
        for column, value in (sort or {}).items():
            if isinstance(value, bool):
                continue
            direction = _SORT_VALUES.get(value)
            if direction is not None:
                order[column] = direction
        return order

    def resolve_projection(
        self, projection: Mapping[str, Any] | None
    ) -> tuple[tuple[str, ...], bool]:
        """Resolve a projection to a column list.

        Returns:
            ``(columns, included)``: *included* is True when the list comes
            from explicitly included columns, which always win over
            exclusions.
        """
        included: list[str] = []
        excluded = list(self.schema)
        for column, value in (projection or {}).items():
            if column not in self.schema:
                continue
            if value:
                included.append(column)
            elif column in excluded:
                excluded.remove(column)

        if included:
            return tuple(included), True
        return tuple(excluded), False

    # ------------------------------------------------------------------
    # Descriptors
    # ------------------------------------------------------------------

    def shape(
        self,
        filter: Mapping[str, Any] | None = None,
        projection: Mapping[str, Any] | None = None,
        options: Mapping[str, Any] | None = None,
        *,
        distinct: str | None = None,
    ) -> QueryDescriptor:
        """Build a select descriptor.

        Args:
            filter: MongoDB-style filter.
            projection: MongoDB-style projection.
            options: ``limit``, ``skip`` and ``sort``.
            distinct: Column whose distinct values are requested.  It is
                merged into the projection as an explicit inclusion.

        Raises:
            UnsupportedOperationError: Distinct over an OBJECT or ARRAY
                column.
        """
        options = options or {}
        projection = dict(projection or {})
        if distinct is not None:
            projection = {distinct: 1}

        columns, included = self.resolve_projection(projection)
        skip = options.get("skip") or 0
        skip_read = not columns

        if distinct is not None:
            if not included or len(columns) != 1:
                skip_read = True
            else:
                self._check_distinct(columns[0])
                if self.schema[columns[0]] is GeneralType.NDARRAY:
                    skip_read = True

        if skip_read:
            logger.debug("Skipping read on %s: no columns to select", self.table)

        return QueryDescriptor(
            table=self.table,
            kind="select",
            where=dict(filter or {}),
            columns=columns,
            order=self.resolve_sort(options.get("sort")),
            limit=self.clamp_limit(options.get("limit")),
            offset=int(skip) if skip else None,
            distinct=distinct is not None,
            distinct_column=columns[0] if distinct is not None and included else None,
            skip_read=skip_read,
        )

    def shape_count(self, filter: Mapping[str, Any] | None = None) -> QueryDescriptor:
        """Build a count descriptor."""
        return QueryDescriptor(table=self.table, kind="count", where=dict(filter or {}))

    def shape_delete(self, filter: Mapping[str, Any] | None = None) -> QueryDescriptor:
        """Build a delete-by-query descriptor."""
        return QueryDescriptor(table=self.table, kind="delete", where=dict(filter or {}))

    def shape_update(
        self,
        filter: Mapping[str, Any] | None,
        updates: Mapping[str, Any],
    ) -> QueryDescriptor:
        """Build an update-by-query descriptor.

        *updates* must already hold storage values; columns outside the
        schema are dropped.  An empty result sets ``skip_read`` so the caller
        issues nothing.
        """
        kept = {column: value for column, value in updates.items() if column in self.schema}
        return QueryDescriptor(
            table=self.table,
            kind="update",
            where=dict(filter or {}),
            updates=kept,
            skip_read=not kept,
        )

    def _check_distinct(self, column: str) -> None:
        if self.schema[column] in (GeneralType.OBJECT, GeneralType.ARRAY):
            raise UnsupportedOperationError(
                "distinct", f"column '{column}' has compound type {self.schema[column].value}"
            )
