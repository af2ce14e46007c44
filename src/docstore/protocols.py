"""Protocol definitions for docstore.

Defines pluggable interfaces (StatementTemplate, NdarrayStore) and the row
type shared by the write and read paths.

No SQLAlchemy imports allowed in this module -- pure domain protocols.
"""

from __future__ import annotations

from typing import Any, Protocol, Sequence, runtime_checkable

# A document row.  Key order is significant: it decides the ColumnSetKey.
Row = dict[str, Any]

# The ordered columns a row populates.
ColumnSetKey = tuple[str, ...]


@runtime_checkable
class StatementTemplate(Protocol):
    """Builds the SQL text for one ColumnSetKey.

    The returned text must carry one placeholder per key column, bound in
    key order.  Equal keys must always produce identical text.
    """

    def __call__(self, columns: ColumnSetKey) -> str:
        ...


@runtime_checkable
class NdarrayStore(Protocol):
    """Protocol for externalizing n-dimensional array values.

    Both methods are value-for-value row transforms: they return rows of the
    same shape with only the named columns replaced.
    """

    def write_many(self, rows: Sequence[Row], columns: Sequence[str]) -> list[Row]:
        """Replace array values with opaque references before storage."""
        ...

    def read_many(self, rows: Sequence[Row], columns: Sequence[str]) -> list[Row]:
        """Replace references with array values after decoding."""
        ...
