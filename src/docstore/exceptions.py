"""Docstore exception hierarchy.

All docstore-specific exceptions inherit from DocstoreError.
"""

from __future__ import annotations


class DocstoreError(Exception):
    """Base exception for all docstore errors."""


class SchemaMismatchError(DocstoreError):
    """Raised when a dataset is re-created with a different schema."""

    def __init__(self, dataset_id: str) -> None:
        self.dataset_id = dataset_id
        super().__init__(
            f"Dataset '{dataset_id}' already exists with a different schema"
        )


class ConversionError(DocstoreError):
    """Raised when a value cannot be encoded or decoded for its column type."""

    def __init__(self, column: str | None, general_type: object, reason: str) -> None:
        self.column = column
        self.general_type = general_type
        self.reason = reason
        where = f"column '{column}'" if column else "value"
        super().__init__(f"Cannot convert {where} as {general_type}: {reason}")


class StatementError(DocstoreError):
    """Raised when SQLite rejects a prepare, execute, finalize or commit."""

    def __init__(self, sql: str, reason: str) -> None:
        self.sql = sql
        self.reason = reason
        super().__init__(f"Statement failed ({reason}): {sql}")


class BatchWriteError(DocstoreError):
    """Raised at the batch boundary after cleanup when a row failed.

    Rows before ``row_index`` were applied and committed.
    """

    def __init__(self, row_index: int | None, cause: DocstoreError, count: int) -> None:
        self.row_index = row_index
        self.cause = cause
        self.count = count
        if row_index is None:
            super().__init__(f"Batch cleanup failed after {count} row(s): {cause}")
        else:
            super().__init__(
                f"Batch failed at row {row_index} after {count} row(s): {cause}"
            )


class IndexDefinitionError(DocstoreError):
    """Raised when a unique index entry is malformed."""


class UnsupportedOperationError(DocstoreError):
    """Raised for operations that are deliberately not implemented."""

    def __init__(self, operation: str, reason: str = "") -> None:
        self.operation = operation
        msg = f"Unsupported operation: {operation}"
        if reason:
            msg += f" ({reason})"
        super().__init__(msg)


class QueryError(DocstoreError):
    """Raised when a filter or update object cannot be translated."""


class DatasetNotFoundError(DocstoreError):
    """Raised when a data operation runs before a dataset exists."""

    def __init__(self) -> None:
        super().__init__(
            "No dataset in this database. Use create_dataset() first."
        )


class ReadOnlyError(DocstoreError):
    """Raised when writing to a store opened read-only."""

    def __init__(self, operation: str) -> None:
        self.operation = operation
        super().__init__(f"Cannot {operation}: database opened read-only")
