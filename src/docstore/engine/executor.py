"""Batch transaction executor.

Runs many rows as one unit of work on a single connection: one transaction,
one statement per distinct ColumnSetKey, every statement finalized, exactly
one commit.

The commit is issued even when a row fails.  Rows applied before the failure
stay committed and the failure is raised afterwards as BatchWriteError.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterable, Mapping

from sqlalchemy import exc as sa_exc

from docstore.engine.cache import StatementCache
from docstore.engine.codec import encode
from docstore.exceptions import (
    BatchWriteError,
    ConversionError,
    DocstoreError,
    StatementError,
)

if TYPE_CHECKING:
    from sqlalchemy import Connection, RootTransaction

    from docstore.models.schema import GeneralType
    from docstore.protocols import ColumnSetKey, Row, StatementTemplate

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BatchStats:
    """Counters for one executor run.

    Attributes:
        rows: Rows handed to the run.
        executed: Rows whose statement executed successfully.
        affected: Total rows affected in the database.
        compiled: Statements compiled (one per distinct ColumnSetKey seen).
        finalized: Statements finalized.
        commits: Commits that succeeded (1 for every run that reached its
            commit, 0 when the commit failed).
    """

    rows: int
    executed: int
    affected: int
    compiled: int
    finalized: int
    commits: int


def column_set_key(row: Mapping[str, object]) -> ColumnSetKey:
    """Return the row's populated columns in the row's own order."""
    return tuple(row.keys())


class BatchTransactionExecutor:
    """Executes a batch of rows inside one transaction.

    Each run creates its own StatementCache, so compiled statements never
    leak between runs.  Not re-entrant: a connection runs one batch at a
    time.
    """

    def __init__(self, connection: Connection, schema: Mapping[str, GeneralType]) -> None:
        self._connection = connection
        self._schema = schema
        self.last_stats: BatchStats | None = None
        self._commits = 0

    def run(self, rows: Iterable[Row], template: StatementTemplate) -> int:
        """Write *rows* with statements produced by *template*.

        Returns:
            Total number of rows affected.

        Raises:
            BatchWriteError: A row failed to convert or execute, or cleanup
                failed.  Raised only after finalize and commit have run.
        """
        rows = list(rows)
        self._commits = 0
        cache = StatementCache(self._connection)
        transaction = self._connection.begin()
        executed = 0
        affected = 0
        failure: DocstoreError | None = None
        failed_index: int | None = None

        try:
            for index, row in enumerate(rows):
                key = column_set_key(row)
                try:
                    statement = cache.get_or_create(key, template)
                    params = [
                        encode(self._schema.get(column), row[column], column=column)
                        for column in key
                    ]
                    affected += statement.execute(params)
                except (ConversionError, StatementError) as exc:
                    failure = exc
                    failed_index = index
                    break
                executed += 1
        finally:
            finalize_errors = cache.finalize_all()
            commit_error = self._commit(transaction)
            self.last_stats = BatchStats(
                rows=len(rows),
                executed=executed,
                affected=affected,
                compiled=cache.compiled_count,
                finalized=cache.finalized_count,
                commits=self._commits,
            )

        logger.debug(
            "Batch committed: %d/%d rows, %d affected, %d statement(s)",
            executed, len(rows), affected, cache.compiled_count,
        )

        if failure is not None:
            logger.warning(
                "Batch stopped at row %s after %d row(s) were applied: %s",
                failed_index, executed, failure,
            )
            raise BatchWriteError(failed_index, failure, executed) from failure
        if commit_error is not None:
            raise BatchWriteError(None, commit_error, executed) from commit_error
        if finalize_errors:
            raise BatchWriteError(None, finalize_errors[0], executed) from finalize_errors[0]
        return affected

    def _commit(self, transaction: RootTransaction) -> StatementError | None:
        try:
            transaction.commit()
        except sa_exc.DBAPIError as exc:
            logger.warning("Batch commit failed: %s", exc)
            return StatementError("COMMIT", str(exc.orig))
        self._commits += 1
        return None
