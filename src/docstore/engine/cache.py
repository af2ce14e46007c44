"""Prepared statement cache for batch writes.

Maps a ColumnSetKey to one compiled statement so that a batch of N rows with
K distinct column shapes compiles exactly K statements.  A cache lives for a
single batch; every statement it compiled is finalized before the batch
commits.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Sequence

from docstore.exceptions import StatementError

if TYPE_CHECKING:
    from sqlalchemy import Connection

    from docstore.protocols import ColumnSetKey, StatementTemplate

logger = logging.getLogger(__name__)


class PreparedStatement:
    """A compiled statement bound to one ColumnSetKey.

    Backed by a DBAPI cursor on the batch's connection; SQLite keeps the
    compiled form of the statement text for as long as the cursor reuses it.
    """

    def __init__(self, connection: Connection, key: ColumnSetKey, sql: str) -> None:
        self.key = key
        self.sql = sql
        self.executions = 0
        self.finalized = False
        self._dbapi_error: type[Exception] = connection.dialect.loaded_dbapi.Error
        try:
            self._cursor = connection.connection.cursor()
        except self._dbapi_error as exc:
            raise StatementError(sql, str(exc)) from exc

    def execute(self, params: Sequence[Any]) -> int:
        """Bind *params* in key order and run the statement.

        Returns the number of rows the statement affected.
        """
        if self.finalized:
            raise StatementError(self.sql, "statement already finalized")
        try:
            self._cursor.execute(self.sql, tuple(params))
        except self._dbapi_error as exc:
            raise StatementError(self.sql, str(exc)) from exc
        self.executions += 1
        return max(self._cursor.rowcount, 0)

    def finalize(self) -> None:
        """Release the statement.  Safe to call more than once."""
        if self.finalized:
            return
        self.finalized = True
        try:
            self._cursor.close()
        except self._dbapi_error as exc:
            raise StatementError(self.sql, str(exc)) from exc

    def __repr__(self) -> str:
        state = "finalized" if self.finalized else f"executions={self.executions}"
        return f"PreparedStatement(key={self.key!r}, {state})"


class StatementCache:
    """ColumnSetKey -> PreparedStatement for the duration of one batch."""

    def __init__(self, connection: Connection) -> None:
        self._connection = connection
        self._statements: dict[ColumnSetKey, PreparedStatement] = {}
        self.compiled_count = 0
        self.finalized_count = 0

    def get_or_create(
        self, key: ColumnSetKey, template: StatementTemplate
    ) -> PreparedStatement:
        """Return the statement for *key*, compiling it on first use.

        Raises:
            StatementError: The template rejected the key or the statement
                could not be prepared.
        """
        statement = self._statements.get(key)
        if statement is not None:
            return statement

        try:
            sql = template(key)
        except ValueError as exc:
            raise StatementError(f"<template for {list(key)}>", str(exc)) from exc

        statement = PreparedStatement(self._connection, key, sql)
        self._statements[key] = statement
        self.compiled_count += 1
        logger.debug("Compiled statement %d for %s: %s", self.compiled_count, key, sql)
        return statement

    def finalize_all(self) -> list[StatementError]:
        """Finalize every cached statement.

        A failing finalization does not stop the others; failures are
        returned in cache order.
        """
        errors: list[StatementError] = []
        for statement in self._statements.values():
            if statement.finalized:
                continue
            try:
                statement.finalize()
            except StatementError as exc:
                logger.warning("Failed to finalize statement for %s: %s", statement.key, exc)
                errors.append(exc)
            self.finalized_count += 1
        return errors

    def __len__(self) -> int:
        return len(self._statements)

    def __contains__(self, key: object) -> bool:
        return key in self._statements
