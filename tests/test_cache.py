"""Tests for the prepared statement cache."""

from __future__ import annotations

import pytest

from docstore.engine.cache import PreparedStatement, StatementCache
from docstore.engine.templates import insert_template
from docstore.exceptions import StatementError

from tests.conftest import fetch_all


class _CountingTemplate:
    """Insert template that records every key it was asked to render."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, ...]] = []
        self._inner = insert_template("data")

    def __call__(self, key: tuple[str, ...]) -> str:
        self.calls.append(key)
        return self._inner(key)


class TestStatementCache:
    def test_compiles_once_per_key(self, connection) -> None:
        cache = StatementCache(connection)
        template = _CountingTemplate()

        first = cache.get_or_create(("id", "count"), template)
        second = cache.get_or_create(("id", "count"), template)
        third = cache.get_or_create(("count", "id"), template)

        assert first is second
        assert third is not first
        assert cache.compiled_count == 2
        assert template.calls == [("id", "count"), ("count", "id")]
        assert len(cache) == 2
        assert ("id", "count") in cache
        cache.finalize_all()

    def test_finalize_all_finalizes_each_once(self, connection) -> None:
        cache = StatementCache(connection)
        template = insert_template("data")
        statements = [cache.get_or_create(key, template) for key in [("id",), ("count",)]]

        assert cache.finalize_all() == []
        assert all(s.finalized for s in statements)
        assert cache.finalized_count == 2

        # A second pass finds nothing left to finalize
        assert cache.finalize_all() == []
        assert cache.finalized_count == 2

    def test_finalize_failure_does_not_stop_others(self, connection) -> None:
        cache = StatementCache(connection)
        template = insert_template("data")
        broken = cache.get_or_create(("id",), template)
        healthy = cache.get_or_create(("count",), template)

        def _fail() -> None:
            broken.finalized = True
            raise StatementError(broken.sql, "finalize failed")

        broken.finalize = _fail  # type: ignore[method-assign]

        errors = cache.finalize_all()
        assert len(errors) == 1
        assert errors[0].reason == "finalize failed"
        assert healthy.finalized
        assert cache.finalized_count == 2

    def test_template_value_error_becomes_statement_error(self, connection) -> None:
        cache = StatementCache(connection)

        def template(key: tuple[str, ...]) -> str:
            raise ValueError("row is missing unique index column(s): id")

        with pytest.raises(StatementError, match="missing unique index"):
            cache.get_or_create(("count",), template)
        assert cache.compiled_count == 0


class TestPreparedStatement:
    def test_execute_binds_in_key_order(self, connection) -> None:
        with connection.begin():
            statement = PreparedStatement(
                connection, ("count", "id"), insert_template("data")(("count", "id"))
            )
            assert statement.execute([7, "x"]) == 1
            assert statement.executions == 1
            statement.finalize()

        assert fetch_all(connection, "SELECT id, count FROM data") == [("x", 7)]

    def test_engine_error_is_wrapped(self, connection) -> None:
        with connection.begin():
            statement = PreparedStatement(connection, ("nope",), "INSERT INTO data (nope) VALUES (?1)")
            with pytest.raises(StatementError) as info:
                statement.execute([1])
            statement.finalize()
        assert "nope" in info.value.reason

    def test_execute_after_finalize_fails(self, connection) -> None:
        with connection.begin():
            statement = PreparedStatement(connection, ("id",), "INSERT INTO data (id) VALUES (?1)")
            statement.finalize()
            statement.finalize()
            with pytest.raises(StatementError, match="already finalized"):
                statement.execute(["a"])
