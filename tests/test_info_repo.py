"""Tests for the SQLite info table repository."""

from __future__ import annotations

import pytest

from docstore.exceptions import IndexDefinitionError
from docstore.models.schema import GeneralType, IndexColumn, SortDirection
from docstore.storage.sqlite import SCHEMA_KEY, SqliteInfoRepository


@pytest.fixture
def repo(engine):
    conn = engine.connect()
    repository = SqliteInfoRepository(conn)
    with conn.begin():
        repository.create()
    yield repository
    conn.close()


def _in_unit(repo: SqliteInfoRepository, fn, *args):  # type: ignore[no-untyped-def]
    with repo._connection.begin():
        return fn(*args)


class TestInfoRepository:
    def test_exists_after_create(self, engine) -> None:
        conn = engine.connect()
        repository = SqliteInfoRepository(conn)
        with conn.begin():
            assert not repository.exists()
            repository.create()
            assert repository.exists()
            # Creating twice is harmless
            repository.create()
        conn.close()

    def test_set_and_get_keys(self, repo) -> None:
        _in_unit(repo, repo.set_keys, {"id": "abc", "name": "Readings", "tags": ["a"]})

        assert _in_unit(repo, repo.get_keys) == {"id": "abc", "name": "Readings", "tags": ["a"]}
        assert _in_unit(repo, repo.get_keys, ["id"]) == {"id": "abc"}
        assert _in_unit(repo, repo.get_keys, ["missing"]) == {}

    def test_set_keys_overwrites(self, repo) -> None:
        _in_unit(repo, repo.set_keys, {"id": "abc"})
        _in_unit(repo, repo.set_keys, {"id": "def"})
        assert _in_unit(repo, repo.get_keys, ["id"]) == {"id": "def"}

    def test_empty_schema_when_unset(self, repo) -> None:
        assert _in_unit(repo, repo.get_schema) == {}
        assert _in_unit(repo, repo.get_unique_index) == []

    def test_schema_and_index(self, repo) -> None:
        definition = {
            "dataSchema": {
                "id": {"__tdxType": ["string"]},
                "count": {"__tdxType": ["number", "integer"]},
                "meta": {},
            },
            "uniqueIndex": [{"desc": "id"}, {"asc": "count"}],
        }
        _in_unit(repo, repo.set_keys, {SCHEMA_KEY: definition})

        assert _in_unit(repo, repo.get_schema) == {
            "id": GeneralType.TEXT,
            "count": GeneralType.INTEGER,
            "meta": GeneralType.OBJECT,
        }
        assert _in_unit(repo, repo.get_unique_index) == [
            IndexColumn("id", SortDirection.DESC),
            IndexColumn("count", SortDirection.ASC),
        ]

    def test_stored_index_is_validated(self, repo) -> None:
        definition = {"dataSchema": {"id": {}}, "uniqueIndex": [{"asc": "missing"}]}
        _in_unit(repo, repo.set_keys, {SCHEMA_KEY: definition})
        with pytest.raises(IndexDefinitionError):
            _in_unit(repo, repo.get_unique_index)
