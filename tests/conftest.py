"""Shared test fixtures for docstore.

Provides in-memory SQLite engine, connection and store fixtures.
"""

from __future__ import annotations

from pathlib import Path

import pytest
from sqlalchemy import Connection, Engine, event

from docstore.models.config import DocstoreConfig
from docstore.models.schema import GeneralType
from docstore.storage.engine import create_docstore_engine
from docstore.store import DocumentStore

READINGS_OPTIONS = {
    "id": "readings",
    "name": "Sensor readings",
    "schema": {
        "dataSchema": {
            "id": {"__tdxType": ["string"]},
            "count": {"__tdxType": ["number", "int"]},
            "temperature": {"__tdxType": ["number", "float"]},
            "active": {"__tdxType": ["boolean"]},
            "tags": [],
            "location": {},
        },
        "uniqueIndex": [{"asc": "id"}],
    },
}

READINGS = [
    {"id": "a", "count": 1, "temperature": 12.5, "active": True, "tags": ["x"], "location": {"lat": 1.0}},
    {"id": "b", "count": 2, "temperature": 18.0, "active": False, "tags": ["x", "y"], "location": {"lat": 2.0}},
    {"id": "c", "count": 3, "temperature": 21.5, "active": True, "tags": [], "location": {"lat": 3.0}},
    {"id": "d", "count": 3, "temperature": None, "active": False, "tags": ["z"], "location": None},
]


@pytest.fixture
def engine():
    """In-memory SQLite engine."""
    eng = create_docstore_engine(":memory:")
    yield eng
    eng.dispose()


@pytest.fixture
def connection(engine: Engine):
    """A single connection with a ``data(id TEXT, count INTEGER, meta TEXT)`` table."""
    conn = engine.connect()
    with conn.begin():
        conn.exec_driver_sql("CREATE TABLE data(id TEXT, count INTEGER, meta TEXT)")
        conn.exec_driver_sql("CREATE UNIQUE INDEX data_id ON data(id ASC)")
    yield conn
    conn.close()


@pytest.fixture
def data_schema() -> dict[str, GeneralType]:
    return {"id": GeneralType.TEXT, "count": GeneralType.INTEGER, "meta": GeneralType.OBJECT}


@pytest.fixture
def commit_counter(engine: Engine) -> list[int]:
    """Counts commits issued on any connection of *engine*."""
    commits: list[int] = []

    @event.listens_for(engine, "commit")
    def _on_commit(conn):  # type: ignore[no-untyped-def]
        commits.append(1)

    return commits


@pytest.fixture
def store(tmp_path: Path):
    """Empty in-memory DocumentStore with ndarrays under tmp_path."""
    s = DocumentStore.open(config=DocstoreConfig(ndarray_dir=str(tmp_path / "arrays")))
    yield s
    s.close()


@pytest.fixture
def readings_store(store: DocumentStore) -> DocumentStore:
    """Store with the readings dataset created and populated."""
    store.create_dataset(READINGS_OPTIONS)
    store.add_data(READINGS)
    return store


# ------------------------------------------------------------------
# Shared test helpers
# ------------------------------------------------------------------

def fetch_all(conn: Connection, sql: str) -> list[tuple]:
    """Run a read in its own transaction so the connection stays idle."""
    with conn.begin():
        return [tuple(row) for row in conn.exec_driver_sql(sql).fetchall()]
