"""Engine factory for docstore storage.

Provides SQLite engine creation for file or in-memory databases, honouring
the open mode, and applies connection pragmas.
"""

from __future__ import annotations

from typing import Literal

from sqlalchemy import URL, Engine, create_engine, event

MEMORY_PATH = ":memory:"

AccessMode = Literal["create", "readwrite", "readonly"]


def resolve_mode(mode: str | None) -> AccessMode:
    """Normalize an open mode string.

    ``"w+"`` creates the database if needed, ``"rw"``/``"wr"`` opens an
    existing database for writing, and anything else opens read-only.
    """
    if mode == "w+":
        return "create"
    if mode in ("rw", "wr"):
        return "readwrite"
    return "readonly"


def database_url(path: str, access: AccessMode) -> URL:
    """Build the SQLAlchemy URL for *path* opened with *access*."""
    if path == MEMORY_PATH:
        return URL.create("sqlite")
    if access == "create":
        return URL.create("sqlite", database=path)
    uri_mode = "rw" if access == "readwrite" else "ro"
    return URL.create(
        "sqlite",
        database=f"file:{path}",
        query={"mode": uri_mode, "uri": "true"},
    )


def create_docstore_engine(
    path: str = MEMORY_PATH,
    *,
    mode: str = "w+",
    busy_timeout_ms: int = 5000,
) -> Engine:
    """Create a SQLAlchemy engine for a docstore database.

    Args:
        path: Path to the SQLite database file, or ``":memory:"``.
        mode: Open mode: ``"w+"``, ``"rw"`` or ``"r"``.
        busy_timeout_ms: SQLite busy timeout applied on connect.

    Returns:
        Configured SQLAlchemy Engine.
    """
    access = resolve_mode(mode)
    engine = create_engine(database_url(path, access), echo=False)
    use_wal = path != MEMORY_PATH and access != "readonly"

    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_conn, connection_record):  # type: ignore[no-untyped-def]
        cursor = dbapi_conn.cursor()
        cursor.execute(f"PRAGMA busy_timeout={int(busy_timeout_ms)}")
        if use_wal:
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.execute("PRAGMA synchronous=NORMAL")
        cursor.close()

    return engine
