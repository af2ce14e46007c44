"""SQLite implementations of repository interfaces.

Repositories run SQLAlchemy 2.0-style Core statements on the store's single
connection.  They never commit: the caller owns the transaction.
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping

from sqlalchemy import Connection, inspect, select
from sqlalchemy.dialects.sqlite import insert as sqlite_insert

from docstore.models.schema import IndexColumn, Schema, convert_schema, parse_unique_index
from docstore.storage.repositories import InfoRepository
from docstore.storage.schema import Base, InfoRow

# Info key holding {"dataSchema": {...}, "uniqueIndex": [...]}.
SCHEMA_KEY = "schema"

_info = InfoRow.__table__


class SqliteInfoRepository(InfoRepository):
    """SQLite implementation of the info table repository."""

    def __init__(self, connection: Connection) -> None:
        self._connection = connection

    def exists(self) -> bool:
        return inspect(self._connection).has_table(InfoRow.__tablename__)

    def create(self) -> None:
        Base.metadata.create_all(self._connection, tables=[_info], checkfirst=True)

    def get_keys(self, keys: Iterable[str] | None = None) -> dict[str, Any]:
        stmt = select(_info.c.key, _info.c.value)
        if keys is not None:
            stmt = stmt.where(_info.c.key.in_(list(keys)))
        return {row.key: row.value for row in self._connection.execute(stmt)}

    def set_keys(self, values: Mapping[str, Any]) -> None:
        for key, value in values.items():
            stmt = sqlite_insert(_info).values(key=key, value=value)
            stmt = stmt.on_conflict_do_update(
                index_elements=[_info.c.key],
                set_={"value": stmt.excluded.value},
            )
            self._connection.execute(stmt)

    def _schema_definition(self) -> dict[str, Any]:
        definition = self.get_keys([SCHEMA_KEY]).get(SCHEMA_KEY)
        return definition if isinstance(definition, dict) else {}

    def get_schema(self) -> Schema:
        return convert_schema(self._schema_definition().get("dataSchema"))

    def get_unique_index(self) -> list[IndexColumn]:
        definition = self._schema_definition()
        return parse_unique_index(
            definition.get("uniqueIndex"),
            convert_schema(definition.get("dataSchema")),
        )
