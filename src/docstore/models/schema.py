"""Schema domain model for docstore.

A dataset schema maps every column to one GeneralType.  Document-level type
descriptors (``{"__tdxType": ["number", "int"]}``, ``[]``, ``{}``) are
converted with fixed rules; anything unrecognised falls back to TEXT.

Storage types are what SQLite sees: compound types collapse to TEXT because
their values are stored as JSON.
"""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass
from typing import Any, Mapping, Sequence

from docstore.exceptions import IndexDefinitionError

# Key holding the type list inside a document-level descriptor.
TYPE_KEY = "__tdxType"


class GeneralType(str, enum.Enum):
    """Storage-level type of a schema column."""

    TEXT = "TEXT"
    INTEGER = "INTEGER"
    REAL = "REAL"
    NUMERIC = "NUMERIC"
    OBJECT = "OBJECT"
    ARRAY = "ARRAY"
    NDARRAY = "NDARRAY"


class SortDirection(str, enum.Enum):
    """Sort / index direction."""

    ASC = "ASC"
    DESC = "DESC"


# Types whose values are serialized to JSON text before storage.
COMPOUND_TYPES: frozenset[GeneralType] = frozenset({
    GeneralType.OBJECT,
    GeneralType.ARRAY,
    GeneralType.NDARRAY,
})

Schema = dict[str, GeneralType]

_REAL_PATTERN = re.compile(r"REAL|FLOAT|DOUBLE")


@dataclass(frozen=True)
class IndexColumn:
    """One column of a dataset's unique index."""

    column: str
    direction: SortDirection = SortDirection.ASC

    def to_entry(self) -> dict[str, str]:
        """Render back to the ``{"asc": col}`` form stored in the info table."""
        return {self.direction.value.lower(): self.column}


def get_basic_type(types: Sequence[Any] | None) -> GeneralType:
    """Return the GeneralType for a ``[base, derived]`` type list.

    Never raises: unknown or malformed lists map to TEXT.
    """
    types = list(types) if isinstance(types, (list, tuple)) else []
    base = types[0] if len(types) > 0 else ""
    derived = types[1] if len(types) > 1 else ""

    base = base.lower() if isinstance(base, str) else ""
    derived = derived.upper() if isinstance(derived, str) else ""

    if base == "string":
        return GeneralType.TEXT
    if base in ("boolean", "date"):
        return GeneralType.NUMERIC
    if base == "number":
        if "INT" in derived:
            return GeneralType.INTEGER
        if _REAL_PATTERN.search(derived):
            return GeneralType.REAL
        return GeneralType.NUMERIC
    if base == "ndarray":
        return GeneralType.NDARRAY

    return GeneralType.TEXT


def convert_schema(data_schema: Mapping[str, Any] | None) -> Schema:
    """Convert a document data schema into a general schema.

    Sequences become ARRAY, typed descriptors go through get_basic_type,
    untyped mappings become OBJECT.  Anything else is TEXT.
    """
    schema: Schema = {}
    for column, descriptor in (data_schema or {}).items():
        if isinstance(descriptor, (list, tuple)):
            schema[column] = GeneralType.ARRAY
        elif isinstance(descriptor, Mapping):
            if TYPE_KEY in descriptor:
                schema[column] = get_basic_type(descriptor[TYPE_KEY])
            else:
                schema[column] = GeneralType.OBJECT
        else:
            schema[column] = GeneralType.TEXT
    return schema


def map_schema(schema: Mapping[str, GeneralType]) -> dict[str, str]:
    """Map a general schema to SQLite storage types."""
    storage: dict[str, str] = {}
    for column, general_type in schema.items():
        if general_type in COMPOUND_TYPES:
            storage[column] = GeneralType.TEXT.value
        else:
            storage[column] = GeneralType(general_type).value
    return storage


def parse_unique_index(
    entries: Sequence[Mapping[str, Any]] | None,
    schema: Mapping[str, GeneralType],
) -> list[IndexColumn]:
    """Parse ``[{"asc": "a"}, {"desc": "b"}]`` into IndexColumn objects.

    Raises:
        IndexDefinitionError: An entry names more than one column or
            direction, uses an unknown direction, or names a column that
            is not in the schema.
    """
    index: list[IndexColumn] = []
    for position, entry in enumerate(entries or []):
        if not isinstance(entry, Mapping) or len(entry) != 1:
            raise IndexDefinitionError(
                f"Unique index entry {position} must have exactly one of "
                f"'asc' or 'desc': {entry!r}"
            )
        (direction_name, column), = entry.items()
        try:
            direction = SortDirection(str(direction_name).upper())
        except ValueError:
            raise IndexDefinitionError(
                f"Unique index entry {position} has unknown direction "
                f"'{direction_name}'"
            ) from None
        if not isinstance(column, str):
            raise IndexDefinitionError(
                f"Unique index entry {position} must name a single column, "
                f"got {column!r}"
            )
        if column not in schema:
            raise IndexDefinitionError(
                f"Unique index column '{column}' is not in the schema"
            )
        if any(existing.column == column for existing in index):
            raise IndexDefinitionError(
                f"Unique index column '{column}' is listed twice"
            )
        index.append(IndexColumn(column=column, direction=direction))
    return index
