"""Value conversion between document values and SQLite storage values.

Compound values (OBJECT, ARRAY, NDARRAY references) are stored as JSON text;
scalar values pass through unchanged.  ``None`` is SQL NULL for every type.
"""

from __future__ import annotations

import json
from typing import Any

from docstore.exceptions import ConversionError
from docstore.models.schema import COMPOUND_TYPES, GeneralType

_SCALAR_TYPES = frozenset({
    GeneralType.TEXT,
    GeneralType.INTEGER,
    GeneralType.REAL,
    GeneralType.NUMERIC,
})


def _coerce_type(general_type: GeneralType | str | None) -> GeneralType | None:
    if general_type is None:
        return None
    try:
        return GeneralType(general_type)
    except ValueError:
        return None


def encode(
    general_type: GeneralType | str | None,
    value: Any,
    *,
    column: str | None = None,
) -> Any:
    """Convert a document value to its storage value.

    Unknown types encode to None, matching the tolerant schema defaults.

    Raises:
        ConversionError: A compound value is not JSON serializable.
    """
    kind = _coerce_type(general_type)
    if value is None or kind is None:
        return None
    if kind in COMPOUND_TYPES:
        try:
            return json.dumps(value, ensure_ascii=False, allow_nan=False)
        except (TypeError, ValueError) as exc:
            raise ConversionError(column, kind.value, str(exc)) from exc
    return value


def decode(
    general_type: GeneralType | str | None,
    value: Any,
    *,
    column: str | None = None,
) -> Any:
    """Convert a storage value back to its document value.

    Raises:
        ConversionError: Stored compound text is not valid JSON.
    """
    kind = _coerce_type(general_type)
    if value is None or kind is None:
        return None
    if kind in COMPOUND_TYPES:
        if not isinstance(value, (str, bytes, bytearray)):
            raise ConversionError(
                column, kind.value, f"expected JSON text, got {type(value).__name__}"
            )
        try:
            return json.loads(value)
        except ValueError as exc:
            raise ConversionError(column, kind.value, str(exc)) from exc
    if kind in _SCALAR_TYPES:
        return value
    return None


def decode_row(schema: dict[str, GeneralType], row: dict[str, Any]) -> dict[str, Any]:
    """Decode every column of a storage row using the schema."""
    return {
        column: decode(schema.get(column), value, column=column)
        for column, value in row.items()
    }


def to_sql_literal(general_type: GeneralType | str | None, value: Any) -> str:
    """Render a value as a quoted SQLite literal.

    Double quotes are doubled, so the literal is exactly invertible.  Used for
    display only; statements always bind parameters.
    """
    kind = _coerce_type(general_type)
    if value is None or kind is None:
        return "NULL"
    if kind in COMPOUND_TYPES:
        text = encode(kind, value)
    elif kind is GeneralType.TEXT:
        text = str(value)
    else:
        return str(value)
    return '"' + text.replace('"', '""') + '"'
