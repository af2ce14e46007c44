"""File-backed ndarray externalization.

Large array values are written to ``.npy`` files next to the database and
replaced in the row by a small reference object holding the file name, dtype
and shape.  Reading reverses the substitution.
"""

from __future__ import annotations

import logging
import os
import uuid
from pathlib import Path
from typing import Any, Sequence

import numpy as np

from docstore.exceptions import ConversionError
from docstore.models.schema import GeneralType
from docstore.protocols import Row

logger = logging.getLogger(__name__)

REFERENCE_KEY = "__ndarray__"


def is_reference(value: Any) -> bool:
    """Return True if *value* is shaped like an ndarray file reference."""
    return isinstance(value, dict) and isinstance(value.get(REFERENCE_KEY), dict)


def reference_file(column: str, value: dict[str, Any]) -> str:
    """Return the file name a reference points at.

    The name must be a bare ``.npy`` file name inside the store directory,
    and the reference must carry its dtype and shape.

    Raises:
        ConversionError: The reference is malformed.
    """
    body = value[REFERENCE_KEY]
    name = body.get("file")
    if (
        not isinstance(name, str)
        or Path(name).name != name
        or not name.endswith(".npy")
        or "dtype" not in body
        or "shape" not in body
    ):
        raise ConversionError(
            column, GeneralType.NDARRAY.value, f"malformed ndarray reference: {body!r}"
        )
    return name


class FileNdarrayStore:
    """Stores ndarray column values as ``.npy`` files in one directory."""

    def __init__(self, directory: str | os.PathLike[str]) -> None:
        self.directory = Path(directory)

    def _write(self, column: str, value: Any) -> dict[str, Any]:
        try:
            array = np.asarray(value)
        except (TypeError, ValueError) as exc:
            raise ConversionError(column, GeneralType.NDARRAY.value, str(exc)) from exc
        if array.dtype == object:
            raise ConversionError(
                column, GeneralType.NDARRAY.value, "object arrays cannot be stored"
            )
        self.directory.mkdir(parents=True, exist_ok=True)
        name = f"{uuid.uuid4().hex}.npy"
        np.save(self.directory / name, array, allow_pickle=False)
        logger.debug("Wrote ndarray %s %s for '%s' to %s", array.dtype, array.shape, column, name)
        return {
            REFERENCE_KEY: {
                "file": name,
                "dtype": str(array.dtype),
                "shape": list(array.shape),
            }
        }

    def _read(self, column: str, reference: dict[str, Any]) -> np.ndarray:
        path = self.directory / reference_file(column, reference)
        try:
            return np.load(path, allow_pickle=False)
        except (OSError, ValueError) as exc:
            raise ConversionError(column, GeneralType.NDARRAY.value, str(exc)) from exc

    def write_many(self, rows: Sequence[Row], columns: Sequence[str]) -> list[Row]:
        converted: list[Row] = []
        for row in rows:
            out = dict(row)
            for column in columns:
                value = out.get(column)
                if value is None:
                    continue
                if is_reference(value):
                    reference_file(column, value)
                else:
                    out[column] = self._write(column, value)
            converted.append(out)
        return converted

    def read_many(self, rows: Sequence[Row], columns: Sequence[str]) -> list[Row]:
        converted: list[Row] = []
        for row in rows:
            out = dict(row)
            for column in columns:
                value = out.get(column)
                if is_reference(value):
                    out[column] = self._read(column, value)
            converted.append(out)
        return converted
