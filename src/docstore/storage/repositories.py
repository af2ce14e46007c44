"""Abstract repository interfaces for docstore storage.

No SQLAlchemy imports here -- pure abstract contracts.

Concrete implementations are in sqlite.py.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Iterable, Mapping

if TYPE_CHECKING:
    from docstore.models.schema import IndexColumn, Schema


class InfoRepository(ABC):
    """Abstract interface for the dataset info (metadata) table."""

    @abstractmethod
    def exists(self) -> bool:
        """Return True if the info table exists."""
        ...

    @abstractmethod
    def create(self) -> None:
        """Create the info table if it does not exist."""
        ...

    @abstractmethod
    def get_keys(self, keys: Iterable[str] | None = None) -> dict[str, Any]:
        """Return the stored values for *keys* (all keys when None).

        Missing keys are left out of the result.
        """
        ...

    @abstractmethod
    def set_keys(self, values: Mapping[str, Any]) -> None:
        """Insert or replace the given key/value pairs."""
        ...

    @abstractmethod
    def get_schema(self) -> Schema:
        """Return the general schema converted from the stored data schema."""
        ...

    @abstractmethod
    def get_unique_index(self) -> list[IndexColumn]:
        """Return the stored unique index, in index order."""
        ...
