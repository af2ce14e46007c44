"""SQLAlchemy ORM schema for docstore.

Only the info table is declared here.  The data table's columns come from
the dataset schema at runtime and are created with plain DDL.
"""

from __future__ import annotations

from typing import Any, Optional

from sqlalchemy import JSON, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all docstore ORM models."""

    pass


class InfoRow(Base):
    """Key/value resource properties (id, name, schema, tags, ...).

    Values are stored as JSON so nested options like the schema survive
    a round trip unchanged.
    """

    __tablename__ = "info"

    key: Mapped[str] = mapped_column(String(255), primary_key=True)
    value: Mapped[Optional[Any]] = mapped_column(JSON, nullable=True)
