"""Configuration model for docstore.

DocstoreConfig holds per-store settings passed to DocumentStore.open().
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

# Default cap on the number of documents a single read returns.
DEFAULT_QUERY_LIMIT = 1000


class DocstoreConfig(BaseModel):
    """Per-store configuration."""

    query_limit: int = Field(default=DEFAULT_QUERY_LIMIT, gt=0)
    data_table: str = "data"
    index_name: str = "dataset_index"
    ndarray_dir: Optional[str] = None  # None = next to the db file, or a temp dir
    busy_timeout_ms: int = 5000
