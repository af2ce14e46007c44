"""docstore: schema-typed document storage on SQLite.

Store loosely-typed documents described by a per-field schema in a single
SQLite table and query them back with MongoDB-style filters.
"""

from docstore._version import __version__

# Core entry point
from docstore.store import DocumentStore

# Configuration
from docstore.models.config import DEFAULT_QUERY_LIMIT, DocstoreConfig

# Schema model
from docstore.models.schema import (
    GeneralType,
    IndexColumn,
    Schema,
    SortDirection,
    convert_schema,
    get_basic_type,
    map_schema,
    parse_unique_index,
)

# Query models
from docstore.models.query import BuiltQuery, DatasetData, QueryDescriptor

# Write / query engine
from docstore.engine.codec import decode, encode
from docstore.engine.cache import PreparedStatement, StatementCache
from docstore.engine.executor import BatchStats, BatchTransactionExecutor
from docstore.engine.shaper import QueryShaper
from docstore.storage.builder import QueryBuilder

# Protocols
from docstore.protocols import ColumnSetKey, NdarrayStore, Row, StatementTemplate
from docstore.storage.ndarray import FileNdarrayStore

# Exceptions
from docstore.exceptions import (
    BatchWriteError,
    ConversionError,
    DatasetNotFoundError,
    DocstoreError,
    IndexDefinitionError,
    QueryError,
    ReadOnlyError,
    SchemaMismatchError,
    StatementError,
    UnsupportedOperationError,
)

__all__ = [
    "__version__",
    # Core
    "DocumentStore",
    # Configuration
    "DocstoreConfig",
    "DEFAULT_QUERY_LIMIT",
    # Schema
    "GeneralType",
    "IndexColumn",
    "Schema",
    "SortDirection",
    "convert_schema",
    "get_basic_type",
    "map_schema",
    "parse_unique_index",
    # Query models
    "BuiltQuery",
    "DatasetData",
    "QueryDescriptor",
    # Engine
    "encode",
    "decode",
    "PreparedStatement",
    "StatementCache",
    "BatchStats",
    "BatchTransactionExecutor",
    "QueryShaper",
    "QueryBuilder",
    # Protocols
    "ColumnSetKey",
    "NdarrayStore",
    "Row",
    "StatementTemplate",
    "FileNdarrayStore",
    # Exceptions
    "DocstoreError",
    "BatchWriteError",
    "ConversionError",
    "DatasetNotFoundError",
    "IndexDefinitionError",
    "QueryError",
    "ReadOnlyError",
    "SchemaMismatchError",
    "StatementError",
    "UnsupportedOperationError",
]
