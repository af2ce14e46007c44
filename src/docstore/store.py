"""DocumentStore -- the public SDK entry point for docstore.

Ties together storage, the batch write engine and the query path into a
clean, user-facing API.  Users interact with ``DocumentStore.open()``,
``store.create_dataset()``, ``store.add_data()``,
``store.get_dataset_data()``, etc.

Not thread-safe.  Each thread should open its own ``DocumentStore``.
"""

from __future__ import annotations

import logging
import tempfile
import uuid
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Any, Iterable, Mapping

from sqlalchemy import exc as sa_exc

from docstore.engine.codec import decode, decode_row, encode
from docstore.engine.executor import BatchTransactionExecutor
from docstore.engine.shaper import QueryShaper
from docstore.engine.templates import (
    delete_template,
    insert_template,
    quote,
    update_template,
    upsert_template,
)
from docstore.exceptions import (
    DatasetNotFoundError,
    DocstoreError,
    ReadOnlyError,
    SchemaMismatchError,
    StatementError,
    UnsupportedOperationError,
)
from docstore.models.config import DocstoreConfig
from docstore.models.query import DatasetData
from docstore.models.schema import (
    GeneralType,
    convert_schema,
    map_schema,
    parse_unique_index,
)
from docstore.storage.builder import QueryBuilder
from docstore.storage.engine import MEMORY_PATH, create_docstore_engine, resolve_mode
from docstore.storage.ndarray import FileNdarrayStore
from docstore.storage.sqlite import SCHEMA_KEY, SqliteInfoRepository

if TYPE_CHECKING:
    from collections.abc import Iterator

    from sqlalchemy import Connection, Engine

    from docstore.engine.executor import BatchStats
    from docstore.models.query import BuiltQuery, QueryDescriptor
    from docstore.models.schema import IndexColumn, Schema
    from docstore.protocols import NdarrayStore, Row, StatementTemplate
    from docstore.storage.engine import AccessMode

logger = logging.getLogger(__name__)


class DocumentStore:
    """Schema-typed document storage in a single SQLite table.

    Create a store via :meth:`DocumentStore.open`.

    Example::

        with DocumentStore.open("readings.db") as store:
            store.create_dataset({
                "schema": {
                    "dataSchema": {"id": {"__tdxType": ["string"]},
                                   "count": {"__tdxType": ["number", "int"]}},
                    "uniqueIndex": [{"asc": "id"}],
                }
            })
            store.add_data([{"id": "a", "count": 1}, {"id": "b", "count": 2}])
            print(store.get_dataset_data({"count": {"$gt": 1}}).data)
    """

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    def __init__(
        self,
        *,
        engine: Engine,
        connection: Connection,
        path: str,
        access: AccessMode,
        config: DocstoreConfig,
        ndarray_store: NdarrayStore,
    ) -> None:
        self._engine = engine
        self._connection = connection
        self._path = path
        self._access = access
        self._config = config
        self._ndarray_store = ndarray_store
        self._info_repo = SqliteInfoRepository(connection)
        # Loaded once on open / create, cleared on close.
        self._schema: Schema = {}
        self._unique_index: list[IndexColumn] = []
        self._dataset_id: str | None = None
        self._last_batch_stats: BatchStats | None = None
        self._closed = False

    @classmethod
    def open(
        cls,
        path: str = MEMORY_PATH,
        *,
        mode: str = "w+",
        config: DocstoreConfig | None = None,
        ndarray_store: NdarrayStore | None = None,
    ) -> DocumentStore:
        """Open (or create) a document store.

        Args:
            path: SQLite path.  ``":memory:"`` for in-memory (default).
            mode: ``"w+"`` create and open read/write, ``"rw"`` open an
                existing database read/write, ``"r"`` open read-only.
            config: Store configuration.  Defaults created if *None*.
            ndarray_store: Pluggable ndarray externalization.  A
                :class:`FileNdarrayStore` next to the database by default.

        Returns:
            A ready-to-use ``DocumentStore``.  If the database already holds
            a dataset its schema is loaded.
        """
        if config is None:
            config = DocstoreConfig()

        engine = create_docstore_engine(
            path, mode=mode, busy_timeout_ms=config.busy_timeout_ms
        )
        try:
            connection = engine.connect()
        except sa_exc.DBAPIError:
            engine.dispose()
            raise

        if ndarray_store is None:
            ndarray_store = FileNdarrayStore(_default_ndarray_dir(path, config))

        store = cls(
            engine=engine,
            connection=connection,
            path=path,
            access=resolve_mode(mode),
            config=config,
            ndarray_store=ndarray_store,
        )
        try:
            store._load_dataset()
        except Exception:
            store.close()
            raise
        return store

    def _load_dataset(self) -> None:
        with self._unit_of_work():
            if not self._info_repo.exists():
                return
            self._dataset_id = self._info_repo.get_keys(["id"]).get("id")
            self._schema = self._info_repo.get_schema()
            self._unique_index = self._info_repo.get_unique_index()
        logger.debug(
            "Loaded dataset %s with %d column(s)", self._dataset_id, len(self._schema)
        )

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def path(self) -> str:
        return self._path

    @property
    def config(self) -> DocstoreConfig:
        return self._config

    @property
    def dataset_id(self) -> str | None:
        """Id of the dataset in this database, or None before creation."""
        return self._dataset_id

    @property
    def read_only(self) -> bool:
        return self._access == "readonly"

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def last_batch_stats(self) -> BatchStats | None:
        """Counters from the most recent batch write."""
        return self._last_batch_stats

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _check_open(self) -> None:
        if self._closed:
            raise DocstoreError("DocumentStore is closed")

    def _check_writable(self, operation: str) -> None:
        self._check_open()
        if self.read_only:
            raise ReadOnlyError(operation)

    def _require_table(self) -> None:
        if not self._schema:
            raise DatasetNotFoundError()

    @contextmanager
    def _unit_of_work(self) -> Iterator[Connection]:
        """Run statements in one transaction: commit on success, rollback on error."""
        self._check_open()
        with self._connection.begin():
            yield self._connection

    def _execute_sql(self, sql: str, values: Iterable[Any] = ()) -> Any:
        try:
            return self._connection.exec_driver_sql(sql, tuple(values))
        except sa_exc.DBAPIError as exc:
            raise StatementError(sql, str(exc.orig)) from exc

    def _shaper(self) -> QueryShaper:
        return QueryShaper(
            self._config.data_table,
            self._schema,
            query_limit=self._config.query_limit,
        )

    def _builder(self) -> QueryBuilder:
        return QueryBuilder(tuple(self._schema))

    def _columns_of_type(
        self, general_type: GeneralType, columns: Iterable[str] | None = None
    ) -> list[str]:
        names = self._schema if columns is None else columns
        return [name for name in names if self._schema.get(name) is general_type]

    def _prepare_rows(self, data: Mapping[str, Any] | Iterable[Mapping[str, Any]]) -> list[Row]:
        if isinstance(data, Mapping):
            rows = [dict(data)]
        else:
            rows = [dict(row) for row in data]
        ndarray_columns = self._columns_of_type(GeneralType.NDARRAY)
        if ndarray_columns:
            rows = self._ndarray_store.write_many(rows, ndarray_columns)
        return rows

    def _run_batch(self, rows: list[Row], template: StatementTemplate) -> int:
        self._check_open()
        executor = BatchTransactionExecutor(self._connection, self._schema)
        try:
            return executor.run(rows, template)
        finally:
            self._last_batch_stats = executor.last_stats

    def _run_query(self, built: BuiltQuery) -> list[dict[str, Any]]:
        with self._unit_of_work():
            result = self._execute_sql(built.query, built.values)
            return [dict(row) for row in result.mappings().all()]

    def _select(self, descriptor: QueryDescriptor) -> list[Row]:
        built = self._builder().build(descriptor)
        logger.debug("Select: %s %s", built.query, built.values)
        rows = [decode_row(self._schema, row) for row in self._run_query(built)]
        ndarray_columns = self._columns_of_type(GeneralType.NDARRAY, descriptor.columns)
        if ndarray_columns:
            rows = self._ndarray_store.read_many(rows, ndarray_columns)
        return rows

    # ------------------------------------------------------------------
    # Dataset lifecycle
    # ------------------------------------------------------------------

    def create_dataset(self, options: Mapping[str, Any] | None = None) -> str:
        """Create the dataset table and record its properties.

        Args:
            options: Resource properties.  ``id`` (generated when omitted),
                ``name``, ``schema`` (``dataSchema`` and ``uniqueIndex``) and
                any other free-form keys, all stored in the info table.

        Returns:
            The dataset id.  Re-creating with an identical schema returns the
            existing id without changes.

        Raises:
            IndexDefinitionError: The unique index is malformed.
            SchemaMismatchError: A dataset with a different schema exists.
        """
        self._check_writable("create a dataset")
        options = dict(options or {})
        definition = options.get("schema") or {}
        schema = convert_schema(definition.get("dataSchema"))
        unique_index = parse_unique_index(definition.get("uniqueIndex"), schema)

        with self._unit_of_work():
            if self._info_repo.exists():
                existing_id = self._info_repo.get_keys(["id"]).get("id")
                if existing_id is not None:
                    if (
                        (options.get("id") or existing_id) != existing_id
                        or self._info_repo.get_schema() != schema
                        or self._info_repo.get_unique_index() != unique_index
                    ):
                        raise SchemaMismatchError(existing_id)
                    logger.debug("Dataset %s already exists with this schema", existing_id)
                    return existing_id

            options["id"] = options.get("id") or uuid.uuid4().hex
            options[SCHEMA_KEY] = {
                **definition,
                "dataSchema": definition.get("dataSchema") or {},
                "uniqueIndex": [entry.to_entry() for entry in unique_index],
            }
            self._info_repo.create()
            self._info_repo.set_keys(options)
            self._create_data_table(schema, unique_index)

        self._dataset_id = options["id"]
        self._schema = schema
        self._unique_index = unique_index
        logger.info(
            "Created dataset %s with %d column(s)", self._dataset_id, len(schema)
        )
        return self._dataset_id

    def _create_data_table(self, schema: Schema, unique_index: list[IndexColumn]) -> None:
        if not schema:
            return
        table = quote(self._config.data_table)
        columns = ", ".join(
            f"{quote(column)} {storage_type}"
            for column, storage_type in map_schema(schema).items()
        )
        self._execute_sql(f"CREATE TABLE {table}({columns})")
        if unique_index:
            index_columns = ", ".join(
                f"{quote(entry.column)} {entry.direction.value}" for entry in unique_index
            )
            self._execute_sql(
                f"CREATE UNIQUE INDEX {quote(self._config.index_name)} "
                f"ON {table}({index_columns})"
            )

    def get_general_schema(self) -> Schema:
        """Return a copy of the dataset's general schema."""
        return dict(self._schema)

    def get_unique_index(self) -> list[IndexColumn]:
        """Return the dataset's unique index columns."""
        return list(self._unique_index)

    def get_resource(self) -> dict[str, Any]:
        """Return every stored resource property (id, name, schema, ...)."""
        with self._unit_of_work():
            if not self._info_repo.exists():
                return {}
            return self._info_repo.get_keys()

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def add_data(self, data: Mapping[str, Any] | Iterable[Mapping[str, Any]]) -> int:
        """Insert one document or many.

        Returns:
            Number of documents inserted.

        Raises:
            BatchWriteError: A document failed; documents before it were
                committed.
        """
        self._check_writable("add data")
        self._require_table()
        rows = self._prepare_rows(data)
        return self._run_batch(rows, insert_template(self._config.data_table))

    def update_data(
        self,
        data: Mapping[str, Any] | Iterable[Mapping[str, Any]],
        *,
        upsert: bool = False,
    ) -> int:
        """Update documents identified by their unique index values.

        Args:
            data: Documents holding every unique index column plus the
                columns to change.
            upsert: Insert documents whose index value is absent.

        Returns:
            Number of documents updated or inserted.
        """
        self._check_writable("update data")
        self._require_table()
        if not self._unique_index:
            raise UnsupportedOperationError("update_data", "dataset has no unique index")
        rows = self._prepare_rows(data)
        factory = upsert_template if upsert else update_template
        return self._run_batch(rows, factory(self._config.data_table, self._unique_index))

    def delete_data(
        self,
        data: Mapping[str, Any] | Iterable[Mapping[str, Any]],
        *,
        do_not_throw: bool = False,
    ) -> int:
        """Delete documents identified by their unique index values.

        Columns outside the unique index are ignored.

        Raises:
            UnsupportedOperationError: ``do_not_throw`` was requested, or the
                dataset has no unique index.
        """
        self._check_writable("delete data")
        if do_not_throw:
            raise UnsupportedOperationError("delete_data", "do_not_throw is not implemented")
        self._require_table()
        if not self._unique_index:
            raise UnsupportedOperationError("delete_data", "dataset has no unique index")
        index_columns = {entry.column for entry in self._unique_index}
        rows = [
            {column: value for column, value in row.items() if column in index_columns}
            for row in ([data] if isinstance(data, Mapping) else data)
        ]
        return self._run_batch(rows, delete_template(self._config.data_table, self._unique_index))

    def delete_data_by_query(self, filter: Mapping[str, Any] | None = None) -> int:
        """Delete every document matching *filter*.  Returns the count deleted."""
        self._check_writable("delete data")
        self._require_table()
        built = self._builder().build(self._shaper().shape_delete(filter))
        with self._unit_of_work():
            return self._execute_sql(built.query, built.values).rowcount

    def update_data_by_query(
        self,
        filter: Mapping[str, Any] | None,
        update: Mapping[str, Any],
    ) -> int:
        """Set the columns in *update* on every document matching *filter*.

        An empty update (or one naming no schema columns) returns 0 without
        touching the database.
        """
        self._check_writable("update data")
        if not update:
            return 0
        self._require_table()
        values = dict(update)
        ndarray_columns = self._columns_of_type(GeneralType.NDARRAY, values)
        if ndarray_columns:
            values = self._ndarray_store.write_many([values], ndarray_columns)[0]
        encoded = {
            column: encode(self._schema[column], value, column=column)
            for column, value in values.items()
            if column in self._schema
        }
        descriptor = self._shaper().shape_update(filter, encoded)
        if descriptor.skip_read:
            return 0
        built = self._builder().build(descriptor)
        with self._unit_of_work():
            return self._execute_sql(built.query, built.values).rowcount

    def truncate_resource(self) -> int:
        """Delete every document and reclaim space.  Returns the count deleted."""
        self._check_writable("truncate")
        self._require_table()
        table = quote(self._config.data_table)
        with self._unit_of_work():
            count = self._execute_sql(f"SELECT COUNT(*) FROM {table}").scalar_one()
            self._execute_sql(f"DELETE FROM {table}")
        with self._unit_of_work():
            self._execute_sql("VACUUM")
        logger.info("Truncated %d document(s) from %s", count, self._dataset_id)
        return count

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_dataset_data(
        self,
        filter: Mapping[str, Any] | None = None,
        projection: Mapping[str, Any] | None = None,
        options: Mapping[str, Any] | None = None,
    ) -> DatasetData:
        """Return documents matching *filter*.

        Args:
            filter: MongoDB-style filter.  All documents when omitted.
            projection: MongoDB-style projection (``{"a": 1}`` or
                ``{"b": 0}``).
            options: ``limit`` (capped at ``config.query_limit``), ``skip``,
                ``sort`` (``{"col": 1 | -1}``) and ``meta`` (include the
                resource properties).
        """
        self._check_open()
        options = options or {}
        metadata = self.get_resource() if options.get("meta") else None
        descriptor = self._shaper().shape(filter, projection, options)
        if descriptor.skip_read:
            return DatasetData(metadata=metadata)
        return DatasetData(metadata=metadata, data=self._select(descriptor))

    def get_distinct(
        self,
        key: str,
        filter: Mapping[str, Any] | None = None,
        projection: Mapping[str, Any] | None = None,
        options: Mapping[str, Any] | None = None,
    ) -> list[Any]:
        """Return the distinct values of column *key* among matching documents.

        *projection* is accepted for API symmetry; the result is always the
        single *key* column.  NDARRAY columns yield an empty list.

        Raises:
            UnsupportedOperationError: *key* is an OBJECT or ARRAY column.
        """
        self._check_open()
        descriptor = self._shaper().shape(filter, projection, options, distinct=key)
        if descriptor.skip_read:
            return []
        built = self._builder().build(descriptor)
        return [
            decode(self._schema[key], row[key], column=key)
            for row in self._run_query(built)
        ]

    def get_dataset_data_count(self, filter: Mapping[str, Any] | None = None) -> int:
        """Return the number of documents matching *filter*."""
        self._check_open()
        if not self._schema:
            return 0
        built = self._builder().build(self._shaper().shape_count(filter))
        return self._run_query(built)[0]["count"]

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Close the connection, dispose the engine and drop the cached schema."""
        if self._closed:
            return
        self._closed = True
        self._connection.close()
        self._engine.dispose()
        self._schema = {}
        self._unique_index = []
        self._dataset_id = None

    def __enter__(self) -> DocumentStore:
        return self

    def __exit__(self, exc_type: type | None, exc_val: BaseException | None, exc_tb: object) -> None:
        self.close()

    def __repr__(self) -> str:
        if self._closed:
            return f"DocumentStore(path='{self._path}', closed=True)"
        return f"DocumentStore(path='{self._path}', dataset_id={self._dataset_id!r})"


def _default_ndarray_dir(path: str, config: DocstoreConfig) -> Path:
    if config.ndarray_dir is not None:
        return Path(config.ndarray_dir)
    if path == MEMORY_PATH:
        return Path(tempfile.gettempdir()) / f"docstore-ndarray-{uuid.uuid4().hex}"
    return Path(f"{path}-ndarray")
