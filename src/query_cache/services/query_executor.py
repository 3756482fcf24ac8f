"""Query execution with a read-through result cache.

This service is the data-access core: it checks the cache before going
to the database, stores fresh results afterwards and routes writes
through the charset sanitizer.
"""

import logging
import time
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from query_cache.config import Settings, settings
from query_cache.entities import FieldFormat, SanitizedField, StatementResult
from query_cache.errors import ConnectionLostError, DatabaseUnavailableError, DriverError, SanitizationError
from query_cache.models import CacheEntry, CacheMetrics, ColumnMeta
from query_cache.protocols import CacheStore, DatabaseDriver
from query_cache.repositories import build_cache_store

from .charset_resolver import CharsetResolver
from .fingerprint import fingerprint
from .query_preparer import QueryPreparer
from .statements import StatementKind, classify_statement
from .text_sanitizer import TextSanitizer

logger = logging.getLogger(__name__)

Formats = FieldFormat | str | Iterable[FieldFormat | str] | None


def quote_identifier(name: str) -> str:
    """Backtick-quote a table or column name."""
    return "`" + name.replace("`", "``") + "`"


class CachingQueryExecutor:
    """Run queries through a database driver with result caching.

    A query goes Idle -> checked against the cache -> (hit) restored from
    the entry, or (miss) executed on the driver and, when eligible,
    written back to the cache. Writes made through ``insert``,
    ``replace``, ``update`` and ``delete`` have their text values
    sanitized for the target column charset first.

    Example:
        ```python
        from query_cache.services import CachingQueryExecutor

        executor = CachingQueryExecutor.create(driver)
        executor.execute("SELECT * FROM `users` WHERE `active` = 1")
        rows = executor.last_rows()

        executor.insert("users", {"name": "Zoë", "age": 30}, ["%s", "%d"])
        ```
    """

    def __init__(
        self,
        driver: DatabaseDriver,
        cache_store: CacheStore | None = None,
        config: Settings | None = None,
        *,
        field_types: Mapping[str, FieldFormat | str] | None = None,
        charset_resolver: CharsetResolver | None = None,
        sanitizer: TextSanitizer | None = None,
        preparer: QueryPreparer | None = None,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize the executor.

        Args:
            driver: The database driver collaborator.
            cache_store: Cache backend. Caching is off when None.
            config: Settings for TTL, prefix, retries. Defaults to global settings.
            field_types: Column name to format mapping. Defaults to settings.
            charset_resolver: Charset metadata lookup. Defaults to one that
                runs its queries through the reconnect loop.
            sanitizer: Text sanitizer. Defaults to one that runs its
                conversions through the reconnect loop.
            preparer: Query preparer. Defaults to one using ``driver.escape``.
            clock: Returns the current unix time.
            sleep: Used for the reconnect backoff.
        """
        config = config or settings
        self._driver = driver
        self._cache_store = cache_store
        self._use_cache = config.use_cache and cache_store is not None
        self._cache_inserts = config.cache_inserts
        self._cache_prefix = config.cache_prefix
        self._cache_timeout = config.cache_timeout
        self._sanitize_text = config.sanitize_text
        self._reconnect_retries = config.reconnect_retries
        self._reconnect_backoff = config.reconnect_backoff

        types = config.field_types if field_types is None else field_types
        self._field_types = {name: FieldFormat.parse(fmt) for name, fmt in types.items()}

        self._preparer = preparer or QueryPreparer(driver.escape)
        self._charsets = charset_resolver or CharsetResolver(driver, run=self._run_internal)
        self._sanitizer = sanitizer or TextSanitizer(driver, self._preparer, run=self._run_internal)
        self._clock = clock
        self._sleep = sleep
        self._metrics = CacheMetrics()

        self._num_queries = 0
        self._insert_id = 0
        self._last_query: str | None = None
        self._last_error = ""
        self._rows: list[dict[str, Any]] = []
        self._columns: list[ColumnMeta] | None = None
        self._num_rows = 0
        self._rows_affected = 0
        self._live_result = False

    @classmethod
    def create(cls, driver: DatabaseDriver, config: Settings | None = None, **kwargs) -> "CachingQueryExecutor":
        """Factory method to create an executor with the configured cache backend.

        Args:
            driver: The database driver collaborator.
            config: Settings to build from. If None, uses global settings.
            **kwargs: Passed through to the constructor.

        Returns:
            Configured CachingQueryExecutor
        """
        config = config or settings
        store = build_cache_store(config) if config.use_cache else None
        return cls(driver, store, config, **kwargs)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def execute(self, query: str, ttl: int | float | None = None) -> int:
        """Run a query, answering from the cache when possible.

        Args:
            query: Fully prepared SQL
            ttl: Cache TTL in seconds for this result; None uses the default

        Returns:
            Rows selected for a read, rows affected for a write or DDL

        Raises:
            DriverError: If the database rejected the statement
            DatabaseUnavailableError: If the connection could not be re-established
        """
        self.reset()
        query = query.strip()
        self._last_query = query

        kind = classify_statement(query)
        key = None
        if self._use_cache and kind.is_cache_candidate:
            key = fingerprint(query, self._cache_prefix)
            entry = self._cache_store.get(key)
            if entry is not None:
                self._metrics.record_hit()
                logger.debug("Cache hit for %s", key)
                return self._restore(entry)
            self._metrics.record_miss()

        result = self._run(query, kind)
        self._num_queries += 1
        self._live_result = True

        if kind is StatementKind.DDL:
            return_value = result.rows_affected
        elif kind.is_mutating:
            self._rows_affected = result.rows_affected
            if kind is StatementKind.INSERT:
                self._insert_id = result.insert_id
            return_value = self._rows_affected
        else:
            self._rows = list(result.rows)
            self._num_rows = len(self._rows)
            return_value = self._num_rows

        if key is not None:
            self._store(key, kind, return_value, ttl)

        return return_value

    def _restore(self, entry: CacheEntry) -> int:
        self._num_queries += 1
        self._columns = list(entry.columns)
        self._rows = [dict(row) for row in entry.rows]
        self._num_rows = entry.row_count
        return entry.return_value

    def _run(self, query: str, kind: StatementKind) -> StatementResult:
        attempts = 0
        while True:
            try:
                return self._driver.execute(query)
            except ConnectionLostError as e:
                if attempts >= self._reconnect_retries:
                    error = DatabaseUnavailableError(
                        f"Database connection lost and {attempts} reconnect attempts failed"
                    )
                    self._record_failure(query, kind, error)
                    raise error from e
                attempts += 1
                logger.warning(
                    "Lost database connection, reconnecting (attempt %d/%d)", attempts, self._reconnect_retries
                )
                self._sleep(self._reconnect_backoff)
                self._driver.reconnect()
            except DriverError as e:
                self._record_failure(query, kind, e)
                raise

    def _run_internal(self, query: str) -> StatementResult:
        """Run a metadata or conversion query with the same reconnect handling as user queries."""
        return self._run(query, classify_statement(query))

    def _record_failure(self, query: str, kind: StatementKind, error: Exception) -> None:
        self._last_error = str(error)
        # A failed insert must not leave the id of an earlier one behind
        if self._insert_id and kind is StatementKind.INSERT:
            self._insert_id = 0
        logger.error("Database error %s for query %s", error, query)

    def _store(self, key: str, kind: StatementKind, return_value: int, ttl: int | float | None) -> None:
        if kind.is_mutating and not self._cache_inserts:
            self._metrics.record_skip()
            return

        ttl = ttl or self._cache_timeout
        entry = CacheEntry(
            columns=self.last_columns(),
            rows=self._rows,
            row_count=self._num_rows,
            return_value=return_value,
            expires_at=self._clock() + ttl,
        )
        stored = self._cache_store.set(key, entry, ttl)
        self._metrics.record_store(stored)
        if not stored:
            logger.debug("Result for %s was not cached", key)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def insert(self, table: str, data: Mapping[str, Any], formats: Formats = None) -> int:
        """Insert a row.

        Args:
            table: Table name
            data: Column to raw (unescaped) value mapping
            formats: One format for all values or one per value, e.g. ``["%s", "%d"]``.
                Columns without one use the configured field types, then ``%s``.

        Returns:
            Number of rows inserted

        Raises:
            SanitizationError: If a value could not be made safe for its column
            DriverError: If the database rejected the statement
            DatabaseUnavailableError: If the connection could not be re-established,
                including while looking up charsets or converting text
        """
        return self._insert_replace(table, data, formats, "INSERT")

    def replace(self, table: str, data: Mapping[str, Any], formats: Formats = None) -> int:
        """Replace a row (insert, or delete-then-insert on a key clash).

        Same arguments and errors as ``insert``.
        """
        return self._insert_replace(table, data, formats, "REPLACE")

    def _insert_replace(self, table: str, data: Mapping[str, Any], formats: Formats, verb: str) -> int:
        self._insert_id = 0
        if not data:
            raise ValueError(f"{verb} into {table} needs at least one column")

        fields = self._process_fields(table, data, formats)
        columns = ",".join(quote_identifier(field.name) for field in fields)
        placeholders = ",".join(field.target_format.value for field in fields)
        sql = f"{verb} INTO {quote_identifier(table)} ({columns}) VALUES ({placeholders})"
        return self._execute_prepared(sql, [field.value for field in fields])

    def update(
        self,
        table: str,
        data: Mapping[str, Any],
        where: Mapping[str, Any],
        formats: Formats = None,
        where_formats: Formats = None,
    ) -> int:
        """Update rows matching all ``where`` conditions.

        Args:
            table: Table name
            data: Column to new value mapping
            where: Column to value mapping, joined with AND
            formats: Formats for ``data`` values
            where_formats: Formats for ``where`` values

        Returns:
            Number of rows updated

        Raises:
            SanitizationError: If a value could not be made safe for its column
            DriverError: If the database rejected the statement
        """
        if not data or not where:
            raise ValueError(f"Update of {table} needs data and where conditions")

        fields = self._process_fields(table, data, formats)
        conditions = self._process_fields(table, where, where_formats)
        assignments = ", ".join(f"{quote_identifier(f.name)} = {f.target_format.value}" for f in fields)
        clauses = " AND ".join(f"{quote_identifier(f.name)} = {f.target_format.value}" for f in conditions)
        sql = f"UPDATE {quote_identifier(table)} SET {assignments} WHERE {clauses}"
        return self._execute_prepared(sql, [f.value for f in fields] + [f.value for f in conditions])

    def delete(self, table: str, where: Mapping[str, Any], where_formats: Formats = None) -> int:
        """Delete rows matching all ``where`` conditions.

        Returns:
            Number of rows deleted

        Raises:
            SanitizationError: If a value could not be made safe for its column
            DriverError: If the database rejected the statement
        """
        if not where:
            raise ValueError(f"Delete from {table} needs where conditions")

        conditions = self._process_fields(table, where, where_formats)
        clauses = " AND ".join(f"{quote_identifier(f.name)} = {f.target_format.value}" for f in conditions)
        sql = f"DELETE FROM {quote_identifier(table)} WHERE {clauses}"
        return self._execute_prepared(sql, [f.value for f in conditions])

    def _execute_prepared(self, sql: str, values: list[Any]) -> int:
        query = self._preparer.prepare(sql, values)
        if query is None:
            raise ValueError(f"Could not prepare query: {sql}")
        return self.execute(query)

    def _resolve_formats(self, names: list[str], formats: Formats) -> list[FieldFormat]:
        if isinstance(formats, (str, FieldFormat)):
            formats = [formats]
        explicit = [FieldFormat.parse(fmt) for fmt in formats or ()]
        if not explicit:
            return [self._field_types.get(name, FieldFormat.STRING) for name in names]
        # Values beyond the given formats reuse the first one
        return [explicit[i] if i < len(explicit) else explicit[0] for i in range(len(names))]

    def _process_fields(self, table: str, data: Mapping[str, Any], formats: Formats) -> list[SanitizedField]:
        names = list(data)
        fields = []
        for name, fmt in zip(names, self._resolve_formats(names, formats)):
            value = data[name]
            charset = None
            if self._sanitize_text and not fmt.is_numeric and isinstance(value, (str, bytes)):
                charset = self._charsets.column_charset(table, name)
            fields.append(SanitizedField.create(name, value, fmt, charset))

        if not self._sanitize_text:
            return fields

        try:
            return self._sanitizer.sanitize_fields(fields)
        except SanitizationError as e:
            self._last_error = str(e)
            logger.error("Rejected write to %s: %s", table, e)
            raise

    # ------------------------------------------------------------------
    # Last result accessors
    # ------------------------------------------------------------------

    def reset(self) -> None:
        """Forget the last result. The insert id is kept."""
        self._last_query = None
        self._last_error = ""
        self._rows = []
        self._columns = None
        self._num_rows = 0
        self._rows_affected = 0
        self._live_result = False

    def last_columns(self) -> list[ColumnMeta]:
        """Column metadata of the last result, loaded from the driver on first access."""
        if self._columns is None:
            self._columns = self._driver.describe_columns() if self._live_result else []
        return list(self._columns)

    def last_rows(self) -> list[dict[str, Any]]:
        """Rows of the last result."""
        return list(self._rows)

    def last_row_count(self) -> int:
        """Number of rows in the last result."""
        return self._num_rows

    @property
    def last_query(self) -> str | None:
        return self._last_query

    @property
    def last_error(self) -> str:
        return self._last_error

    @property
    def insert_id(self) -> int:
        """Auto-generated id of the last successful insert or replace."""
        return self._insert_id

    @property
    def rows_affected(self) -> int:
        return self._rows_affected

    @property
    def num_queries(self) -> int:
        """Queries answered so far, from the database or the cache."""
        return self._num_queries

    # ------------------------------------------------------------------
    # Cache management
    # ------------------------------------------------------------------

    @property
    def cache_enabled(self) -> bool:
        return self._use_cache

    @property
    def metrics(self) -> CacheMetrics:
        return self._metrics

    @property
    def charset_resolver(self) -> CharsetResolver:
        """Get the charset resolver (call ``invalidate()`` on it after schema changes)."""
        return self._charsets

    def flush_cache(self) -> bool:
        """Remove every cached result from the backing store.

        Returns:
            True on success, False if caching is off or the flush failed
        """
        if self._cache_store is None:
            return False
        return self._cache_store.flush()

    def get_stats(self) -> dict:
        """Get cache statistics.

        Returns:
            Dictionary with cache statistics
        """
        stats: dict[str, Any] = dict(self._metrics.to_dict())
        stats["cache_enabled"] = self._use_cache
        stats["cache_backend"] = type(self._cache_store).__name__ if self._cache_store is not None else None
        stats["num_queries"] = self._num_queries
        return stats
