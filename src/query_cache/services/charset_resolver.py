"""Per-table charset metadata lookup.

Column metadata is fetched once per table with ``SHOW FULL COLUMNS``
and memoized. Table schemas are assumed not to change while the
resolver lives; call ``invalidate()`` after an ALTER TABLE.
"""

import logging
from collections.abc import Callable

from query_cache.entities import ColumnCharsetInfo, StatementResult
from query_cache.protocols import DatabaseDriver

logger = logging.getLogger(__name__)

BINARY = "binary"

_ALIASES = {"utf8mb3": "utf8"}


def charset_from_collation(collation: str | None) -> str | None:
    """Derive the charset from a collation name (``utf8mb4_unicode_ci`` -> ``utf8mb4``)."""
    if not collation:
        return None
    charset = collation.split("_", 1)[0].lower()
    return _ALIASES.get(charset, charset)


def effective_table_charset(columns: list[ColumnCharsetInfo]) -> str | None:
    """Pick the one charset that is safe for every string column of a table.

    Any binary or blob column makes the whole table ``binary``. With more
    than one charset in play ``latin1`` is ignored, a utf8/utf8mb4 mix
    resolves to ``utf8``, and any other mix to ``ascii``.

    Returns:
        The charset, or None if the table has no string columns
    """
    charsets: set[str] = set()
    for column in columns:
        if column.is_binary:
            return BINARY
        if column.charset:
            charsets.add(column.charset)

    if not charsets:
        return None
    if len(charsets) == 1:
        return next(iter(charsets))

    charsets.discard("latin1")
    if len(charsets) == 1:
        return next(iter(charsets))
    if charsets == {"utf8", "utf8mb4"}:
        return "utf8"
    return "ascii"


class CharsetResolver:
    """Resolve and memoize table and column charsets."""

    def __init__(self, driver: DatabaseDriver, run: Callable[[str], StatementResult] | None = None) -> None:
        """Initialize the resolver.

        Args:
            driver: Driver used for the metadata queries
            run: Runs a metadata query. Defaults to ``driver.execute``; the
                executor passes its reconnecting runner.
        """
        self._run = run or driver.execute
        self._columns: dict[str, dict[str, ColumnCharsetInfo]] = {}
        self._table_charsets: dict[str, str | None] = {}

    def _load(self, table: str) -> str:
        key = table.lower()
        if key in self._table_charsets:
            return key

        escaped = table.replace("`", "``")
        result = self._run(f"SHOW FULL COLUMNS FROM `{escaped}`")

        columns: dict[str, ColumnCharsetInfo] = {}
        for row in result.rows:
            collation = row.get("Collation") or None
            info = ColumnCharsetInfo(
                table=table,
                column=row["Field"],
                charset=charset_from_collation(collation),
                collation=collation,
                sql_type=row.get("Type") or "",
            )
            columns[info.column.lower()] = info

        self._columns[key] = columns
        self._table_charsets[key] = effective_table_charset(list(columns.values()))
        logger.debug("Resolved charset %r for table %s", self._table_charsets[key], table)
        return key

    def table_charset(self, table: str) -> str | None:
        """Return the effective charset of a table.

        Raises:
            DriverError: If the metadata query failed
        """
        return self._table_charsets[self._load(table)]

    def column_charset(self, table: str, column: str) -> str | None:
        """Return the charset a value for ``table.column`` must conform to.

        Binary tables resolve to ``binary`` for every column. Columns the
        table does not report fall back to the table charset.

        Returns:
            The charset, or None for a non-string column or a table without string columns

        Raises:
            DriverError: If the metadata query failed
        """
        key = self._load(table)
        table_charset = self._table_charsets[key]
        if table_charset in (None, BINARY):
            return table_charset

        info = self._columns[key].get(column.lower())
        if info is None:
            return table_charset
        return info.charset

    def columns(self, table: str) -> list[ColumnCharsetInfo]:
        """Return the memoized column metadata of a table."""
        return list(self._columns[self._load(table)].values())

    def invalidate(self, table: str | None = None) -> None:
        """Forget memoized metadata for one table, or for all tables.

        Call this after a schema change so the next lookup re-reads it.
        """
        if table is None:
            self._columns.clear()
            self._table_charsets.clear()
            return
        key = table.lower()
        self._columns.pop(key, None)
        self._table_charsets.pop(key, None)
