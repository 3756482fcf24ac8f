"""Database driver protocol.

The query cache does not talk to a database server itself. It consumes
this small set of primitives from whatever driver wraps the real
connection (PyMySQL, mysqlclient, a test double, ...).

Drivers report failures by raising ``query_cache.errors.DriverError``,
or ``ConnectionLostError`` when the connection went away and a reconnect
may help.
"""

from typing import Protocol, runtime_checkable

from query_cache.entities import StatementResult
from query_cache.models import ColumnMeta


@runtime_checkable
class DatabaseDriver(Protocol):
    """Protocol for the database driver collaborator."""

    @property
    def charset(self) -> str | None:
        """Return the connection's current character set."""
        ...

    def escape(self, value: str | bytes) -> str:
        """Escape a value for use inside a single-quoted SQL literal.

        Args:
            value: Raw text or bytes

        Returns:
            The escaped text, without surrounding quotes
        """
        ...

    def execute(self, query: str) -> StatementResult:
        """Run a single statement.

        Args:
            query: Fully prepared SQL

        Returns:
            Rows for a result set, affected rows and insert id otherwise

        Raises:
            DriverError: If the statement failed
            ConnectionLostError: If the connection dropped
        """
        ...

    def describe_columns(self) -> list[ColumnMeta]:
        """Return column metadata of the last result set.

        Returns:
            One ColumnMeta per result column, empty if there was no result set
        """
        ...

    def set_charset(self, charset: str, collate: str | None = None) -> None:
        """Switch the connection's character set.

        Args:
            charset: Charset name, e.g. ``utf8mb4``
            collate: Optional collation name

        Raises:
            DriverError: If the server rejected the charset
        """
        ...

    def reconnect(self) -> bool:
        """Try to re-establish a lost connection.

        The charset that was active on the old connection is set again on
        the new one.

        Returns:
            True if the connection is usable again, False otherwise
        """
        ...
