"""Column charset domain entity."""

from dataclasses import dataclass

BINARY_TYPES = frozenset({"binary", "varbinary", "tinyblob", "mediumblob", "blob", "longblob"})


@dataclass(frozen=True)
class ColumnCharsetInfo:
    """Charset metadata for a single table column.

    Attributes:
        table: Table the column belongs to
        column: Column name as reported by the server
        charset: Charset derived from the collation, None for non-string columns
        collation: Raw collation name, None for non-string columns
        sql_type: Declared column type, e.g. ``varchar(255)``
    """

    table: str
    column: str
    charset: str | None
    collation: str | None
    sql_type: str = ""

    @property
    def base_type(self) -> str:
        """Type name without length or modifiers (``varchar(255)`` -> ``varchar``)."""
        return self.sql_type.split("(", 1)[0].strip().lower()

    @property
    def is_binary(self) -> bool:
        return self.base_type in BINARY_TYPES
