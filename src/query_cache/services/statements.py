"""Statement classification by leading keyword."""

import re
from enum import Enum

_DDL = re.compile(r"^\s*(create|alter|truncate|drop)\s", re.IGNORECASE)
_INSERT = re.compile(r"^\s*(insert|replace)\s", re.IGNORECASE)
_MUTATION = re.compile(r"^\s*(update|delete)\s", re.IGNORECASE)


class StatementKind(Enum):
    """Coarse statement category driving cache and insert-id bookkeeping."""

    READ = "read"
    INSERT = "insert"
    MUTATION = "mutation"
    DDL = "ddl"

    @property
    def is_mutating(self) -> bool:
        """True for insert, replace, update and delete."""
        return self in (StatementKind.INSERT, StatementKind.MUTATION)

    @property
    def is_cache_candidate(self) -> bool:
        """Schema changes are never served from or written to the cache.

        A repeated CREATE, ALTER, TRUNCATE or DROP always reaches the server,
        even with write caching turned on.
        """
        return self is not StatementKind.DDL


def classify_statement(query: str) -> StatementKind:
    """Classify a query by its first keyword.

    Anything that is not DDL, insert/replace or update/delete counts as a
    read (SELECT, SHOW, DESCRIBE, ...).
    """
    if _DDL.match(query):
        return StatementKind.DDL
    if _INSERT.match(query):
        return StatementKind.INSERT
    if _MUTATION.match(query):
        return StatementKind.MUTATION
    return StatementKind.READ
