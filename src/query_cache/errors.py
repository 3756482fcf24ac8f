"""Exception hierarchy for the query cache.

Cache problems never show up here: stores report them as a miss or a
``False`` return. These exceptions cover the failures a caller must see.
"""


class QueryCacheError(Exception):
    """Base class for all query cache errors."""


class DriverError(QueryCacheError):
    """A statement failed inside the database driver."""


class ConnectionLostError(DriverError):
    """The driver lost its connection to the database server."""


class DatabaseUnavailableError(DriverError):
    """Reconnecting after a lost connection failed too many times."""


class SanitizationError(QueryCacheError):
    """Text could not be made safe for its column charset; the write is rejected."""


class PayloadError(QueryCacheError):
    """A cache payload could not be serialized or deserialized."""
