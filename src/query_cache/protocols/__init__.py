"""Protocol interfaces for the two collaborators of the executor.

``CacheStore`` is what every cache backend (disk, Redis, memcached)
implements; ``DatabaseDriver`` is what the executor needs from a
database connection. Both are structural, so a backend or driver only
has to provide the methods.

Usage:
    ```python
    from query_cache.protocols import CacheStore, DatabaseDriver

    def warm(store: CacheStore, driver: DatabaseDriver) -> None:
        ...
    ```
"""

from .cache_store import CacheStore
from .database_driver import DatabaseDriver

__all__ = [
    "CacheStore",
    "DatabaseDriver",
]
