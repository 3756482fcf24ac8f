"""Cache storage protocol.

Defines the interface for any backend that can hold cached query
results keyed by fingerprint.

Implementations:
- Disk (one compressed file per key, the default)
- Redis
- memcached

Stores never raise for cache problems. An unreachable server, an
unwritable directory or a corrupt payload is reported as a miss or a
``False`` return so the query can still run against the database.
"""

from typing import Protocol, runtime_checkable

from query_cache.models import CacheEntry


@runtime_checkable
class CacheStore(Protocol):
    """Protocol for cache storage backends.

    Similar to Go's interface pattern - any type that implements these
    methods satisfies the protocol, no explicit inheritance needed.

    Example:
        ```python
        from query_cache.protocols import CacheStore

        store: CacheStore = DiskCacheRepository.create()
        store: CacheStore = MemcachedCacheRepository.create()
        ```
    """

    def get(self, key: str) -> CacheEntry | None:
        """Fetch an entry.

        Expired and corrupt records are removed before returning.

        Args:
            key: The cache key (a query fingerprint)

        Returns:
            The entry, or None on a missing, expired or corrupt record
        """
        ...

    def set(self, key: str, entry: CacheEntry, ttl: int | float | None = None) -> bool:
        """Store an entry, replacing any previous one.

        Args:
            key: The cache key
            entry: The result snapshot to store
            ttl: Time-to-live in seconds; None uses the backend default

        Returns:
            True if stored, False otherwise
        """
        ...

    def delete(self, key: str, timeout: int = 0) -> bool:
        """Remove an entry.

        Args:
            key: The cache key
            timeout: Accepted for compatibility, ignored

        Returns:
            True if a record was removed, False otherwise
        """
        ...

    def flush(self) -> bool:
        """Remove every entry.

        Returns:
            True on success, False otherwise
        """
        ...

    def health_check(self) -> bool:
        """Check if the backend is usable.

        Returns:
            True if healthy, False otherwise
        """
        ...
