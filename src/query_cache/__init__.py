"""Query Cache - database query result caching with charset-safe writes.

This package provides a layered architecture for caching query results:

Layers:
    - protocols: Interface contracts (CacheStore, DatabaseDriver)
    - repositories: Cache storage backends (disk, Redis, memcached)
    - services: Query execution, fingerprinting, preparing, sanitizing
    - models: Cached result snapshots (pydantic)
    - entities: Transient domain models

Usage:
    ```python
    from query_cache.services import CachingQueryExecutor

    # Backend, TTL and prefix come from the environment (DB_CACHE_*)
    executor = CachingQueryExecutor.create(driver)
    executor.execute("SELECT `id`, `name` FROM `users`")
    ```
"""

from query_cache.config import CacheBackend, Settings, get_settings, settings
from query_cache.entities import ColumnCharsetInfo, FieldFormat, SanitizedField, StatementResult
from query_cache.errors import (
    ConnectionLostError,
    DatabaseUnavailableError,
    DriverError,
    PayloadError,
    QueryCacheError,
    SanitizationError,
)
from query_cache.models import CacheEntry, CacheMetrics, ColumnMeta
from query_cache.protocols import CacheStore, DatabaseDriver
from query_cache.repositories import (
    DiskCacheRepository,
    MemcachedCacheRepository,
    RedisCacheRepository,
    build_cache_store,
)
from query_cache.services import (
    CachingQueryExecutor,
    CharsetResolver,
    QueryPreparer,
    TextSanitizer,
    fingerprint,
)

__all__ = [
    # Configuration
    "settings",
    "get_settings",
    "Settings",
    "CacheBackend",
    # Protocols (interfaces)
    "CacheStore",
    "DatabaseDriver",
    # Services (business logic)
    "CachingQueryExecutor",
    "CharsetResolver",
    "QueryPreparer",
    "TextSanitizer",
    "fingerprint",
    # Repositories (data access)
    "DiskCacheRepository",
    "RedisCacheRepository",
    "MemcachedCacheRepository",
    "build_cache_store",
    # Models and entities
    "CacheEntry",
    "ColumnMeta",
    "CacheMetrics",
    "ColumnCharsetInfo",
    "FieldFormat",
    "SanitizedField",
    "StatementResult",
    # Errors
    "QueryCacheError",
    "DriverError",
    "ConnectionLostError",
    "DatabaseUnavailableError",
    "SanitizationError",
    "PayloadError",
]
