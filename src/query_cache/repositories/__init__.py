"""Repository layer for data access.

This layer holds the cache storage backends behind the CacheStore
protocol. This enables:
- Swapping disk, Redis and memcached through configuration alone
- Unit testing with mock clients
- Clear separation of concerns

The repositories are protocol-based (structural typing), not inheritance-based.
Any class implementing the required methods will satisfy the protocol.
"""

from query_cache.protocols import CacheStore

from .connection import RemoteConnection
from .disk_repository import DiskCacheRepository
from .factory import build_cache_store
from .memcached_repository import MemcachedCacheRepository
from .redis_repository import RedisCacheRepository

__all__ = [
    "CacheStore",
    "DiskCacheRepository",
    "MemcachedCacheRepository",
    "RedisCacheRepository",
    "RemoteConnection",
    "build_cache_store",
]
