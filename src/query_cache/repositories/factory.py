"""Backend selection for the query cache."""

from query_cache.config import CacheBackend, Settings, settings
from query_cache.protocols import CacheStore

from .disk_repository import DiskCacheRepository
from .memcached_repository import MemcachedCacheRepository
from .redis_repository import RedisCacheRepository

_BACKENDS = {
    CacheBackend.DISK: DiskCacheRepository,
    CacheBackend.REDIS: RedisCacheRepository,
    CacheBackend.MEMCACHED: MemcachedCacheRepository,
}


def build_cache_store(config: Settings | None = None) -> CacheStore:
    """Create the cache store named by ``DB_CACHE_TYPE``.

    Nothing is contacted here; remote backends connect on first use.

    Args:
        config: Settings to build from. If None, uses global settings.

    Returns:
        A CacheStore for the configured backend
    """
    config = config or settings
    return _BACKENDS[config.backend].create(config)
