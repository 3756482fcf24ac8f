"""memcached implementation of CacheStore.

Values are stored as raw bytes (no pymemcache serde), so the payload
format matches the other backends. memcached reads expiry values above
30 days as absolute unix timestamps; longer TTLs are converted.
"""

import logging
import math
import time
from collections.abc import Callable

from pymemcache.client.base import Client as MemcachedClient
from pymemcache.exceptions import MemcacheError

from query_cache.config import Settings, get_memcached_client, settings
from query_cache.errors import PayloadError
from query_cache.models import CacheEntry
from query_cache.repositories.connection import RemoteConnection
from query_cache.utils import decode_payload, encode_payload, report_soft_failure

logger = logging.getLogger(__name__)

MAX_RELATIVE_EXPIRY = 30 * 24 * 60 * 60

_NETWORK_ERRORS = (MemcacheError, OSError)


class MemcachedCacheRepository:
    """memcached implementation backed by pymemcache.

    This class satisfies the CacheStore protocol through structural
    typing - no explicit inheritance needed.
    """

    def __init__(
        self,
        memcached_client: MemcachedClient | None = None,
        expiry: int | None = None,
        compress: bool | None = None,
        show_errors: bool | None = None,
        clock: Callable[[], float] = time.time,
        client_factory: Callable[[], MemcachedClient] | None = None,
    ) -> None:
        """Initialize the memcached cache repository.

        Args:
            memcached_client: pymemcache client. If None, creates default on first use.
            expiry: Default TTL in seconds for entries stored without one.
            compress: Deflate payloads before storing them.
            show_errors: Log soft failures as warnings. Defaults to settings.
            clock: Returns the current unix time.
            client_factory: Builds the client when ``memcached_client`` is None.
        """
        self._expiry = expiry or settings.remote_expiry
        self._compress = settings.remote_compress if compress is None else compress
        self._show_errors = settings.show_errors if show_errors is None else show_errors
        self._clock = clock

        factory = client_factory or get_memcached_client
        self._connection: RemoteConnection[MemcachedClient] = RemoteConnection(
            factory=lambda: memcached_client or factory(),
            probe=lambda client: client.version(),
            errors=_NETWORK_ERRORS,
            name="memcached",
            show_errors=self._show_errors,
        )

    @classmethod
    def create(cls, config: Settings | None = None, **kwargs) -> "MemcachedCacheRepository":
        """Factory method to create MemcachedCacheRepository from settings.

        Args:
            config: Settings with host, port and expiry. If None, uses global settings.
            **kwargs: Passed through to the constructor.

        Returns:
            Configured MemcachedCacheRepository
        """
        config = config or settings
        kwargs.setdefault("expiry", config.remote_expiry)
        kwargs.setdefault("compress", config.remote_compress)
        kwargs.setdefault("show_errors", config.show_errors)
        kwargs.setdefault("client_factory", lambda: get_memcached_client(config))
        return cls(**kwargs)

    def _fail(self, action: str, error: Exception) -> None:
        self._connection.reset()
        report_soft_failure(logger, self._show_errors, "memcached %s failed: %s", action, error)

    def _discard(self, client: MemcachedClient, key: str) -> None:
        try:
            client.delete(key, noreply=False)
        except _NETWORK_ERRORS as e:
            self._fail("delete", e)

    def _native_expiry(self, seconds: int) -> int:
        if seconds > MAX_RELATIVE_EXPIRY:
            return int(self._clock()) + seconds
        return seconds

    def get(self, key: str) -> CacheEntry | None:
        """Fetch an entry from memcached.

        Args:
            key: The cache key

        Returns:
            The entry, or None on a miss or when memcached is unreachable
        """
        if not key:
            return None

        client = self._connection.acquire()
        if client is None:
            return None

        try:
            data = client.get(key)
        except _NETWORK_ERRORS as e:
            self._fail("get", e)
            return None

        if not data:
            return None

        try:
            entry = decode_payload(data, self._compress)
        except PayloadError as e:
            report_soft_failure(logger, self._show_errors, "Discarding corrupt memcached value %s: %s", key, e)
            self._discard(client, key)
            return None

        if entry.is_expired(self._clock()):
            self._discard(client, key)
            return None

        return entry

    def set(self, key: str, entry: CacheEntry, ttl: int | float | None = None) -> bool:
        """Store an entry in memcached.

        Args:
            key: The cache key
            entry: The entry to store
            ttl: Time-to-live in seconds; None uses the default expiry. Fractions
                are rounded up to whole seconds, and the payload is stamped to
                expire at now + that rounded ttl.

        Returns:
            True if stored, False otherwise
        """
        if not key:
            return False

        expiry = max(1, math.ceil(ttl or self._expiry))
        try:
            payload = encode_payload(entry.with_expiry(self._clock() + expiry), self._compress)
        except PayloadError as e:
            report_soft_failure(logger, self._show_errors, "%s", e)
            return False

        client = self._connection.acquire()
        if client is None:
            return False

        try:
            return bool(client.set(key, payload, expire=self._native_expiry(expiry), noreply=False))
        except _NETWORK_ERRORS as e:
            self._fail("set", e)
            return False

    def delete(self, key: str, timeout: int = 0) -> bool:
        """Delete a specific entry by key.

        Args:
            key: The cache key
            timeout: Ignored

        Returns:
            True if deleted, False otherwise
        """
        if not key:
            return False

        client = self._connection.acquire()
        if client is None:
            return False

        try:
            return bool(client.delete(key, noreply=False))
        except _NETWORK_ERRORS as e:
            self._fail("delete", e)
            return False

    def flush(self) -> bool:
        """Invalidate every item on the server.

        Returns:
            True on success, False otherwise
        """
        client = self._connection.acquire()
        if client is None:
            return False

        try:
            return bool(client.flush_all(noreply=False))
        except _NETWORK_ERRORS as e:
            self._fail("flush", e)
            return False

    def health_check(self) -> bool:
        """Check if memcached answers a version request."""
        client = self._connection.acquire()
        if client is None:
            return False
        try:
            client.version()
        except _NETWORK_ERRORS as e:
            self._fail("version", e)
            return False
        return True

    @property
    def connection(self) -> RemoteConnection[MemcachedClient]:
        """Get the connection handle (for testing)."""
        return self._connection
