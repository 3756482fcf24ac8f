"""Redis implementation of CacheStore.

A thin pass-through: the serialized entry is stored under the
fingerprint with a native Redis expiry. The connection is opened lazily
on first use and dropped after any network error so the following call
can reconnect once the server is back.
"""

import logging
import math
import time
from collections.abc import Callable

import redis
from redis.exceptions import RedisError

from query_cache.config import Settings, get_redis_client, settings
from query_cache.errors import PayloadError
from query_cache.models import CacheEntry
from query_cache.repositories.connection import RemoteConnection
from query_cache.utils import decode_payload, encode_payload, report_soft_failure

logger = logging.getLogger(__name__)


class RedisCacheRepository:
    """Redis implementation using plain string keys with EX expiry.

    This class satisfies the CacheStore protocol through structural
    typing - no explicit inheritance needed.
    """

    def __init__(
        self,
        redis_client: redis.Redis | None = None,
        expiry: int | None = None,
        compress: bool | None = None,
        show_errors: bool | None = None,
        clock: Callable[[], float] = time.time,
        client_factory: Callable[[], redis.Redis] | None = None,
    ) -> None:
        """Initialize the Redis cache repository.

        Args:
            redis_client: Redis client instance. If None, creates default on first use.
            expiry: Default TTL in seconds for entries stored without one.
            compress: Deflate payloads before storing them.
            show_errors: Log soft failures as warnings. Defaults to settings.
            clock: Returns the current unix time.
            client_factory: Builds the client when ``redis_client`` is None.
        """
        self._expiry = expiry or settings.remote_expiry
        self._compress = settings.remote_compress if compress is None else compress
        self._show_errors = settings.show_errors if show_errors is None else show_errors
        self._clock = clock

        factory = client_factory or get_redis_client
        self._connection: RemoteConnection[redis.Redis] = RemoteConnection(
            factory=lambda: redis_client or factory(),
            probe=lambda client: client.ping(),
            errors=(RedisError, OSError),
            name="redis",
            show_errors=self._show_errors,
        )

    @classmethod
    def create(cls, config: Settings | None = None, **kwargs) -> "RedisCacheRepository":
        """Factory method to create RedisCacheRepository from settings.

        Args:
            config: Settings with the Redis URL and expiry. If None, uses global settings.
            **kwargs: Passed through to the constructor.

        Returns:
            Configured RedisCacheRepository
        """
        config = config or settings
        kwargs.setdefault("expiry", config.remote_expiry)
        kwargs.setdefault("compress", config.remote_compress)
        kwargs.setdefault("show_errors", config.show_errors)
        kwargs.setdefault("client_factory", lambda: get_redis_client(config))
        return cls(**kwargs)

    def _fail(self, action: str, error: Exception) -> None:
        self._connection.reset()
        report_soft_failure(logger, self._show_errors, "Redis %s failed: %s", action, error)

    def _discard(self, client: redis.Redis, key: str) -> None:
        try:
            client.delete(key)
        except RedisError as e:
            self._fail("delete", e)

    def get(self, key: str) -> CacheEntry | None:
        """Fetch an entry from Redis.

        Args:
            key: The cache key

        Returns:
            The entry, or None on a miss or when Redis is unreachable
        """
        if not key:
            return None

        client = self._connection.acquire()
        if client is None:
            return None

        try:
            data = client.get(key)
        except RedisError as e:
            self._fail("get", e)
            return None

        if not data:
            return None

        try:
            entry = decode_payload(data, self._compress)
        except PayloadError as e:
            report_soft_failure(logger, self._show_errors, "Discarding corrupt Redis value %s: %s", key, e)
            self._discard(client, key)
            return None

        if entry.is_expired(self._clock()):
            self._discard(client, key)
            return None

        return entry

    def set(self, key: str, entry: CacheEntry, ttl: int | float | None = None) -> bool:
        """Store an entry in Redis with a native expiry.

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
            return bool(client.set(key, payload, ex=expiry))
        except RedisError as e:
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
            result: int = client.delete(key)  # type: ignore[assignment]
        except RedisError as e:
            self._fail("delete", e)
            return False
        return result > 0

    def flush(self) -> bool:
        """Clear the whole Redis database.

        Returns:
            True on success, False otherwise
        """
        client = self._connection.acquire()
        if client is None:
            return False

        try:
            return bool(client.flushdb())
        except RedisError as e:
            self._fail("flush", e)
            return False

    def health_check(self) -> bool:
        """Check if Redis is accessible.

        Returns:
            True if healthy, False otherwise
        """
        client = self._connection.acquire()
        if client is None:
            return False
        try:
            return bool(client.ping())
        except RedisError as e:
            self._fail("ping", e)
            return False

    @property
    def connection(self) -> RemoteConnection[redis.Redis]:
        """Get the connection handle (for testing)."""
        return self._connection
