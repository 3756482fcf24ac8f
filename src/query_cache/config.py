import os
from dataclasses import dataclass
from enum import Enum
from functools import cached_property, lru_cache

import redis
from dotenv import load_dotenv
from pymemcache.client.base import Client as MemcachedClient

from query_cache.entities import FieldFormat

load_dotenv()


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes", "on")


class CacheBackend(str, Enum):
    """Storage transports a query cache can be built on."""

    DISK = "disk"
    REDIS = "redis"
    MEMCACHED = "memcached"


@dataclass(frozen=True)
class Settings:
    """Application settings loaded from environment variables."""

    # Query cache
    use_cache: bool = _env_flag("DB_CACHE")
    cache_backend: str = os.getenv("DB_CACHE_TYPE", CacheBackend.DISK.value)
    cache_timeout: int = int(os.getenv("DB_CACHE_TIMEOUT", str(24 * 60 * 60)))
    cache_inserts: bool = _env_flag("DB_CACHE_INSERTS")
    cache_prefix: str = os.getenv("DB_CACHE_PREFIX", "")
    cache_dir: str = os.getenv("DB_CACHE_DIR", "./cache")

    # Redis
    redis_url: str = os.getenv("REDIS_URL", "redis://localhost:6379")
    redis_password: str | None = os.getenv("REDIS_PASSWORD")

    # Memcached
    memcached_host: str = os.getenv("MEMCACHED_HOST", "localhost")
    memcached_port: int = int(os.getenv("MEMCACHED_PORT", "11211"))

    # Shared by both remote backends
    remote_expiry: int = int(os.getenv("REMOTE_CACHE_EXPIRY", "3600"))
    remote_compress: bool = _env_flag("REMOTE_CACHE_COMPRESS")
    remote_timeout: float = float(os.getenv("REMOTE_CACHE_TIMEOUT", "1.0"))

    # Database layer
    show_errors: bool = _env_flag("DB_SHOW_ERRORS")
    sanitize_text: bool = _env_flag("DB_SANITIZE_TEXT", "true")
    field_types_spec: str = os.getenv("DB_FIELD_TYPES", "")
    reconnect_retries: int = int(os.getenv("DB_RECONNECT_RETRIES", "5"))
    reconnect_backoff: float = float(os.getenv("DB_RECONNECT_BACKOFF", "1.0"))

    @property
    def backend(self) -> CacheBackend:
        """The configured cache backend as an enum member."""
        return CacheBackend(self.cache_backend.lower())

    @cached_property
    def field_types(self) -> dict[str, FieldFormat]:
        """Column name to placeholder format, parsed from ``DB_FIELD_TYPES``.

        The format is a comma separated list of ``column:format`` pairs,
        e.g. ``ID:%d,price:%f``.
        """
        return parse_field_types(self.field_types_spec)

    def __post_init__(self) -> None:
        """Validate settings after initialization."""
        try:
            self.backend
        except ValueError:
            raise ValueError(
                f"DB_CACHE_TYPE must be one of {[b.value for b in CacheBackend]}, "
                f"got {self.cache_backend!r}"
            ) from None

        if self.cache_timeout <= 0:
            raise ValueError("DB_CACHE_TIMEOUT must be a positive number of seconds")

        if self.remote_expiry <= 0:
            raise ValueError("REMOTE_CACHE_EXPIRY must be a positive number of seconds")

        if not 0 < self.memcached_port < 65536:
            raise ValueError(f"MEMCACHED_PORT out of range: {self.memcached_port}")

        if self.reconnect_retries < 0:
            raise ValueError("DB_RECONNECT_RETRIES cannot be negative")

        # Fail early on a malformed DB_FIELD_TYPES
        self.field_types


def parse_field_types(spec: str) -> dict[str, FieldFormat]:
    """Parse a ``column:format`` list into a format mapping.

    Raises:
        ValueError: If a pair is malformed or names an unknown format
    """
    mapping: dict[str, FieldFormat] = {}
    for pair in filter(None, (p.strip() for p in spec.split(","))):
        column, sep, fmt = pair.partition(":")
        if not sep or not column.strip():
            raise ValueError(f"Malformed DB_FIELD_TYPES entry: {pair!r}")
        mapping[column.strip()] = FieldFormat.parse(fmt.strip())
    return mapping


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()


def get_redis_client(config: Settings | None = None) -> redis.Redis:
    """Create a Redis client instance."""
    config = config or settings
    return redis.from_url(
        config.redis_url,
        password=config.redis_password,
        decode_responses=False,
        socket_timeout=config.remote_timeout,
        socket_connect_timeout=config.remote_timeout,
    )


def get_memcached_client(config: Settings | None = None) -> MemcachedClient:
    """Create a memcached client instance."""
    config = config or settings
    return MemcachedClient(
        (config.memcached_host, config.memcached_port),
        connect_timeout=config.remote_timeout,
        timeout=config.remote_timeout,
    )
