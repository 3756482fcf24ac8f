"""Disk implementation of CacheStore.

One file per key in a flat directory. Each file holds the entry pickled
and compressed with raw deflate. Expiry is read from the entry itself,
not from the file's mtime, so copied or restored cache directories keep
their per-entry TTLs.

Writes are not atomic. Two processes writing the same key at once can
leave a garbled file behind; the next ``get`` fails to decode it, deletes
it and reports a miss.
"""

import logging
import os
import time
from collections.abc import Callable
from pathlib import Path

from query_cache.config import Settings, settings
from query_cache.errors import PayloadError
from query_cache.models import CacheEntry
from query_cache.utils import report_soft_failure
from query_cache.utils.serialization import (
    DEFAULT_COMPRESSION_LEVEL,
    compress,
    decompress,
    deserialize_entry,
    serialize_entry,
)

logger = logging.getLogger(__name__)


class DiskCacheRepository:
    """Disk implementation using compressed pickle files.

    This class satisfies the CacheStore protocol through structural
    typing - no explicit inheritance needed.
    """

    def __init__(
        self,
        cache_dir: str | os.PathLike[str] | None = None,
        default_ttl: int | float | None = None,
        compression_level: int = DEFAULT_COMPRESSION_LEVEL,
        show_errors: bool | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the disk cache repository.

        Args:
            cache_dir: Directory holding the cache files. Must already exist.
            default_ttl: TTL in seconds when ``set`` gets none.
            compression_level: Deflate level, 0-9.
            show_errors: Log soft failures as warnings. Defaults to settings.
            clock: Returns the current unix time.
        """
        self._dir = Path(cache_dir if cache_dir is not None else settings.cache_dir)
        self._default_ttl = default_ttl or settings.cache_timeout
        self._level = compression_level
        self._show_errors = settings.show_errors if show_errors is None else show_errors
        self._clock = clock

    @classmethod
    def create(cls, config: Settings | None = None, **kwargs) -> "DiskCacheRepository":
        """Factory method to create DiskCacheRepository from settings.

        Args:
            config: Settings to read the directory and TTL from. If None, uses global settings.
            **kwargs: Passed through to the constructor.

        Returns:
            Configured DiskCacheRepository
        """
        config = config or settings
        kwargs.setdefault("show_errors", config.show_errors)
        return cls(cache_dir=config.cache_dir, default_ttl=config.cache_timeout, **kwargs)

    @property
    def cache_dir(self) -> Path:
        return self._dir

    def _path(self, key: str) -> Path | None:
        # Keys are flat file names; anything that could escape the directory is refused
        if not key or key in (".", "..") or os.sep in key or (os.altsep and os.altsep in key):
            return None
        return self._dir / key

    def _remove(self, path: Path) -> bool:
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            report_soft_failure(logger, self._show_errors, "Could not remove cache file %s: %s", path, e)
            return False
        return True

    def get(self, key: str) -> CacheEntry | None:
        """Read an entry, deleting it if it is expired or unreadable.

        Args:
            key: The cache key

        Returns:
            The entry, or None on a miss
        """
        path = self._path(key)
        if path is None or not path.is_file():
            return None

        try:
            data = path.read_bytes()
        except OSError as e:
            report_soft_failure(logger, self._show_errors, "Could not read cache file %s: %s", path, e)
            return None

        try:
            entry = deserialize_entry(decompress(data))
        except PayloadError as e:
            report_soft_failure(logger, self._show_errors, "Discarding corrupt cache file %s: %s", path, e)
            self._remove(path)
            return None

        if entry.is_expired(self._clock()):
            self._remove(path)
            return None

        return entry

    def set(self, key: str, entry: CacheEntry, ttl: int | float | None = None) -> bool:
        """Write an entry, stamping it to expire ``ttl`` seconds from now.

        Args:
            key: The cache key
            entry: The entry to store
            ttl: Time-to-live in seconds; None uses the default TTL

        Returns:
            True if written, False otherwise
        """
        path = self._path(key)
        if path is None:
            return False

        if not self._dir.is_dir():
            report_soft_failure(logger, self._show_errors, "Could not open cache dir: %s", self._dir)
            return False

        entry = entry.with_expiry(self._clock() + (ttl or self._default_ttl))
        try:
            payload = compress(serialize_entry(entry), self._level)
        except PayloadError as e:
            report_soft_failure(logger, self._show_errors, "%s", e)
            return False

        if not payload:
            return False

        try:
            path.write_bytes(payload)
        except OSError as e:
            report_soft_failure(logger, self._show_errors, "Could not write cache file %s: %s", path, e)
            return False

        return True

    def delete(self, key: str, timeout: int = 0) -> bool:
        """Delete an entry.

        Args:
            key: The cache key
            timeout: Ignored

        Returns:
            True if a file was removed, False otherwise
        """
        path = self._path(key)
        if path is None:
            return False
        return self._remove(path)

    def flush(self) -> bool:
        """Delete every file in the cache directory.

        Returns:
            True if the directory was emptied, False otherwise
        """
        if not self._dir.is_dir():
            report_soft_failure(logger, self._show_errors, "Could not open cache dir: %s", self._dir)
            return False

        ok = True
        for path in self._dir.iterdir():
            if path.is_file() and not self._remove(path) and path.exists():
                ok = False
        return ok

    def health_check(self) -> bool:
        """Check if the cache directory exists and is writable."""
        return self._dir.is_dir() and os.access(self._dir, os.W_OK)

    def count_all(self) -> int:
        """Count cache files, expired ones included."""
        if not self._dir.is_dir():
            return 0
        return sum(1 for path in self._dir.iterdir() if path.is_file())
