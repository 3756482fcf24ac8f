"""
Tests for the disk cache backend.
"""

import threading

from query_cache.protocols import CacheStore
from query_cache.repositories import DiskCacheRepository
from query_cache.services import fingerprint
from query_cache.utils import compress, serialize_entry

KEY = fingerprint("SELECT * FROM `users`")


def test_satisfies_protocol(disk_store):
    assert isinstance(disk_store, CacheStore)


def test_unserializable_entry_is_not_written(disk_store, entry, cache_dir):
    broken = entry.model_copy(update={"rows": [{"lock": threading.Lock()}]})
    assert disk_store.set(KEY, broken) is False
    assert list(cache_dir.iterdir()) == []


def test_set_then_get_returns_entry(disk_store, entry, clock):
    assert disk_store.set(KEY, entry, 30) is True
    cached = disk_store.get(KEY)
    assert cached == entry.with_expiry(clock() + 30)
    assert cached.rows == entry.rows
    assert cached.columns == entry.columns


def test_one_compressed_file_per_key(disk_store, entry, cache_dir, clock):
    disk_store.set(KEY, entry, 30)
    path = cache_dir / KEY
    assert path.is_file()
    assert path.read_bytes() == compress(serialize_entry(entry.with_expiry(clock() + 30)))


def test_expired_entry_is_a_miss_and_removed(disk_store, entry, cache_dir, clock):
    """An entry stored for 5 seconds is gone after 6."""
    entry = entry.model_copy(update={"row_count": 3})
    disk_store.set(KEY, entry, ttl=5)
    clock.advance(6)
    assert disk_store.get(KEY) is None
    assert not (cache_dir / KEY).exists()


def test_entry_alive_until_ttl_passes(disk_store, entry, clock):
    disk_store.set(KEY, entry, ttl=5)
    clock.advance(5)
    assert disk_store.get(KEY) is not None


def test_expiry_comes_from_payload_not_mtime(disk_store, entry, cache_dir, clock):
    """Touching the file does not revive an expired entry."""
    disk_store.set(KEY, entry, ttl=5)
    clock.advance(10)
    (cache_dir / KEY).touch()
    assert disk_store.get(KEY) is None


def test_default_ttl_used_without_explicit_ttl(disk_store, entry, clock):
    disk_store.set(KEY, entry)
    assert disk_store.get(KEY).expires_at == clock() + 60
    clock.advance(61)
    assert disk_store.get(KEY) is None


def test_corrupt_file_is_a_miss_and_removed(disk_store, cache_dir):
    path = cache_dir / KEY
    path.write_bytes(b"\x00garbage written by a racing writer")
    assert disk_store.get(KEY) is None
    assert not path.exists()


def test_truncated_file_is_a_miss_and_removed(disk_store, entry, cache_dir):
    disk_store.set(KEY, entry)
    path = cache_dir / KEY
    data = path.read_bytes()
    path.write_bytes(data[: len(data) // 2])
    assert disk_store.get(KEY) is None
    assert not path.exists()


def test_overwrite_replaces_entry(disk_store, entry):
    disk_store.set(KEY, entry)
    newer = entry.model_copy(update={"rows": [{"id": 9}], "row_count": 1, "return_value": 1})
    disk_store.set(KEY, newer)
    assert disk_store.get(KEY).rows == [{"id": 9}]


def test_missing_directory_is_a_soft_failure(tmp_path, entry, clock):
    store = DiskCacheRepository(tmp_path / "missing", default_ttl=60, clock=clock)
    assert store.set(KEY, entry) is False
    assert store.get(KEY) is None
    assert store.flush() is False
    assert store.health_check() is False


def test_empty_key_rejected(disk_store, entry):
    assert disk_store.set("", entry) is False
    assert disk_store.get("") is None
    assert disk_store.delete("") is False


def test_keys_cannot_escape_directory(disk_store, entry, tmp_path):
    assert disk_store.set("../escaped", entry) is False
    assert disk_store.set("..", entry) is False
    assert not (tmp_path / "escaped").exists()


def test_delete(disk_store, entry):
    disk_store.set(KEY, entry)
    assert disk_store.delete(KEY) is True
    assert disk_store.delete(KEY) is False
    assert disk_store.get(KEY) is None


def test_flush_removes_every_entry(disk_store, entry):
    for n in range(3):
        disk_store.set(fingerprint(f"SELECT {n}"), entry)
    assert disk_store.count_all() == 3
    assert disk_store.flush() is True
    assert disk_store.count_all() == 0


def test_health_check(disk_store):
    assert disk_store.health_check() is True


def test_create_reads_settings(cache_settings):
    store = DiskCacheRepository.create(cache_settings)
    assert str(store.cache_dir) == cache_settings.cache_dir
