"""Cache payload encoding.

Entries are pickled so that driver values (``Decimal``, ``datetime``,
``bytes``) come back with their original types, and optionally squeezed
with raw deflate. Decoding re-validates the structure through the
``CacheEntry`` model, so a payload that unpickles into the wrong shape is
rejected like any other corrupt payload.
"""

import pickle
import zlib

from query_cache.errors import PayloadError
from query_cache.models import CacheEntry

DEFAULT_COMPRESSION_LEVEL = 3


def serialize_entry(entry: CacheEntry) -> bytes:
    """Serialize an entry to bytes.

    Raises:
        PayloadError: If a row holds a value that cannot be pickled
    """
    try:
        return pickle.dumps(entry.to_payload(), protocol=pickle.HIGHEST_PROTOCOL)
    except (pickle.PicklingError, TypeError, AttributeError) as e:
        raise PayloadError(f"Failed to serialize cache value: {e}") from e


def deserialize_entry(data: bytes) -> CacheEntry:
    """Rebuild an entry from bytes produced by ``serialize_entry``.

    Raises:
        PayloadError: If the bytes are truncated, garbled or not an entry
    """
    if not data:
        raise PayloadError("Empty cache payload")
    try:
        payload = pickle.loads(data)
        return CacheEntry.model_validate(payload)
    except Exception as e:
        # Garbage fed to pickle can fail with almost any exception type
        raise PayloadError(f"Failed to deserialize cache value: {e}") from e


def compress(data: bytes, level: int = DEFAULT_COMPRESSION_LEVEL) -> bytes:
    """Compress with raw deflate (no zlib header)."""
    compressor = zlib.compressobj(level, zlib.DEFLATED, -zlib.MAX_WBITS)
    return compressor.compress(data) + compressor.flush()


def decompress(data: bytes) -> bytes:
    """Reverse ``compress``.

    Raises:
        PayloadError: If the stream is not valid raw deflate or is truncated
    """
    decompressor = zlib.decompressobj(-zlib.MAX_WBITS)
    try:
        result = decompressor.decompress(data) + decompressor.flush()
    except zlib.error as e:
        raise PayloadError(f"Failed to decompress cache value: {e}") from e
    if not decompressor.eof:
        raise PayloadError("Truncated cache payload")
    return result


def encode_payload(entry: CacheEntry, compressed: bool = False) -> bytes:
    """Serialize an entry, deflating it when ``compressed`` is set."""
    data = serialize_entry(entry)
    return compress(data) if compressed else data


def decode_payload(data: bytes, compressed: bool = False) -> CacheEntry:
    """Reverse ``encode_payload`` with the same ``compressed`` flag."""
    return deserialize_entry(decompress(data) if compressed else data)
