"""Utility modules for the query cache."""

from .reporting import report_soft_failure
from .serialization import (
    compress,
    decode_payload,
    decompress,
    deserialize_entry,
    encode_payload,
    serialize_entry,
)

__all__ = [
    "compress",
    "decode_payload",
    "decompress",
    "deserialize_entry",
    "encode_payload",
    "report_soft_failure",
    "serialize_entry",
]
