"""Cache key derivation."""

import hashlib


def fingerprint(query: str, prefix: str = "") -> str:
    """Derive the cache key for a query.

    The key is the lowercase hex md5 of ``prefix + query``. The text is
    hashed exactly as given: queries that differ only in whitespace or
    keyword case get different keys.

    Args:
        query: Raw SQL text
        prefix: Namespace prefix, e.g. one per application

    Returns:
        A 32 character hex digest
    """
    return hashlib.md5((prefix + query).encode("utf-8", "surrogatepass")).hexdigest()
