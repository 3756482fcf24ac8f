"""Service layer for business logic.

This layer contains the query cache logic and orchestration.
Services depend on protocols (interfaces), not concrete implementations,
making them testable and flexible.

Architecture:
    Data-access caller -> CachingQueryExecutor -> CacheStore / DatabaseDriver
                                               -> QueryPreparer, CharsetResolver, TextSanitizer

Usage:
    ```python
    from query_cache.services import CachingQueryExecutor

    # Using factory method (recommended)
    executor = CachingQueryExecutor.create(driver)

    # Or manual creation
    executor = CachingQueryExecutor(driver, cache_store=DiskCacheRepository.create())
    ```
"""

from .charset_resolver import CharsetResolver, effective_table_charset
from .fingerprint import fingerprint
from .query_executor import CachingQueryExecutor
from .query_preparer import QueryPreparer, add_slashes
from .statements import StatementKind, classify_statement
from .text_sanitizer import TextSanitizer, has_local_validator

__all__ = [
    "CachingQueryExecutor",
    "CharsetResolver",
    "QueryPreparer",
    "StatementKind",
    "TextSanitizer",
    "add_slashes",
    "classify_statement",
    "effective_table_charset",
    "fingerprint",
    "has_local_validator",
]
