"""Domain entities for internal representation.

These are pure dataclasses (frozen) used internally by services
and repositories. Cached query results live in ``query_cache.models``
because they cross the serialization boundary; everything here is
transient and never leaves the process.

Entities should have:
- No serialization logic
- No Pydantic validation
- No external dependencies
- Pure domain logic only
"""

from .charset_info import ColumnCharsetInfo
from .field_format import FieldFormat
from .sanitized_field import SanitizedField
from .statement_result import StatementResult

__all__ = ["ColumnCharsetInfo", "FieldFormat", "SanitizedField", "StatementResult"]
