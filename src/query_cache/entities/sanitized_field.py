"""Sanitized field domain entity."""

from dataclasses import dataclass, replace
from typing import Any

from .field_format import FieldFormat


@dataclass(frozen=True)
class SanitizedField:
    """A single column value on its way into an insert/update/delete.

    Created per write call and discarded once the statement ran.

    Attributes:
        name: Column name
        raw_value: Value exactly as the caller passed it
        target_format: Placeholder format the value is rendered with
        resolved_charset: Charset of the target column, None when unchecked
        value: Value after sanitization (equal to raw_value until sanitized)
        was_ascii_fast_path: True when the value was pure 7-bit ASCII
    """

    name: str
    raw_value: Any
    target_format: FieldFormat = FieldFormat.STRING
    resolved_charset: str | None = None
    value: Any = None
    was_ascii_fast_path: bool = False

    @classmethod
    def create(
        cls,
        name: str,
        raw_value: Any,
        target_format: FieldFormat = FieldFormat.STRING,
        resolved_charset: str | None = None,
    ) -> "SanitizedField":
        """Build an unsanitized field whose value is its raw value."""
        return cls(
            name=name,
            raw_value=raw_value,
            target_format=target_format,
            resolved_charset=resolved_charset,
            value=raw_value,
        )

    @property
    def is_text(self) -> bool:
        return isinstance(self.value, (str, bytes)) and not self.target_format.is_numeric

    def with_value(self, value: Any, ascii_fast_path: bool = False) -> "SanitizedField":
        return replace(self, value=value, was_ascii_fast_path=ascii_fast_path)
