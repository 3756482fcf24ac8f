"""Placeholder formats for column values."""

from enum import Enum


class FieldFormat(str, Enum):
    """How a value is rendered into a prepared query."""

    INTEGER = "%d"
    FLOAT = "%f"
    STRING = "%s"

    @property
    def is_numeric(self) -> bool:
        """Numeric values never need charset checks."""
        return self is not FieldFormat.STRING

    @classmethod
    def parse(cls, value: "FieldFormat | str") -> "FieldFormat":
        """Accept either a member or its placeholder text (``%d``, ``%f``, ``%s``).

        Raises:
            ValueError: If the text is not a known placeholder
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise ValueError(f"Unknown field format {value!r}, expected one of %d, %f, %s") from None
