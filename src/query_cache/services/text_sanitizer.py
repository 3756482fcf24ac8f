"""Charset validation for values about to be written.

Values are checked against the charset of their target column before
they are bound into an INSERT/UPDATE/DELETE. Checks run in order of
cost:

1. Non-text values, numeric formats and columns without a charset pass.
2. Pure 7-bit ASCII passes for every charset.
3. Charsets with a local validator (the utf8 family and ascii) are
   repaired in process by dropping every byte that is not part of a
   well-formed sequence. latin1 and binary store any byte and pass.
4. Anything else is converted by the server: one ``CONVERT(... USING cs)``
   SELECT per distinct charset, with the connection charset switched to
   match. If that fails the whole batch fails. A lost connection is not a
   text problem and propagates unchanged.

``str`` values are validated on their UTF-8 encoding (lone surrogates
included via ``surrogatepass``), so the result is always a clean ``str``.
"""

import logging
import re
from collections.abc import Callable, Iterable
from typing import Any

from query_cache.entities import FieldFormat, SanitizedField, StatementResult
from query_cache.errors import ConnectionLostError, DatabaseUnavailableError, DriverError, SanitizationError
from query_cache.protocols import DatabaseDriver

from .query_preparer import QueryPreparer

logger = logging.getLogger(__name__)

# Well-formed UTF-8 up to three bytes, surrogates and overlongs excluded
_UTF8_BMP = (
    rb"[\x00-\x7F]"
    rb"|[\xC2-\xDF][\x80-\xBF]"
    rb"|\xE0[\xA0-\xBF][\x80-\xBF]"
    rb"|[\xE1-\xEC][\x80-\xBF]{2}"
    rb"|\xED[\x80-\x9F][\x80-\xBF]"
    rb"|[\xEE-\xEF][\x80-\xBF]{2}"
)
_UTF8_SUPPLEMENTARY = (
    rb"|\xF0[\x90-\xBF][\x80-\xBF]{2}"
    rb"|[\xF1-\xF3][\x80-\xBF]{3}"
    rb"|\xF4[\x80-\x8F][\x80-\xBF]{2}"
)


def _well_formed(alternatives: bytes) -> Callable[[bytes], bytes]:
    pattern = re.compile(rb"((?:" + alternatives + rb"){1,40})|.", re.DOTALL)
    return lambda data: pattern.sub(rb"\1", data)


_NON_ASCII = re.compile(rb"[\x80-\xFF]")

_LOCAL_VALIDATORS: dict[str, Callable[[bytes], bytes]] = {
    "utf8": _well_formed(_UTF8_BMP),
    "utf8mb3": _well_formed(_UTF8_BMP),
    "utf8mb4": _well_formed(_UTF8_BMP + _UTF8_SUPPLEMENTARY),
    "ascii": lambda data: _NON_ASCII.sub(b"", data),
}

# Charsets that can hold any byte sequence
_ACCEPT_ALL = frozenset({"latin1", "binary"})

_SAFE_CHARSET_NAME = re.compile(r"[a-z0-9_]+")


def has_local_validator(charset: str) -> bool:
    """Check whether ``charset`` can be sanitized without a server round trip."""
    charset = charset.lower()
    return charset in _LOCAL_VALIDATORS or charset in _ACCEPT_ALL


def _apply(validator: Callable[[bytes], bytes], value: str | bytes) -> str | bytes:
    if isinstance(value, bytes):
        return validator(value)
    return validator(value.encode("utf-8", "surrogatepass")).decode("utf-8")


class TextSanitizer:
    """Make text values safe for their target column charset."""

    def __init__(
        self,
        driver: DatabaseDriver | None = None,
        preparer: QueryPreparer | None = None,
        run: Callable[[str], StatementResult] | None = None,
    ) -> None:
        """Initialize the sanitizer.

        Args:
            driver: Driver for server-side conversion. Without one, charsets
                lacking a local validator cannot be sanitized.
            preparer: Query preparer for the CONVERT queries. Defaults to one
                using the driver's escape.
            run: Runs a conversion query. Defaults to ``driver.execute``; the
                executor passes its reconnecting runner.
        """
        self._driver = driver
        self._preparer = preparer or QueryPreparer(driver.escape if driver is not None else None)
        self._run = run or (driver.execute if driver is not None else None)

    def sanitize(
        self,
        value: Any,
        charset: str | None,
        target_format: FieldFormat = FieldFormat.STRING,
    ) -> Any:
        """Sanitize a single value.

        Args:
            value: The candidate value
            charset: Charset of the target column, None to skip checks
            target_format: Placeholder format the value will be rendered with

        Returns:
            The value, with malformed sequences removed

        Raises:
            SanitizationError: If the value needed a server conversion that failed
        """
        field = SanitizedField.create("value", value, target_format, charset)
        return self.sanitize_fields([field])[0].value

    def sanitize_fields(self, fields: Iterable[SanitizedField]) -> list[SanitizedField]:
        """Sanitize a batch of fields for one write.

        Args:
            fields: Fields with their resolved charsets

        Returns:
            The fields in the same order with ``value`` sanitized

        Raises:
            SanitizationError: If any server conversion failed; no field of
                the batch should then be written
            ConnectionLostError: If the connection dropped during a conversion
            DatabaseUnavailableError: If reconnecting for a conversion failed
        """
        results = list(fields)
        pending: dict[str, list[int]] = {}

        for index, field in enumerate(results):
            if not field.is_text or not field.resolved_charset:
                continue

            if field.value.isascii():
                results[index] = field.with_value(field.value, ascii_fast_path=True)
                continue

            charset = field.resolved_charset.lower()
            if charset in _ACCEPT_ALL:
                continue

            validator = _LOCAL_VALIDATORS.get(charset)
            if validator is not None:
                results[index] = field.with_value(_apply(validator, field.value))
                continue

            pending.setdefault(charset, []).append(index)

        if pending:
            self._convert_on_server(results, pending)

        return results

    def _convert_on_server(self, results: list[SanitizedField], pending: dict[str, list[int]]) -> None:
        if self._driver is None:
            raise SanitizationError(f"No local validator for charset(s) {sorted(pending)} and no driver")

        original = self._driver.charset
        current = original
        try:
            for charset, indexes in pending.items():
                if not _SAFE_CHARSET_NAME.fullmatch(charset):
                    raise SanitizationError(f"Refusing to convert to charset {charset!r}")

                selects = ", ".join(f"CONVERT( %s USING {charset} ) AS x_{n}" for n in range(len(indexes)))
                query = self._preparer.prepare(f"SELECT {selects}", [results[i].value for i in indexes])
                if query is None:
                    raise SanitizationError(f"Could not prepare {charset} conversion query")

                try:
                    if charset != current:
                        self._driver.set_charset(charset)
                        current = charset
                    result = self._run(query)
                except (ConnectionLostError, DatabaseUnavailableError):
                    # A dropped connection has no charset left to restore
                    current = original
                    raise
                except DriverError as e:
                    raise SanitizationError(f"Could not convert text to {charset}: {e}") from e

                if not result.rows:
                    raise SanitizationError(f"Conversion to {charset} returned no row")

                row = result.rows[0]
                for n, index in enumerate(indexes):
                    alias = f"x_{n}"
                    if alias not in row:
                        raise SanitizationError(f"Conversion to {charset} returned no value for {results[index].name}")
                    results[index] = results[index].with_value(row[alias])

                logger.debug("Converted %d value(s) to %s on the server", len(indexes), charset)
        finally:
            if original and current != original:
                self._driver.set_charset(original)
