"""sprintf-style query templating with escaping."""

import logging
import re
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)

_DIRECTIVE = re.compile(r"%(.?)", re.DOTALL)


def add_slashes(value: str | bytes) -> str:
    """Fallback escaping when no driver connection is available.

    Backslash-escapes quotes, backslashes and NUL bytes.
    """
    if isinstance(value, bytes):
        value = value.decode("utf-8", "surrogateescape")
    return value.replace("\\", "\\\\").replace("'", "\\'").replace('"', '\\"').replace("\x00", "\\0")


class QueryPreparer:
    """Render ``%d`` / ``%f`` / ``%s`` placeholders into safe SQL.

    Only these three directives and ``%%`` are understood. There is no
    support for width, precision, padding or argument numbering. ``%s``
    values are escaped and single-quoted by the preparer, so templates
    must leave them unquoted; accidentally quoted ``'%s'`` and ``"%s"``
    are unquoted first.

    Example:
        ```python
        preparer = QueryPreparer(driver.escape)
        preparer.prepare("SELECT * FROM `t` WHERE `c` = %s AND `id` = %d", "foo", 1337)
        preparer.prepare("SELECT DATE_FORMAT(`d`, '%%c') FROM `t` WHERE `c` = %s", ["foo"])
        ```
    """

    def __init__(self, escape: Callable[[str | bytes], str] | None = None) -> None:
        """Initialize the preparer.

        Args:
            escape: The driver's real-escape primitive. Defaults to add_slashes.
        """
        self._escape = escape or add_slashes

    def prepare(self, query: str | None, *args: Any) -> str | None:
        """Substitute arguments into a query template.

        Arguments may be passed individually or as a single list/tuple.

        Args:
            query: Template with placeholders, or None
            *args: One value per placeholder

        Returns:
            The prepared query, or None if there was no query, a directive
            is not supported, the argument count does not match or an
            argument cannot be rendered in its format
        """
        if query is None:
            return None

        if len(args) == 1 and isinstance(args[0], (list, tuple)):
            args = tuple(args[0])

        query = query.replace("'%s'", "%s").replace('"%s"', "%s")

        parts: list[str] = []
        consumed = 0
        pos = 0
        for match in _DIRECTIVE.finditer(query):
            parts.append(query[pos : match.start()])
            pos = match.end()

            directive = match.group(1)
            if directive == "%":
                parts.append("%")
                continue
            if directive not in ("d", "f", "s"):
                logger.debug("Unsupported placeholder %r in query template", match.group(0))
                return None
            if consumed >= len(args):
                logger.debug("Too few arguments for query template")
                return None

            try:
                parts.append(self._render(directive, args[consumed]))
            except (TypeError, ValueError, OverflowError) as e:
                logger.debug("Cannot render argument %d as %%%s: %s", consumed, directive, e)
                return None
            consumed += 1

        if consumed != len(args):
            logger.debug("Too many arguments for query template")
            return None

        parts.append(query[pos:])
        return "".join(parts)

    def _render(self, directive: str, value: Any) -> str:
        if directive == "d":
            return str(int(value if value is not None else 0))
        if directive == "f":
            # Always a dot as decimal separator, six digits like C's %F
            return f"{float(value if value is not None else 0.0):f}"
        if value is None:
            value = ""
        if isinstance(value, (str, bytes)):
            value = self._escape(value)
        return f"'{value}'"
