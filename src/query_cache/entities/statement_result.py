"""Statement result domain entity."""

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class StatementResult:
    """What the database driver hands back for one executed statement.

    Attributes:
        rows: Result rows keyed by column name (empty for non-SELECT statements)
        rows_affected: Rows touched by a data-changing statement
        insert_id: Auto-generated id of the last inserted row, 0 if none
    """

    rows: list[dict[str, Any]] = field(default_factory=list)
    rows_affected: int = 0
    insert_id: int = 0
