"""
Shared fixtures for the query cache tests.
"""

from collections.abc import Callable

import pytest

from query_cache.config import Settings
from query_cache.entities import StatementResult
from query_cache.models import CacheEntry, ColumnMeta
from query_cache.repositories import DiskCacheRepository


class FakeClock:
    """Simulated clock that only moves when told to."""

    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeDriver:
    """In-memory stand-in for a MySQL driver."""

    def __init__(self, charset: str | None = "utf8mb4") -> None:
        self._charset = charset
        self.executed: list[str] = []
        self.results: dict[str, StatementResult] = {}
        self.default = StatementResult()
        self.handler: Callable[[str], StatementResult] | None = None
        self.failures: list[Exception] = []
        self.tables: dict[str, list[dict]] = {}
        self.columns = [ColumnMeta(name="id", table="users", sql_type="int", nullable=False, max_length=11)]
        self.describe_calls = 0
        self.charset_changes: list[str] = []
        self.reconnects = 0

    @property
    def charset(self) -> str | None:
        return self._charset

    def escape(self, value: str | bytes) -> str:
        if isinstance(value, bytes):
            value = value.decode("utf-8", "surrogateescape")
        return value.replace("\\", "\\\\").replace("'", "\\'")

    def execute(self, query: str) -> StatementResult:
        self.executed.append(query)
        if self.failures:
            raise self.failures.pop(0)
        if query.startswith("SHOW FULL COLUMNS FROM"):
            table = query.split("`")[1]
            return StatementResult(rows=list(self.tables.get(table, [])))
        if self.handler is not None:
            return self.handler(query)
        return self.results.get(query, self.default)

    def describe_columns(self) -> list[ColumnMeta]:
        self.describe_calls += 1
        return list(self.columns)

    def set_charset(self, charset: str, collate: str | None = None) -> None:
        self.charset_changes.append(charset)
        self._charset = charset

    def reconnect(self) -> bool:
        self.reconnects += 1
        return True


def column_row(field: str, sql_type: str, collation: str | None) -> dict:
    """A row as returned by SHOW FULL COLUMNS."""
    return {"Field": field, "Type": sql_type, "Collation": collation, "Null": "YES", "Key": ""}


@pytest.fixture
def clock():
    """Create a simulated clock."""
    return FakeClock()


@pytest.fixture
def driver():
    """Create a fake driver."""
    return FakeDriver()


@pytest.fixture
def cache_dir(tmp_path):
    """Create an empty cache directory."""
    path = tmp_path / "cache"
    path.mkdir()
    return path


@pytest.fixture
def disk_store(cache_dir, clock):
    """Create a disk store on the temp directory."""
    return DiskCacheRepository(cache_dir, default_ttl=60, show_errors=True, clock=clock)


@pytest.fixture
def cache_settings(cache_dir):
    """Settings with the disk cache enabled."""
    return Settings(
        use_cache=True,
        cache_backend="disk",
        cache_dir=str(cache_dir),
        cache_timeout=3600,
        cache_inserts=False,
        cache_prefix="",
        sanitize_text=True,
        field_types_spec="",
        reconnect_retries=3,
        reconnect_backoff=0.5,
    )


@pytest.fixture
def entry(clock):
    """A small cached result."""
    return CacheEntry(
        columns=[ColumnMeta(name="id", table="users", sql_type="int"), ColumnMeta(name="name", table="users")],
        rows=[{"id": 1, "name": "Ana"}, {"id": 2, "name": "Zoë"}, {"id": 3, "name": "Bo"}],
        row_count=3,
        return_value=3,
        expires_at=clock() + 60,
    )
