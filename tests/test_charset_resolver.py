"""
Tests for table and column charset resolution.
"""

import pytest
from conftest import column_row

from query_cache.entities import StatementResult
from query_cache.errors import DriverError
from query_cache.services import CharsetResolver


@pytest.fixture
def resolver(driver):
    return CharsetResolver(driver)


def show_queries(driver):
    return [q for q in driver.executed if q.startswith("SHOW FULL COLUMNS")]


def test_binary_column_makes_table_binary(driver, resolver):
    """One utf8 text column plus one binary column resolves to binary."""
    driver.tables["files"] = [
        column_row("title", "text", "utf8_general_ci"),
        column_row("checksum", "binary(16)", None),
    ]
    assert resolver.table_charset("files") == "binary"
    assert resolver.column_charset("files", "title") == "binary"


@pytest.mark.parametrize("blob_type", ["blob", "tinyblob", "mediumblob", "longblob", "varbinary(255)"])
def test_blob_types_are_binary(driver, resolver, blob_type):
    driver.tables["t"] = [column_row("a", "varchar(20)", "utf8mb4_unicode_ci"), column_row("b", blob_type, None)]
    assert resolver.table_charset("t") == "binary"


@pytest.mark.parametrize(
    "collations, expected",
    [
        (["utf8mb4_unicode_ci"], "utf8mb4"),
        (["utf8mb4_unicode_ci", "utf8mb4_bin"], "utf8mb4"),
        (["utf8mb3_general_ci"], "utf8"),
        (["latin1_swedish_ci", "utf8mb4_unicode_ci"], "utf8mb4"),
        (["utf8_general_ci", "utf8mb4_unicode_ci"], "utf8"),
        (["utf8mb3_general_ci", "utf8mb4_unicode_ci", "latin1_swedish_ci"], "utf8"),
        (["utf8mb4_unicode_ci", "sjis_japanese_ci"], "ascii"),
        (["latin1_swedish_ci"], "latin1"),
    ],
)
def test_effective_table_charset(driver, resolver, collations, expected):
    driver.tables["t"] = [column_row(f"c{i}", "varchar(10)", c) for i, c in enumerate(collations)]
    assert resolver.table_charset("t") == expected


def test_table_without_string_columns(driver, resolver):
    driver.tables["counters"] = [column_row("id", "int(11)", None), column_row("hits", "bigint", None)]
    assert resolver.table_charset("counters") is None
    assert resolver.column_charset("counters", "hits") is None


def test_column_charset(driver, resolver):
    driver.tables["users"] = [
        column_row("id", "int(11)", None),
        column_row("name", "varchar(64)", "utf8mb4_unicode_ci"),
        column_row("legacy", "varchar(64)", "latin1_swedish_ci"),
    ]
    assert resolver.column_charset("users", "name") == "utf8mb4"
    assert resolver.column_charset("users", "legacy") == "latin1"
    assert resolver.column_charset("users", "id") is None
    assert resolver.column_charset("users", "missing") == "utf8mb4"


def test_metadata_memoized_per_table(driver, resolver):
    driver.tables["users"] = [column_row("name", "varchar(64)", "utf8mb4_unicode_ci")]
    resolver.column_charset("users", "name")
    resolver.column_charset("USERS", "NAME")
    resolver.table_charset("users")
    assert len(show_queries(driver)) == 1


def test_invalidate_rereads_schema(driver, resolver):
    driver.tables["users"] = [column_row("name", "varchar(64)", "latin1_swedish_ci")]
    assert resolver.table_charset("users") == "latin1"

    driver.tables["users"] = [column_row("name", "varchar(64)", "utf8mb4_unicode_ci")]
    assert resolver.table_charset("users") == "latin1"

    resolver.invalidate("users")
    assert resolver.table_charset("users") == "utf8mb4"
    assert len(show_queries(driver)) == 2


def test_invalidate_all(driver, resolver):
    driver.tables["a"] = [column_row("x", "text", "utf8_general_ci")]
    driver.tables["b"] = [column_row("y", "text", "utf8_general_ci")]
    resolver.table_charset("a")
    resolver.table_charset("b")
    resolver.invalidate()
    resolver.table_charset("a")
    assert len(show_queries(driver)) == 3


def test_table_name_is_quoted(driver, resolver):
    resolver.table_charset("odd`name")
    assert show_queries(driver) == ["SHOW FULL COLUMNS FROM `odd``name`"]


def test_columns_exposes_metadata(driver, resolver):
    driver.tables["users"] = [column_row("name", "varchar(64)", "utf8mb4_unicode_ci")]
    (info,) = resolver.columns("users")
    assert info.column == "name"
    assert info.charset == "utf8mb4"
    assert info.collation == "utf8mb4_unicode_ci"
    assert info.base_type == "varchar"


def test_metadata_failure_propagates(driver, resolver):
    driver.failures.append(DriverError("Table 'db.nope' doesn't exist"))
    with pytest.raises(DriverError):
        resolver.table_charset("nope")


def test_metadata_goes_through_runner(driver):
    seen = []

    def run(query):
        seen.append(query)
        return StatementResult(rows=[column_row("name", "text", "utf8mb4_unicode_ci")])

    assert CharsetResolver(driver, run=run).table_charset("users") == "utf8mb4"
    assert seen == ["SHOW FULL COLUMNS FROM `users`"]
    assert driver.executed == []
