"""
Tests for cache key derivation and statement classification.
"""

import hashlib

import pytest

from query_cache.services import StatementKind, classify_statement, fingerprint


def test_fingerprint_hashes_prefix_and_query(disk_store):
    """Prefix "t_" and "SELECT 1" hash together, and nothing is cached yet."""
    key = fingerprint("SELECT 1", prefix="t_")
    assert key == hashlib.md5(b"t_SELECT 1").hexdigest()
    assert disk_store.get(key) is None


def test_fingerprint_is_lowercase_hex():
    key = fingerprint("SELECT * FROM `users`")
    assert len(key) == 32
    assert key == key.lower()
    int(key, 16)


def test_fingerprint_defaults_to_empty_prefix():
    assert fingerprint("SELECT 1") == hashlib.md5(b"SELECT 1").hexdigest()


def test_fingerprint_does_not_normalize():
    """Whitespace and case differences give different keys."""
    assert fingerprint("SELECT 1") != fingerprint("SELECT  1")
    assert fingerprint("SELECT 1") != fingerprint("select 1")


def test_fingerprint_prefix_separates_namespaces():
    assert fingerprint("SELECT 1", "app1_") != fingerprint("SELECT 1", "app2_")


@pytest.mark.parametrize(
    "query, kind",
    [
        ("SELECT * FROM t", StatementKind.READ),
        ("  show tables", StatementKind.READ),
        ("INSERT INTO t VALUES (1)", StatementKind.INSERT),
        ("replace into t values (1)", StatementKind.INSERT),
        ("UPDATE t SET a = 1", StatementKind.MUTATION),
        ("\n delete from t", StatementKind.MUTATION),
        ("CREATE TABLE t (a int)", StatementKind.DDL),
        ("drop table t", StatementKind.DDL),
        ("TRUNCATE t", StatementKind.DDL),
        ("ALTER TABLE t ADD b int", StatementKind.DDL),
        ("inserted_rows", StatementKind.READ),
    ],
)
def test_classify_statement(query, kind):
    assert classify_statement(query) is kind


def test_statement_kind_flags():
    assert StatementKind.INSERT.is_mutating
    assert StatementKind.MUTATION.is_mutating
    assert not StatementKind.READ.is_mutating
    assert not StatementKind.DDL.is_cache_candidate
    assert StatementKind.INSERT.is_cache_candidate
