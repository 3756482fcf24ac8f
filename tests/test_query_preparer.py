"""
Tests for placeholder substitution.
"""

import pytest

from query_cache.services import QueryPreparer, add_slashes


@pytest.fixture
def preparer():
    return QueryPreparer()


def test_mixed_placeholders(preparer):
    query = preparer.prepare("SELECT * FROM `t` WHERE `c` = %s AND `id` = %d", "foo", 1337)
    assert query == "SELECT * FROM `t` WHERE `c` = 'foo' AND `id` = 1337"


def test_single_sequence_argument_is_unpacked(preparer):
    assert preparer.prepare("SELECT %s, %d", ["a", 2]) == "SELECT 'a', 2"
    assert preparer.prepare("SELECT %s, %d", ("a", 2)) == "SELECT 'a', 2"


def test_literal_percent(preparer):
    query = preparer.prepare("SELECT DATE_FORMAT(`d`, '%%c') FROM `t` WHERE `c` = %s", ["foo"])
    assert query == "SELECT DATE_FORMAT(`d`, '%c') FROM `t` WHERE `c` = 'foo'"


@pytest.mark.parametrize("template", ["WHERE `c` = '%s'", 'WHERE `c` = "%s"', "WHERE `c` = %s"])
def test_quoted_placeholders_are_unquoted(preparer, template):
    assert preparer.prepare(template, "x") == "WHERE `c` = 'x'"


@pytest.mark.parametrize(
    "value, expected",
    [(1.5, "1.500000"), (2, "2.000000"), ("3.25", "3.250000"), (None, "0.000000"), (-0.1, "-0.100000")],
)
def test_float_rendering(preparer, value, expected):
    assert preparer.prepare("%f", value) == expected


@pytest.mark.parametrize("value, expected", [(7, "7"), ("12", "12"), (3.9, "3"), (None, "0"), (True, "1")])
def test_integer_rendering(preparer, value, expected):
    assert preparer.prepare("%d", value) == expected


def test_strings_are_escaped(preparer):
    assert preparer.prepare("%s", "O'Reilly \\ \"q\"") == "'O\\'Reilly \\\\ \\\"q\\\"'"
    assert preparer.prepare("%s", b"by'tes") == "'by\\'tes'"
    assert preparer.prepare("%s", None) == "''"


def test_non_text_string_argument_is_stringified(preparer):
    assert preparer.prepare("%s", 42) == "'42'"


def test_driver_escape_is_used():
    calls = []

    def escape(value):
        calls.append(value)
        return value.upper()

    assert QueryPreparer(escape).prepare("%s", "abc") == "'ABC'"
    assert calls == ["abc"]


@pytest.mark.parametrize(
    "template, args",
    [
        ("SELECT %s, %s", ("a",)),
        ("SELECT %s", ("a", "b")),
        ("SELECT 1", ("a",)),
        ("SELECT %x", ("a",)),
        ("SELECT %5d", (1,)),
        ("SELECT 100%", ()),
        ("SELECT %d", ("abc",)),
        ("SELECT %d", (float("inf"),)),
        ("SELECT %f", ("nope",)),
    ],
)
def test_invalid_input_returns_none(preparer, template, args):
    assert preparer.prepare(template, *args) is None


def test_no_query(preparer):
    assert preparer.prepare(None) is None


def test_query_without_placeholders(preparer):
    assert preparer.prepare("SELECT 1") == "SELECT 1"


def test_placeholder_text_inside_values_is_not_expanded(preparer):
    assert preparer.prepare("%s, %d", "%d", 5) == "'%d', 5"


def test_add_slashes():
    assert add_slashes("a'b\"c\\d\x00") == "a\\'b\\\"c\\\\d\\0"
