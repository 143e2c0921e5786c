"""Canonical court number parser: string and list inputs must both produce sorted ints."""
from app.utils.courts import court_label, parse_court_numbers


def test_parse_court_numbers_string_comma_separated():
    """'1,5,6' parses to [1, 5, 6] (no list('1,5,6') corruption)."""
    assert parse_court_numbers("1,5,6") == [1, 5, 6]


def test_parse_court_numbers_list_mixed_types():
    """['1', 5, ' 6 '] coerces to ints."""
    assert parse_court_numbers(["1", 5, " 6 "]) == [1, 5, 6]


def test_parse_court_numbers_none_or_empty():
    """None or '' -> []."""
    assert parse_court_numbers(None) == []
    assert parse_court_numbers("") == []
    assert parse_court_numbers("   ") == []


def test_parse_court_numbers_sorted_and_unique():
    assert parse_court_numbers("8, 3, 8") == [3, 8]


def test_parse_court_numbers_drops_junk_and_non_positive():
    assert parse_court_numbers(["a", "0", "-2", "", "4"]) == [4]


def test_parse_court_numbers_single_int():
    assert parse_court_numbers(7) == [7]


def test_court_label():
    assert court_label(3) == "Court 3"
