"""
Tests for display formatting helpers.
"""

import pytest

from realsingles.api.services.formatting import (
    capitalize,
    capitalize_name,
    capitalize_words,
    format_option_value,
)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("  mary-jane   o'brien ", "Mary-Jane O'Brien"),
        ("ludwig VAN beethoven iii", "Ludwig van Beethoven III"),
        ("MCDONALD", "McDonald"),
        ("", ""),
        (None, ""),
    ],
)
def test_capitalize_name(raw, expected):
    assert capitalize_name(raw) == expected


def test_leading_particle_is_capitalized():
    assert capitalize_name("de la cruz") == "De la Cruz"


def test_capitalize_and_words():
    assert capitalize("hELLO") == "Hello"
    assert capitalize_words("  new   york city ") == "New York City"


def test_format_option_value():
    assert format_option_value("long_term_open") == "Long Term Open"
    assert format_option_value("prefer_not_to_say") == ""
    assert format_option_value(None) == ""
