"""
Display formatting for names and stored option values.
"""

import re
from typing import Optional

HIDDEN_VALUES = {"prefer_not_to_say"}

# Lowercase particles kept lowercase unless they start the name
NAME_PARTICLES = {"de", "van", "von", "da", "del", "la", "le"}
ROMAN_SUFFIXES = {"ii", "iii", "iv"}

_WHITESPACE = re.compile(r"\s+")


def capitalize(value: Optional[str]) -> str:
    """First character upper case, the rest lower case."""
    if not value:
        return ""
    return value[0].upper() + value[1:].lower()


def capitalize_words(value: Optional[str]) -> str:
    """Capitalize every whitespace-separated word, collapsing runs of spaces."""
    if not value:
        return ""
    return " ".join(capitalize(word) for word in _WHITESPACE.split(value.strip()) if word)


def _capitalize_segment(segment: str) -> str:
    lowered = segment.lower()
    if lowered in ROMAN_SUFFIXES:
        return lowered.upper()
    if lowered.startswith("mc") and len(lowered) > 2:
        return "Mc" + capitalize(lowered[2:])
    return capitalize(lowered)


def _capitalize_name_word(word: str) -> str:
    # o'brien -> O'Brien, mary-jane -> Mary-Jane
    parts = re.split(r"([-'])", word)
    return "".join(part if part in ("-", "'") else _capitalize_segment(part) for part in parts)


def capitalize_name(value: Optional[str]) -> str:
    """
    Normalize a person's name for display.

    Examples:
        >>> capitalize_name("  mary-jane   o'brien ")
        "Mary-Jane O'Brien"
        >>> capitalize_name("ludwig VAN beethoven iii")
        'Ludwig van Beethoven III'
    """
    if not value:
        return ""

    words = [w for w in _WHITESPACE.split(value.strip()) if w]
    formatted = []
    for index, word in enumerate(words):
        if index > 0 and word.lower() in NAME_PARTICLES:
            formatted.append(word.lower())
        else:
            formatted.append(_capitalize_name_word(word))
    return " ".join(formatted)


def format_option_value(value: Optional[str]) -> str:
    """Turn a stored option like `long_term_open` into `Long Term Open`."""
    if not value or value in HIDDEN_VALUES:
        return ""
    return " ".join(capitalize(part) for part in value.split("_") if part)
