"""Helpers for cleaning and recognising person names in recognized text."""

import re

from scoresheet_pipeline.linking.text_normalizer import normalize_text

_LEADING_NOISE = re.compile(r"^[\s\d٠-٩۰-۹.,:;؛\-)(#]+")
_TRAILING_SEPARATORS = re.compile(r"[\s:;؛,،.\-|]+$")
_WHITESPACE = re.compile(r"\s+")

# Combining marks: Latin accents in decomposed form and Arabic short vowels
_MARKS = "\u0300-\u036f\u064b-\u065f\u0670"

# A contiguous run of letters, allowing combining marks, inner spaces, apostrophes and hyphens.
NAME_RUN = re.compile(rf"[^\W\d_](?:[^\W\d_]|[{_MARKS} '\-])*(?:[^\W\d_]|[{_MARKS}])")


def clean_name(text: str) -> str:
    """Strips trailing separators and leading digits, and collapses whitespace."""
    cleaned = _LEADING_NOISE.sub("", text or "")
    cleaned = _TRAILING_SEPARATORS.sub("", cleaned)
    return _WHITESPACE.sub(" ", cleaned).strip()


def is_valid_name(text: str) -> bool:
    """True when the text holds at least one token of two or more letters."""
    for token in normalize_text(text).split():
        if sum(1 for ch in token if ch.isalpha()) >= 2:
            return True
    return False


def find_name_run(line: str) -> str:
    """Returns the longest run of name-script characters in a line, or an empty string."""
    runs = [match.group(0).strip() for match in NAME_RUN.finditer(line)]
    if not runs:
        return ""
    return max(runs, key=len)
