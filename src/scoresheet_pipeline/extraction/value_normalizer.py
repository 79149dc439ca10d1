"""Parsing of raw recognized tokens into bounded numeric scores."""

import math
import re
from typing import List, Optional, Union

from scoresheet_pipeline.config import settings

# Arabic-Indic and Extended Arabic-Indic digits, plus the Arabic decimal separator and comma.
DIGIT_TRANSLATION = str.maketrans(
    {
        **{chr(0x0660 + i): str(i) for i in range(10)},
        **{chr(0x06F0 + i): str(i) for i in range(10)},
        "٫": ".",
        "٬": ",",
        "،": ",",
    }
)

_FRACTION = re.compile(r"^(?P<numerator>[^/]*)/\s*(?P<denominator>\d+)\s*$")
_NOT_NUMERIC = re.compile(r"[^0-9.,]")
_HAS_DIGIT = re.compile(r"\d")
# Letter O misread for zero, only when it touches a digit
_LETTER_O = re.compile(r"(?<=\d)[oO]+|[oO]+(?=\d)")

# Tokens in running text that look like a score: 14, 14.5, 07,00, 15/20
SCORE_TOKEN = re.compile(r"(?<![\d.,])\d{1,5}(?:[.,]\d{1,2})?(?:\s*/\s*20)?(?![\d])")

# Shape corrections for separators misread as digits. Applied in order, first match wins.
_SHAPE_RULES = (
    # "07100" -> "07.00": the comma was read as a 1
    (re.compile(r"^(\d{2})100$"), lambda m: f"{m.group(1)}.00"),
    # "7100" -> "07.00"
    (re.compile(r"^(\d)100$"), lambda m: f"0{m.group(1)}.00"),
)
_THREE_DIGITS_THEN_ZEROS = re.compile(r"^(\d{2})\d00$")
_SEPARATOR_READ_AS_EIGHT = re.compile(r"^(\d{2})8\.(\d{2})$")


def translate_digits(text: str) -> str:
    """Maps alternate numeral systems and separators onto ASCII equivalents."""
    return text.translate(DIGIT_TRANSLATION)


def _apply_shape_rules(cleaned: str, maximum: float) -> str:
    for pattern, fix in _SHAPE_RULES:
        match = pattern.match(cleaned)
        if match:
            return fix(match)

    match = _THREE_DIGITS_THEN_ZEROS.match(cleaned)
    if match and cleaned != "10000" and int(match.group(1)) <= maximum:
        return f"{match.group(1)}.00"

    match = _SEPARATOR_READ_AS_EIGHT.match(cleaned)
    if match and float(cleaned) > maximum:
        return f"{match.group(1)}.{match.group(2)}"

    return cleaned


def parse_score(
    token: Union[str, int, float, None],
    minimum: float = settings.SCORE_MIN,
    maximum: float = settings.SCORE_MAX,
) -> Optional[float]:
    """Parses a raw token into a score rounded to two decimals.

    Never raises: anything unparsable or outside ``[minimum, maximum]`` yields ``None``.

    Args:
        token: Raw text from recognition, or an already numeric cell value.
        minimum: Lowest accepted score.
        maximum: Highest accepted score.

    Returns:
        Optional[float]: The score, or None.
    """
    if token is None or isinstance(token, bool):
        return None

    if isinstance(token, (int, float)):
        value = float(token)
    else:
        text = translate_digits(str(token))
        if not _HAS_DIGIT.search(text):
            return None
        text = _LETTER_O.sub(lambda m: "0" * len(m.group(0)), text)

        fraction = _FRACTION.match(text)
        if fraction:
            if int(fraction.group("denominator")) != int(maximum):
                return None
            text = fraction.group("numerator")

        cleaned = _NOT_NUMERIC.sub("", text).replace(",", ".")
        if not _HAS_DIGIT.search(cleaned):
            return None
        cleaned = _apply_shape_rules(cleaned, maximum)

        head, dot, tail = cleaned.partition(".")
        cleaned = head + dot + tail.replace(".", "")
        try:
            value = float(cleaned)
        except ValueError:
            return None

    if not math.isfinite(value) or value < minimum or value > maximum:
        return None
    return round(value, 2)


def format_score(value: float) -> str:
    """Renders a score in its two-decimal writeback form."""
    return f"{value:.2f}"


def find_score_tokens(text: str) -> List[str]:
    """Returns the score-looking tokens of a line in reading order."""
    return [match.group(0) for match in SCORE_TOKEN.finditer(translate_digits(text))]
