"""Name normalization shared by header matching, de-duplication and record linking."""

import re
import unicodedata

from rapidfuzz.distance import Levenshtein

from scoresheet_pipeline.extraction.value_normalizer import translate_digits

TATWEEL = "\u0640"
_INVISIBLE = re.compile("[\u200b-\u200f\u202a-\u202e\u2066-\u2069\ufeff\u00ad]")
_NON_WORD = re.compile(r"[^\w]+|_")
_WHITESPACE = re.compile(r"\s+")

# Glyph variants that stand for the same letter.
_LETTER_VARIANTS = str.maketrans(
    {
        "أ": "ا",
        "إ": "ا",
        "آ": "ا",
        "ٱ": "ا",
        "ة": "ه",
        "ى": "ي",
        "ؤ": "و",
        "ئ": "ي",
        "ی": "ي",
        "ک": "ك",
        "ڪ": "ك",
        "ۀ": "ه",
        "ہ": "ه",
        "ھ": "ه",
    }
)


def normalize_text(text: str) -> str:
    """Canonical comparison form of a name or label.

    Decomposes, strips diacritics and invisible marks, folds letter-shape variants and case,
    turns punctuation into spaces and collapses whitespace.
    """
    if not text:
        return ""
    text = _INVISIBLE.sub("", str(text)).replace(TATWEEL, "")
    text = text.translate(_LETTER_VARIANTS)
    text = unicodedata.normalize("NFKD", text)
    text = "".join(ch for ch in text if not unicodedata.combining(ch))
    # Decomposition can expose new variants, e.g. lam-alef ligatures
    text = text.translate(_LETTER_VARIANTS)
    text = translate_digits(text).casefold()
    text = _NON_WORD.sub(" ", text)
    return _WHITESPACE.sub(" ", text).strip()


def tokens(text: str) -> list[str]:
    return normalize_text(text).split()


def similarity(left: str, right: str) -> float:
    """Edit-distance similarity ``(maxLen - distance) / maxLen`` of two normalized strings."""
    if not left and not right:
        return 1.0
    return Levenshtein.normalized_similarity(left, right)


def is_arabic_letter(ch: str) -> bool:
    code = ord(ch)
    return ch.isalpha() and (
        0x0600 <= code <= 0x06FF or 0x0750 <= code <= 0x077F or 0xFB50 <= code <= 0xFDFF or 0xFE70 <= code <= 0xFEFF
    )


def arabic_letter_ratio(text: str) -> float:
    """Share of letters in ``text`` that are Arabic script."""
    letters = [ch for ch in text if ch.isalpha()]
    if not letters:
        return 0.0
    return sum(1 for ch in letters if is_arabic_letter(ch)) / len(letters)
