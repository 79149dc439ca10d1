"""Header and summary keyword vocabulary for Arabic, French and English score sheets.

All matching happens on ``normalize_text`` output, so keywords are listed in any spelling and
normalized once at import.
"""

import re
from typing import Dict, List, NamedTuple, Optional, Tuple

from scoresheet_pipeline.extraction.schemas import FieldType, ScoreKind
from scoresheet_pipeline.linking.text_normalizer import normalize_text


class HeaderMatch(NamedTuple):
    field_type: FieldType
    kind: Optional[ScoreKind] = None


NAME_KEYWORDS = [
    "name",
    "full name",
    "student",
    "nom",
    "prénom",
    "nom et prénom",
    "nom complet",
    "élève",
    "الاسم",
    "الإسم",
    "اسم",
    "اسم التلميذ",
    "اسم التلميذة",
    "الاسم الكامل",
    "الاسم والنسب",
    "الاسم و النسب",
    "الإسم والنسب",
    "التلميذ",
]

SEQUENCE_KEYWORDS = [
    "seq",
    "no",
    "n°",
    "nº",
    "num",
    "numéro",
    "rang",
    "#",
    "رقم",
    "الرقم",
    "ر.ت",
    "ر ت",
    "ت.ر",
    "الرقم الترتيبي",
]

_SCORE_PREFIXES = [
    "score",
    "devoir",
    "dev",
    "test",
    "exam",
    "examen",
    "contrôle",
    "controle",
    "control",
    "fard",
    "فرض",
    "الفرض",
    "الفروض",
]

_ORDINALS: Dict[ScoreKind, List[str]] = {
    ScoreKind.SCORE1: ["1", "un", "premier", "première", "1er", "one", "first", "الأول", "الأولى", "الاول"],
    ScoreKind.SCORE2: ["2", "deux", "deuxième", "second", "two", "الثاني", "الثانية"],
    ScoreKind.SCORE3: ["3", "trois", "troisième", "three", "third", "الثالث", "الثالثة"],
    ScoreKind.SCORE4: ["4", "quatre", "quatrième", "four", "fourth", "الرابع", "الرابعة"],
}

ACTIVITY_KEYWORDS = [
    "activities",
    "activity",
    "activités",
    "activité",
    "contrôle continu",
    "cc",
    "الأنشطة",
    "النشاط",
    "الانشطة المندمجة",
    "المراقبة المستمرة",
]

SUMMARY_KEYWORDS = [
    "total",
    "sum",
    "average",
    "mean",
    "moyenne",
    "somme",
    "المجموع",
    "المعدل",
    "إجمالي",
    "الإجمالي",
    "المتوسط",
]


def _normalized(words: List[str]) -> List[str]:
    return sorted({normalize_text(word) for word in words if normalize_text(word)}, key=len, reverse=True)


def _alternation(words: List[str]) -> str:
    return "|".join(re.escape(word) for word in words)


def _build_terms() -> List[Tuple[re.Pattern, HeaderMatch]]:
    terms = [
        (re.compile(_alternation(_normalized(NAME_KEYWORDS))), HeaderMatch(FieldType.NAME)),
        (re.compile(_alternation(_normalized(SEQUENCE_KEYWORDS))), HeaderMatch(FieldType.SEQUENCE_NUMBER)),
        (re.compile(_alternation(_normalized(ACTIVITY_KEYWORDS))), HeaderMatch(FieldType.SCORE, ScoreKind.ACTIVITIES)),
    ]
    prefixes = _alternation(_normalized(_SCORE_PREFIXES))
    for kind, ordinals in _ORDINALS.items():
        pattern = rf"(?:{prefixes}) ?(?:n )?(?:{_alternation(_normalized(ordinals))})"
        terms.append((re.compile(pattern), HeaderMatch(FieldType.SCORE, kind)))
    return terms


_TERMS = _build_terms()
_SUMMARY = re.compile(rf"(?<!\w)(?:{_alternation(_normalized(SUMMARY_KEYWORDS))})(?!\w)")


def classify_header(text: str) -> Optional[HeaderMatch]:
    """Maps a header cell's text to the field it labels.

    The whole cell must be a keyword, or contain exactly one distinct keyword of at least three
    characters (e.g. ``"Name:"`` or ``"Score 1 /20"``).
    """
    normalized = normalize_text(text)
    if not normalized:
        return None
    for pattern, match in _TERMS:
        if pattern.fullmatch(normalized):
            return match
    found = set(find_header_terms(text))
    if len(found) == 1:
        return found.pop()
    return None


def find_header_terms(line: str) -> List[HeaderMatch]:
    """Returns the header keywords occurring as whole words in a line, in reading order."""
    normalized = normalize_text(line)
    hits = []
    for pattern, match in _TERMS:
        for found in re.finditer(rf"(?<!\w)(?:{pattern.pattern})(?!\w)", normalized):
            if len(found.group(0)) >= 3:
                hits.append((found.start(), match))
    return [match for _, match in sorted(hits, key=lambda hit: hit[0])]


def is_summary_line(text: str) -> bool:
    """True for total/average rows that must never become records."""
    return bool(_SUMMARY.search(normalize_text(text)))


def is_header_line(text: str, min_keywords: int = 2) -> bool:
    """True for a line that repeats the table header."""
    return len(set(find_header_terms(text))) >= min_keywords


def detect_score_kinds(lines: List[str], scan_lines: int = 15) -> List[ScoreKind]:
    """Score kinds announced by header lines near the top of the text, in declared order."""
    kinds = set()
    for line in lines[:scan_lines]:
        for match in find_header_terms(line):
            if match.kind is not None:
                kinds.add(match.kind)
    return [kind for kind in ScoreKind.ordered() if kind in kinds]
