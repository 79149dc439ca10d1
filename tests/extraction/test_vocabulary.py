import pytest

from scoresheet_pipeline.extraction.schemas import FieldType, ScoreKind
from scoresheet_pipeline.extraction.vocabulary import (
    HeaderMatch,
    classify_header,
    detect_score_kinds,
    find_header_terms,
    is_header_line,
    is_summary_line,
)


@pytest.mark.parametrize(
    "text, expected",
    [
        ("Name", HeaderMatch(FieldType.NAME)),
        ("Nom et prénom", HeaderMatch(FieldType.NAME)),
        ("الاسم", HeaderMatch(FieldType.NAME)),
        ("اسم التلميذ", HeaderMatch(FieldType.NAME)),
        ("Seq", HeaderMatch(FieldType.SEQUENCE_NUMBER)),
        ("N°", HeaderMatch(FieldType.SEQUENCE_NUMBER)),
        ("رقم", HeaderMatch(FieldType.SEQUENCE_NUMBER)),
        ("Score1", HeaderMatch(FieldType.SCORE, ScoreKind.SCORE1)),
        ("Score 2", HeaderMatch(FieldType.SCORE, ScoreKind.SCORE2)),
        ("الفرض 1", HeaderMatch(FieldType.SCORE, ScoreKind.SCORE1)),
        ("فرض الثاني", HeaderMatch(FieldType.SCORE, ScoreKind.SCORE2)),
        ("Devoir 3", HeaderMatch(FieldType.SCORE, ScoreKind.SCORE3)),
        ("Contrôle n°4", HeaderMatch(FieldType.SCORE, ScoreKind.SCORE4)),
        ("الأنشطة", HeaderMatch(FieldType.SCORE, ScoreKind.ACTIVITIES)),
        ("Activités", HeaderMatch(FieldType.SCORE, ScoreKind.ACTIVITIES)),
        ("Name:", HeaderMatch(FieldType.NAME)),
    ],
)
def test_classify_header(text, expected):
    assert classify_header(text) == expected


@pytest.mark.parametrize("text", ["Jane Doe", "14.50", "", "1", "Score 10"])
def test_classify_header_rejects_data(text):
    assert classify_header(text) is None


def test_find_header_terms_in_reading_order():
    terms = find_header_terms("Seq Name Score1 Score2")
    assert [t.field_type for t in terms] == [
        FieldType.SEQUENCE_NUMBER,
        FieldType.NAME,
        FieldType.SCORE,
        FieldType.SCORE,
    ]
    assert [t.kind for t in terms[2:]] == [ScoreKind.SCORE1, ScoreKind.SCORE2]


def test_is_header_line():
    assert is_header_line("Seq Name Score1 Score2")
    assert not is_header_line("1 Jane Doe 14.50 9.00")


@pytest.mark.parametrize("line", ["Total 45.5", "المجموع ٤٥", "Moyenne de la classe 11,2", "المعدل"])
def test_is_summary_line(line):
    assert is_summary_line(line)


def test_is_summary_line_ignores_names():
    assert not is_summary_line("Jane Doe 14.50")


def test_detect_score_kinds_uses_declared_order():
    lines = ["الرقم الاسم الأنشطة الفرض 2 الفرض 1", "1 محمد 12 14 15"]
    assert detect_score_kinds(lines) == [ScoreKind.SCORE1, ScoreKind.SCORE2, ScoreKind.ACTIVITIES]


def test_detect_score_kinds_without_headers():
    assert detect_score_kinds(["1 Jane Doe 12 13"]) == []
