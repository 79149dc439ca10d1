import pytest

from scoresheet_pipeline.extraction.names import clean_name, find_name_run, is_valid_name


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("Jane Doe:", "Jane Doe"),
        ("12 Jane   Doe", "Jane Doe"),
        ("3. محمد أمين؛", "محمد أمين"),
        ("  Amal K - ", "Amal K"),
        ("", ""),
    ],
)
def test_clean_name(raw, expected):
    assert clean_name(raw) == expected


@pytest.mark.parametrize("text, expected", [("Jane Doe", True), ("محمد", True), ("K", False), ("12", False), ("", False)])
def test_is_valid_name(text, expected):
    assert is_valid_name(text) is expected


def test_find_name_run_takes_longest_letter_run():
    assert find_name_run("Jane Doe 14.50 9.00") == "Jane Doe"
    assert find_name_run("1 يوسف العمراني 12") == "يوسف العمراني"
    assert find_name_run("14.50 9.00") == ""


@pytest.mark.parametrize(
    "line, expected",
    [
        ("مُحَمَّد العلوي 12 14", "مُحَمَّد العلوي"),
        ("3 سُعَادُ 15", "سُعَادُ"),
        ("Hele\u0300ne Martin 11", "Hele\u0300ne Martin"),
    ],
)
def test_find_name_run_keeps_combining_marks(line, expected):
    assert find_name_run(line) == expected
