import pytest

from scoresheet_pipeline.destination.schemas import DestinationRow
from scoresheet_pipeline.extraction.schemas import PersonRecord
from scoresheet_pipeline.linking.record_linker import FuzzyRecordLinker, MatchStep, looks_like_name_part


def rows_of(*cells_per_row, offset=0):
    return [DestinationRow(row_index=offset + i, cells=tuple(cells)) for i, cells in enumerate(cells_per_row)]


@pytest.fixture
def linker():
    return FuzzyRecordLinker()


@pytest.fixture
def class_rows():
    return rows_of(
        ["1", "Jane Doe", None],
        ["2", "Ben Ali Ahmed", None],
        ["3", "Yousra El Amrani", None],
        ["4", "محمد أمين", None],
        offset=5,
    )


def test_exact_match_after_normalization(linker, class_rows):
    match = linker.match("  JANE doe ", class_rows, 1)
    assert match.row_index == 5
    assert match.step == MatchStep.EXACT


def test_exact_match_wins_over_earlier_token_set_match(linker):
    rows = rows_of(["Doe Jane"], ["Jane Doe"])
    assert linker.match("Jane Doe", rows, 0).row_index == 1


def test_reordered_tokens_match(linker, class_rows):
    match = linker.match("Ahmed Ben Ali", class_rows, 1)
    assert (match.row_index, match.step) == (6, MatchStep.TOKEN_SET)


def test_particles_are_ignored_in_token_match(linker, class_rows):
    match = linker.match("Amrani Yousra", class_rows, 1)
    assert (match.row_index, match.step) == (7, MatchStep.TOKEN_SET)


def test_spelling_variant_matches_by_edit_distance(linker, class_rows):
    match = linker.match("Ahmad Ben Aly", class_rows, 1)
    assert match.row_index == 6
    assert match.step == MatchStep.EDIT_DISTANCE
    assert match.score == pytest.approx(11 / 13)


def test_arabic_letter_variants_match_exactly(linker, class_rows):
    match = linker.match("محمد امين", class_rows, 1)
    assert (match.row_index, match.step) == (8, MatchStep.EXACT)


def test_short_names_need_a_stricter_threshold(linker):
    rows = rows_of(["Sami"], ["Rami Kadiri"])
    assert linker.find_row("Sama", rows, 0) is None


def test_unknown_name_is_not_found(linker, class_rows):
    assert linker.find_row("Omar Khayyam", class_rows, 1) is None


def test_partial_short_name_does_not_match_full_name(linker):
    rows = rows_of(["Ali"], ["Jane Doe"])
    assert linker.find_row("Ahmed Ben Ali", rows, 0) is None


def test_name_split_across_columns_is_joined(linker):
    rows = rows_of(["1", "El Amrani", "Yousra", "14"])
    assert FuzzyRecordLinker.row_name(rows[0], 1) == "El Amrani Yousra"
    assert linker.match("Yousra El Amrani", rows, 1).step == MatchStep.TOKEN_SET


def test_name_in_unexpected_column_found_by_row_scan(linker):
    rows = rows_of(["4", "Sara Idrissi", "", ""], ["5", "", "", "Karim Tazi"])
    match = linker.match("Karim Tazi", rows, 1)
    assert (match.row_index, match.step) == (1, MatchStep.ROW_SCAN)


def test_link_reports_assignments_and_missing_names(linker, class_rows):
    records = [PersonRecord(name="Jane Doe"), PersonRecord(name="Omar Khayyam")]

    report = linker.link(records, class_rows, 1)

    assert report.row_assignments == {"Jane Doe": 5}
    assert report.not_found == ["Omar Khayyam"]


@pytest.mark.parametrize(
    "text, expected",
    [("Yousra", True), ("14", False), ("12/05/2010", False), ("x", False), ("", False), ("a" * 41, False)],
)
def test_looks_like_name_part(text, expected):
    assert looks_like_name_part(text) is expected
