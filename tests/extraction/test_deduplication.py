from scoresheet_pipeline.extraction.deduplication import fill_sequence_numbers, remove_duplicates
from scoresheet_pipeline.extraction.schemas import PersonRecord, ScoreKind


def record(name, seq=None, **scores):
    return PersonRecord(name=name, sequence_number=seq, scores={ScoreKind(k): v for k, v in scores.items()})


def test_exact_normalized_duplicates_merge_keeping_first_values():
    first = record("Jane Doe", 1, score1=12.0, score2=None)
    second = record("JANE  DOE", None, score1=9.0, score2=14.0)
    second.flag("score2")

    kept = remove_duplicates([first, second])

    assert kept == [first]
    assert first.scores == {ScoreKind.SCORE1: 12.0, ScoreKind.SCORE2: 14.0}
    assert first.is_uncertain("score2")
    assert first.sequence_number == 1


def test_near_identical_names_merge_and_keep_longer_spelling():
    kept = remove_duplicates([record("Mohamed Alaoui", score1=11.0), record("Mohamed Alaouii", score2=13.0)])
    assert len(kept) == 1
    assert kept[0].name == "Mohamed Alaouii"
    assert kept[0].present_scores() == {ScoreKind.SCORE1: 11.0, ScoreKind.SCORE2: 13.0}


def test_similar_names_with_conflicting_scores_stay_separate():
    kept = remove_duplicates([record("Salma Bennani", score1=12.0), record("Selma Bennani", score1=17.0)], 0.9)
    assert [(r.name, r.scores[ScoreKind.SCORE1]) for r in kept] == [("Salma Bennani", 12.0), ("Selma Bennani", 17.0)]


def test_different_token_counts_do_not_merge():
    kept = remove_duplicates([record("Sara Ali", score1=10.0), record("Sara Ali Ben", score1=12.0)])
    assert [r.name for r in kept] == ["Sara Ali", "Sara Ali Ben"]


def test_distinct_people_keep_order():
    records = [record("John Roe"), record("Jane Doe"), record("Amal K")]
    assert [r.name for r in remove_duplicates(records)] == ["John Roe", "Jane Doe", "Amal K"]


def test_fill_sequence_numbers_uses_position():
    records = [record("A1 Test", 4), record("Beta Test"), record("Gamma Test")]
    fill_sequence_numbers(records)
    assert [r.sequence_number for r in records] == [4, 2, 3]
