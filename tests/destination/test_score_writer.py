from unittest.mock import Mock

from scoresheet_pipeline.destination.schemas import DestinationTable, UsedRange
from scoresheet_pipeline.destination.score_writer import ScoreWriter
from scoresheet_pipeline.extraction.schemas import PersonRecord, ScoreKind
from scoresheet_pipeline.linking.column_detector import DestinationStructure
from scoresheet_pipeline.linking.record_linker import LinkingReport, MatchStep, RowMatch


def test_writes_linked_scores_into_score_columns():
    destination = Mock(spec=DestinationTable)
    records = [
        PersonRecord(name="Jane Doe", scores={ScoreKind.SCORE1: 14.375, ScoreKind.SCORE2: None}),
        PersonRecord(name="John Roe", scores={ScoreKind.SCORE1: 7.0, ScoreKind.ACTIVITIES: 16.0}),
        PersonRecord(name="Omar Khayyam", scores={ScoreKind.SCORE1: 11.0}),
    ]
    linking = LinkingReport(
        matches=[
            RowMatch(name="Jane Doe", row_index=4, step=MatchStep.EXACT),
            RowMatch(name="John Roe", row_index=5, step=MatchStep.TOKEN_SET),
        ],
        not_found=["Omar Khayyam"],
    )
    structure = DestinationStructure(name_column=1, score_columns={ScoreKind.SCORE1: 2, ScoreKind.SCORE2: 3})
    used_range = UsedRange(values=[], row_offset=2, col_offset=1)

    report = ScoreWriter(destination).write(records, linking, structure, used_range)

    assert destination.set_cell.call_args_list == [((4, 3, 14.38),), ((5, 3, 7.0),)]
    assert report.written == 2
    assert report.not_found == 1
    assert report.not_found_names == ["Omar Khayyam"]
    assert report.skipped_kinds == ["activities"]
    destination.save.assert_not_called()
