"""Writes linked records' scores into the destination table."""

import logging
from typing import List, Sequence

from pydantic import BaseModel, Field

from scoresheet_pipeline.destination.schemas import DestinationTable, UsedRange
from scoresheet_pipeline.extraction.schemas import PersonRecord
from scoresheet_pipeline.extraction.value_normalizer import format_score
from scoresheet_pipeline.linking.column_detector import DestinationStructure
from scoresheet_pipeline.linking.record_linker import LinkingReport

logger = logging.getLogger(__name__)


class InsertionReport(BaseModel):
    written: int = 0
    not_found: int = 0
    not_found_names: List[str] = Field(default_factory=list)
    skipped_kinds: List[str] = Field(default_factory=list)


class ScoreWriter:
    """Writes scores of linked records into their detected score columns."""

    def __init__(self, destination: DestinationTable):
        self.destination = destination

    def write(
        self,
        records: Sequence[PersonRecord],
        linking: LinkingReport,
        structure: DestinationStructure,
        used_range: UsedRange,
    ) -> InsertionReport:
        """Writes every present score of every linked record.

        Values are written as numbers rounded to their two-decimal form. Kinds without a destination
        column are reported, not written.
        """
        report = InsertionReport(not_found=len(linking.not_found), not_found_names=list(linking.not_found))
        rows = {match.name: match.row_index for match in linking.matches}

        for record in records:
            row_index = rows.get(record.name)
            if row_index is None:
                continue
            for kind, value in record.present_scores().items():
                column = structure.score_columns.get(kind)
                if column is None:
                    if kind.value not in report.skipped_kinds:
                        report.skipped_kinds.append(kind.value)
                    continue
                self.destination.set_cell(row_index, used_range.col_offset + column, float(format_score(value)))
                report.written += 1

        if report.skipped_kinds:
            logger.warning(f"No destination column for score kinds: {', '.join(report.skipped_kinds)}")
        logger.info(f"Wrote {report.written} scores; {report.not_found} names not found")
        return report
