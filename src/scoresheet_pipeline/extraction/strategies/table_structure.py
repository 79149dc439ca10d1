"""Extraction driven by reconstructed table geometry."""

import logging
import re
import statistics
from typing import Dict, List, Optional

from scoresheet_pipeline.exceptions import NoStructureFound
from scoresheet_pipeline.extraction.layout import assign_column, join_row_text
from scoresheet_pipeline.extraction.names import clean_name, is_valid_name
from scoresheet_pipeline.extraction.schemas import (
    ExtractionResult,
    FieldType,
    PersonRecord,
    TableColumn,
    TableLayout,
)
from scoresheet_pipeline.extraction.strategies.base import ExtractionStrategy
from scoresheet_pipeline.extraction.value_normalizer import parse_score, translate_digits
from scoresheet_pipeline.recognition.schemas import RecognitionResult, TextFragment

logger = logging.getLogger(__name__)

_DIGITS = re.compile(r"\d+")


class TableStructureStrategy(ExtractionStrategy):
    """Builds one record per data row from the fragments under the name and score columns."""

    name = "table_structure"

    def extract(self, recognition: RecognitionResult) -> ExtractionResult:
        try:
            layout = self.reconstructor.reconstruct(recognition.fragments)
        except NoStructureFound as e:
            logger.warning(f"Table structure unavailable: {e.message}")
            return self.empty(f"No table structure found: {e.message}")
        return self.extract_layout(layout)

    def extract_layout(self, layout: TableLayout) -> ExtractionResult:
        """Reads records from an already reconstructed layout.

        Confidence is the mean confidence of every fragment that contributed to a record.
        """
        name_column = self._first_column(layout.columns, FieldType.NAME)
        if name_column is None:
            return self.empty("Header row has no name column")
        sequence_column = self._first_column(layout.columns, FieldType.SEQUENCE_NUMBER)
        score_columns = [c for c in layout.columns if c.field_type == FieldType.SCORE]

        records: List[PersonRecord] = []
        consumed: List[TextFragment] = []
        skipped = 0

        for row in layout.data_rows:
            if not self.is_data_line(join_row_text(row)):
                continue

            cells = self._cells(row, layout.columns)
            name_fragments = cells.get(name_column, [])
            name = clean_name(join_row_text(name_fragments))
            if not name or not is_valid_name(name):
                skipped += 1
                continue

            record = PersonRecord(name=name)
            used = list(name_fragments)
            if self._low_confidence(name_fragments):
                record.flag("name")

            if sequence_column is not None:
                sequence_fragments = cells.get(sequence_column, [])
                record.sequence_number = self._parse_sequence(sequence_fragments)
                used.extend(sequence_fragments)

            for column in score_columns:
                fragments = cells.get(column, [])
                value = None
                if fragments:
                    raw = " ".join(f.text for f in fragments)
                    value = parse_score(raw, self.config.score_min, self.config.score_max)
                    if value is None:
                        logger.debug(f"Unparsable {column.kind.value} value '{raw}' for {name}")
                    if value is None or self._low_confidence(fragments):
                        record.flag(column.kind.value)
                    used.extend(fragments)
                record.scores[column.kind] = value

            records.append(record)
            consumed.extend(used)

        warnings = []
        if skipped:
            warnings.append(f"{skipped} data rows had no readable name and were skipped")
        if not records:
            return ExtractionResult(strategy=self.name, warnings=warnings or ["Table has no readable data rows"])

        confidence = statistics.mean(f.confidence for f in consumed)
        logger.info(f"Table strategy read {len(records)} records (confidence {confidence:.2f})")
        return ExtractionResult(
            strategy=self.name,
            records=records,
            detected_kinds=self.used_kinds(records, layout.score_kinds),
            confidence=confidence,
            warnings=warnings,
        )

    @staticmethod
    def _first_column(columns: List[TableColumn], field_type: FieldType) -> Optional[TableColumn]:
        return next((c for c in columns if c.field_type == field_type), None)

    @staticmethod
    def _cells(row: List[TextFragment], columns: List[TableColumn]) -> Dict[TableColumn, List[TextFragment]]:
        """Fragments of a row keyed by the column they fall in."""
        cells: Dict[TableColumn, List[TextFragment]] = {}
        for fragment in row:
            column = assign_column(fragment, columns)
            if column is None or column.field_type == FieldType.UNKNOWN:
                continue
            cells.setdefault(column, []).append(fragment)
        return cells

    def _low_confidence(self, fragments: List[TextFragment]) -> bool:
        return any(f.confidence < self.config.low_fragment_confidence for f in fragments)

    @staticmethod
    def _parse_sequence(fragments: List[TextFragment]) -> Optional[int]:
        match = _DIGITS.search(translate_digits(" ".join(f.text for f in fragments)))
        return int(match.group(0)) if match else None
