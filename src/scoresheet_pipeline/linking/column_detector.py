"""Detection of the header row, name column and score columns of a destination table."""

import logging
import re
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from scoresheet_pipeline.destination.schemas import DestinationRow, UsedRange, cell_text
from scoresheet_pipeline.exceptions import DestinationError
from scoresheet_pipeline.extraction.schemas import FieldType, ScoreKind
from scoresheet_pipeline.extraction.vocabulary import classify_header, find_header_terms

logger = logging.getLogger(__name__)

HEADER_SCAN_ROWS = 20
CONTENT_SAMPLE_ROWS = 50
MIN_NAME_CONTENT_SCORE = 0.3

_NUMERIC = re.compile(r"^[\d\s.,/]+$")


class DestinationStructure(BaseModel):
    """Where names and scores live in the destination; column indices are relative to the used range."""

    model_config = ConfigDict(frozen=True)

    header_row_index: Optional[int] = None
    name_column: int
    score_columns: Dict[ScoreKind, int] = Field(default_factory=dict)
    data_rows: List[DestinationRow] = Field(default_factory=list)


def _find_header_row(values: List[List]) -> Optional[int]:
    for index, row in enumerate(values[:HEADER_SCAN_ROWS]):
        for value in row:
            match = classify_header(cell_text(value))
            if match is not None and match.field_type in (FieldType.NAME, FieldType.SEQUENCE_NUMBER):
                return index
    return None


def _name_column_from_header(header: List) -> Optional[int]:
    texts = [cell_text(value) for value in header]
    for index, text in enumerate(texts):
        match = classify_header(text)
        if match is not None and match.field_type == FieldType.NAME:
            return index
    for index, text in enumerate(texts):
        if any(term.field_type == FieldType.NAME for term in find_header_terms(text)):
            return index
    return None


def _name_content_score(texts: List[str]) -> float:
    filled = [text for text in texts if text]
    if not filled:
        return 0.0
    total = 0.0
    for text in filled:
        if _NUMERIC.match(text):
            continue
        letters = sum(1 for ch in text if ch.isalpha())
        if letters < 2:
            continue
        total += 0.7 if len(text.split()) >= 2 else 0.4
        if letters / len(text.replace(" ", "")) > 0.8:
            total += 0.3
    return total / len(filled)


def _name_column_from_content(rows: List[DestinationRow]) -> Optional[int]:
    sample = rows[:CONTENT_SAMPLE_ROWS]
    width = max((len(row.cells) for row in sample), default=0)
    scores = {column: _name_content_score([row.text(column) for row in sample]) for column in range(width)}
    if not scores:
        return None
    column = max(scores, key=scores.get)
    return column if scores[column] >= MIN_NAME_CONTENT_SCORE else None


def _score_columns(header: List) -> Dict[ScoreKind, int]:
    columns: Dict[ScoreKind, int] = {}
    for index, value in enumerate(header):
        match = classify_header(cell_text(value))
        if match is not None and match.kind is not None and match.kind not in columns:
            columns[match.kind] = index
    return columns


def detect_structure(used_range: UsedRange, name_column: Optional[int] = None) -> DestinationStructure:
    """Locates the header row, the name column and the score columns.

    Args:
        used_range: Snapshot of the destination's used range.
        name_column: Forces the name column instead of detecting it.

    Returns:
        DestinationStructure: Header position, columns and the data rows below the header.

    Raises:
        DestinationError: If no name column can be identified.
    """
    values = used_range.values
    header_index = _find_header_row(values)
    header = values[header_index] if header_index is not None else []
    data_rows = used_range.rows(start=header_index + 1 if header_index is not None else 0)

    if name_column is None:
        name_column = _name_column_from_header(header)
    if name_column is None:
        name_column = _name_column_from_content(data_rows)
    if name_column is None:
        raise DestinationError("Could not identify the name column of the destination table.")

    structure = DestinationStructure(
        header_row_index=used_range.row_offset + header_index if header_index is not None else None,
        name_column=name_column,
        score_columns=_score_columns(header),
        data_rows=data_rows,
    )
    logger.info(
        f"Destination header row {structure.header_row_index}, name column {name_column}, "
        f"score columns {[kind.value for kind in structure.score_columns]}"
    )
    return structure
