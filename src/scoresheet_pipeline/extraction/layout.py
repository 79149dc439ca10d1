"""Reconstruction of table rows and columns from positioned text fragments."""

import logging
from typing import List, Optional

from scoresheet_pipeline.exceptions import NoStructureFound
from scoresheet_pipeline.extraction.extraction_config import ExtractionConfig
from scoresheet_pipeline.extraction.schemas import FieldType, TableColumn, TableLayout
from scoresheet_pipeline.extraction.vocabulary import classify_header
from scoresheet_pipeline.linking.text_normalizer import arabic_letter_ratio
from scoresheet_pipeline.recognition.schemas import TextFragment

logger = logging.getLogger(__name__)


def is_right_to_left(fragments: List[TextFragment]) -> bool:
    """True when most letters across the fragments are Arabic script."""
    return arabic_letter_ratio(" ".join(f.text for f in fragments)) > 0.5


def join_row_text(row: List[TextFragment]) -> str:
    """Joins an already ordered row into a single line of text."""
    return " ".join(f.text.strip() for f in row if f.text.strip())


class LayoutReconstructor:
    """Groups fragments into visual rows, finds the header row and derives column spans."""

    def __init__(self, config: Optional[ExtractionConfig] = None):
        """Initializes the reconstructor.

        Args:
            config (ExtractionConfig, optional): Row tolerance, header scan window and span padding.
        """
        self.config = config or ExtractionConfig()

    def group_rows(self, fragments: List[TextFragment], right_to_left: bool = False) -> List[List[TextFragment]]:
        """Groups fragments into visual rows.

        Fragments are taken top to bottom; one joins the current row while its top edge is within
        the row tolerance of the running anchor, which follows the latest fragment added.

        Args:
            fragments: Fragments in any order.
            right_to_left: Order each row right-to-left instead of left-to-right.

        Returns:
            List[List[TextFragment]]: Rows top to bottom, each in reading order.
        """
        tolerance = self.config.row_y_tolerance
        rows: List[List[TextFragment]] = []
        current: List[TextFragment] = []
        anchor = 0.0

        for fragment in sorted(fragments, key=lambda f: (f.top, f.left)):
            if current and abs(fragment.top - anchor) <= tolerance:
                current.append(fragment)
            else:
                if current:
                    rows.append(current)
                current = [fragment]
            anchor = fragment.top

        if current:
            rows.append(current)

        return [sorted(row, key=lambda f: f.center_x, reverse=right_to_left) for row in rows]

    def row_lines(self, fragments: List[TextFragment]) -> List[str]:
        """Reading-order text lines rebuilt from fragment geometry."""
        rtl = is_right_to_left(fragments)
        return [join_row_text(row) for row in self.group_rows(fragments, rtl)]

    def reconstruct(self, fragments: List[TextFragment]) -> TableLayout:
        """Rebuilds the table structure of a score sheet.

        Args:
            fragments: Recognized fragments of the whole page.

        Returns:
            TableLayout: Header row index, labelled columns and the data rows below the header.

        Raises:
            NoStructureFound: If there are no fragments or no header row in the scan window.
        """
        if not fragments:
            raise NoStructureFound("The recognition result contains no text fragments.")

        rtl = is_right_to_left(fragments)
        rows = self.group_rows(fragments, rtl)
        logger.debug(f"Grouped {len(fragments)} fragments into {len(rows)} rows (rtl={rtl})")

        header_index = self._find_header_row(rows)
        if header_index is None:
            raise NoStructureFound(
                f"No header row with at least {self.config.min_header_keywords} known column labels "
                f"in the first {self.config.header_scan_rows} rows."
            )

        header = rows[header_index]
        columns = self._build_columns(header)
        y_level = min(f.top for f in header)
        data_rows = [row for row in rows[header_index + 1 :] if min(f.top for f in row) > y_level]

        logger.info(
            f"Header found at row {header_index} with {len(columns)} columns; {len(data_rows)} data rows follow"
        )
        return TableLayout(header_row_index=header_index, columns=columns, data_rows=data_rows, right_to_left=rtl)

    def _find_header_row(self, rows: List[List[TextFragment]]) -> Optional[int]:
        for index, row in enumerate(rows[: self.config.header_scan_rows]):
            labels = {classify_header(f.text) for f in row} - {None}
            if len(labels) >= self.config.min_header_keywords:
                return index
        return None

    def _build_columns(self, header: List[TextFragment]) -> List[TableColumn]:
        padding = self.config.column_span_padding
        columns = []
        seen = set()
        for fragment in header:
            match = classify_header(fragment.text)
            if match is None or match in seen:
                if match is not None:
                    logger.warning(f"Header label '{fragment.text}' repeats an earlier column; treating as unknown")
                field_type, kind = FieldType.UNKNOWN, None
            else:
                seen.add(match)
                field_type, kind = match.field_type, match.kind
            columns.append(
                TableColumn(
                    field_type=field_type,
                    kind=kind,
                    x_min=fragment.left - padding,
                    x_max=fragment.right + padding,
                    y_level=fragment.top,
                )
            )
        return columns


def assign_column(fragment: TextFragment, columns: List[TableColumn]) -> Optional[TableColumn]:
    """Returns the column whose span holds the fragment's centre, the nearest one when spans overlap."""
    x = fragment.center_x
    candidates = [column for column in columns if column.contains(x)]
    if not candidates:
        return None
    return min(candidates, key=lambda column: abs(column.center_x - x))
