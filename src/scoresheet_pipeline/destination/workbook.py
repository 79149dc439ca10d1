"""Destination tables backed by an .xlsx workbook or a JSON used-range snapshot."""

import json
import logging
from pathlib import Path
from typing import Optional

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException
from pydantic import ValidationError

from scoresheet_pipeline.destination.schemas import CellValue, DestinationTable, UsedRange
from scoresheet_pipeline.exceptions import DestinationError

logger = logging.getLogger(__name__)


class WorkbookDestination(DestinationTable):
    """A worksheet of an Excel workbook, read and written through openpyxl."""

    def __init__(self, path: Path, sheet_name: Optional[str] = None):
        """Opens the workbook.

        Args:
            path: Path to the .xlsx file.
            sheet_name: Worksheet to use; the active sheet when omitted.

        Raises:
            DestinationError: If the file or sheet cannot be opened.
        """
        self.path = Path(path)
        try:
            self.workbook = load_workbook(self.path)
            self.sheet = self.workbook[sheet_name] if sheet_name else self.workbook.active
        except (FileNotFoundError, InvalidFileException, KeyError, OSError) as e:
            raise DestinationError(f"Could not open destination workbook {self.path}: {e}") from e

    def get_used_range(self) -> UsedRange:
        sheet = self.sheet
        values = [
            list(row)
            for row in sheet.iter_rows(
                min_row=sheet.min_row,
                max_row=sheet.max_row,
                min_col=sheet.min_column,
                max_col=sheet.max_column,
                values_only=True,
            )
        ]
        logger.debug(f"Read {len(values)} rows from sheet '{sheet.title}'")
        return UsedRange(values=values, row_offset=sheet.min_row - 1, col_offset=sheet.min_column - 1)

    def set_cell(self, row_index: int, col_index: int, value: CellValue) -> None:
        self.sheet.cell(row=row_index + 1, column=col_index + 1, value=value)

    def save(self, path: Optional[str] = None) -> None:
        target = Path(path) if path else self.path
        try:
            self.workbook.save(target)
        except OSError as e:
            raise DestinationError(f"Could not save destination workbook {target}: {e}") from e
        logger.info(f"Saved destination workbook to {target}")


class JsonSnapshotDestination(DestinationTable):
    """A used-range snapshot stored as ``{"values": [...], "rowOffset": n, "colOffset": n}``."""

    def __init__(self, path: Path):
        self.path = Path(path)
        try:
            with open(self.path, encoding="utf-8") as f:
                payload = json.load(f)
            self.used_range = UsedRange.model_validate(payload)
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            raise DestinationError(f"Could not read destination snapshot {self.path}: {e}") from e
        self.values = [list(row) for row in self.used_range.values]

    def get_used_range(self) -> UsedRange:
        return self.used_range.model_copy(update={"values": [list(row) for row in self.values]})

    def set_cell(self, row_index: int, col_index: int, value: CellValue) -> None:
        row = row_index - self.used_range.row_offset
        col = col_index - self.used_range.col_offset
        if row < 0 or col < 0:
            raise DestinationError(f"Cell ({row_index}, {col_index}) lies before the snapshot range")
        while len(self.values) <= row:
            self.values.append([])
        while len(self.values[row]) <= col:
            self.values[row].append(None)
        self.values[row][col] = value

    def save(self, path: Optional[str] = None) -> None:
        target = Path(path) if path else self.path
        payload = {
            "values": self.values,
            "rowOffset": self.used_range.row_offset,
            "colOffset": self.used_range.col_offset,
        }
        try:
            with open(target, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2, ensure_ascii=False)
        except OSError as e:
            raise DestinationError(f"Could not save destination snapshot {target}: {e}") from e
        logger.info(f"Saved destination snapshot to {target}")


def open_destination(path: Path, sheet_name: Optional[str] = None) -> DestinationTable:
    """Opens a destination by file extension: .xlsx/.xlsm workbooks, anything else as a JSON snapshot."""
    path = Path(path)
    if path.suffix.lower() in (".xlsx", ".xlsm"):
        return WorkbookDestination(path, sheet_name)
    return JsonSnapshotDestination(path)
