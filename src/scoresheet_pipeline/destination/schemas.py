"""Contract and snapshot types for the destination table."""

from abc import ABC, abstractmethod
from typing import List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

CellValue = Union[str, int, float, None]


def cell_text(value: CellValue) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


class DestinationRow(BaseModel):
    """Read-only snapshot of one destination row; ``row_index`` is absolute and 0-based."""

    model_config = ConfigDict(frozen=True)

    row_index: int
    cells: Tuple[CellValue, ...]

    def text(self, column: int) -> str:
        if 0 <= column < len(self.cells):
            return cell_text(self.cells[column])
        return ""


class UsedRange(BaseModel):
    """Values of the destination's used range and where it starts (0-based offsets)."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    values: List[List[CellValue]] = Field(default_factory=list)
    row_offset: int = Field(default=0, alias="rowOffset", ge=0)
    col_offset: int = Field(default=0, alias="colOffset", ge=0)

    @field_validator("values", mode="before")
    @classmethod
    def _plain_cells(cls, rows):
        return [[_plain(value) for value in row] for row in rows or []]

    def rows(self, start: int = 0) -> List[DestinationRow]:
        """Snapshot rows from the ``start``-th row of the range onwards."""
        return [
            DestinationRow(row_index=self.row_offset + index, cells=tuple(row))
            for index, row in enumerate(self.values)
            if index >= start
        ]


def _plain(value) -> CellValue:
    if value is None or isinstance(value, (str, int, float)) and not isinstance(value, bool):
        return value
    return str(value)


class DestinationTable(ABC):
    """A tabular document the extracted scores are written into."""

    @abstractmethod
    def get_used_range(self) -> UsedRange:
        """Reads the used range once per linking session."""
        pass

    @abstractmethod
    def set_cell(self, row_index: int, col_index: int, value: CellValue) -> None:
        """Writes one cell; indices are absolute and 0-based."""
        pass

    def save(self, path: Optional[str] = None) -> None:
        """Persists pending writes where the backing store needs it."""
        pass
