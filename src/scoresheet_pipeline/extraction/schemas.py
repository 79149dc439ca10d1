"""Schemas for extracted score records and reconstructed table layouts."""

from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from scoresheet_pipeline.recognition.schemas import TextFragment


class ScoreKind(str, Enum):
    """Score columns a sheet may carry, in the declared positional order."""

    SCORE1 = "score1"
    SCORE2 = "score2"
    SCORE3 = "score3"
    SCORE4 = "score4"
    ACTIVITIES = "activities"

    @classmethod
    def ordered(cls) -> List["ScoreKind"]:
        return list(cls)


class FieldType(str, Enum):
    NAME = "name"
    SEQUENCE_NUMBER = "sequence_number"
    SCORE = "score"
    UNKNOWN = "unknown"


class TableColumn(BaseModel):
    """A header-derived column with its horizontal catchment span."""

    model_config = ConfigDict(frozen=True)

    field_type: FieldType
    kind: Optional[ScoreKind] = None
    x_min: float
    x_max: float
    y_level: float

    @property
    def center_x(self) -> float:
        return (self.x_min + self.x_max) / 2

    def contains(self, x: float) -> bool:
        return self.x_min <= x <= self.x_max


class TableLayout(BaseModel):
    """Output of layout reconstruction."""

    model_config = ConfigDict(frozen=True)

    header_row_index: int
    columns: List[TableColumn]
    data_rows: List[List[TextFragment]]
    right_to_left: bool = False

    @property
    def score_kinds(self) -> List[ScoreKind]:
        return [c.kind for c in self.columns if c.field_type == FieldType.SCORE and c.kind is not None]


class PersonRecord(BaseModel):
    """One extracted person with their per-kind scores.

    Flags are keyed by field name: ``"name"``, ``"sequence_number"`` or a score kind value.
    """

    sequence_number: Optional[int] = None
    name: str = Field(min_length=1)
    scores: Dict[ScoreKind, Optional[float]] = Field(default_factory=dict)
    uncertainty_flags: Dict[str, bool] = Field(default_factory=dict)

    def flag(self, field: str) -> None:
        self.uncertainty_flags[field] = True

    def is_uncertain(self, field: str) -> bool:
        return self.uncertainty_flags.get(field, False)

    def present_scores(self) -> Dict[ScoreKind, float]:
        return {kind: value for kind, value in self.scores.items() if value is not None}


class ExtractionResult(BaseModel):
    """Result of one strategy attempt."""

    strategy: str
    records: List[PersonRecord] = Field(default_factory=list)
    detected_kinds: List[ScoreKind] = Field(default_factory=list)
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    warnings: List[str] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.records

    @classmethod
    def empty(cls, strategy: str, warning: Optional[str] = None) -> "ExtractionResult":
        return cls(strategy=strategy, warnings=[warning] if warning else [])
