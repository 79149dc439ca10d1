"""Pydantic schemas for recognized text fragments."""

from typing import List

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator


class Point(BaseModel):
    """A single polygon vertex in pixel-equivalent coordinates."""

    model_config = ConfigDict(frozen=True)

    x: float
    y: float


class TextFragment(BaseModel):
    """Immutable recognized text span with its bounding polygon and confidence."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    text: str
    bounding_box: List[Point] = Field(alias="boundingBox")
    confidence: float = Field(ge=0.0, le=1.0)

    @field_validator("bounding_box")
    @classmethod
    def _four_points(cls, value: List[Point]) -> List[Point]:
        if len(value) != 4:
            raise ValueError(f"bounding box must have exactly 4 points, got {len(value)}")
        return value

    @classmethod
    def from_box(cls, text: str, left: float, top: float, width: float, height: float, confidence: float):
        """Builds a fragment from an axis-aligned box."""
        right = left + width
        bottom = top + height
        return cls(
            text=text,
            boundingBox=[
                Point(x=left, y=top),
                Point(x=right, y=top),
                Point(x=right, y=bottom),
                Point(x=left, y=bottom),
            ],
            confidence=confidence,
        )

    @computed_field
    @property
    def top(self) -> float:
        return min(p.y for p in self.bounding_box)

    @computed_field
    @property
    def bottom(self) -> float:
        return max(p.y for p in self.bounding_box)

    @computed_field
    @property
    def left(self) -> float:
        return min(p.x for p in self.bounding_box)

    @computed_field
    @property
    def right(self) -> float:
        return max(p.x for p in self.bounding_box)

    @property
    def center_x(self) -> float:
        return (self.left + self.right) / 2


class RecognitionResult(BaseModel):
    """Return shape of the recognition service: fragments plus the reading-order text."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    fragments: List[TextFragment] = Field(default_factory=list)
    full_text: str = Field(default="", alias="fullText")
