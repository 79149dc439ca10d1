"""Validation of raw recognition payloads into TextFragment lists.

Nothing outside this module sees provider JSON; shape mismatches raise RecognitionPayloadError.
"""

import json
import logging
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from scoresheet_pipeline.exceptions import RecognitionPayloadError
from scoresheet_pipeline.recognition.schemas import Point, RecognitionResult, TextFragment

logger = logging.getLogger(__name__)


class _TextractBoundingBox(BaseModel):
    width: float = Field(alias="Width")
    height: float = Field(alias="Height")
    left: float = Field(alias="Left")
    top: float = Field(alias="Top")


class _TextractPoint(BaseModel):
    x: float = Field(alias="X")
    y: float = Field(alias="Y")


class _TextractGeometry(BaseModel):
    bounding_box: _TextractBoundingBox = Field(alias="BoundingBox")
    polygon: Optional[List[_TextractPoint]] = Field(default=None, alias="Polygon")


class _TextractBlock(BaseModel):
    model_config = ConfigDict(extra="ignore")

    block_type: str = Field(alias="BlockType")
    text: str = Field(default="", alias="Text")
    confidence: float = Field(default=0.0, alias="Confidence")
    geometry: Optional[_TextractGeometry] = Field(default=None, alias="Geometry")


class _TextractResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    blocks: List[_TextractBlock] = Field(default_factory=list, alias="Blocks")


def parse_textract_response(
    response: dict, width: float, height: float, block_type: str = "LINE"
) -> List[TextFragment]:
    """Converts a Textract DetectDocumentText response into pixel-space fragments.

    Args:
        response: Raw response dict from ``detect_document_text``.
        width: Image width used to scale normalized geometry.
        height: Image height used to scale normalized geometry.
        block_type: Textract block type to keep, LINE or WORD.

    Returns:
        List[TextFragment]: Fragments with confidences rescaled from 0..100 to 0..1.

    Raises:
        RecognitionPayloadError: If the response does not have the expected shape.
    """
    try:
        parsed = _TextractResponse.model_validate(response)
    except ValidationError as e:
        raise RecognitionPayloadError(f"Unexpected Textract response shape: {e.error_count()} errors") from e

    fragments = []
    for block in parsed.blocks:
        if block.block_type != block_type or not block.text.strip():
            continue
        if block.geometry is None:
            raise RecognitionPayloadError(f"Textract {block.block_type} block has no geometry")

        polygon = block.geometry.polygon
        if polygon and len(polygon) == 4:
            points = [Point(x=p.x * width, y=p.y * height) for p in polygon]
            fragments.append(
                TextFragment(text=block.text, bounding_box=points, confidence=min(1.0, block.confidence / 100))
            )
        else:
            box = block.geometry.bounding_box
            fragments.append(
                TextFragment.from_box(
                    block.text,
                    left=box.left * width,
                    top=box.top * height,
                    width=box.width * width,
                    height=box.height * height,
                    confidence=min(1.0, block.confidence / 100),
                )
            )

    logger.debug(f"Parsed {len(fragments)} {block_type} fragments from {len(parsed.blocks)} Textract blocks")
    return fragments


class _GenericFragment(BaseModel):
    text: str
    bounding_box: List[Point] = Field(alias="boundingBox")
    confidence: float

    @field_validator("bounding_box", mode="before")
    @classmethod
    def _flat_coordinates(cls, value):
        # [x1, y1, x2, y2, x3, y3, x4, y4] as returned by some providers
        if isinstance(value, list) and len(value) == 8 and all(isinstance(v, (int, float)) for v in value):
            return [{"x": value[i], "y": value[i + 1]} for i in range(0, 8, 2)]
        return value


class _GenericPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    fragments: List[_GenericFragment] = Field(default_factory=list)
    full_text: str = Field(default="", alias="fullText")


def parse_recognition_payload(payload: dict) -> RecognitionResult:
    """Validates a provider-neutral ``{"fragments": [...], "fullText": "..."}`` payload.

    Confidences given on a 0..100 scale are rescaled to 0..1.

    Raises:
        RecognitionPayloadError: If the payload does not have the expected shape.
    """
    try:
        parsed = _GenericPayload.model_validate(payload)
        fragments = [
            TextFragment(
                text=f.text,
                bounding_box=f.bounding_box,
                confidence=f.confidence / 100 if f.confidence > 1 else f.confidence,
            )
            for f in parsed.fragments
        ]
    except ValidationError as e:
        raise RecognitionPayloadError(f"Unexpected recognition payload shape: {e.error_count()} errors") from e
    return RecognitionResult(fragments=fragments, full_text=parsed.full_text)


class JsonRecognitionService:
    """Serves a recognition result saved as a provider-neutral JSON payload."""

    def __init__(self, payload_path: Path):
        self.payload_path = Path(payload_path)

    def recognize(self, image_bytes: bytes, language_hints: Optional[List[str]] = None) -> RecognitionResult:
        try:
            with open(self.payload_path, encoding="utf-8") as f:
                payload = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise RecognitionPayloadError(f"Could not read recognition payload {self.payload_path}: {e}") from e
        result = parse_recognition_payload(payload)
        logger.info(f"Loaded {len(result.fragments)} fragments from {self.payload_path}")
        return result
