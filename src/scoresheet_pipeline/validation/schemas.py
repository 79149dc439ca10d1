"""Schemas for image quality, adaptive context and validation outcomes."""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class DocumentType(str, Enum):
    MARKS_SHEET = "marks_sheet"
    REPORT_CARD = "report_card"
    EXAM_RESULTS = "exam_results"
    HANDWRITTEN = "handwritten"
    PRINTED = "printed"


class Complexity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class LanguageComplexity(str, Enum):
    SIMPLE = "simple"
    MIXED = "mixed"
    COMPLEX = "complex"


class StrategyClass(str, Enum):
    STANDARD = "standard"
    CONSERVATIVE = "conservative"
    AGGRESSIVE = "aggressive"
    MULTI_PASS = "multi_pass"


class ImageQualityMetrics(BaseModel):
    """Image quality signals, each in 0..1 except skew (degrees) and resolution (pixels)."""

    model_config = ConfigDict(frozen=True)

    brightness: float = Field(ge=0.0, le=1.0)
    contrast: float = Field(ge=0.0, le=1.0)
    sharpness: float = Field(ge=0.0, le=1.0)
    noise: float = Field(ge=0.0, le=1.0)
    skew: float = 0.0
    resolution: float = Field(default=300.0, ge=0.0)


class AdaptiveContext(BaseModel):
    """Per-invocation context the confidence thresholds are derived from."""

    model_config = ConfigDict(frozen=True)

    document_type: DocumentType = DocumentType.MARKS_SHEET
    image_quality: Optional[ImageQualityMetrics] = None
    expected_complexity: Complexity = Complexity.MEDIUM
    language_complexity: LanguageComplexity = LanguageComplexity.MIXED
    critical_accuracy: bool = False
    expected_count: Optional[int] = Field(default=None, gt=0)
    historical_accuracy: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    allow_retry: bool = True


class ConfidenceThresholds(BaseModel):
    model_config = ConfigDict(frozen=True)

    overall: float
    name_quality: float
    score_quality: float
    retry: float


class ConfidenceAssessment(BaseModel):
    """Thresholds and recommended strategy class, with the factors and adjustments behind them."""

    model_config = ConfigDict(frozen=True)

    thresholds: ConfidenceThresholds
    strategy_class: StrategyClass
    image_quality: float
    document_complexity: float
    contextual_reliability: float
    overall_reliability: float
    adjustments: List[str] = Field(default_factory=list)


class ValidationOutcome(BaseModel):
    is_valid: bool
    issues: List[str] = Field(default_factory=list)
    requires_retry: bool = False
    recommendations: List[str] = Field(default_factory=list)
    confidence: float = 0.0
    name_quality: float = 0.0
    score_quality: float = 0.0
