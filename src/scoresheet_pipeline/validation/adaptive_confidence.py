"""Context-sensitive confidence thresholds and strategy recommendation."""

import logging
import statistics
from typing import List, Optional

from scoresheet_pipeline.config import settings
from scoresheet_pipeline.extraction.schemas import ExtractionResult
from scoresheet_pipeline.linking.text_normalizer import is_arabic_letter
from scoresheet_pipeline.validation.schemas import (
    AdaptiveContext,
    Complexity,
    ConfidenceAssessment,
    ConfidenceThresholds,
    DocumentType,
    ImageQualityMetrics,
    LanguageComplexity,
    StrategyClass,
    ValidationOutcome,
)

logger = logging.getLogger(__name__)

BASE_THRESHOLDS = ConfidenceThresholds(overall=0.75, name_quality=0.70, score_quality=0.80, retry=0.60)

QUALITY_WEIGHTS = {
    "brightness": 0.15,
    "contrast": 0.25,
    "sharpness": 0.20,
    "noise": 0.15,
    "skew": 0.10,
    "resolution": 0.15,
}
MAX_SKEW_DEGREES = 45.0
TARGET_RESOLUTION = 300.0
# Composite used when the caller supplies no image measurements
UNKNOWN_IMAGE_QUALITY = 0.7

DOCUMENT_TYPE_BASE = {
    DocumentType.PRINTED: 0.8,
    DocumentType.HANDWRITTEN: 0.3,
    DocumentType.MARKS_SHEET: 0.6,
    DocumentType.REPORT_CARD: 0.5,
    DocumentType.EXAM_RESULTS: 0.7,
}
COMPLEXITY_OFFSET = {Complexity.LOW: 0.2, Complexity.MEDIUM: 0.0, Complexity.HIGH: -0.2}
LANGUAGE_OFFSET = {LanguageComplexity.SIMPLE: 0.1, LanguageComplexity.MIXED: 0.0, LanguageComplexity.COMPLEX: -0.1}

BASE_CONTEXT_RELIABILITY = 0.7
LARGE_CLASS_SIZE = 50

THRESHOLD_RANGE = (0.3, 0.95)
RETRY_THRESHOLD_RANGE = (0.2, 0.8)

EXPECTED_COUNT_TOLERANCE = 0.3
SCORE_KINDS_FOR_FULL_COVERAGE = 4


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


class AdaptiveConfidenceEngine:
    """Derives acceptance thresholds from image quality, document type and criticality.

    Nothing is cached between calls; every assessment is recomputed from its context.
    """

    def __init__(self, score_min: float = settings.SCORE_MIN, score_max: float = settings.SCORE_MAX):
        self.score_min = score_min
        self.score_max = score_max

    @staticmethod
    def image_quality_score(metrics: Optional[ImageQualityMetrics]) -> float:
        """Weighted 0..1 composite of the image quality signals."""
        if metrics is None:
            return UNKNOWN_IMAGE_QUALITY
        terms = {
            "brightness": metrics.brightness,
            "contrast": metrics.contrast,
            "sharpness": metrics.sharpness,
            "noise": 1.0 - metrics.noise,
            "skew": max(0.0, 1.0 - abs(metrics.skew) / MAX_SKEW_DEGREES),
            "resolution": min(1.0, metrics.resolution / TARGET_RESOLUTION),
        }
        return _clamp(sum(QUALITY_WEIGHTS[name] * value for name, value in terms.items()), 0.0, 1.0)

    @staticmethod
    def document_complexity_score(context: AdaptiveContext) -> float:
        """Ease of the document in 0.1..0.9; higher means simpler to read."""
        score = DOCUMENT_TYPE_BASE[context.document_type]
        score += COMPLEXITY_OFFSET[context.expected_complexity]
        score += LANGUAGE_OFFSET[context.language_complexity]
        return _clamp(score, 0.1, 0.9)

    @staticmethod
    def contextual_reliability_score(context: AdaptiveContext) -> float:
        reliability = BASE_CONTEXT_RELIABILITY
        if context.historical_accuracy is not None:
            reliability = context.historical_accuracy * 0.7 + 0.3 * BASE_CONTEXT_RELIABILITY
        if context.critical_accuracy:
            reliability *= 1.1
        if context.expected_count is not None and context.expected_count > LARGE_CLASS_SIZE:
            reliability *= 0.9
        return _clamp(reliability, 0.3, 1.0)

    def assess(self, context: AdaptiveContext) -> ConfidenceAssessment:
        """Computes thresholds and the recommended strategy class for one invocation.

        Args:
            context: Document type, image quality, complexity and criticality of the sheet.

        Returns:
            ConfidenceAssessment: Thresholds, strategy class and the factors behind them.
        """
        image_quality = self.image_quality_score(context.image_quality)
        document = self.document_complexity_score(context)
        contextual = self.contextual_reliability_score(context)
        reliability = 0.4 * image_quality + 0.3 * document + 0.3 * contextual

        adjustments: List[str] = []
        thresholds = self._thresholds(context, image_quality, reliability, adjustments)
        strategy_class = self._strategy_class(context, image_quality, reliability)

        logger.info(
            f"Adaptive assessment: quality={image_quality:.2f} document={document:.2f} "
            f"context={contextual:.2f} reliability={reliability:.2f} strategy={strategy_class.value}"
        )
        return ConfidenceAssessment(
            thresholds=thresholds,
            strategy_class=strategy_class,
            image_quality=image_quality,
            document_complexity=document,
            contextual_reliability=contextual,
            overall_reliability=reliability,
            adjustments=adjustments,
        )

    def _thresholds(
        self, context: AdaptiveContext, image_quality: float, reliability: float, adjustments: List[str]
    ) -> ConfidenceThresholds:
        scale = 0.5 + reliability * 0.5
        handwritten = context.document_type == DocumentType.HANDWRITTEN

        overall = BASE_THRESHOLDS.overall * scale
        if context.critical_accuracy:
            overall *= 1.15
            adjustments.append("overall raised for critical accuracy")
        if reliability < 0.5:
            overall *= 0.8
            adjustments.append("overall lowered for low reliability")

        name_quality = BASE_THRESHOLDS.name_quality * scale
        if context.language_complexity == LanguageComplexity.COMPLEX:
            name_quality *= 0.85
            adjustments.append("name quality lowered for complex language")
        if image_quality < 0.6:
            name_quality *= 0.9
            adjustments.append("name quality lowered for image quality")

        score_quality = BASE_THRESHOLDS.score_quality * scale
        if handwritten:
            score_quality *= 0.75
            adjustments.append("score quality lowered for handwriting")
        if context.expected_complexity == Complexity.HIGH:
            score_quality *= 0.85
            adjustments.append("score quality lowered for high complexity")

        retry = BASE_THRESHOLDS.retry * scale * 0.8
        if handwritten:
            retry *= 0.7
            adjustments.append("retry lowered for handwriting")
        if image_quality < 0.4:
            retry *= 0.6
            adjustments.append("retry lowered for poor image quality")

        return ConfidenceThresholds(
            overall=_clamp(overall, *THRESHOLD_RANGE),
            name_quality=_clamp(name_quality, *THRESHOLD_RANGE),
            score_quality=_clamp(score_quality, *THRESHOLD_RANGE),
            retry=_clamp(retry, *RETRY_THRESHOLD_RANGE),
        )

    @staticmethod
    def _strategy_class(context: AdaptiveContext, image_quality: float, reliability: float) -> StrategyClass:
        if (
            reliability < 0.6
            or context.document_type == DocumentType.HANDWRITTEN
            or context.expected_complexity == Complexity.HIGH
        ):
            return StrategyClass.MULTI_PASS
        if context.critical_accuracy or image_quality < 0.5:
            return StrategyClass.CONSERVATIVE
        if (
            reliability > 0.8
            and context.document_type == DocumentType.PRINTED
            and context.expected_complexity == Complexity.LOW
        ):
            return StrategyClass.AGGRESSIVE
        return StrategyClass.STANDARD

    def validate(
        self,
        result: ExtractionResult,
        context: AdaptiveContext,
        assessment: Optional[ConfidenceAssessment] = None,
    ) -> ValidationOutcome:
        """Checks an extraction against thresholds derived from ``context``.

        Args:
            result: The orchestrator's selected result.
            context: The invocation's adaptive context.
            assessment: Reuse an assessment already computed from the same context.

        Returns:
            ValidationOutcome: Validity, issues found, retry eligibility and recommendations.
        """
        assessment = assessment or self.assess(context)
        thresholds = assessment.thresholds
        issues: List[str] = []
        recommendations: List[str] = []

        if not result.records:
            issues.append("No records were extracted")

        if result.confidence < thresholds.overall:
            issues.append(f"Overall confidence {result.confidence:.2f} is below {thresholds.overall:.2f}")

        if context.expected_count is not None:
            deviation = abs(len(result.records) - context.expected_count) / context.expected_count
            if deviation > EXPECTED_COUNT_TOLERANCE:
                issues.append(
                    f"Extracted {len(result.records)} records but about {context.expected_count} were expected"
                )

        name_quality = self.name_quality(result)
        if name_quality < thresholds.name_quality:
            issues.append(f"Name quality {name_quality:.2f} is below {thresholds.name_quality:.2f}")
            recommendations.append("Review the extracted names for recognition errors")

        score_quality = self.score_quality(result)
        if score_quality < thresholds.score_quality:
            issues.append(f"Score quality {score_quality:.2f} is below {thresholds.score_quality:.2f}")
            recommendations.append("Check that every score column header was recognized")

        requires_retry = (
            result.confidence < thresholds.retry and assessment.strategy_class == StrategyClass.MULTI_PASS
        )
        if requires_retry:
            recommendations.append("Retry with a multi-pass extraction")
        if assessment.image_quality < 0.5:
            recommendations.append("Retake the photo with better lighting, focus and a flat page")

        return ValidationOutcome(
            is_valid=not issues,
            issues=issues,
            requires_retry=requires_retry,
            recommendations=recommendations,
            confidence=result.confidence,
            name_quality=name_quality,
            score_quality=score_quality,
        )

    @staticmethod
    def name_score(name: str) -> float:
        """Plausibility of a single name in 0..1."""
        letters = [ch for ch in name if ch.isalpha()]
        arabic = sum(1 for ch in letters if is_arabic_letter(ch))
        score = 0.5
        if letters and (arabic == 0 or arabic == len(letters)):
            score += 0.3
        elif letters:
            score -= 0.1
        if 4 <= len(name.strip()) <= 30:
            score += 0.1
        if 2 <= len(name.split()) <= 4:
            score += 0.1
        if any(ch.isdigit() for ch in name):
            score -= 0.2
        return _clamp(score, 0.0, 1.0)

    def name_quality(self, result: ExtractionResult) -> float:
        if not result.records:
            return 0.0
        return statistics.fmean(self.name_score(record.name) for record in result.records)

    def score_quality(self, result: ExtractionResult) -> float:
        """Composite of in-range share, detected-kind coverage and completeness."""
        if not result.records or not result.detected_kinds:
            return 0.0
        values = [v for record in result.records for v in record.present_scores().values()]
        cells = len(result.records) * len(result.detected_kinds)
        in_range = sum(1 for v in values if self.score_min <= v <= self.score_max)
        in_range_share = in_range / len(values) if values else 0.0
        coverage = min(1.0, len(result.detected_kinds) / SCORE_KINDS_FOR_FULL_COVERAGE)
        completeness = len(values) / cells
        return in_range_share * 0.5 + coverage * 0.3 + completeness * 0.2
