from dataclasses import dataclass, replace

from scoresheet_pipeline.config import settings


@dataclass(frozen=True)
class ExtractionConfig:
    """Configuration for layout reconstruction and extraction strategies."""

    row_y_tolerance: float = settings.ROW_Y_TOLERANCE
    header_scan_rows: int = settings.HEADER_SCAN_ROWS
    min_header_keywords: int = settings.MIN_HEADER_KEYWORDS
    column_span_padding: float = settings.COLUMN_SPAN_PADDING

    score_min: float = settings.SCORE_MIN
    score_max: float = settings.SCORE_MAX

    line_strategy_confidence: float = settings.LINE_STRATEGY_CONFIDENCE
    aggressive_strategy_confidence: float = settings.AGGRESSIVE_STRATEGY_CONFIDENCE
    low_fragment_confidence: float = settings.LOW_FRAGMENT_CONFIDENCE
    duplicate_name_similarity: float = settings.DUPLICATE_NAME_SIMILARITY

    def relaxed(self, scale: float = settings.RETRY_TOLERANCE_SCALE) -> "ExtractionConfig":
        """Returns a copy with looser row grouping and wider column catchment, used for the retry pass."""
        return replace(
            self,
            row_y_tolerance=self.row_y_tolerance * scale,
            column_span_padding=max(self.column_span_padding * 2, self.row_y_tolerance * (scale - 1)),
        )
