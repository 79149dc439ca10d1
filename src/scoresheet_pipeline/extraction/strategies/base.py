"""Abstract base class for score extraction strategies."""

import re
from abc import ABC, abstractmethod
from typing import List, Optional, Tuple

from scoresheet_pipeline.extraction.extraction_config import ExtractionConfig
from scoresheet_pipeline.extraction.layout import LayoutReconstructor
from scoresheet_pipeline.extraction.schemas import ExtractionResult, PersonRecord, ScoreKind
from scoresheet_pipeline.extraction.value_normalizer import translate_digits
from scoresheet_pipeline.extraction.vocabulary import is_header_line, is_summary_line
from scoresheet_pipeline.recognition.schemas import RecognitionResult

_LEADING_SEQUENCE = re.compile(r"^\s*(\d{1,3})(?:\s*[.):\-]\s*|\s+)(?=\D)")


class ExtractionStrategy(ABC):
    """Abstract base class for extraction strategies."""

    name: str = "base"

    def __init__(self, config: ExtractionConfig, reconstructor: Optional[LayoutReconstructor] = None):
        """Initializes the strategy.

        Args:
            config (ExtractionConfig): Shared extraction configuration.
            reconstructor (LayoutReconstructor, optional): Used for geometry, or to rebuild text lines
                when the recognition result carries no full text.
        """
        self.config = config
        self.reconstructor = reconstructor or LayoutReconstructor(config)

    @abstractmethod
    def extract(self, recognition: RecognitionResult) -> ExtractionResult:
        """Turns one recognition result into person records.

        Args:
            recognition: Fragments and reading-order text of the page.

        Returns:
            ExtractionResult: Records, detected kinds, confidence and warnings. Empty rather than
                raising when nothing usable is found.
        """
        pass

    def source_lines(self, recognition: RecognitionResult) -> List[str]:
        """Plain text lines of the page, rebuilt from geometry when no full text was returned."""
        if recognition.full_text.strip():
            return [line for line in recognition.full_text.splitlines() if line.strip()]
        return [line for line in self.reconstructor.row_lines(recognition.fragments) if line.strip()]

    @staticmethod
    def is_data_line(line: str) -> bool:
        return bool(line.strip()) and not is_summary_line(line) and not is_header_line(line)

    @staticmethod
    def split_sequence_number(line: str) -> Tuple[Optional[int], str]:
        """Splits a leading row number off a line."""
        text = translate_digits(line)
        match = _LEADING_SEQUENCE.match(text)
        if not match:
            return None, text
        return int(match.group(1)), text[match.end() :]

    @staticmethod
    def used_kinds(records: List[PersonRecord], announced: List[ScoreKind]) -> List[ScoreKind]:
        """Announced kinds, or the kinds that actually received a value when none were announced."""
        if announced:
            return list(announced)
        used = {kind for record in records for kind in record.present_scores()}
        return [kind for kind in ScoreKind.ordered() if kind in used]

    def empty(self, warning: Optional[str] = None) -> ExtractionResult:
        return ExtractionResult.empty(self.name, warning)
