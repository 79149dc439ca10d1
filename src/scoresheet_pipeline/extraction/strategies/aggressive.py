"""Permissive fallback pairing names and scores by document order."""

import logging

from scoresheet_pipeline.extraction.names import clean_name, find_name_run, is_valid_name
from scoresheet_pipeline.extraction.schemas import ExtractionResult, PersonRecord, ScoreKind
from scoresheet_pipeline.extraction.strategies.base import ExtractionStrategy
from scoresheet_pipeline.extraction.value_normalizer import find_score_tokens, parse_score
from scoresheet_pipeline.extraction.vocabulary import detect_score_kinds
from scoresheet_pipeline.recognition.schemas import RecognitionResult

logger = logging.getLogger(__name__)

DEGRADED_WARNING = "Degraded extraction: names and scores were paired by document order only"


class AggressiveStrategy(ExtractionStrategy):
    """Collects candidate names and scores separately, then pairs the i-th name with the i-th score.

    A line holding a name contributes at most its first score; a line holding only numbers
    contributes every score on it. Unmatched names or scores are dropped, never padded.
    """

    name = "aggressive"

    def extract(self, recognition: RecognitionResult) -> ExtractionResult:
        lines = self.source_lines(recognition)
        announced = detect_score_kinds(lines)
        kind = announced[0] if announced else ScoreKind.SCORE1

        names = []
        scores = []
        for line in lines:
            if not self.is_data_line(line):
                continue
            _, rest = self.split_sequence_number(line)
            name = clean_name(find_name_run(rest))
            values = [parse_score(t, self.config.score_min, self.config.score_max) for t in find_score_tokens(rest)]
            values = [v for v in values if v is not None]
            if is_valid_name(name):
                names.append(name)
                scores.extend(values[:1])
            else:
                scores.extend(values)

        pairs = list(zip(names, scores))
        if not pairs:
            return self.empty(f"{DEGRADED_WARNING}; found {len(names)} names and {len(scores)} scores")

        records = []
        for name, value in pairs:
            record = PersonRecord(name=name, scores={kind: value})
            record.flag(kind.value)
            records.append(record)

        warnings = [DEGRADED_WARNING]
        if len(names) != len(scores):
            warnings.append(f"Unpaired candidates dropped: {len(names)} names, {len(scores)} scores")
        logger.warning(f"Aggressive fallback paired {len(records)} records")
        return ExtractionResult(
            strategy=self.name,
            records=records,
            detected_kinds=[kind],
            confidence=self.config.aggressive_strategy_confidence,
            warnings=warnings,
        )
