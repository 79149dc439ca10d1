"""Extraction from plain text lines, without geometry."""

import logging
from typing import List

from scoresheet_pipeline.extraction.names import clean_name, find_name_run, is_valid_name
from scoresheet_pipeline.extraction.schemas import ExtractionResult, PersonRecord, ScoreKind
from scoresheet_pipeline.extraction.strategies.base import ExtractionStrategy
from scoresheet_pipeline.extraction.value_normalizer import find_score_tokens, parse_score
from scoresheet_pipeline.extraction.vocabulary import detect_score_kinds
from scoresheet_pipeline.recognition.schemas import RecognitionResult

logger = logging.getLogger(__name__)


class LineByLineStrategy(ExtractionStrategy):
    """Reads a name run and its score tokens from each text line.

    Scores are assigned to kinds positionally, in declared order, restricted to the kinds the
    header lines announce. Confidence is a fixed constant.
    """

    name = "line_by_line"

    def extract(self, recognition: RecognitionResult) -> ExtractionResult:
        lines = self.source_lines(recognition)
        if not lines:
            return self.empty("No text lines to read")

        announced = detect_score_kinds(lines)
        kinds: List[ScoreKind] = announced or ScoreKind.ordered()
        warnings = []
        if not announced:
            warnings.append("No score headers found; scores assigned in declared column order")

        records = []
        for line in lines:
            if not self.is_data_line(line):
                continue
            record = self._parse_line(line, kinds)
            if record is not None:
                records.append(record)

        if not records:
            return ExtractionResult(strategy=self.name, warnings=warnings + ["No line held both a name and a score"])

        logger.info(f"Line strategy read {len(records)} records from {len(lines)} lines")
        return ExtractionResult(
            strategy=self.name,
            records=records,
            detected_kinds=self.used_kinds(records, announced),
            confidence=self.config.line_strategy_confidence,
            warnings=warnings,
        )

    def _parse_line(self, line: str, kinds: List[ScoreKind]):
        sequence_number, rest = self.split_sequence_number(line)
        name = clean_name(find_name_run(rest))
        if not is_valid_name(name):
            return None

        tokens = find_score_tokens(rest)
        values = [parse_score(token, self.config.score_min, self.config.score_max) for token in tokens]
        if all(value is None for value in values):
            return None

        record = PersonRecord(sequence_number=sequence_number, name=name, scores={kind: None for kind in kinds})
        for kind, token, value in zip(kinds, tokens, values):
            record.scores[kind] = value
            if value is None:
                logger.debug(f"Unparsable {kind.value} token '{token}' for {name}")
                record.flag(kind.value)
        if len(tokens) > len(kinds):
            logger.debug(f"Ignoring {len(tokens) - len(kinds)} extra numeric tokens on line for {name}")
        return record
