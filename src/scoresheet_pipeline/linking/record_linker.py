"""Matching of extracted names to rows of the destination table."""

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field

from scoresheet_pipeline.config import settings
from scoresheet_pipeline.destination.schemas import DestinationRow, cell_text
from scoresheet_pipeline.extraction.schemas import PersonRecord
from scoresheet_pipeline.linking.text_normalizer import normalize_text, similarity

logger = logging.getLogger(__name__)

# Connective particles of Arabic and Maghrebi names
_PARTICLE_WORDS = ["el", "al", "ben", "bin", "ibn", "bent", "bint", "ould", "abu", "abou", "ait"]
_ARABIC_PARTICLE_WORDS = ["بن", "ابن", "بنت", "ولد", "أبو", "ابو", "آيت"]
NAME_PARTICLES = frozenset(normalize_text(word) for word in _PARTICLE_WORDS + _ARABIC_PARTICLE_WORDS)

_PURE_NUMBER = re.compile(r"^[\d\s.,]+$")
_DATE = re.compile(r"\d{1,4}[-/.]\d{1,2}[-/.]\d{1,4}")
_MAX_NAME_PART_LENGTH = 40


class MatchStep(str, Enum):
    EXACT = "exact"
    TOKEN_SET = "token_set"
    EDIT_DISTANCE = "edit_distance"
    ROW_SCAN = "row_scan"


@dataclass(frozen=True)
class NameMatchConfig:
    """Edit-distance thresholds for the fuzzy step."""

    threshold: float = settings.NAME_MATCH_THRESHOLD
    relaxed_threshold: float = settings.NAME_MATCH_RELAXED_THRESHOLD
    short_threshold: float = settings.NAME_MATCH_SHORT_THRESHOLD
    short_max_length: int = settings.NAME_MATCH_SHORT_MAX_LEN


class RowMatch(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    row_index: int
    step: MatchStep
    score: float = 1.0


class LinkingReport(BaseModel):
    """Row assignments for a linking pass and the names that could not be placed."""

    matches: List[RowMatch] = Field(default_factory=list)
    not_found: List[str] = Field(default_factory=list)

    @property
    def row_assignments(self) -> dict:
        return {match.name: match.row_index for match in self.matches}


def looks_like_name_part(text: str) -> bool:
    """True for neighbour cell text that could be part of a split name."""
    stripped = text.strip()
    if not stripped or len(stripped) > _MAX_NAME_PART_LENGTH:
        return False
    if _PURE_NUMBER.match(stripped) or _DATE.search(stripped):
        return False
    return sum(1 for ch in stripped if ch.isalpha()) >= 2


class FuzzyRecordLinker:
    """Finds the destination row of a person through a cascade of increasingly permissive checks.

    1. exact equality of normalized names
    2. equal token sets, ignoring order and name particles
    3. edit-distance similarity above a length-dependent threshold
    4. whole-word occurrence of the name anywhere in the row
    """

    def __init__(self, config: Optional[NameMatchConfig] = None):
        self.config = config or NameMatchConfig()

    def find_row(self, name: str, rows: Sequence[DestinationRow], name_column: int) -> Optional[int]:
        """Returns the matching row index, or None when no cascade step matches.

        Args:
            name: Extracted person name.
            rows: Destination data rows; never modified.
            name_column: Index of the name column within each row's cells.

        Returns:
            Optional[int]: The absolute row index of the match.
        """
        match = self.match(name, rows, name_column)
        return match.row_index if match else None

    def match(self, name: str, rows: Sequence[DestinationRow], name_column: int) -> Optional[RowMatch]:
        target = normalize_text(name)
        if not target:
            return None
        candidates = [(row, normalize_text(self.row_name(row, name_column))) for row in rows]

        for row, candidate in candidates:
            if candidate and candidate == target:
                return RowMatch(name=name, row_index=row.row_index, step=MatchStep.EXACT)

        for row, candidate in candidates:
            if candidate and self.same_tokens(target, candidate):
                return RowMatch(name=name, row_index=row.row_index, step=MatchStep.TOKEN_SET)

        best: Optional[RowMatch] = None
        for row, candidate in candidates:
            if not candidate:
                continue
            score = self.name_similarity(target, candidate)
            if score >= self.threshold_for(target, candidate) and (best is None or score > best.score):
                best = RowMatch(name=name, row_index=row.row_index, step=MatchStep.EDIT_DISTANCE, score=score)
        if best is not None:
            return best

        pattern = re.compile(rf"(?<!\w){re.escape(target)}(?!\w)")
        for row, _ in candidates:
            row_text = normalize_text(" ".join(cell_text(value) for value in row.cells))
            if pattern.search(row_text):
                return RowMatch(name=name, row_index=row.row_index, step=MatchStep.ROW_SCAN, score=0.0)

        return None

    def link(self, records: Sequence[PersonRecord], rows: Sequence[DestinationRow], name_column: int) -> LinkingReport:
        """Links every record, accumulating unmatched names instead of failing."""
        report = LinkingReport()
        for record in records:
            found = self.match(record.name, rows, name_column)
            if found is None:
                logger.info(f"No destination row found for '{record.name}'")
                report.not_found.append(record.name)
            else:
                logger.debug(f"Linked '{record.name}' to row {found.row_index} via {found.step.value}")
                report.matches.append(found)
        logger.info(f"Linked {len(report.matches)} of {len(records)} records")
        return report

    @staticmethod
    def row_name(row: DestinationRow, name_column: int) -> str:
        """The row's name cell, joined with name-like neighbours when the name is split across columns."""
        primary = row.text(name_column)
        parts = [primary]
        combined = normalize_text(primary)
        for neighbour in (name_column - 1, name_column + 1):
            text = row.text(neighbour)
            normalized = normalize_text(text)
            if looks_like_name_part(text) and normalized and normalized not in combined:
                if neighbour < name_column:
                    parts.insert(0, text)
                else:
                    parts.append(text)
                combined = f"{combined} {normalized}"
        return " ".join(part for part in parts if part)

    @staticmethod
    def same_tokens(left: str, right: str) -> bool:
        left_tokens = left.split()
        right_tokens = right.split()
        if len(left_tokens) >= 2 and sorted(left_tokens) == sorted(right_tokens):
            return True
        left_core = sorted(t for t in left_tokens if t not in NAME_PARTICLES)
        right_core = sorted(t for t in right_tokens if t not in NAME_PARTICLES)
        return len(left_core) >= 2 and left_core == right_core

    @staticmethod
    def name_similarity(left: str, right: str) -> float:
        """Best of the plain and token-sorted edit-distance similarities."""
        plain = similarity(left, right)
        ordered = similarity(" ".join(sorted(left.split())), " ".join(sorted(right.split())))
        return max(plain, ordered)

    def threshold_for(self, left: str, right: str) -> float:
        if min(len(left), len(right)) <= self.config.short_max_length:
            return self.config.short_threshold
        if len(left.split()) == len(right.split()) >= 2:
            return self.config.relaxed_threshold
        return self.config.threshold
