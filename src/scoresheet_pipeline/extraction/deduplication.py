"""Merging of records that describe the same person."""

import logging
from typing import List

from scoresheet_pipeline.extraction.schemas import PersonRecord
from scoresheet_pipeline.linking.text_normalizer import normalize_text, similarity

logger = logging.getLogger(__name__)


def _conflicting_scores(left: PersonRecord, right: PersonRecord) -> bool:
    return any(
        value is not None and right.scores.get(kind) is not None and right.scores[kind] != value
        for kind, value in left.scores.items()
    )


def _same_person(left: PersonRecord, right: PersonRecord, min_similarity: float) -> bool:
    a = normalize_text(left.name)
    b = normalize_text(right.name)
    if a == b:
        return True
    # Near-identical spellings merge only when no score disagrees
    if len(a.split()) != len(b.split()) or similarity(a, b) < min_similarity:
        return False
    return not _conflicting_scores(left, right)


def _merge_into(target: PersonRecord, other: PersonRecord) -> None:
    """Keeps the first non-null value per field; uncertainty flags accumulate."""
    for kind, value in other.scores.items():
        if target.scores.get(kind) is None:
            target.scores[kind] = value
    for field, flagged in other.uncertainty_flags.items():
        if flagged:
            target.flag(field)
    if target.sequence_number is None:
        target.sequence_number = other.sequence_number
    if len(other.name) > len(target.name):
        target.name = other.name


def remove_duplicates(records: List[PersonRecord], min_similarity: float = 0.9) -> List[PersonRecord]:
    """Collapses records judged to be the same person, preserving first-seen order.

    Args:
        records: Records in extraction order. Earlier records win field conflicts.
        min_similarity: Name similarity at or above which two records with equal token counts and no
            conflicting scores merge.

    Returns:
        List[PersonRecord]: The surviving records (the input list's objects, mutated in place).
    """
    kept: List[PersonRecord] = []
    for record in records:
        duplicate = next((k for k in kept if _same_person(k, record, min_similarity)), None)
        if duplicate is None:
            kept.append(record)
        else:
            logger.info(f"Merging duplicate record '{record.name}' into '{duplicate.name}'")
            _merge_into(duplicate, record)
    return kept


def fill_sequence_numbers(records: List[PersonRecord]) -> None:
    """Gives records without a row number their 1-based position."""
    for position, record in enumerate(records, start=1):
        if record.sequence_number is None:
            record.sequence_number = position
