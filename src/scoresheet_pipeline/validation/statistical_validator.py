"""Z-score outlier detection and directional correction of extracted scores."""

import logging
import statistics
from dataclasses import dataclass
from typing import List, Optional, Tuple

from scoresheet_pipeline.config import settings
from scoresheet_pipeline.extraction.schemas import PersonRecord, ScoreKind

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Correction:
    """One outlier seen by the validator; ``corrected`` is None when it was only flagged."""

    name: str
    kind: ScoreKind
    original: float
    corrected: Optional[float]
    z_score: float


class StatisticalValidator:
    """Flags per-kind outliers and proposes a decimal-shift correction where the direction allows.

    Records are never removed; only score values and uncertainty flags change, on a copy.
    """

    def __init__(
        self,
        z_threshold: float = settings.ZSCORE_THRESHOLD,
        min_samples: int = settings.MIN_STAT_SAMPLES,
        small_mean_ceiling: float = settings.SMALL_MEAN_CEILING,
        score_max: float = settings.SCORE_MAX,
    ):
        self.z_threshold = z_threshold
        self.min_samples = min_samples
        self.small_mean_ceiling = small_mean_ceiling
        self.score_max = score_max

    def validate(self, records: List[PersonRecord]) -> List[PersonRecord]:
        """Returns a corrected deep copy of ``records``."""
        checked, _ = self.check(records)
        return checked

    def check(self, records: List[PersonRecord]) -> Tuple[List[PersonRecord], List[Correction]]:
        """Corrects a deep copy of ``records`` and reports every outlier seen.

        Kinds with fewer than ``min_samples`` present values, or with zero spread, are left alone.

        Args:
            records: Records from the selected extraction.

        Returns:
            Tuple[List[PersonRecord], List[Correction]]: Copies of every input record in the same order,
            and the outliers found in them.
        """
        checked = [record.model_copy(deep=True) for record in records]
        corrections: List[Correction] = []

        kinds = []
        for record in checked:
            kinds.extend(kind for kind in record.scores if kind not in kinds)

        for kind in kinds:
            present = [r for r in checked if r.scores.get(kind) is not None]
            if len(present) < self.min_samples:
                logger.debug(f"Skipping {kind.value}: {len(present)} values is too few for statistics")
                continue
            values = [r.scores[kind] for r in present]
            mean = statistics.fmean(values)
            std_dev = statistics.pstdev(values)
            if std_dev == 0:
                continue
            for record in present:
                correction = self._check(record, kind, mean, std_dev)
                if correction is not None:
                    corrections.append(correction)

        if corrections:
            logger.info(f"Statistical validation flagged {len(corrections)} outlier values")
        return checked, corrections

    def _check(self, record: PersonRecord, kind: ScoreKind, mean: float, std_dev: float) -> Optional[Correction]:
        value = record.scores[kind]
        z_score = abs(value - mean) / std_dev
        if z_score <= self.z_threshold:
            return None

        corrected = self.propose_correction(value, mean)
        record.flag(kind.value)
        if corrected is not None:
            logger.info(f"Corrected {kind.value} for '{record.name}': {value} -> {corrected} (z={z_score:.2f})")
            record.scores[kind] = corrected
        else:
            logger.info(f"Outlier {kind.value} for '{record.name}' left for review: {value} (z={z_score:.2f})")
        return Correction(record.name, kind, value, corrected, z_score)

    def propose_correction(self, value: float, mean: float) -> Optional[float]:
        """Direction-guided fix for an outlier, or None when no rule applies.

        Far below the mean with a whole-number or very small value suggests a lost decimal digit
        (x10, capped at the maximum). Far above a small mean suggests an extra digit (/10).
        """
        if value < mean:
            if value > 0 and (float(value).is_integer() or value < 3):
                return round(min(value * 10, self.score_max), 2)
            return None
        if mean < self.small_mean_ceiling:
            return round(value / 10, 2)
        return None
