"""Selection among extraction strategies, post-processing and the single retry."""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from scoresheet_pipeline.config import settings
from scoresheet_pipeline.exceptions import ExtractionCancelled, NoRecordsExtracted
from scoresheet_pipeline.extraction.deduplication import fill_sequence_numbers, remove_duplicates
from scoresheet_pipeline.extraction.extraction_config import ExtractionConfig
from scoresheet_pipeline.extraction.layout import LayoutReconstructor
from scoresheet_pipeline.extraction.schemas import ExtractionResult
from scoresheet_pipeline.extraction.strategies.aggressive import AggressiveStrategy
from scoresheet_pipeline.extraction.strategies.base import ExtractionStrategy
from scoresheet_pipeline.extraction.strategies.line_by_line import LineByLineStrategy
from scoresheet_pipeline.extraction.strategies.table_structure import TableStructureStrategy
from scoresheet_pipeline.recognition.schemas import RecognitionResult
from scoresheet_pipeline.validation.adaptive_confidence import AdaptiveConfidenceEngine
from scoresheet_pipeline.validation.schemas import (
    AdaptiveContext,
    ConfidenceAssessment,
    StrategyClass,
    ValidationOutcome,
)
from scoresheet_pipeline.validation.statistical_validator import Correction, StatisticalValidator

logger = logging.getLogger(__name__)

TABLE = TableStructureStrategy.name
LINE = LineByLineStrategy.name
AGGRESSIVE = AggressiveStrategy.name

# Declared priority; also the tie-break order between equally confident results
PRIORITY = (TABLE, LINE)


@dataclass(frozen=True)
class StrategyPlan:
    """How a strategy class runs the strategies.

    exhaustive: keep trying lower-priority strategies after a non-empty result.
    fallback: run the aggressive strategy when every other strategy came back empty.
    retry: the single relaxed retry is permitted.
    """

    exhaustive: bool
    fallback: bool
    retry: bool
    time_budget_seconds: Optional[float] = None


PLANS: Dict[StrategyClass, StrategyPlan] = {
    StrategyClass.MULTI_PASS: StrategyPlan(
        exhaustive=True, fallback=True, retry=True, time_budget_seconds=settings.MULTI_PASS_TIME_BUDGET_SECONDS
    ),
    StrategyClass.CONSERVATIVE: StrategyPlan(exhaustive=True, fallback=False, retry=True),
    StrategyClass.STANDARD: StrategyPlan(exhaustive=False, fallback=True, retry=True),
    StrategyClass.AGGRESSIVE: StrategyPlan(exhaustive=False, fallback=True, retry=False),
}


def default_strategies(config: ExtractionConfig) -> Dict[str, ExtractionStrategy]:
    """Builds the three strategies sharing one layout reconstructor."""
    reconstructor = LayoutReconstructor(config)
    return {
        TABLE: TableStructureStrategy(config, reconstructor),
        LINE: LineByLineStrategy(config, reconstructor),
        AGGRESSIVE: AggressiveStrategy(config, reconstructor),
    }


class OrchestrationReport(BaseModel):
    """The selected extraction together with how it was reached and judged."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    result: ExtractionResult
    assessment: ConfidenceAssessment
    validation: ValidationOutcome
    attempts: List[str] = Field(default_factory=list)
    corrections: List[Correction] = Field(default_factory=list)
    retried: bool = False


class StrategyOrchestrator:
    """Runs extraction strategies in priority order and keeps the most confident result."""

    def __init__(
        self,
        strategies: Dict[str, ExtractionStrategy],
        confidence_engine: AdaptiveConfidenceEngine,
        validator: StatisticalValidator,
        config: Optional[ExtractionConfig] = None,
        retry_strategies: Optional[Dict[str, ExtractionStrategy]] = None,
    ):
        """Initializes the orchestrator with injected dependencies.

        Args:
            strategies: Strategies keyed by name (table_structure, line_by_line, aggressive).
            confidence_engine: Provides thresholds, the strategy class and final validation.
            validator: Statistical outlier corrector applied to the selected records.
            config: Extraction configuration, used for de-duplication.
            retry_strategies: Strategies for the relaxed retry pass. Built from ``config.relaxed()``
                when omitted.
        """
        self.strategies = strategies
        self.confidence_engine = confidence_engine
        self.validator = validator
        self.config = config or ExtractionConfig()
        self.retry_strategies = retry_strategies or default_strategies(self.config.relaxed())

    def run(
        self,
        recognition: RecognitionResult,
        context: AdaptiveContext,
        cancel_event: Optional[threading.Event] = None,
    ) -> OrchestrationReport:
        """Extracts, corrects and validates the records of one score sheet.

        Args:
            recognition: Output of the recognition service.
            context: Adaptive context for thresholds and strategy choice.
            cancel_event: Checked between strategy attempts; setting it stops the run.

        Returns:
            OrchestrationReport: The selected result and its validation. A result failing validation
                is returned, not raised, with ``validation.is_valid`` False.

        Raises:
            NoRecordsExtracted: If every strategy, including the retry, produced zero records.
            ExtractionCancelled: If ``cancel_event`` was set.
        """
        assessment = self.confidence_engine.assess(context)
        plan = PLANS[assessment.strategy_class]
        attempts: List[ExtractionResult] = []

        result = self._run_plan(plan, self.strategies, recognition, attempts, cancel_event)
        result, corrections = self._post_process(result)
        validation = self.confidence_engine.validate(result, context, assessment)
        retried = False

        if not validation.is_valid and context.allow_retry and plan.retry:
            logger.info(f"Result failed validation ({'; '.join(validation.issues)}); retrying with relaxed layout")
            retried = True
            retry = self._run_plan(
                PLANS[StrategyClass.MULTI_PASS], self.retry_strategies, recognition, attempts, cancel_event
            )
            retry, retry_corrections = self._post_process(retry)
            retry_validation = self.confidence_engine.validate(retry, context, assessment)
            if self._better(retry, retry_validation, result, validation):
                logger.info(f"Keeping retry result from {retry.strategy}")
                result, validation, corrections = retry, retry_validation, retry_corrections
            result = result.model_copy(update={"warnings": result.warnings + ["A relaxed retry pass was run"]})

        if not result.records:
            warnings = []
            for attempt in attempts:
                warnings.extend(w for w in attempt.warnings if w not in warnings)
            raise NoRecordsExtracted("No records could be extracted from the score sheet.", warnings)

        return OrchestrationReport(
            result=result,
            assessment=assessment,
            validation=validation,
            attempts=[attempt.strategy for attempt in attempts],
            corrections=corrections,
            retried=retried,
        )

    def _run_plan(
        self,
        plan: StrategyPlan,
        strategies: Dict[str, ExtractionStrategy],
        recognition: RecognitionResult,
        attempts: List[ExtractionResult],
        cancel_event: Optional[threading.Event],
    ) -> ExtractionResult:
        started = time.monotonic()
        best: Optional[ExtractionResult] = None

        for name in PRIORITY:
            if best is not None and not best.is_empty:
                if not plan.exhaustive:
                    break
                if plan.time_budget_seconds is not None and time.monotonic() - started > plan.time_budget_seconds:
                    logger.info("Multi-pass time budget spent; keeping current best result")
                    break
            result = self._attempt(strategies[name], recognition, cancel_event)
            attempts.append(result)
            if best is None or result.confidence > best.confidence:
                best = result

        if best.is_empty and plan.fallback:
            result = self._attempt(strategies[AGGRESSIVE], recognition, cancel_event)
            attempts.append(result)
            if not result.is_empty:
                best = result

        logger.info(f"Selected {best.strategy} with {len(best.records)} records (confidence {best.confidence:.2f})")
        return best

    @staticmethod
    def _attempt(
        strategy: ExtractionStrategy, recognition: RecognitionResult, cancel_event: Optional[threading.Event]
    ) -> ExtractionResult:
        if cancel_event is not None and cancel_event.is_set():
            raise ExtractionCancelled("Extraction was cancelled before the next strategy attempt.")
        logger.debug(f"Attempting {strategy.name} strategy")
        result = strategy.extract(recognition)
        logger.info(f"{strategy.name}: {len(result.records)} records, confidence {result.confidence:.2f}")
        return result

    def _post_process(self, result: ExtractionResult):
        """De-duplicates, numbers and statistically corrects a selected result."""
        if result.is_empty:
            return result, []
        records = remove_duplicates(
            [record.model_copy(deep=True) for record in result.records], self.config.duplicate_name_similarity
        )
        fill_sequence_numbers(records)
        records, corrections = self.validator.check(records)
        return result.model_copy(update={"records": records}), corrections

    @staticmethod
    def _better(
        candidate: ExtractionResult,
        candidate_validation: ValidationOutcome,
        current: ExtractionResult,
        current_validation: ValidationOutcome,
    ) -> bool:
        if candidate.is_empty:
            return False
        if current.is_empty:
            return True
        if candidate_validation.is_valid != current_validation.is_valid:
            return candidate_validation.is_valid
        return candidate.confidence > current.confidence
