"""Pipeline builder responsible for creating the score sheet pipeline components."""

import logging
from typing import Optional

from scoresheet_pipeline.custom_logging.log_context import setup_logging
from scoresheet_pipeline.destination.schemas import DestinationTable
from scoresheet_pipeline.extraction.extraction_config import ExtractionConfig
from scoresheet_pipeline.extraction.layout import LayoutReconstructor
from scoresheet_pipeline.linking.record_linker import FuzzyRecordLinker, NameMatchConfig
from scoresheet_pipeline.orchestration.orchestrator import StrategyOrchestrator, default_strategies
from scoresheet_pipeline.orchestration.pipeline import ScoreSheetPipeline
from scoresheet_pipeline.recognition.textract_client import TextractRecognitionService, get_textract_client
from scoresheet_pipeline.validation.adaptive_confidence import AdaptiveConfidenceEngine
from scoresheet_pipeline.validation.statistical_validator import StatisticalValidator

setup_logging()
logger = logging.getLogger(__name__)


def build_pipeline(
    destination: Optional[DestinationTable] = None,
    recognition_service=None,
    config: Optional[ExtractionConfig] = None,
) -> ScoreSheetPipeline:
    """Constructs the pipeline with all its dependencies.

    This acts as the composition root for the application.

    Args:
        destination: Destination table to link against and write into.
        recognition_service: Replaces the Textract-backed service, e.g. with a saved payload.
        config: Extraction configuration; defaults from settings.

    Returns:
        ScoreSheetPipeline: A fully configured pipeline.
    """
    config = config or ExtractionConfig()

    # --- Recognition ---
    if recognition_service is None:
        recognition_service = TextractRecognitionService(
            textract_client=get_textract_client(),
            reconstructor=LayoutReconstructor(config),
        )

    # --- Extraction and validation ---
    orchestrator = StrategyOrchestrator(
        strategies=default_strategies(config),
        confidence_engine=AdaptiveConfidenceEngine(score_min=config.score_min, score_max=config.score_max),
        validator=StatisticalValidator(score_max=config.score_max),
        config=config,
        retry_strategies=default_strategies(config.relaxed()),
    )

    # --- Linking ---
    linker = FuzzyRecordLinker(NameMatchConfig())

    return ScoreSheetPipeline(
        recognition_service=recognition_service,
        orchestrator=orchestrator,
        linker=linker,
        destination=destination,
    )
