"""End-to-end pipeline: recognition -> extraction -> linking -> optional writeback."""

import logging
import threading
import uuid
from typing import List, Optional

from pydantic import BaseModel, ConfigDict

from scoresheet_pipeline.custom_logging.log_context import session_id_context
from scoresheet_pipeline.destination.schemas import DestinationTable
from scoresheet_pipeline.destination.score_writer import InsertionReport, ScoreWriter
from scoresheet_pipeline.exceptions import PipelineError, ScoreSheetError
from scoresheet_pipeline.linking.column_detector import DestinationStructure, detect_structure
from scoresheet_pipeline.linking.record_linker import FuzzyRecordLinker, LinkingReport
from scoresheet_pipeline.orchestration.orchestrator import OrchestrationReport, StrategyOrchestrator
from scoresheet_pipeline.recognition.schemas import RecognitionResult
from scoresheet_pipeline.validation.schemas import AdaptiveContext

logger = logging.getLogger(__name__)


class PipelineOutcome(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    report: OrchestrationReport
    structure: Optional[DestinationStructure] = None
    linking: Optional[LinkingReport] = None
    insertion: Optional[InsertionReport] = None

    def to_dict(self) -> dict:
        """JSON-ready summary of the run."""
        result = self.report.result
        validation = self.report.validation
        return {
            "strategy": result.strategy,
            "strategyClass": self.report.assessment.strategy_class.value,
            "records": [
                {
                    "sequenceNumber": record.sequence_number,
                    "name": record.name,
                    "scores": {kind.value: value for kind, value in record.scores.items()},
                    "uncertaintyFlags": {field: True for field, flagged in record.uncertainty_flags.items() if flagged},
                }
                for record in result.records
            ],
            "detectedKinds": [kind.value for kind in result.detected_kinds],
            "confidence": round(result.confidence, 4),
            "warnings": result.warnings,
            "thresholds": self.report.assessment.thresholds.model_dump(),
            "validation": {
                "isValid": validation.is_valid,
                "issues": validation.issues,
                "requiresRetry": validation.requires_retry,
                "recommendations": validation.recommendations,
            },
            "corrections": [
                {"name": c.name, "kind": c.kind.value, "original": c.original, "corrected": c.corrected}
                for c in self.report.corrections
            ],
            "rowAssignments": self.linking.row_assignments if self.linking else {},
            "notFound": self.linking.not_found if self.linking else [],
            "written": self.insertion.written if self.insertion else 0,
        }


class ScoreSheetPipeline:
    """Orchestrates one score sheet: recognize, extract, link and optionally write back."""

    def __init__(
        self,
        recognition_service,
        orchestrator: StrategyOrchestrator,
        linker: FuzzyRecordLinker,
        destination: Optional[DestinationTable] = None,
    ):
        """Initializes the pipeline with injected dependencies.

        Args:
            recognition_service: Object with ``recognize(image_bytes, language_hints)``.
            orchestrator: Strategy orchestrator producing validated records.
            linker: Fuzzy linker matching records to destination rows.
            destination: Destination table; linking is skipped without one.
        """
        self.recognition_service = recognition_service
        self.orchestrator = orchestrator
        self.linker = linker
        self.destination = destination

    def process(
        self,
        image_bytes: bytes,
        context: AdaptiveContext,
        language_hints: Optional[List[str]] = None,
        name_column: Optional[int] = None,
        write: bool = False,
        session_id: Optional[str] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> PipelineOutcome:
        """Runs the full pipeline for a single score sheet.

        Args:
            image_bytes: Encoded image of the sheet.
            context: Adaptive context for thresholds and strategy choice.
            language_hints: Passed to the recognition service.
            name_column: Forces the destination name column.
            write: Write linked scores into the destination and save it.
            session_id: Id prefixed to every log line of this run.
            cancel_event: Cooperative cancellation flag for the orchestrator.

        Returns:
            PipelineOutcome: Extraction report plus linking and insertion reports when a destination is set.

        Raises:
            ScoreSheetError: Known failures (service, input, no records, destination, cancellation).
            PipelineError: Any unexpected failure.
        """
        session_id_context.set(session_id or uuid.uuid4().hex[:8])
        logger.info("Starting score sheet pipeline")

        try:
            recognition: RecognitionResult = self.recognition_service.recognize(image_bytes, language_hints)
            report = self.orchestrator.run(recognition, context, cancel_event)
            outcome = PipelineOutcome(report=report)
            if self.destination is None:
                logger.info("No destination table; skipping record linking")
                return outcome

            used_range = self.destination.get_used_range()
            structure = detect_structure(used_range, name_column)
            linking = self.linker.link(report.result.records, structure.data_rows, structure.name_column)
            outcome = outcome.model_copy(update={"structure": structure, "linking": linking})

            if write:
                insertion = ScoreWriter(self.destination).write(report.result.records, linking, structure, used_range)
                self.destination.save()
                outcome = outcome.model_copy(update={"insertion": insertion})

            logger.info("Successfully finished processing score sheet")
            return outcome

        except ScoreSheetError as e:
            logger.critical(f"Pipeline failed ({e.kind.value}): {e.message}", exc_info=True)
            raise
        except Exception as e:
            logger.critical(f"An unexpected error occurred in the pipeline: {e}", exc_info=True)
            raise PipelineError(f"Unexpected pipeline failure: {str(e)}") from e
        finally:
            logger.info("Cleaning up session context")
            session_id_context.set(None)
