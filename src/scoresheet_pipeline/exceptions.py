"""Error taxonomy for the score sheet pipeline.

Every error carries a machine-readable ``kind`` and a human-readable ``message`` so callers can
render either. Low-confidence results and unlinked records are reported as data, not raised.
"""

from enum import Enum
from typing import List, Optional


class ErrorKind(str, Enum):
    """Stable identifiers for pipeline failures."""

    RECOGNITION_SERVICE_UNAVAILABLE = "RecognitionServiceUnavailable"
    INVALID_DOCUMENT = "InvalidDocument"
    NO_STRUCTURE_FOUND = "NoStructureFound"
    NO_RECORDS_EXTRACTED = "NoRecordsExtracted"
    EXTRACTION_CANCELLED = "ExtractionCancelled"
    DESTINATION_ERROR = "DestinationError"
    PIPELINE_ERROR = "PipelineError"


class ScoreSheetError(Exception):
    """Base exception for score sheet pipeline failures."""

    kind: ErrorKind = ErrorKind.PIPELINE_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"kind": self.kind.value, "message": self.message}


class RecognitionServiceUnavailable(ScoreSheetError):
    """The remote recognition service could not be reached or refused the request."""

    kind = ErrorKind.RECOGNITION_SERVICE_UNAVAILABLE

    def __init__(self, message: str, reason: str = "service"):
        super().__init__(message)
        self.reason = reason

    def to_dict(self) -> dict:
        return {**super().to_dict(), "reason": self.reason}


class RecognitionPayloadError(RecognitionServiceUnavailable):
    """The recognition service answered with a payload of the wrong shape."""

    def __init__(self, message: str):
        super().__init__(message, reason="malformed_response")


class InvalidDocument(ScoreSheetError):
    """The submitted image was rejected as unreadable, unsupported or too large."""

    kind = ErrorKind.INVALID_DOCUMENT


class NoStructureFound(ScoreSheetError):
    """No header row could be located; callers fall back to non-geometric strategies."""

    kind = ErrorKind.NO_STRUCTURE_FOUND


class NoRecordsExtracted(ScoreSheetError):
    """Every extraction strategy came back empty."""

    kind = ErrorKind.NO_RECORDS_EXTRACTED

    def __init__(self, message: str, warnings: Optional[List[str]] = None):
        super().__init__(message)
        self.warnings = list(warnings or [])

    def to_dict(self) -> dict:
        return {**super().to_dict(), "warnings": self.warnings}


class ExtractionCancelled(ScoreSheetError):
    """The caller asked for extraction to stop between strategy attempts."""

    kind = ErrorKind.EXTRACTION_CANCELLED


class DestinationError(ScoreSheetError):
    """The destination table could not be read or written."""

    kind = ErrorKind.DESTINATION_ERROR


class PipelineError(ScoreSheetError):
    """Unexpected failure while processing a score sheet."""

    kind = ErrorKind.PIPELINE_ERROR
