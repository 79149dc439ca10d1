"""Command line entry point: extract scores from a sheet image and link them to a destination table.

Usage:
    python -m scoresheet_pipeline sheet.jpg class.xlsx
    python -m scoresheet_pipeline sheet.jpg snapshot.json --recognition-json ocr.json --document-type handwritten
    python -m scoresheet_pipeline sheet.jpg class.xlsx --write

Exit codes: 0 valid non-empty result, 1 no records or a result that failed validation,
2 fatal input or service error.
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from scoresheet_pipeline.custom_logging.log_context import setup_logging
from scoresheet_pipeline.destination.workbook import open_destination
from scoresheet_pipeline.exceptions import InvalidDocument, NoRecordsExtracted, ScoreSheetError
from scoresheet_pipeline.pipeline_builder import build_pipeline
from scoresheet_pipeline.recognition.response_parser import JsonRecognitionService
from scoresheet_pipeline.validation.image_quality import measure_image_quality
from scoresheet_pipeline.validation.schemas import (
    AdaptiveContext,
    Complexity,
    DocumentType,
    LanguageComplexity,
)

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_RECOVERABLE = 1
EXIT_FATAL = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="scoresheet-pipeline",
        description="Extract per-person scores from a score sheet image and link them to a destination table",
    )
    parser.add_argument("image", type=Path, help="Photo or scan of the score sheet")
    parser.add_argument(
        "destination",
        type=Path,
        nargs="?",
        help="Destination table: .xlsx workbook or JSON used-range snapshot",
    )
    parser.add_argument("--sheet", help="Worksheet name of an .xlsx destination (default: active sheet)")
    parser.add_argument(
        "--recognition-json",
        type=Path,
        help="Use a saved recognition payload instead of calling Textract",
    )
    parser.add_argument(
        "--document-type",
        choices=[t.value for t in DocumentType],
        default=DocumentType.MARKS_SHEET.value,
    )
    parser.add_argument("--complexity", choices=[c.value for c in Complexity], default=Complexity.MEDIUM.value)
    parser.add_argument(
        "--language-complexity",
        choices=[c.value for c in LanguageComplexity],
        default=LanguageComplexity.MIXED.value,
    )
    parser.add_argument("--critical", action="store_true", help="Require higher confidence before accepting")
    parser.add_argument("--expected-count", type=int, help="Number of people expected on the sheet")
    parser.add_argument("--language-hints", default="ar,fr", help="Comma separated language codes (default: ar,fr)")
    parser.add_argument("--name-column", type=int, help="0-based name column of the destination, skips detection")
    parser.add_argument("--no-retry", action="store_true", help="Disable the automatic relaxed retry")
    parser.add_argument("--write", action="store_true", help="Write linked scores into the destination")
    parser.add_argument("--log-level", default=None, help="Overrides LOG_LEVEL")
    return parser


def build_context(args: argparse.Namespace, image_bytes: bytes) -> AdaptiveContext:
    try:
        image_quality = measure_image_quality(image_bytes)
    except InvalidDocument:
        if args.recognition_json is None:
            raise
        logger.warning("Image could not be decoded; assessing without quality metrics")
        image_quality = None

    return AdaptiveContext(
        document_type=DocumentType(args.document_type),
        image_quality=image_quality,
        expected_complexity=Complexity(args.complexity),
        language_complexity=LanguageComplexity(args.language_complexity),
        critical_accuracy=args.critical,
        expected_count=args.expected_count,
        allow_retry=not args.no_retry,
    )


def _print_json(payload: dict) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=2))


def main(argv: Optional[List[str]] = None) -> int:
    """Run the pipeline from the command line and print a JSON report."""
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level)

    if not args.image.exists():
        logger.error(f"Image not found: {args.image}")
        _print_json({"error": {"kind": InvalidDocument.kind.value, "message": f"Image not found: {args.image}"}})
        return EXIT_FATAL

    try:
        image_bytes = args.image.read_bytes()
        destination = open_destination(args.destination, args.sheet) if args.destination else None
        recognition_service = JsonRecognitionService(args.recognition_json) if args.recognition_json else None
        pipeline = build_pipeline(destination=destination, recognition_service=recognition_service)
        outcome = pipeline.process(
            image_bytes,
            build_context(args, image_bytes),
            language_hints=[hint.strip() for hint in args.language_hints.split(",") if hint.strip()],
            name_column=args.name_column,
            write=args.write,
        )
    except NoRecordsExtracted as e:
        _print_json({"error": e.to_dict()})
        return EXIT_RECOVERABLE
    except ScoreSheetError as e:
        _print_json({"error": e.to_dict()})
        return EXIT_FATAL

    _print_json(outcome.to_dict())
    return EXIT_OK if outcome.report.validation.is_valid else EXIT_RECOVERABLE


if __name__ == "__main__":
    sys.exit(main())
