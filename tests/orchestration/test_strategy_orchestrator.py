import threading
from unittest.mock import Mock

import pytest

from scoresheet_pipeline.exceptions import ExtractionCancelled, NoRecordsExtracted
from scoresheet_pipeline.extraction.extraction_config import ExtractionConfig
from scoresheet_pipeline.extraction.schemas import ExtractionResult, PersonRecord, ScoreKind
from scoresheet_pipeline.orchestration.orchestrator import (
    AGGRESSIVE,
    LINE,
    TABLE,
    StrategyOrchestrator,
    default_strategies,
)
from scoresheet_pipeline.recognition.schemas import RecognitionResult
from scoresheet_pipeline.validation.adaptive_confidence import AdaptiveConfidenceEngine
from scoresheet_pipeline.validation.schemas import (
    AdaptiveContext,
    Complexity,
    DocumentType,
    ImageQualityMetrics,
    StrategyClass,
)
from scoresheet_pipeline.validation.statistical_validator import StatisticalValidator

KINDS = [ScoreKind.SCORE1, ScoreKind.SCORE2]


def good_records():
    return [
        PersonRecord(name="Jane Doe", scores={ScoreKind.SCORE1: 14.5, ScoreKind.SCORE2: 9.0}),
        PersonRecord(name="John Roe", scores={ScoreKind.SCORE1: 7.0, ScoreKind.SCORE2: 15.5}),
    ]


def result(strategy, confidence=0.0, records=None, warnings=None):
    return ExtractionResult(
        strategy=strategy,
        records=records or [],
        detected_kinds=KINDS if records else [],
        confidence=confidence,
        warnings=warnings or [],
    )


def fake_strategies(table=None, line=None, aggressive=None):
    strategies = {}
    for name, outcome in ((TABLE, table), (LINE, line), (AGGRESSIVE, aggressive)):
        strategy = Mock()
        strategy.name = name
        strategy.extract.return_value = outcome or result(name, warnings=[f"{name} found nothing"])
        strategies[name] = strategy
    return strategies


def make_orchestrator(strategies, retry_strategies=None):
    return StrategyOrchestrator(
        strategies=strategies,
        confidence_engine=AdaptiveConfidenceEngine(),
        validator=StatisticalValidator(),
        config=ExtractionConfig(),
        retry_strategies=retry_strategies or fake_strategies(),
    )


def test_clean_sheet_uses_table_strategy(scenario_recognition):
    config = ExtractionConfig()
    orchestrator = StrategyOrchestrator(
        default_strategies(config), AdaptiveConfidenceEngine(), StatisticalValidator(), config
    )

    report = orchestrator.run(scenario_recognition, AdaptiveContext())

    assert report.assessment.strategy_class == StrategyClass.STANDARD
    assert report.result.strategy == TABLE
    assert report.result.confidence == pytest.approx(0.95)
    assert report.result.confidence >= config.line_strategy_confidence
    assert len(report.result.records) == 3
    assert report.validation.is_valid
    assert report.attempts == [TABLE]
    assert not report.retried


def test_line_strategy_used_when_table_is_empty():
    strategies = fake_strategies(line=result(LINE, 0.7, good_records()))

    report = make_orchestrator(strategies).run(RecognitionResult(), AdaptiveContext())

    assert report.result.strategy == LINE
    assert report.attempts == [TABLE, LINE]
    assert report.validation.is_valid
    strategies[AGGRESSIVE].extract.assert_not_called()


def test_aggressive_fallback_then_single_retry():
    strategies = fake_strategies(aggressive=result(AGGRESSIVE, 0.5, good_records()))
    retry = fake_strategies(aggressive=result(AGGRESSIVE, 0.5, good_records()))

    report = make_orchestrator(strategies, retry).run(RecognitionResult(), AdaptiveContext())

    assert report.result.strategy == AGGRESSIVE
    assert not report.validation.is_valid
    assert report.retried
    assert "A relaxed retry pass was run" in report.result.warnings
    assert report.attempts == [TABLE, LINE, AGGRESSIVE, TABLE, LINE, AGGRESSIVE]
    for strategy in retry.values():
        strategy.extract.assert_called_once()


def test_valid_retry_result_replaces_invalid_one():
    strategies = fake_strategies(aggressive=result(AGGRESSIVE, 0.5, good_records()))
    retry = fake_strategies(table=result(TABLE, 0.9, good_records()))

    report = make_orchestrator(strategies, retry).run(RecognitionResult(), AdaptiveContext())

    assert report.result.strategy == TABLE
    assert report.validation.is_valid
    assert report.retried


def test_retry_disabled_by_context():
    strategies = fake_strategies(aggressive=result(AGGRESSIVE, 0.5, good_records()))
    retry = fake_strategies()

    report = make_orchestrator(strategies, retry).run(RecognitionResult(), AdaptiveContext(allow_retry=False))

    assert not report.retried
    assert not report.validation.is_valid
    retry[TABLE].extract.assert_not_called()


def test_no_records_anywhere_raises_with_collected_warnings():
    with pytest.raises(NoRecordsExtracted) as excinfo:
        make_orchestrator(fake_strategies()).run(RecognitionResult(), AdaptiveContext())

    assert excinfo.value.warnings == [
        "table_structure found nothing",
        "line_by_line found nothing",
        "aggressive found nothing",
    ]


def test_conservative_class_has_no_aggressive_fallback():
    strategies = fake_strategies()
    context = AdaptiveContext(critical_accuracy=True)

    with pytest.raises(NoRecordsExtracted):
        make_orchestrator(strategies).run(RecognitionResult(), context)

    strategies[TABLE].extract.assert_called_once()
    strategies[LINE].extract.assert_called_once()
    strategies[AGGRESSIVE].extract.assert_not_called()


def test_aggressive_class_never_retries():
    perfect = ImageQualityMetrics(brightness=1, contrast=1, sharpness=1, noise=0, skew=0, resolution=300)
    context = AdaptiveContext(
        document_type=DocumentType.PRINTED, expected_complexity=Complexity.LOW, image_quality=perfect
    )
    strategies = fake_strategies(aggressive=result(AGGRESSIVE, 0.5, good_records()))
    retry = fake_strategies()

    report = make_orchestrator(strategies, retry).run(RecognitionResult(), context)

    assert report.assessment.strategy_class == StrategyClass.AGGRESSIVE
    assert not report.retried
    retry[TABLE].extract.assert_not_called()


def test_multi_pass_tries_every_strategy_and_keeps_most_confident():
    strategies = fake_strategies(table=result(TABLE, 0.6, good_records()), line=result(LINE, 0.7, good_records()))
    context = AdaptiveContext(document_type=DocumentType.HANDWRITTEN)

    report = make_orchestrator(strategies).run(RecognitionResult(), context)

    assert report.assessment.strategy_class == StrategyClass.MULTI_PASS
    assert report.result.strategy == LINE
    assert report.attempts[:2] == [TABLE, LINE]


def test_equal_confidence_prefers_declared_priority():
    strategies = fake_strategies(table=result(TABLE, 0.7, good_records()), line=result(LINE, 0.7, good_records()))
    context = AdaptiveContext(document_type=DocumentType.HANDWRITTEN)

    report = make_orchestrator(strategies).run(RecognitionResult(), context)

    assert report.result.strategy == TABLE


def test_selected_records_are_deduplicated_and_numbered():
    records = good_records() + [PersonRecord(name="jane doe", scores={ScoreKind.SCORE1: 11.0})]
    strategies = fake_strategies(table=result(TABLE, 0.9, records))

    report = make_orchestrator(strategies).run(RecognitionResult(), AdaptiveContext())

    assert [r.name for r in report.result.records] == ["Jane Doe", "John Roe"]
    assert [r.sequence_number for r in report.result.records] == [1, 2]
    assert report.result.records[0].scores[ScoreKind.SCORE1] == 14.5
    # the strategy's own result is left untouched
    assert len(records) == 3
    assert records[0].sequence_number is None


def test_cancellation_stops_before_first_attempt():
    strategies = fake_strategies()
    cancel = threading.Event()
    cancel.set()

    with pytest.raises(ExtractionCancelled):
        make_orchestrator(strategies).run(RecognitionResult(), AdaptiveContext(), cancel_event=cancel)

    strategies[TABLE].extract.assert_not_called()
