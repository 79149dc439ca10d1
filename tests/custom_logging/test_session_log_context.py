import logging

from scoresheet_pipeline.custom_logging.log_context import ContextFilter, session_id_context, setup_logging


def create_log_record(msg):
    return logging.LogRecord(
        name="test", level=logging.INFO, pathname=__file__, lineno=0, msg=msg, args=(), exc_info=None
    )


def test_context_filter_injects_session_id():
    session_id_context.set("abc123")
    record = create_log_record("Test message")
    try:
        result = ContextFilter().filter(record)
    finally:
        session_id_context.set(None)
    assert result is True
    assert record.msg == "[abc123] Test message"


def test_context_filter_no_session_id():
    session_id_context.set(None)
    record = create_log_record("Test message")
    assert ContextFilter().filter(record) is True
    assert record.msg == "Test message"


def test_setup_logging_sets_root_logger(monkeypatch):
    dummy_logger = logging.getLogger("test_scoresheet_logger")
    dummy_logger.handlers.clear()
    monkeypatch.setattr(logging, "getLogger", lambda: dummy_logger)

    setup_logging("WARNING")

    assert len(dummy_logger.handlers) == 1
    handler = dummy_logger.handlers[0]
    assert any(isinstance(f, ContextFilter) for f in handler.filters)
    assert handler.formatter is not None
    assert dummy_logger.level == logging.WARNING
