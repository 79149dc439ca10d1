"""Custom logging context to include the processing session id in log messages."""

import logging
from contextvars import ContextVar
from typing import Optional

from scoresheet_pipeline.config import settings

# One session id per submitted score sheet.
session_id_context: ContextVar[Optional[str]] = ContextVar("session_id", default=None)


class ContextFilter(logging.Filter):
    """Injects the session id into log records if present."""

    def filter(self, record):
        """Injects the session id into log records if present.

        Args:
            record (logging.LogRecord): The log record to modify.

        Returns:
            bool: Always returns True.
        """
        session_id = session_id_context.get()
        if session_id:
            record.msg = f"[{session_id}] {record.msg}"
        return True


def setup_logging(level: Optional[str] = None):
    """Call this once at app startup."""
    root_logger = logging.getLogger()

    # Clear any existing handlers (prevents duplicates)
    root_logger.handlers.clear()

    handler = logging.StreamHandler()
    formatter = logging.Formatter("%(asctime)s %(levelname)s %(message)s", datefmt="%Y-%m-%d %H:%M:%S")
    handler.setFormatter(formatter)
    handler.addFilter(ContextFilter())

    root_logger.addHandler(handler)
    root_logger.setLevel(level or settings.LOG_LEVEL)
