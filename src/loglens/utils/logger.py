"""Logging utilities for loglens."""

import io
import json
import logging
import sys
from datetime import datetime, timezone
from typing import Optional

import structlog


class JsonLogFormatter(logging.Formatter):
    """JSON formatter for log records to align with structlog JSON output."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_data)


# Buffer holding captured log output when capture is requested
_log_buffer: Optional[io.StringIO] = None
_capture_handler: Optional[logging.StreamHandler] = None


def setup_logging(level: str = "INFO", json_logs: bool = False, capture: bool = False):
    """Setup structured logging, optionally capturing stdlib log output in memory."""
    global _log_buffer, _capture_handler

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
    ]

    if json_logs:
        processors.append(structlog.processors.TimeStamper(fmt="iso", utc=True))
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, level.upper())
        ),
        context_class=dict,
        logger_factory=structlog.WriteLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))
    root_logger.handlers.clear()

    # stderr keeps stdout free for command output
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(logging.Formatter("%(message)s"))
    console_handler.setLevel(getattr(logging, level.upper()))
    root_logger.addHandler(console_handler)

    if not capture:
        _log_buffer = None
        _capture_handler = None
        return

    _log_buffer = io.StringIO()
    _capture_handler = logging.StreamHandler(_log_buffer)
    if json_logs:
        _capture_handler.setFormatter(JsonLogFormatter())
    else:
        _capture_handler.setFormatter(
            logging.Formatter("%(asctime)s | %(levelname)s | %(name)s | %(message)s")
        )
    _capture_handler.setLevel(getattr(logging, level.upper()))
    root_logger.addHandler(_capture_handler)


def get_logger(name: Optional[str] = None) -> structlog.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)


def get_captured_logs() -> Optional[str]:
    """
    Get all captured log content.

    Returns:
        The captured log content as a string, or None if capture is disabled.
    """
    if _log_buffer is not None:
        return _log_buffer.getvalue()
    return None


def clear_log_buffer():
    """Clear the log buffer (useful for tests)."""
    if _log_buffer is not None:
        _log_buffer.truncate(0)
        _log_buffer.seek(0)
