"""Log format detection and parsing."""

from loglens.parsing.detector import detect_format
from loglens.parsing.log_parser import extract_issues, parse_log
from loglens.parsing.models import (
    FormatDetectionResult,
    LogEntry,
    LogFormat,
    LogLevel,
    LogStats,
    ParseResult,
    TimeRange,
)
from loglens.parsing.parsers import PARSERS, http_status_to_level, parse_lines
from loglens.parsing.stats import compute_stats
from loglens.parsing.summary import build_log_summary, format_entry_for_prompt

__all__ = [
    "FormatDetectionResult",
    "LogEntry",
    "LogFormat",
    "LogLevel",
    "LogStats",
    "PARSERS",
    "ParseResult",
    "TimeRange",
    "build_log_summary",
    "compute_stats",
    "detect_format",
    "extract_issues",
    "format_entry_for_prompt",
    "http_status_to_level",
    "parse_lines",
    "parse_log",
]
