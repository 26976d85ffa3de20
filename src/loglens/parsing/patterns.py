"""Compiled patterns and lookup tables used for detection and parsing."""

import re

from loglens.parsing.models import LogLevel

# ---------------------------------------------------------------------------
# Detection signatures (one line each)
# ---------------------------------------------------------------------------

JSON_LINE_RE = re.compile(r"^\s*\{.*\}\s*$")
SYSLOG_RE = re.compile(
    r"^<\d{1,3}>(?:\d\s+\d{4}-|[A-Z][a-z]{2}\s+\d{1,2}\s+\d{2}:\d{2}:\d{2})"
)
ATLASSIAN_RE = re.compile(
    r"^\d{4}-\d{2}-\d{2}\s+\d{2}:\d{2}:\d{2},\d{3}\s+"
    r"(?:TRACE|DEBUG|INFO|WARN|ERROR|FATAL)\s+\["
)
WEBSERVER_RE = re.compile(
    r'^\S+\s+\S+\s+\S+\s+\[\d{2}/\w{3}/\d{4}:\d{2}:\d{2}:\d{2}\s+[+-]\d{4}\]\s+"'
)
JAVA_EXCEPTION_RE = re.compile(r"(?:Exception|Error)(?::\s|\s+at\s)")
JAVA_AT_LINE_RE = re.compile(r"^\s+at\s+")

# ---------------------------------------------------------------------------
# Parsing patterns
# ---------------------------------------------------------------------------

ATLASSIAN_ENTRY_RE = re.compile(
    r"^(\d{4}-\d{2}-\d{2}\s+\d{2}:\d{2}:\d{2},\d{3})\s+"
    r"(TRACE|DEBUG|INFO|WARN|ERROR|FATAL)\s+\[([^\]]+)\]\s*(.*)"
)
SYSLOG_3164_RE = re.compile(
    r"^(?:<(\d{1,3})>)?([A-Z][a-z]{2}\s+\d{1,2}\s+\d{2}:\d{2}:\d{2})\s+"
    r"(\S+)\s+(\S+?)(?:\[(\d+)\])?\s*:\s*(.*)"
)
SYSLOG_5424_RE = re.compile(
    r"^(?:<(\d{1,3})>)?(\d)\s+"
    r"(\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(?:\.\d+)?(?:Z|[+-]\d{2}:\d{2}))\s+"
    r"(\S+)\s+(\S+)\s+(\S+)\s+(\S+)\s*(.*)"
)
COMBINED_LOG_RE = re.compile(
    r"^(?P<host>\S+)\s+(?P<ident>\S+)\s+(?P<user>\S+)\s+"
    r"\[(?P<time>\d{2}/\w{3}/\d{4}:\d{2}:\d{2}:\d{2}\s+[+-]\d{4})\]\s+"
    r'"(?P<method>\S+)\s+(?P<path>.*?)\s+(?P<protocol>\S+)"\s+'
    r"(?P<status>\d{3})\s+(?P<size>\S+)"
    r'(?:\s+"(?P<referer>[^"]*)")?(?:\s+"(?P<user_agent>[^"]*)")?'
)
WEB_TIMESTAMP_RE = re.compile(
    r"(\d{2})/(\w{3})/(\d{4}):(\d{2}:\d{2}:\d{2})\s+([+-]\d{4})"
)
SYSLOG_3164_TIMESTAMP_RE = re.compile(r"([A-Z][a-z]{2})\s+(\d{1,2})\s+(\d{2}:\d{2}:\d{2})")
EXCEPTION_START_RE = re.compile(r"^([\w.$]*(?:Exception|Error|Throwable))(?::\s*(.*))?$")
THREAD_EXCEPTION_RE = re.compile(
    r'^Exception in thread "[^"]*"\s+([\w.$]+)(?::\s*(.*))?$'
)
CAUSED_BY_RE = re.compile(r"^Caused by:\s+(.*)")
STACK_ELLIPSIS_RE = re.compile(r"^\s+\.\.\.\s+\d+\s+more")
GENERIC_TIMESTAMP_RE = re.compile(
    r"(\d{4}[-/]\d{2}[-/]\d{2}[\sT]\d{2}:\d{2}:\d{2}(?:[.,]\d{1,6})?"
    r"(?:Z|[+-]\d{2}:?\d{2})?)"
)
GENERIC_LEVEL_RE = re.compile(
    r"\b(FATAL|CRITICAL|EMERGENCY|ERROR|ERR|WARN(?:ING)?|INFO|NOTICE|DEBUG|TRACE)\b",
    re.IGNORECASE,
)
LEADING_PUNCTUATION_RE = re.compile(r"^[\s\-:|\[\]]+")

# ---------------------------------------------------------------------------
# Lookup tables
# ---------------------------------------------------------------------------

LEVEL_MAP = {
    "fatal": LogLevel.FATAL,
    "critical": LogLevel.FATAL,
    "emergency": LogLevel.FATAL,
    "emerg": LogLevel.FATAL,
    "error": LogLevel.ERROR,
    "err": LogLevel.ERROR,
    "severe": LogLevel.ERROR,
    "warn": LogLevel.WARN,
    "warning": LogLevel.WARN,
    "info": LogLevel.INFO,
    "information": LogLevel.INFO,
    "notice": LogLevel.INFO,
    "debug": LogLevel.DEBUG,
    "fine": LogLevel.DEBUG,
    "trace": LogLevel.TRACE,
    "finest": LogLevel.TRACE,
    "verbose": LogLevel.TRACE,
}

# JSON field candidates, most conventional name first
TIMESTAMP_FIELDS = ("timestamp", "time", "@timestamp", "ts", "date", "datetime", "eventTime")
LEVEL_FIELDS = ("level", "severity", "loglevel", "log_level", "priority", "lvl")
MESSAGE_FIELDS = ("message", "msg", "text", "log", "body")
SOURCE_FIELDS = ("logger", "source", "class", "module", "component", "logger_name")
STACK_FIELDS = ("stackTrace", "stack_trace", "stack", "exception", "error.stack", "stacktrace")

MONTH_MAP = {
    "Jan": "01",
    "Feb": "02",
    "Mar": "03",
    "Apr": "04",
    "May": "05",
    "Jun": "06",
    "Jul": "07",
    "Aug": "08",
    "Sep": "09",
    "Oct": "10",
    "Nov": "11",
    "Dec": "12",
}


def normalize_level(raw: str) -> LogLevel:
    """Map a free-form level name onto :class:`LogLevel`."""
    return LEVEL_MAP.get(raw.strip().lower(), LogLevel.UNKNOWN)


def is_stack_trace_line(line: str) -> bool:
    """Frame lines, ``Caused by:`` lines and ``... N more`` markers."""
    return bool(
        JAVA_AT_LINE_RE.match(line)
        or CAUSED_BY_RE.match(line)
        or STACK_ELLIPSIS_RE.match(line)
    )
