"""Data model shared by the detector, the parsers and the context assembler."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional


class LogFormat(str, Enum):
    """Closed set of log formats the detector can choose from."""

    JSON = "json"
    NDJSON = "ndjson"
    SYSLOG = "syslog"
    ATLASSIAN = "atlassian"
    NGINX = "nginx"
    APACHE = "apache"
    JAVA_STACKTRACE = "java-stacktrace"
    PLAIN = "plain"

    @classmethod
    def from_name(cls, name: str) -> "LogFormat":
        """Resolve a user supplied format name (case-insensitive)."""
        normalized = name.strip().lower()
        for member in cls:
            if member.value == normalized:
                return member
        allowed = ", ".join(member.value for member in cls)
        raise ValueError(f"Unknown log format '{name}'. Allowed values: {allowed}")


class LogLevel(str, Enum):
    """Normalized severity levels, most severe first."""

    FATAL = "fatal"
    ERROR = "error"
    WARN = "warn"
    INFO = "info"
    DEBUG = "debug"
    TRACE = "trace"
    UNKNOWN = "unknown"

    @property
    def is_issue(self) -> bool:
        """Issue levels are prioritized when content has to be truncated."""
        return self in ISSUE_LEVELS


ISSUE_LEVELS = frozenset({LogLevel.FATAL, LogLevel.ERROR, LogLevel.WARN})


@dataclass
class LogEntry:
    """One logical log record, possibly spanning several physical lines.

    ``line_number`` is the 1-based number of the first physical line of the
    entry; ``raw`` holds every physical line folded into it.
    """

    line_number: int
    level: LogLevel
    message: str
    raw: str
    timestamp: Optional[str] = None
    source: Optional[str] = None
    stack_trace: Optional[str] = None


@dataclass(frozen=True)
class FormatDetectionResult:
    """Outcome of format detection over a sample of leading lines."""

    format: LogFormat
    confidence: float
    sample_size: int


@dataclass
class TimeRange:
    start: Optional[str] = None
    end: Optional[str] = None


def _zero_level_counts() -> Dict[LogLevel, int]:
    return {level: 0 for level in LogLevel}


@dataclass
class LogStats:
    """Aggregate statistics over parsed entries."""

    total_entries: int = 0
    level_counts: Dict[LogLevel, int] = field(default_factory=_zero_level_counts)
    time_range: TimeRange = field(default_factory=TimeRange)
    has_stack_traces: bool = False
    stack_trace_count: int = 0

    @property
    def issue_count(self) -> int:
        return sum(self.level_counts[level] for level in ISSUE_LEVELS)


@dataclass
class ParseResult:
    format: FormatDetectionResult
    total_lines: int
    entries: List[LogEntry]
    stats: LogStats

    @property
    def issues(self) -> List[LogEntry]:
        return [entry for entry in self.entries if entry.level.is_issue]
