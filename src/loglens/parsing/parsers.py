"""Format-specific parsers turning physical lines into :class:`LogEntry` values.

Every parser has the signature ``parser(lines, max_entries=None)`` and is
registered in :data:`PARSERS`, keyed by :class:`LogFormat`. Multi-line parsers
keep their in-progress entry in a local :class:`PendingEntry` accumulator, so
each call is independent of every other call.
"""

import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from loglens.parsing import patterns
from loglens.parsing.models import LogEntry, LogFormat, LogLevel

Parser = Callable[[Sequence[str], Optional[int]], List[LogEntry]]


def _limit_reached(entries: List[LogEntry], max_entries: Optional[int]) -> bool:
    return max_entries is not None and len(entries) >= max_entries


@dataclass
class PendingEntry:
    """Accumulator for an entry whose continuation lines are still arriving."""

    line_number: int
    level: LogLevel
    message: str
    timestamp: Optional[str] = None
    source: Optional[str] = None
    raw_lines: List[str] = field(default_factory=list)
    stack_lines: List[str] = field(default_factory=list)
    continuation: List[str] = field(default_factory=list)

    def add_stack_line(self, line: str) -> None:
        self.stack_lines.append(line)
        self.raw_lines.append(line)

    def add_continuation(self, line: str) -> None:
        self.continuation.append(line)
        self.raw_lines.append(line)

    def finish(self) -> LogEntry:
        """Build the entry; blank lines trailing the entry are not part of it."""
        raw_lines = list(self.raw_lines)
        continuation = list(self.continuation)
        while len(raw_lines) > 1 and not raw_lines[-1].strip():
            raw_lines.pop()
        while continuation and not continuation[-1].strip():
            continuation.pop()

        message = self.message
        if continuation:
            message += "\n" + "\n".join(continuation)

        return LogEntry(
            line_number=self.line_number,
            timestamp=self.timestamp,
            level=self.level,
            message=message,
            source=self.source,
            stack_trace="\n".join(self.stack_lines) if self.stack_lines else None,
            raw="\n".join(raw_lines),
        )


def _unknown_entry(index: int, line: str, message: Optional[str] = None) -> LogEntry:
    return LogEntry(
        line_number=index + 1,
        level=LogLevel.UNKNOWN,
        message=line if message is None else message,
        raw=line,
    )


# ---------------------------------------------------------------------------
# Field helpers
# ---------------------------------------------------------------------------


def _lookup_path(obj: Mapping[str, Any], dotted: str) -> Any:
    current: Any = obj
    for part in dotted.split("."):
        if not isinstance(current, Mapping) or part not in current:
            return None
        current = current[part]
    return current


def find_json_field(obj: Mapping[str, Any], candidates: Sequence[str]) -> Any:
    """Resolve the first candidate field present in ``obj``.

    Exact names are tried first, then a case-insensitive match. Dotted
    candidates such as ``error.stack`` also resolve nested objects.
    """
    for key in candidates:
        if key in obj:
            return obj[key]
        if "." in key:
            nested = _lookup_path(obj, key)
            if nested is not None:
                return nested

    lowered = {}
    for key in obj:
        lowered.setdefault(str(key).lower(), key)
    for candidate in candidates:
        original_key = lowered.get(candidate.lower())
        if original_key is not None:
            return obj[original_key]
    return None


def _field_text(value: Any) -> Optional[str]:
    """Render a JSON value as text; empty and false-y scalars count as absent."""
    if value is None or value is False or value == "" or value == 0:
        return None
    if value is True:
        return "true"
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False)
    return str(value)


def syslog_severity_to_level(priority: int) -> LogLevel:
    """Map a syslog PRI value to a level via its severity (PRI mod 8)."""
    severity = priority % 8
    if severity <= 2:
        return LogLevel.FATAL
    if severity == 3:
        return LogLevel.ERROR
    if severity == 4:
        return LogLevel.WARN
    if severity <= 6:
        return LogLevel.INFO
    return LogLevel.DEBUG


def http_status_to_level(status: int) -> LogLevel:
    if status >= 500:
        return LogLevel.ERROR
    if status >= 400:
        return LogLevel.WARN
    return LogLevel.INFO


def parse_web_timestamp(raw: str) -> Optional[str]:
    """``15/Jan/2024:10:30:45 +0900`` -> ``2024-01-15T10:30:45+09:00``."""
    match = patterns.WEB_TIMESTAMP_RE.search(raw)
    if not match:
        return None
    day, month_name, year, clock, offset = match.groups()
    month = patterns.MONTH_MAP.get(month_name)
    if not month:
        return None
    return f"{year}-{month}-{day}T{clock}{offset[:3]}:{offset[3:]}"


def parse_syslog_3164_timestamp(raw: str, year: Optional[int] = None) -> Optional[str]:
    """``Jan  5 10:30:45`` -> ``<year>-01-05T10:30:45``; the year defaults to the current one."""
    match = patterns.SYSLOG_3164_TIMESTAMP_RE.search(raw)
    if not match:
        return None
    month_name, day, clock = match.groups()
    month = patterns.MONTH_MAP.get(month_name)
    if not month:
        return None
    if year is None:
        year = datetime.now().year
    return f"{year}-{month}-{day.zfill(2)}T{clock}"


# ---------------------------------------------------------------------------
# Parsers
# ---------------------------------------------------------------------------


def parse_json_lines(lines: Sequence[str], max_entries: Optional[int] = None) -> List[LogEntry]:
    """Parse JSON / NDJSON logs; lines that are not JSON objects are skipped."""
    entries: List[LogEntry] = []

    for index, line in enumerate(lines):
        if _limit_reached(entries, max_entries):
            break
        stripped = line.strip()
        if not stripped:
            continue

        try:
            obj = json.loads(stripped)
        except (ValueError, RecursionError):
            continue
        if not isinstance(obj, dict):
            continue

        level = _field_text(find_json_field(obj, patterns.LEVEL_FIELDS))
        message = _field_text(find_json_field(obj, patterns.MESSAGE_FIELDS))

        entries.append(
            LogEntry(
                line_number=index + 1,
                timestamp=_field_text(find_json_field(obj, patterns.TIMESTAMP_FIELDS)),
                level=patterns.normalize_level(level) if level else LogLevel.UNKNOWN,
                message=message
                if message is not None
                else json.dumps(obj, ensure_ascii=False, separators=(",", ":")),
                source=_field_text(find_json_field(obj, patterns.SOURCE_FIELDS)),
                stack_trace=_field_text(find_json_field(obj, patterns.STACK_FIELDS)),
                raw=line,
            )
        )

    return entries


def parse_syslog(lines: Sequence[str], max_entries: Optional[int] = None) -> List[LogEntry]:
    """Parse RFC 5424 / RFC 3164 syslog; unmatched lines become ``unknown`` entries."""
    entries: List[LogEntry] = []

    for index, line in enumerate(lines):
        if _limit_reached(entries, max_entries):
            break
        if not line.strip():
            continue

        match = patterns.SYSLOG_5424_RE.match(line)
        if match:
            priority = match.group(1)
            entries.append(
                LogEntry(
                    line_number=index + 1,
                    timestamp=match.group(3),
                    level=syslog_severity_to_level(int(priority))
                    if priority
                    else LogLevel.INFO,
                    message=match.group(8) or "",
                    source=f"{match.group(5)}[{match.group(6)}]",
                    raw=line,
                )
            )
            continue

        match = patterns.SYSLOG_3164_RE.match(line)
        if match:
            priority = match.group(1)
            entries.append(
                LogEntry(
                    line_number=index + 1,
                    timestamp=parse_syslog_3164_timestamp(match.group(2)),
                    level=syslog_severity_to_level(int(priority))
                    if priority
                    else LogLevel.INFO,
                    message=match.group(6) or "",
                    source=match.group(4) or None,
                    raw=line,
                )
            )
            continue

        entries.append(_unknown_entry(index, line))

    return entries


def parse_atlassian(lines: Sequence[str], max_entries: Optional[int] = None) -> List[LogEntry]:
    """Parse Atlassian application logs (Jira, Confluence, Bitbucket).

    An entry starts only on a ``YYYY-MM-DD HH:MM:SS,mmm LEVEL [source]``
    header. Lines before the first header are ignored; later lines fold into
    the current entry as stack trace or message continuation.
    """
    entries: List[LogEntry] = []
    pending: Optional[PendingEntry] = None

    for index, line in enumerate(lines):
        match = patterns.ATLASSIAN_ENTRY_RE.match(line)
        if match:
            if pending is not None:
                entries.append(pending.finish())
                pending = None
                if _limit_reached(entries, max_entries):
                    break

            timestamp, level, source, message = match.groups()
            pending = PendingEntry(
                line_number=index + 1,
                timestamp=timestamp.replace(",", ".").replace(" ", "T", 1),
                level=patterns.normalize_level(level),
                message=message or "",
                source=source,
                raw_lines=[line],
            )
        elif pending is not None:
            if patterns.is_stack_trace_line(line) or patterns.EXCEPTION_START_RE.match(
                line.strip()
            ):
                pending.add_stack_line(line)
            else:
                pending.add_continuation(line)

    if pending is not None:
        entries.append(pending.finish())
    return entries


def parse_web_access(lines: Sequence[str], max_entries: Optional[int] = None) -> List[LogEntry]:
    """Parse combined/common access logs (nginx, Apache httpd)."""
    entries: List[LogEntry] = []

    for index, line in enumerate(lines):
        if _limit_reached(entries, max_entries):
            break
        if not line.strip():
            continue

        match = patterns.COMBINED_LOG_RE.match(line)
        if not match:
            entries.append(_unknown_entry(index, line))
            continue

        status = int(match.group("status"))
        size_field = match.group("size")
        size = int(size_field) if size_field.isdecimal() else 0
        entries.append(
            LogEntry(
                line_number=index + 1,
                timestamp=parse_web_timestamp(match.group("time")),
                level=http_status_to_level(status),
                message=f"{match.group('method')} {match.group('path')} {status} {size}",
                source=match.group("host"),
                raw=line,
            )
        )

    return entries


def _match_exception_start(trimmed: str):
    """Return ``(exception_class, detail)`` for an exception header line."""
    match = patterns.EXCEPTION_START_RE.match(trimmed)
    if match:
        return match.group(1), match.group(2)
    match = patterns.THREAD_EXCEPTION_RE.match(trimmed)
    if match:
        return match.group(1), match.group(2)
    return None


def parse_java_stacktrace(
    lines: Sequence[str], max_entries: Optional[int] = None
) -> List[LogEntry]:
    """Parse bare Java stack traces.

    Exception headers open ``error`` entries, frames / ``Caused by:`` /
    ``... N more`` lines accumulate as their stack trace, and any other
    non-blank line becomes a standalone ``unknown`` entry.
    """
    entries: List[LogEntry] = []
    pending: Optional[PendingEntry] = None

    for index, line in enumerate(lines):
        trimmed = line.strip()
        if not trimmed:
            continue

        header = _match_exception_start(trimmed)
        if header:
            if pending is not None:
                entries.append(pending.finish())
                pending = None
                if _limit_reached(entries, max_entries):
                    break
            exception_class, detail = header
            pending = PendingEntry(
                line_number=index + 1,
                level=LogLevel.ERROR,
                message=f"{exception_class}: {detail}" if detail else exception_class,
                source=exception_class,
                raw_lines=[line],
            )
            continue

        is_frame = bool(
            patterns.JAVA_AT_LINE_RE.match(line)
            or patterns.STACK_ELLIPSIS_RE.match(line)
        )
        if pending is not None and (
            is_frame
            or trimmed.startswith("at ")
            or patterns.CAUSED_BY_RE.match(trimmed)
        ):
            pending.add_stack_line(line)
            continue
        if is_frame:
            # Frames without an exception header carry no usable context
            continue

        if pending is not None:
            entries.append(pending.finish())
            pending = None
            if _limit_reached(entries, max_entries):
                break
        entries.append(_unknown_entry(index, line, message=trimmed))
        if _limit_reached(entries, max_entries):
            break

    if pending is not None:
        entries.append(pending.finish())
    return entries


def _remove_spans(text: str, spans: List[tuple]) -> str:
    for start, end in sorted(spans, reverse=True):
        text = text[:start] + text[end:]
    return text


def parse_plain_text(lines: Sequence[str], max_entries: Optional[int] = None) -> List[LogEntry]:
    """Best-effort parsing of free text; every non-blank line becomes an entry."""
    entries: List[LogEntry] = []

    for index, line in enumerate(lines):
        if _limit_reached(entries, max_entries):
            break
        if not line.strip():
            continue

        timestamp = None
        level = LogLevel.UNKNOWN
        spans = []

        ts_match = patterns.GENERIC_TIMESTAMP_RE.search(line)
        if ts_match:
            timestamp = ts_match.group(1).replace(" ", "T", 1).replace(",", ".", 1)
            spans.append(ts_match.span())

        level_match = patterns.GENERIC_LEVEL_RE.search(line)
        if level_match:
            level = patterns.normalize_level(level_match.group(1))
            spans.append(level_match.span())

        message = line.strip()
        if spans:
            stripped = _remove_spans(line, spans).strip()
            message = patterns.LEADING_PUNCTUATION_RE.sub("", stripped).strip() or line.strip()

        entries.append(
            LogEntry(
                line_number=index + 1,
                timestamp=timestamp,
                level=level,
                message=message,
                raw=line,
            )
        )

    return entries


PARSERS: Dict[LogFormat, Parser] = {
    LogFormat.JSON: parse_json_lines,
    LogFormat.NDJSON: parse_json_lines,
    LogFormat.SYSLOG: parse_syslog,
    LogFormat.ATLASSIAN: parse_atlassian,
    LogFormat.NGINX: parse_web_access,
    LogFormat.APACHE: parse_web_access,
    LogFormat.JAVA_STACKTRACE: parse_java_stacktrace,
    LogFormat.PLAIN: parse_plain_text,
}


def parse_lines(
    log_format: LogFormat, lines: Sequence[str], max_entries: Optional[int] = None
) -> List[LogEntry]:
    """Run the parser registered for ``log_format``."""
    return PARSERS[log_format](lines, max_entries)
