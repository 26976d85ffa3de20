"""Human-readable renderings of parse results for prompt injection."""

from typing import List

from loglens.parsing.models import LogEntry, LogFormat, ParseResult

FORMAT_LABELS = {
    LogFormat.JSON: "JSON",
    LogFormat.NDJSON: "NDJSON",
    LogFormat.SYSLOG: "Syslog",
    LogFormat.ATLASSIAN: "Atlassian (Jira/Confluence/Bitbucket)",
    LogFormat.NGINX: "Nginx Access Log",
    LogFormat.APACHE: "Apache Access Log",
    LogFormat.JAVA_STACKTRACE: "Java Stack Trace",
    LogFormat.PLAIN: "Plain Text",
}


def build_log_summary(result: ParseResult) -> str:
    """Summarize format, counts, time range, level distribution and stack traces."""
    detection = result.format
    stats = result.stats

    parts: List[str] = [
        f"Log format: {FORMAT_LABELS[detection.format]} "
        f"(confidence: {int(detection.confidence * 100 + 0.5)}%)",
        f"Total lines: {result.total_lines} / parsed entries: {stats.total_entries}",
    ]

    if stats.time_range.start and stats.time_range.end:
        parts.append(f"Time range: {stats.time_range.start} ~ {stats.time_range.end}")

    level_summary = ", ".join(
        f"{level.value.upper()}: {count}"
        for level, count in stats.level_counts.items()
        if count > 0
    )
    if level_summary:
        parts.append(f"Level distribution: {level_summary}")

    if stats.has_stack_traces:
        parts.append(f"Stack traces: {stats.stack_trace_count}")

    return "\n".join(parts)


def format_entry_for_prompt(entry: LogEntry) -> str:
    """Render ``[timestamp] [LEVEL] [source] message`` plus any stack trace."""
    parts: List[str] = []
    if entry.timestamp:
        parts.append(f"[{entry.timestamp}]")
    parts.append(f"[{entry.level.value.upper()}]")
    if entry.source:
        parts.append(f"[{entry.source}]")
    parts.append(entry.message)

    rendered = " ".join(parts)
    if entry.stack_trace:
        rendered += "\n" + entry.stack_trace
    return rendered
