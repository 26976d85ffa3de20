"""Aggregate statistics over parsed log entries."""

from typing import Iterable

from loglens.parsing.models import LogEntry, LogStats, TimeRange


def compute_stats(entries: Iterable[LogEntry]) -> LogStats:
    """
    Reduce entries to a level histogram, time range and stack trace count.

    Timestamps are compared as strings: every parser emits zero-padded,
    ISO-ordered timestamps, so lexicographic order is chronological order.
    """
    stats = LogStats()
    start = None
    end = None

    for entry in entries:
        stats.total_entries += 1
        stats.level_counts[entry.level] += 1
        if entry.stack_trace:
            stats.stack_trace_count += 1
        if entry.timestamp:
            if start is None or entry.timestamp < start:
                start = entry.timestamp
            if end is None or entry.timestamp > end:
                end = entry.timestamp

    stats.time_range = TimeRange(start=start, end=end)
    stats.has_stack_traces = stats.stack_trace_count > 0
    return stats
