"""Entry points combining normalization, detection, parsing and statistics."""

from dataclasses import replace
from typing import List, Optional, Union

from loglens.parsing.detector import DEFAULT_SAMPLE_LINES, detect_format
from loglens.parsing.models import FormatDetectionResult, LogEntry, LogFormat, ParseResult
from loglens.parsing.normalize import normalize_content, split_lines
from loglens.parsing.parsers import parse_lines
from loglens.parsing.stats import compute_stats
from loglens.utils.logger import get_logger

logger = get_logger(__name__)


def parse_log(
    content: Union[bytes, str],
    log_format: Optional[LogFormat] = None,
    max_entries: Optional[int] = None,
    include_raw: bool = True,
    sample_size: int = DEFAULT_SAMPLE_LINES,
) -> ParseResult:
    """
    Parse raw log content into structured entries.

    Args:
        content: Raw log text or UTF-8 bytes
        log_format: Skip detection and use this format (confidence 1.0, sample size 0)
        max_entries: Stop after this many entries (None = unlimited)
        include_raw: When False, ``raw`` is blanked on every entry
        sample_size: Leading non-blank lines inspected by the detector

    Returns:
        ParseResult with detection outcome, physical line count, entries and stats
    """
    if max_entries is not None and max_entries < 1:
        raise ValueError(f"max_entries must be a positive integer, got {max_entries}")

    normalized = normalize_content(content)
    lines = split_lines(normalized)

    if log_format is not None:
        detection = FormatDetectionResult(log_format, 1.0, 0)
    else:
        detection = detect_format(normalized, sample_size)

    entries = parse_lines(detection.format, lines, max_entries)
    if not include_raw:
        entries = [replace(entry, raw="") for entry in entries]

    logger.debug(
        f"Parsed {len(entries)} entries from {len(lines)} lines as "
        f"{detection.format.value} (confidence {detection.confidence:.2f})"
    )
    return ParseResult(
        format=detection,
        total_lines=len(lines),
        entries=entries,
        stats=compute_stats(entries),
    )


def extract_issues(content: Union[bytes, str]) -> List[LogEntry]:
    """Return only fatal, error and warn entries of auto-detected content."""
    return parse_log(content).issues
