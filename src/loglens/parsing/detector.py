"""Heuristic log format detection over a sample of leading lines."""

from typing import Dict, List, Tuple, Union

from loglens.parsing import patterns
from loglens.parsing.models import FormatDetectionResult, LogFormat
from loglens.parsing.normalize import normalize_content, split_lines
from loglens.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_SAMPLE_LINES = 50

# Share of sampled lines that must look like JSON objects
JSON_RATIO_THRESHOLD = 0.5
# Share of sampled lines the best remaining signature must reach
FORMAT_RATIO_THRESHOLD = 0.3

# Ties resolve in this order (earlier wins)
FORMAT_PRIORITY: Tuple[Tuple[str, LogFormat], ...] = (
    ("atlassian", LogFormat.ATLASSIAN),
    ("syslog", LogFormat.SYSLOG),
    ("webserver", LogFormat.NGINX),
    ("java_stack", LogFormat.JAVA_STACKTRACE),
)


def sample_lines(content: str, limit: int = DEFAULT_SAMPLE_LINES) -> List[str]:
    """Return up to ``limit`` leading non-blank lines of normalized content."""
    sample: List[str] = []
    for line in split_lines(content):
        if not line.strip():
            continue
        sample.append(line)
        if len(sample) >= limit:
            break
    return sample


def score_lines(lines: List[str]) -> Dict[str, int]:
    """Count how many lines match each format signature.

    A line may match several signatures; each is tallied independently.
    """
    scores = {"json": 0, "atlassian": 0, "syslog": 0, "webserver": 0, "java_stack": 0}
    for line in lines:
        if patterns.JSON_LINE_RE.match(line):
            scores["json"] += 1
        if patterns.SYSLOG_RE.match(line):
            scores["syslog"] += 1
        if patterns.ATLASSIAN_RE.match(line):
            scores["atlassian"] += 1
        if patterns.WEBSERVER_RE.match(line):
            scores["webserver"] += 1
        if patterns.JAVA_AT_LINE_RE.match(line) or patterns.JAVA_EXCEPTION_RE.search(line):
            scores["java_stack"] += 1
    return scores


def detect_format(
    content: Union[bytes, str], sample_size: int = DEFAULT_SAMPLE_LINES
) -> FormatDetectionResult:
    """
    Infer the format of raw log text.

    Args:
        content: Raw log text (BOM and line endings are normalized here)
        sample_size: Number of leading non-blank lines to inspect

    Returns:
        FormatDetectionResult; ``plain`` with confidence 0 when the sample is empty
    """
    sample = sample_lines(normalize_content(content), sample_size)
    if not sample:
        return FormatDetectionResult(LogFormat.PLAIN, 0.0, 0)

    total = len(sample)
    scores = score_lines(sample)

    json_ratio = scores["json"] / total
    if json_ratio >= JSON_RATIO_THRESHOLD:
        fmt = LogFormat.NDJSON if scores["json"] > 1 else LogFormat.JSON
        return FormatDetectionResult(fmt, json_ratio, total)

    # max() keeps the first of equal scores, so FORMAT_PRIORITY order breaks ties
    best_key, best_format = max(FORMAT_PRIORITY, key=lambda item: scores[item[0]])
    best_ratio = scores[best_key] / total
    if best_ratio >= FORMAT_RATIO_THRESHOLD:
        return FormatDetectionResult(best_format, best_ratio, total)

    logger.debug(f"No format signature reached threshold: {scores} over {total} lines")
    return FormatDetectionResult(LogFormat.PLAIN, 1.0, total)
