"""Budget-aware log content selection that keeps issues first."""

from dataclasses import dataclass, field
from typing import List, Optional, Union

from loglens.parsing import (
    LogEntry,
    ParseResult,
    build_log_summary,
    format_entry_for_prompt,
    parse_log,
)
from loglens.parsing.detector import DEFAULT_SAMPLE_LINES
from loglens.parsing.normalize import decode_content
from loglens.utils.logger import get_logger
from loglens.utils.token_utils import TokenCounter

logger = get_logger(__name__)

# Share of the budget issue entries may occupy before normal entries get a turn
ISSUE_BUDGET_RATIO = 0.7

SUMMARY_HEADER = "[Log summary]"
RECENT_ENTRIES_SEPARATOR = "--- [Recent entries other than errors/warnings] ---"


@dataclass
class OptimizedContent:
    """Result of fitting one file's content into a token budget."""

    content: str
    truncated: bool
    summary: str
    issue_count: int = 0
    entries_shown: int = 0
    parse_result: Optional[ParseResult] = field(default=None, repr=False)


class ContentOptimizer:
    """Select and order log entries so the rendered text stays within budget.

    Selection is greedy and single-pass: issue entries (fatal, error, warn)
    in original order up to ``issue_budget_ratio`` of the budget, then the
    most recent normal entries until the budget runs out.
    """

    def __init__(
        self,
        sample_lines: int = DEFAULT_SAMPLE_LINES,
        issue_budget_ratio: float = ISSUE_BUDGET_RATIO,
    ):
        if not 0.0 < issue_budget_ratio <= 1.0:
            raise ValueError("issue_budget_ratio must be in (0, 1]")
        self.sample_lines = sample_lines
        self.issue_budget_ratio = issue_budget_ratio

    def optimize(self, raw: Union[bytes, str], token_budget: int) -> OptimizedContent:
        text = decode_content(raw)
        result = parse_log(text, sample_size=self.sample_lines)
        summary = build_log_summary(result)
        issues = result.issues

        if TokenCounter.estimate(text) <= token_budget:
            return OptimizedContent(
                content=text,
                truncated=False,
                summary=summary,
                issue_count=len(issues),
                entries_shown=len(result.entries),
                parse_result=result,
            )

        normal = [entry for entry in result.entries if not entry.level.is_issue]

        header = f"{SUMMARY_HEADER}\n{summary}"
        sections: List[str] = [header]
        used = TokenCounter.estimate(header)

        issue_limit = token_budget * self.issue_budget_ratio
        shown_issues = 0
        for entry in issues:
            rendered = format_entry_for_prompt(entry)
            cost = TokenCounter.estimate(rendered)
            if used + cost <= issue_limit:
                sections.append(rendered)
                used += cost
                shown_issues += 1

        if issues and normal:
            sections.append(f"\n{RECENT_ENTRIES_SEPARATOR}\n")
            used += TokenCounter.estimate(RECENT_ENTRIES_SEPARATOR)

        recent = self._select_recent(normal, token_budget - used)
        sections.extend(recent)
        shown = shown_issues + len(recent)

        notice = (
            f"[Log truncated to fit the token budget. Original: {result.total_lines} lines, "
            f"shown: {shown} of {len(result.entries)} entries]\n"
            f"[Errors/warnings found: {len(issues)}]"
        )

        logger.debug(
            f"Optimized log content: {shown}/{len(result.entries)} entries kept "
            f"({shown_issues} issues) within {token_budget} tokens"
        )
        return OptimizedContent(
            content=notice + "\n\n" + "\n".join(sections),
            truncated=True,
            summary=summary,
            issue_count=len(issues),
            entries_shown=shown,
            parse_result=result,
        )

    @staticmethod
    def _select_recent(entries: List[LogEntry], budget: float) -> List[str]:
        """Take entries from the end until one does not fit; return them oldest first."""
        selected: List[str] = []
        used = 0
        for entry in reversed(entries):
            rendered = format_entry_for_prompt(entry)
            cost = TokenCounter.estimate(rendered)
            if used + cost > budget:
                break
            selected.append(rendered)
            used += cost
        selected.reverse()
        return selected


def optimize_log_content(
    raw: Union[bytes, str],
    token_budget: int,
    sample_lines: int = DEFAULT_SAMPLE_LINES,
) -> OptimizedContent:
    """Fit ``raw`` into ``token_budget`` estimated tokens."""
    return ContentOptimizer(sample_lines=sample_lines).optimize(raw, token_budget)
