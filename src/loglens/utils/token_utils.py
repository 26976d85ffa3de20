"""Heuristic token estimation for prompt budgeting."""

import re
from typing import Iterable, Optional

# Hangul syllables tokenize at roughly two tokens per character
DENSE_SCRIPT_PATTERN = re.compile("[가-힣]")

# Weights in tenths of a token: dense characters 2.0, everything else 0.3.
# Integer arithmetic keeps the ceiling exact (0.3 * 10 is not 3.0 in floats).
DENSE_CHAR_WEIGHT_TENTHS = 20
OTHER_CHAR_WEIGHT_TENTHS = 3


class TokenCounter:
    """Approximate token counting without a real tokenizer.

    Budgets computed from these numbers are soft: callers should leave
    headroom rather than rely on exact counts.
    """

    @classmethod
    def estimate(cls, text: Optional[str]) -> int:
        """Estimate the token cost of ``text``."""
        if not text:
            return 0
        dense_chars = len(DENSE_SCRIPT_PATTERN.findall(text))
        other_chars = len(text) - dense_chars
        tenths = (
            dense_chars * DENSE_CHAR_WEIGHT_TENTHS
            + other_chars * OTHER_CHAR_WEIGHT_TENTHS
        )
        return -(-tenths // 10)

    @classmethod
    def count_messages(cls, messages: Iterable) -> int:
        """Sum estimated tokens across message contents.

        Accepts any objects exposing a ``content`` attribute.
        """
        return sum(cls.estimate(msg.content) for msg in messages)

    @classmethod
    def fits(cls, text: str, budget: int) -> bool:
        """Check whether ``text`` fits within ``budget`` estimated tokens."""
        return cls.estimate(text) <= budget


def estimate_tokens(text: Optional[str]) -> int:
    """Module-level shortcut for :meth:`TokenCounter.estimate`."""
    return TokenCounter.estimate(text)
