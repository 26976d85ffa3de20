"""Utility modules for loglens."""

from loglens.utils.logger import get_logger, setup_logging
from loglens.utils.token_utils import TokenCounter, estimate_tokens

__all__ = [
    "TokenCounter",
    "estimate_tokens",
    "get_logger",
    "setup_logging",
]
