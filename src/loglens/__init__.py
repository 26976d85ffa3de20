"""loglens - log format detection and token-budgeted context assembly for LLM log analysis."""

__version__ = "0.1.0"
