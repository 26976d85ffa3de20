"""CLI argument to environment variable mappings."""

from dataclasses import dataclass
from typing import List, Optional

from loglens.config.settings import SENSITIVE_ENV_VAR_NAMES


@dataclass
class ArgMapping:
    """Mapping between CLI argument and environment variable."""

    cli_arg: str  # e.g. "--max-log-tokens"
    env_var: str  # e.g. "MAX_LOG_TOKENS"
    arg_type: type = str
    choices: Optional[List[str]] = None
    help_text: str = ""

    @property
    def dest(self) -> str:
        """argparse attribute name, e.g. ``max_log_tokens``."""
        return self.cli_arg.lstrip("-").replace("-", "_")


# Overrides shared by commands that build context or call the model
SETTINGS_ARG_MAPPINGS: List[ArgMapping] = [
    ArgMapping(
        cli_arg="--log-level",
        env_var="LOG_LEVEL",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help_text="Logging level",
    ),
    ArgMapping(
        cli_arg="--ai-model",
        env_var="AI_MODEL",
        help_text="Model name (e.g., claude-sonnet-4-20250514)",
    ),
    ArgMapping(
        cli_arg="--max-log-tokens",
        env_var="MAX_LOG_TOKENS",
        arg_type=int,
        help_text="Token budget for all session log files combined",
    ),
    ArgMapping(
        cli_arg="--max-file-tokens",
        env_var="MAX_FILE_TOKENS",
        arg_type=int,
        help_text="Token budget for a single log file",
    ),
    ArgMapping(
        cli_arg="--max-context-tokens",
        env_var="MAX_CONTEXT_TOKENS",
        arg_type=int,
        help_text="Model context window size in tokens",
    ),
    ArgMapping(
        cli_arg="--recent-messages",
        env_var="RECENT_MESSAGES_TO_KEEP",
        arg_type=int,
        help_text="Recent messages always kept verbatim when windowing",
    ),
]

SENSITIVE_ENV_VARS = SENSITIVE_ENV_VAR_NAMES

# Variables shown by 'config show', grouped for display
CONFIG_DISPLAY_GROUPS = {
    "AI Provider": ["AI_PROVIDER", "AI_MODEL", "AI_TEMPERATURE", "ANTHROPIC_API_KEY"],
    "Log Budgets": ["MAX_LOG_TOKENS", "MAX_FILE_TOKENS", "DETECTION_SAMPLE_LINES"],
    "Context Window": [
        "MAX_CONTEXT_TOKENS",
        "MAX_OUTPUT_TOKENS",
        "SAFETY_MARGIN",
        "RECENT_MESSAGES_TO_KEEP",
    ],
    "Summarization": [
        "RESERVED_TOKENS",
        "SUMMARIZATION_THRESHOLD",
        "SUMMARY_MAX_TOKENS",
        "MAX_SUMMARIZATION_INPUT_TOKENS",
    ],
    "Logging": ["LOG_LEVEL", "JSON_LOGS"],
}
