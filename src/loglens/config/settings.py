"""Configuration management for loglens."""

import logging
from typing import Any, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Use standard logging for settings module to avoid circular imports
# This logger will be reconfigured by setup_logging() in CLI commands
logger = logging.getLogger(__name__)


# Sensitive environment variable names, masked by CoreSettings.__repr__ and the CLI
SENSITIVE_ENV_VAR_NAMES: frozenset = frozenset({"ANTHROPIC_API_KEY"})

_SENSITIVE_FIELD_NAMES: frozenset = frozenset(
    {name.lower() for name in SENSITIVE_ENV_VAR_NAMES}
)


class CoreSettings(BaseSettings):
    """Settings for log analysis sessions, read from environment variables."""

    model_config = SettingsConfigDict(extra="ignore")

    _SENSITIVE_FIELDS: frozenset = _SENSITIVE_FIELD_NAMES

    def __repr__(self) -> str:
        """Return a representation with sensitive fields masked."""
        field_strs = []
        for field_name in type(self).model_fields:
            value = getattr(self, field_name, None)
            if field_name in self._SENSITIVE_FIELDS:
                masked = f"<{len(str(value))} chars>" if value else "None"
                field_strs.append(f"{field_name}={masked!r}")
            else:
                field_strs.append(f"{field_name}={value!r}")
        class_name = self.__class__.__name__
        return f"{class_name}({', '.join(field_strs)})"

    def __str__(self) -> str:
        """Return a string representation with sensitive fields masked."""
        return self.__repr__()

    # AI provider configuration
    ai_provider: str = Field(default="claude", validation_alias="AI_PROVIDER")
    ai_model: str = Field(default="claude-sonnet-4-20250514", validation_alias="AI_MODEL")
    ai_temperature: str = Field(default="0.0", validation_alias="AI_TEMPERATURE")
    anthropic_api_key: Optional[str] = Field(None, validation_alias="ANTHROPIC_API_KEY")
    ai_request_timeout: float = Field(
        120.0,
        validation_alias="AI_REQUEST_TIMEOUT",
        gt=0,
        description="Timeout in seconds for a single model request.",
    )

    # Log content budgets
    max_log_tokens: int = Field(
        15000,
        validation_alias="MAX_LOG_TOKENS",
        ge=100,
        description="Token budget for all session log files combined.",
    )
    max_file_tokens: int = Field(
        10000,
        validation_alias="MAX_FILE_TOKENS",
        ge=100,
        description="Token budget for a single log file.",
    )
    detection_sample_lines: int = Field(
        50,
        validation_alias="DETECTION_SAMPLE_LINES",
        ge=1,
        le=10000,
        description="Leading non-blank lines inspected by format detection.",
    )

    # Context window budgets
    max_context_tokens: int = Field(
        200000, validation_alias="MAX_CONTEXT_TOKENS", ge=1000
    )
    max_output_tokens: int = Field(4096, validation_alias="MAX_OUTPUT_TOKENS", ge=1)
    safety_margin: int = Field(10000, validation_alias="SAFETY_MARGIN", ge=0)
    reserved_tokens: int = Field(
        30000,
        validation_alias="RESERVED_TOKENS",
        ge=0,
        description="Tokens set aside for system prompt, files and output when deciding to summarize.",
    )
    recent_messages_to_keep: int = Field(
        6, validation_alias="RECENT_MESSAGES_TO_KEEP", ge=1, le=100
    )
    summarization_threshold: float = Field(
        0.8,
        validation_alias="SUMMARIZATION_THRESHOLD",
        gt=0.0,
        le=1.0,
        description="Share of the conversation budget that triggers summarization (0-1].",
    )
    summary_max_tokens: int = Field(
        2048,
        validation_alias="SUMMARY_MAX_TOKENS",
        ge=64,
        description="Maximum output tokens for a generated conversation summary.",
    )
    max_summarization_input_tokens: int = Field(
        100000,
        validation_alias="MAX_SUMMARIZATION_INPUT_TOKENS",
        ge=1000,
        description="Upper bound on conversation tokens sent in one summarization request.",
    )

    # Logging configuration
    log_level: str = Field(
        "INFO",
        validation_alias="LOG_LEVEL",
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
    )
    json_logs: bool = Field(False, validation_alias="JSON_LOGS")

    @field_validator("json_logs", mode="before")
    @classmethod
    def parse_bool_from_env(cls, v: Any) -> bool:
        """Handle empty strings and various boolean representations from env vars."""
        if v is None or v == "":
            return False
        if isinstance(v, bool):
            return v
        if isinstance(v, str):
            return v.lower().strip() in ("true", "1", "yes")
        return bool(v)

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, value: Any) -> str:
        """Accept lower-case level names."""
        if value is None:
            return "INFO"
        return str(value).strip().upper()

    def get_ai_temperature(self) -> float:
        """Get AI temperature as float with safe conversion and validation."""
        try:
            temp = float(self.ai_temperature)
            return max(0.0, min(1.0, temp))
        except (ValueError, TypeError) as e:
            logger.warning(
                f"Invalid AI_TEMPERATURE '{self.ai_temperature}': {e}. Using default 0.0"
            )
            return 0.0


def load_settings() -> CoreSettings:
    """Load settings from environment variables."""
    settings = CoreSettings()
    if settings.max_file_tokens > settings.max_log_tokens:
        logger.warning(
            f"MAX_FILE_TOKENS ({settings.max_file_tokens}) exceeds MAX_LOG_TOKENS "
            f"({settings.max_log_tokens}); a single file can use the whole log budget"
        )
    return settings
