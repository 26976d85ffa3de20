"""Budget configuration passed explicitly to the context assembler."""

from dataclasses import dataclass

from loglens.config.settings import CoreSettings


@dataclass
class ContextWindowConfig:
    """Token budgets and zone sizes for context assembly and summarization."""

    max_context_tokens: int = 200000
    max_output_tokens: int = 4096
    safety_margin: int = 10000
    recent_messages_to_keep: int = 6
    summarization_threshold: float = 0.8
    max_log_tokens: int = 15000  # all session files combined
    max_file_tokens: int = 10000  # one file
    reserved_tokens: int = 30000  # system prompt + files + output, for the summarization trigger
    max_summarization_input_tokens: int = 100000
    summary_max_tokens: int = 2048
    detection_sample_lines: int = 50

    def __post_init__(self):
        if self.recent_messages_to_keep < 1:
            raise ValueError("recent_messages_to_keep must be at least 1")
        if not 0.0 < self.summarization_threshold <= 1.0:
            raise ValueError("summarization_threshold must be in (0, 1]")

    @property
    def summarization_budget(self) -> int:
        """Conversation budget the summarization trigger measures history against."""
        return self.max_context_tokens - self.reserved_tokens

    @property
    def summarization_trigger_tokens(self) -> float:
        return self.summarization_budget * self.summarization_threshold

    @classmethod
    def from_settings(cls, settings: CoreSettings) -> "ContextWindowConfig":
        return cls(
            max_context_tokens=settings.max_context_tokens,
            max_output_tokens=settings.max_output_tokens,
            safety_margin=settings.safety_margin,
            recent_messages_to_keep=settings.recent_messages_to_keep,
            summarization_threshold=settings.summarization_threshold,
            max_log_tokens=settings.max_log_tokens,
            max_file_tokens=settings.max_file_tokens,
            reserved_tokens=settings.reserved_tokens,
            max_summarization_input_tokens=settings.max_summarization_input_tokens,
            summary_max_tokens=settings.summary_max_tokens,
            detection_sample_lines=settings.detection_sample_lines,
        )
