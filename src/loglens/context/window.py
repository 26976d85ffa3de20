"""Three-zone conversation windowing under a context budget."""

from dataclasses import dataclass
from typing import List, Optional, Sequence

from loglens.ai_providers.base import ProviderMessage
from loglens.context.config import ContextWindowConfig
from loglens.context.prompts import (
    SUMMARY_ACKNOWLEDGEMENT,
    SUMMARY_CONTEXT_FOOTER,
    SUMMARY_CONTEXT_HEADER,
)
from loglens.context.store import ConversationSummary
from loglens.utils.logger import get_logger
from loglens.utils.token_utils import TokenCounter

logger = get_logger(__name__)


@dataclass
class WindowResult:
    """Final message list plus the accounting that produced it."""

    messages: List[ProviderMessage]
    conversation_budget: int
    original_tokens: int
    final_tokens: int
    windowed: bool = False
    summary_applied: bool = False
    omitted_messages: int = 0


def summary_messages(summary: ConversationSummary) -> List[ProviderMessage]:
    """Render a stored summary as a user turn and an assistant acknowledgement."""
    return [
        ProviderMessage(
            content=f"{SUMMARY_CONTEXT_HEADER}\n{summary.summary}\n{SUMMARY_CONTEXT_FOOTER}",
            role="user",
        ),
        ProviderMessage(content=SUMMARY_ACKNOWLEDGEMENT, role="assistant"),
    ]


class ContextWindowManager:
    """
    Fit message history into the space left after the system prompt.

    Zone A is the first message (the initial analysis), zone C the last
    ``recent_messages_to_keep`` messages; both pass through untouched. Zone B,
    everything in between, is replaced by the latest summary or dropped.
    """

    def __init__(self, config: Optional[ContextWindowConfig] = None):
        self.config = config or ContextWindowConfig()

    def conversation_budget(self, system_prompt: str) -> int:
        """Tokens available to history once system prompt, output and margin are reserved."""
        return (
            self.config.max_context_tokens
            - TokenCounter.estimate(system_prompt)
            - self.config.max_output_tokens
            - self.config.safety_margin
        )

    def split_zones(self, messages: Sequence[ProviderMessage]):
        """Return ``(zone_a, zone_b, zone_c)``; zone B is empty for short histories."""
        recent = self.config.recent_messages_to_keep
        if len(messages) <= recent + 1:
            return list(messages[:1]), [], list(messages[1:])
        return list(messages[:1]), list(messages[1:-recent]), list(messages[-recent:])

    def apply(
        self,
        messages: Sequence[ProviderMessage],
        system_prompt: str,
        latest_summary: Optional[ConversationSummary] = None,
    ) -> WindowResult:
        budget = self.conversation_budget(system_prompt)
        original_tokens = TokenCounter.count_messages(messages)

        if original_tokens <= budget:
            return WindowResult(
                messages=list(messages),
                conversation_budget=budget,
                original_tokens=original_tokens,
                final_tokens=original_tokens,
            )

        zone_a, zone_b, zone_c = self.split_zones(messages)
        if not zone_b:
            logger.warning(
                f"Conversation ({original_tokens} tokens) exceeds budget {budget} "
                f"but is too short to window"
            )
            return WindowResult(
                messages=list(messages),
                conversation_budget=budget,
                original_tokens=original_tokens,
                final_tokens=original_tokens,
            )

        substitute: List[ProviderMessage] = []
        if latest_summary is not None:
            substitute = summary_messages(latest_summary)
        else:
            logger.info(
                f"No conversation summary yet, dropping {len(zone_b)} middle messages"
            )

        final = zone_a + substitute + zone_c
        final_tokens = TokenCounter.count_messages(final)
        logger.info(
            f"Windowed conversation: {len(messages)} -> {len(final)} messages, "
            f"{original_tokens} -> {final_tokens} tokens (budget {budget})"
        )
        return WindowResult(
            messages=final,
            conversation_budget=budget,
            original_tokens=original_tokens,
            final_tokens=final_tokens,
            windowed=True,
            summary_applied=bool(substitute),
            omitted_messages=len(zone_b),
        )
