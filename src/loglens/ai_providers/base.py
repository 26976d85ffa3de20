"""Base provider interface for the language-model collaborator."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from loglens.utils.logger import get_logger

logger = get_logger(__name__)


class StopReason(Enum):
    """Why the model stopped generating."""

    end_of_turn = "end_of_turn"
    out_of_tokens = "out_of_tokens"


@dataclass
class ProviderMessage:
    """Message format for provider interactions."""

    content: str
    role: str = "user"


@dataclass
class ProviderResponse:
    """Response format from providers."""

    content: str
    model: str
    stop_reason: Optional[StopReason] = None
    usage: Optional[Dict[str, Any]] = None


class ProviderError(Exception):
    """Base exception for provider errors."""

    pass


class ContentExtractionError(ProviderError):
    """Error when content cannot be extracted from response."""

    pass


class TemporaryServiceError(ProviderError):
    """Error indicating temporary service unavailability.

    Attributes:
        suggested_delay: API-suggested retry delay in seconds (e.g., from a 429 response)
    """

    def __init__(self, message: str, suggested_delay: Optional[float] = None):
        super().__init__(message)
        self.suggested_delay = suggested_delay


def split_system_messages(
    messages: List[ProviderMessage],
) -> Tuple[Optional[str], List[ProviderMessage]]:
    """Separate system-role messages from the conversation.

    Multiple system messages are joined with a blank line, in order.
    """
    system_parts = [msg.content for msg in messages if msg.role == "system"]
    conversation = [msg for msg in messages if msg.role != "system"]
    system = "\n\n".join(system_parts) if system_parts else None
    return system, conversation


class BaseProvider(ABC):
    """Abstract base class for language-model providers."""

    def __init__(self, config: Dict[str, Any]):
        self.config = config
        self.model_id = config.get("model_id", "default")

    @abstractmethod
    async def initialize(self) -> None:
        """Initialize the provider connection."""
        pass

    @abstractmethod
    async def chat_completion(
        self,
        messages: List[ProviderMessage],
        max_tokens: Optional[int] = None,
    ) -> ProviderResponse:
        """Generate a completion for ``messages``; system-role messages become the system prompt."""
        pass

    @abstractmethod
    async def shutdown(self) -> None:
        """Cleanup provider resources."""
        pass

    def _convert_finish_reason_to_stop_reason(self, finish_reason: Any) -> StopReason:
        """Convert provider-specific finish reasons to standard stop reasons."""
        if finish_reason is None:
            return StopReason.end_of_turn

        reason_str = str(finish_reason).lower()
        if reason_str in ["length", "max_tokens", "token_limit", "out_of_tokens"]:
            return StopReason.out_of_tokens
        if reason_str not in ["stop", "eos", "end", "end_turn", "stop_sequence"]:
            logger.debug(
                f"Unknown finish_reason: {finish_reason}, defaulting to end_of_turn"
            )
        return StopReason.end_of_turn
