"""Anthropic Claude provider adapter."""

import os
from typing import Any, Dict, List, Optional

from anthropic import (
    APIConnectionError,
    APIStatusError,
    AsyncAnthropic,
    RateLimitError,
)

from loglens.utils.logger import get_logger

from .base import (
    BaseProvider,
    ContentExtractionError,
    ProviderError,
    ProviderMessage,
    ProviderResponse,
    TemporaryServiceError,
    split_system_messages,
)

logger = get_logger(__name__)

DEFAULT_MAX_TOKENS = 4096

# The Messages API requires the first turn to come from the user; sessions open
# with the stored initial analysis, so a short user turn is placed before it.
SESSION_OPENER = "Please analyze the uploaded log files."


class ClaudeProvider(BaseProvider):
    """Anthropic Claude provider adapter."""

    def __init__(self, config: Dict[str, Any]):
        super().__init__(config)
        self.client: Optional[AsyncAnthropic] = None

    async def initialize(self) -> None:
        """Initialize Anthropic connection."""
        api_key = self.config.get("api_key") or os.getenv("ANTHROPIC_API_KEY")
        if not api_key:
            raise ValueError("Anthropic API key not provided")

        self.client = AsyncAnthropic(
            api_key=api_key,
            timeout=float(self.config.get("timeout", 120.0)),
            max_retries=int(self.config.get("max_retries", 2)),
        )

        logger.info(f"Initialized Claude provider with model: {self.model_id}")

    async def chat_completion(
        self,
        messages: List[ProviderMessage],
        max_tokens: Optional[int] = None,
    ) -> ProviderResponse:
        """Generate chat completion using Claude."""
        if not self.client:
            raise RuntimeError("Provider not initialized")

        system_message, conversation = split_system_messages(messages)
        if conversation and conversation[0].role == "assistant":
            conversation = [ProviderMessage(content=SESSION_OPENER), *conversation]
        request_params: Dict[str, Any] = {
            "model": self.model_id,
            "messages": [
                {"role": msg.role, "content": msg.content} for msg in conversation
            ],
            "max_tokens": max_tokens
            or int(self.config.get("max_tokens", DEFAULT_MAX_TOKENS)),
            "temperature": float(self.config.get("temperature", 0.0)),
        }
        if system_message:
            request_params["system"] = system_message

        try:
            response = await self.client.messages.create(**request_params)
        except RateLimitError as e:
            retry_after = e.response.headers.get("retry-after") if e.response else None
            raise TemporaryServiceError(
                f"Claude rate limit exceeded: {e}",
                suggested_delay=float(retry_after) if retry_after else None,
            ) from e
        except APIConnectionError as e:
            raise TemporaryServiceError(f"Claude connection failed: {e}") from e
        except APIStatusError as e:
            if e.status_code >= 500:
                raise TemporaryServiceError(
                    f"Claude service error {e.status_code}: {e}"
                ) from e
            logger.error(f"Claude API call failed: {e}")
            raise ProviderError(f"Claude API call failed: {e}") from e

        content = "".join(
            block.text for block in response.content if block.type == "text"
        )
        if not content.strip():
            raise ContentExtractionError("Claude response contained no text content")

        if response.stop_reason == "max_tokens":
            logger.warning("Claude response was truncated due to max tokens")

        return ProviderResponse(
            content=content,
            model=response.model,
            stop_reason=self._convert_finish_reason_to_stop_reason(
                response.stop_reason
            ),
            usage=self._extract_usage(response),
        )

    def _extract_usage(self, response) -> Dict[str, Any]:
        """Extract usage statistics from Claude response."""
        if hasattr(response, "usage") and response.usage:
            return {
                "prompt_tokens": response.usage.input_tokens,
                "completion_tokens": response.usage.output_tokens,
                "total_tokens": response.usage.input_tokens
                + response.usage.output_tokens,
            }
        return {}

    async def shutdown(self) -> None:
        """Cleanup Claude resources."""
        if self.client is not None:
            await self.client.close()
        self.client = None
        logger.info("Claude provider shutdown completed")
