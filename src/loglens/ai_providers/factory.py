"""Provider factory."""

from typing import Any, Dict

from loglens.utils.logger import get_logger

from .base import BaseProvider
from .claude import ClaudeProvider

logger = get_logger(__name__)

DEFAULT_AI_PROVIDER = "claude"

DEFAULT_MODELS = {
    "claude": "claude-sonnet-4-20250514",
    "anthropic": "claude-sonnet-4-20250514",
}


def get_default_model(provider: str) -> str:
    """Get the default model for a given AI provider."""
    return DEFAULT_MODELS.get(provider.lower(), DEFAULT_MODELS[DEFAULT_AI_PROVIDER])


def create_provider(provider_name: str, config: Dict[str, Any]) -> BaseProvider:
    """Create provider instance based on provider name and config."""
    effective_provider = (config.get("ai_provider") or provider_name).lower()

    if effective_provider in ("claude", "anthropic"):
        return ClaudeProvider(config)

    logger.warning(
        f"Unknown provider '{effective_provider}', falling back to {DEFAULT_AI_PROVIDER}"
    )
    return ClaudeProvider(config)


def get_provider_config(settings) -> Dict[str, Any]:
    """Build provider config from settings."""
    provider = (settings.ai_provider or DEFAULT_AI_PROVIDER).lower()

    config = {
        "ai_provider": provider,
        "model_id": settings.ai_model or get_default_model(provider),
        "temperature": settings.get_ai_temperature(),
        "max_tokens": settings.max_output_tokens,
        "timeout": settings.ai_request_timeout,
        "api_key": settings.anthropic_api_key,
    }

    logger.info(
        f"Created provider config for {provider} with model {config['model_id']}"
    )
    return config
