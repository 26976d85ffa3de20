"""Unit tests for settings configuration."""

import logging
import os
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from loglens.config.settings import (
    SENSITIVE_ENV_VAR_NAMES,
    CoreSettings,
    load_settings,
)
from loglens.context.config import ContextWindowConfig


class TestCoreSettings:
    """Test CoreSettings instantiation and defaults."""

    def test_default_values(self):
        """Test that CoreSettings has sensible defaults."""
        with patch.dict(os.environ, {}, clear=True):
            settings = CoreSettings()
            assert settings.ai_provider == "claude"
            assert settings.anthropic_api_key is None
            assert settings.max_log_tokens == 15000
            assert settings.max_file_tokens == 10000
            assert settings.max_context_tokens == 200000
            assert settings.recent_messages_to_keep == 6
            assert settings.summarization_threshold == 0.8
            assert settings.log_level == "INFO"
            assert settings.json_logs is False

    def test_values_from_env(self):
        """Test that budgets can be set from environment."""
        env = {
            "MAX_LOG_TOKENS": "20000",
            "RECENT_MESSAGES_TO_KEEP": "8",
            "SUMMARIZATION_THRESHOLD": "0.5",
        }
        with patch.dict(os.environ, env, clear=False):
            settings = load_settings()
            assert settings.max_log_tokens == 20000
            assert settings.recent_messages_to_keep == 8
            assert settings.summarization_threshold == 0.5

    def test_log_level_is_normalized(self):
        """Test that lower-case log levels are accepted."""
        with patch.dict(os.environ, {"LOG_LEVEL": "warning"}, clear=False):
            assert load_settings().log_level == "WARNING"

    def test_invalid_log_level_rejected(self):
        with patch.dict(os.environ, {"LOG_LEVEL": "LOUD"}, clear=False):
            with pytest.raises(ValidationError):
                load_settings()

    @pytest.mark.parametrize(
        "raw,expected",
        [("true", True), ("1", True), ("Yes", True), ("false", False), ("", False)],
    )
    def test_json_logs_parsing(self, raw, expected):
        with patch.dict(os.environ, {"JSON_LOGS": raw}, clear=False):
            assert load_settings().json_logs is expected

    def test_threshold_out_of_range_rejected(self):
        with patch.dict(os.environ, {"SUMMARIZATION_THRESHOLD": "1.5"}, clear=False):
            with pytest.raises(ValidationError):
                load_settings()

    def test_recent_messages_must_be_positive(self):
        with patch.dict(os.environ, {"RECENT_MESSAGES_TO_KEEP": "0"}, clear=False):
            with pytest.raises(ValidationError):
                load_settings()

    def test_temperature_is_clamped(self):
        with patch.dict(os.environ, {"AI_TEMPERATURE": "3"}, clear=False):
            assert load_settings().get_ai_temperature() == 1.0

    def test_invalid_temperature_falls_back(self):
        with patch.dict(os.environ, {"AI_TEMPERATURE": "warm"}, clear=False):
            assert load_settings().get_ai_temperature() == 0.0

    def test_summarization_budget(self):
        env = {"MAX_CONTEXT_TOKENS": "100000", "RESERVED_TOKENS": "20000"}
        with patch.dict(os.environ, env, clear=False):
            config = ContextWindowConfig.from_settings(load_settings())
        assert config.summarization_budget == 80000

    def test_file_budget_above_log_budget_warns(self, caplog):
        env = {"MAX_LOG_TOKENS": "1000", "MAX_FILE_TOKENS": "5000"}
        with patch.dict(os.environ, env, clear=False):
            with caplog.at_level(logging.WARNING, logger="loglens.config.settings"):
                load_settings()
        assert "exceeds MAX_LOG_TOKENS" in caplog.text


class TestSensitiveMasking:
    """Test that secrets never appear in settings output."""

    def test_api_key_is_sensitive(self):
        assert "ANTHROPIC_API_KEY" in SENSITIVE_ENV_VAR_NAMES

    def test_repr_masks_api_key(self):
        with patch.dict(os.environ, {"ANTHROPIC_API_KEY": "sk-ant-secret"}, clear=False):
            settings = load_settings()
            assert "sk-ant-secret" not in repr(settings)
            assert "sk-ant-secret" not in str(settings)
            assert "anthropic_api_key='<13 chars>'" in repr(settings)

    def test_repr_without_api_key(self):
        with patch.dict(os.environ, {}, clear=True):
            assert "anthropic_api_key='None'" in repr(CoreSettings())


class TestContextWindowConfigFromSettings:
    """Test the bridge from settings to the context assembler's config."""

    def test_from_settings_copies_budgets(self):
        env = {
            "MAX_CONTEXT_TOKENS": "50000",
            "MAX_OUTPUT_TOKENS": "2000",
            "MAX_FILE_TOKENS": "3000",
            "DETECTION_SAMPLE_LINES": "20",
        }
        with patch.dict(os.environ, env, clear=False):
            config = ContextWindowConfig.from_settings(load_settings())
        assert config.max_context_tokens == 50000
        assert config.max_output_tokens == 2000
        assert config.max_file_tokens == 3000
        assert config.detection_sample_lines == 20

    def test_config_validation(self):
        with pytest.raises(ValueError):
            ContextWindowConfig(recent_messages_to_keep=0)
        with pytest.raises(ValueError):
            ContextWindowConfig(summarization_threshold=0.0)
        config = ContextWindowConfig(max_context_tokens=1000, reserved_tokens=200)
        assert config.summarization_budget == 800
        assert config.summarization_trigger_tokens == 640
