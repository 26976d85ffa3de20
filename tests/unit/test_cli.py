"""Unit tests for CLI module."""

import json
import os
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from loglens.ai_providers.base import ProviderError, ProviderResponse
from loglens.cli.arg_mapping import (
    CONFIG_DISPLAY_GROUPS,
    SENSITIVE_ENV_VARS,
    SETTINGS_ARG_MAPPINGS,
)
from loglens.cli.commands import get_version
from loglens.cli.env_loader import (
    apply_cli_args_to_env,
    get_effective_config,
    load_env_file,
    mask_sensitive_value,
)
from loglens.cli.main import create_parser, main
from loglens.context.prompts import INITIAL_ANALYSIS_FALLBACK


@pytest.fixture
def jira_log_file(tmp_path, atlassian_log):
    path = tmp_path / "atlassian-jira.log"
    path.write_text(atlassian_log, encoding="utf-8")
    return path


@pytest.fixture
def session_export(tmp_path, jira_log_file):
    path = tmp_path / "session.yaml"
    path.write_text(
        "title: Jira outage\n"
        "system_info:\n"
        "  os: Ubuntu 22.04\n"
        "  appName: Jira\n"
        "files:\n"
        f"  - path: {jira_log_file.name}\n"
        "messages:\n"
        "  - {role: assistant, content: Initial analysis}\n"
        "  - {role: user, content: 'Why is the index locked?'}\n"
        "  - {role: assistant, content: Another node holds the lock.}\n",
        encoding="utf-8",
    )
    return path


class TestArgMapping:
    """Tests for arg_mapping module."""

    def test_settings_arg_mappings_not_empty(self):
        assert len(SETTINGS_ARG_MAPPINGS) > 0

    def test_sensitive_env_vars_contains_api_key(self):
        assert "ANTHROPIC_API_KEY" in SENSITIVE_ENV_VARS

    def test_every_mapping_is_displayed(self):
        """Variables settable from the CLI show up in 'config show'."""
        displayed = {var for group in CONFIG_DISPLAY_GROUPS.values() for var in group}
        for mapping in SETTINGS_ARG_MAPPINGS:
            assert mapping.env_var in displayed


class TestEnvLoader:
    """Tests for env_loader module."""

    def test_load_env_file_not_found(self):
        """load_env_file should raise FileNotFoundError for missing file."""
        with pytest.raises(FileNotFoundError):
            load_env_file("/nonexistent/.env.test")

    def test_load_env_file_success(self, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("MAX_LOG_TOKENS=12345\nAI_MODEL=claude-test\n")

        with patch.dict(os.environ, {}, clear=False):
            os.environ.pop("MAX_LOG_TOKENS", None)
            loaded = load_env_file(str(env_file))
            assert loaded == ["MAX_LOG_TOKENS", "AI_MODEL"]
            assert os.environ["MAX_LOG_TOKENS"] == "12345"

    def test_env_file_does_not_override_by_default(self, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("MAX_LOG_TOKENS=1\n")

        with patch.dict(os.environ, {"MAX_LOG_TOKENS": "9000"}, clear=False):
            load_env_file(str(env_file))
            assert os.environ["MAX_LOG_TOKENS"] == "9000"

    def test_apply_cli_args_to_env(self):
        with patch.dict(os.environ, {}, clear=False):
            applied = apply_cli_args_to_env(
                {"max_log_tokens": 5000, "ai_model": None, "verbose": False}
            )
            assert applied == {"MAX_LOG_TOKENS": "5000"}
            assert os.environ["MAX_LOG_TOKENS"] == "5000"

    def test_override_uses_mapped_env_var(self):
        with patch.dict(os.environ, {}, clear=False):
            applied = apply_cli_args_to_env({"recent_messages": 4})
            assert applied == {"RECENT_MESSAGES_TO_KEEP": "4"}

    def test_verbose_wins_over_log_level(self):
        with patch.dict(os.environ, {}, clear=False):
            applied = apply_cli_args_to_env({"log_level": "ERROR", "verbose": True})
            assert applied == {"LOG_LEVEL": "DEBUG"}

    def test_verbose_sets_debug(self):
        with patch.dict(os.environ, {"LOG_LEVEL": "INFO"}, clear=False):
            applied = apply_cli_args_to_env({"verbose": True})
            assert applied["LOG_LEVEL"] == "DEBUG"
            assert os.environ["LOG_LEVEL"] == "DEBUG"

    def test_get_effective_config(self):
        with patch.dict(os.environ, {"MAX_FILE_TOKENS": "777"}, clear=False):
            config = get_effective_config()
            assert config["MAX_FILE_TOKENS"] == "777"
            assert "ANTHROPIC_API_KEY" in config

    @pytest.mark.parametrize(
        "value,expected",
        [(None, "(not set)"), ("abc", "***"), ("sk-ant-12345678", "***********5678")],
    )
    def test_mask_sensitive_value(self, value, expected):
        assert mask_sensitive_value(value) == expected


class TestParser:
    """Tests for argument parsing."""

    def test_detect_arguments(self):
        args = create_parser().parse_args(["detect", "app.log", "--sample-lines", "10"])
        assert args.command == "detect"
        assert args.file == "app.log"
        assert args.sample_lines == 10

    def test_settings_overrides_on_context(self):
        args = create_parser().parse_args(
            ["context", "s.yaml", "-m", "hi", "--max-log-tokens", "2000", "-v"]
        )
        assert args.max_log_tokens == 2000
        assert args.verbose is True
        assert args.ai_model is None

    def test_unknown_format_rejected(self):
        with pytest.raises(SystemExit):
            create_parser().parse_args(["parse", "app.log", "--format", "xml"])

    def test_no_command_prints_help(self, capsys):
        assert main([]) == 0
        assert "usage: loglens" in capsys.readouterr().out


class TestCommands:
    """Tests for command handlers run through main()."""

    def test_version(self, capsys):
        assert main(["version"]) == 0
        assert capsys.readouterr().out.strip() == f"loglens version {get_version()}"

    def test_config_show_masks_api_key(self, capsys):
        with patch.dict(os.environ, {"ANTHROPIC_API_KEY": "sk-ant-secret-value"}):
            assert main(["config", "show"]) == 0
        out = capsys.readouterr().out
        assert "sk-ant-secret-value" not in out
        assert "ANTHROPIC_API_KEY: ***************alue" in out
        assert "[Log Budgets]" in out

    def test_config_show_missing_env_file(self, capsys):
        assert main(["config", "show", "--env-file", "/nonexistent/.env"]) == 1
        assert "Environment file not found" in capsys.readouterr().err

    def test_detect(self, capsys, jira_log_file):
        assert main(["detect", str(jira_log_file)]) == 0
        out = capsys.readouterr().out
        assert "Format: atlassian" in out
        assert "Sample size: 8" in out

    def test_detect_json(self, capsys, jira_log_file):
        assert main(["detect", str(jira_log_file), "--json"]) == 0
        data = json.loads(capsys.readouterr().out)
        assert data == {"format": "atlassian", "confidence": 0.625, "sample_size": 8}

    def test_detect_missing_file(self, capsys, tmp_path):
        assert main(["detect", str(tmp_path / "missing.log")]) == 1
        assert "Error:" in capsys.readouterr().err

    def test_parse_issues_json(self, capsys, jira_log_file):
        assert main(["parse", str(jira_log_file), "--issues-only", "--no-raw", "--json"]) == 0
        data = json.loads(capsys.readouterr().out)
        assert data["format"] == "atlassian"
        assert data["stats"]["total_entries"] == 5
        assert data["stats"]["level_counts"]["error"] == 1
        assert [e["level"] for e in data["entries"]] == ["error", "warn"]
        assert data["entries"][0]["raw"] == ""
        assert data["entries"][0]["source"] == "http-nio-8080-exec-1"

    def test_parse_text(self, capsys, jira_log_file):
        assert main(["parse", str(jira_log_file), "--format", "plain"]) == 0
        out = capsys.readouterr().out
        assert out.startswith("Log format: Plain Text")

    def test_parse_invalid_max_entries(self, capsys, jira_log_file):
        assert main(["parse", str(jira_log_file), "--max-entries", "0"]) == 1
        assert "Error:" in capsys.readouterr().err

    def test_optimize_truncates(self, capsys, jira_log_file):
        with patch.dict(os.environ, {}, clear=False):
            assert main(["optimize", str(jira_log_file), "--budget", "60"]) == 0
        captured = capsys.readouterr()
        assert captured.out.startswith("[Log truncated to fit the token budget.")
        assert "Truncated: True" in captured.err

    def test_optimize_within_budget(self, capsys, jira_log_file, atlassian_log):
        with patch.dict(os.environ, {}, clear=False):
            assert main(["optimize", str(jira_log_file)]) == 0
        captured = capsys.readouterr()
        assert captured.out == atlassian_log + "\n"
        assert "Truncated: False" in captured.err

    def test_context_json(self, capsys, session_export):
        with patch.dict(os.environ, {}, clear=False):
            code = main(["context", str(session_export), "-m", "Any fix?", "--json"])
        assert code == 0
        data = json.loads(capsys.readouterr().out)
        assert "- Application: Jira" in data["system_prompt"]
        assert "### atlassian-jira.log" in data["system_prompt"]
        assert [m["role"] for m in data["messages"]] == [
            "assistant",
            "user",
            "assistant",
            "user",
        ]
        assert data["messages"][-1]["content"] == "Any fix?"
        assert data["windowed"] is False
        assert data["summarization_due"] is False

    def test_context_with_attachment(self, capsys, session_export, tmp_path):
        gc_log = tmp_path / "gc.log"
        gc_log.write_text("GC pause 12s\n", encoding="utf-8")

        with patch.dict(os.environ, {}, clear=False):
            code = main(["context", str(session_export), "--attach", str(gc_log), "--json"])
        assert code == 0
        data = json.loads(capsys.readouterr().out)
        assert "### Newly attached file: gc.log" in data["messages"][-1]["content"]

    def test_context_requires_message(self, capsys, session_export):
        with patch.dict(os.environ, {}, clear=False):
            assert main(["context", str(session_export)]) == 1
        assert "--message or --attach" in capsys.readouterr().err

    def test_context_missing_export(self, capsys, tmp_path):
        with patch.dict(os.environ, {}, clear=False):
            assert main(["context", str(tmp_path / "nope.yaml"), "-m", "hi"]) == 1
        assert "Session export not found" in capsys.readouterr().err

    def test_context_malformed_yaml(self, capsys, tmp_path):
        export = tmp_path / "broken.yaml"
        export.write_text("title: [unclosed\nmessages: {\n", encoding="utf-8")
        with patch.dict(os.environ, {}, clear=False):
            assert main(["context", str(export), "-m", "hi"]) == 1
        assert "Error:" in capsys.readouterr().err

    def test_context_message_not_a_mapping(self, capsys, tmp_path):
        export = tmp_path / "session.yaml"
        export.write_text("messages:\n  - just text\n", encoding="utf-8")
        with patch.dict(os.environ, {}, clear=False):
            assert main(["context", str(export), "-m", "hi"]) == 1
        assert "must be a mapping" in capsys.readouterr().err


def _mock_provider():
    provider = MagicMock()
    provider.initialize = AsyncMock()
    provider.shutdown = AsyncMock()
    provider.chat_completion = AsyncMock(
        return_value=ProviderResponse(content="## 1. Summary\nIndex lock.", model="m")
    )
    return provider


class TestAnalyzeCommand:
    """Tests for the analyze command with the provider mocked out."""

    def test_analyze_prints_analysis(self, capsys, jira_log_file):
        provider = _mock_provider()
        with patch.dict(os.environ, {}, clear=False), patch(
            "loglens.ai_providers.create_provider", return_value=provider
        ):
            code = main(["analyze", str(jira_log_file), "--app-name", "Jira"])

        assert code == 0
        captured = capsys.readouterr()
        assert "## 1. Summary\nIndex lock." in captured.out
        assert "Issues found in logs: 2" in captured.err
        provider.initialize.assert_awaited_once()
        provider.shutdown.assert_awaited_once()

    def test_analyze_model_failure_prints_fallback(self, capsys, jira_log_file):
        provider = _mock_provider()
        provider.chat_completion.side_effect = ProviderError("overloaded")
        with patch.dict(os.environ, {}, clear=False), patch(
            "loglens.ai_providers.create_provider", return_value=provider
        ):
            assert main(["analyze", str(jira_log_file)]) == 0
        assert INITIAL_ANALYSIS_FALLBACK in capsys.readouterr().out
        provider.shutdown.assert_awaited_once()

    def test_analyze_missing_api_key(self, capsys, jira_log_file):
        with patch.dict(os.environ, {}, clear=False):
            os.environ.pop("ANTHROPIC_API_KEY", None)
            assert main(["analyze", str(jira_log_file)]) == 1
        assert "API key" in capsys.readouterr().err
