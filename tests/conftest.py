"""Pytest configuration and shared fixtures."""

import logging
import sys
from pathlib import Path

import pytest
import structlog

# Add src directory to Python path for tests
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))


@pytest.fixture(autouse=True)
def setup_test_environment(monkeypatch):
    """Setup test environment variables."""
    test_env = {
        "LOG_LEVEL": "DEBUG",
        "JSON_LOGS": "false",
    }

    for key, value in test_env.items():
        monkeypatch.setenv(key, value)


@pytest.fixture
def atlassian_log():
    """Five Jira entries, the first with a stack trace."""
    return (
        "2024-01-15 10:30:45,123 ERROR [http-nio-8080-exec-1] [com.atlassian.jira.Index] Indexing failed\n"
        "java.lang.IllegalStateException: index locked\n"
        "\tat com.atlassian.jira.Index.run(Index.java:42)\n"
        "\tat java.lang.Thread.run(Thread.java:750)\n"
        "2024-01-15 10:30:46,000 INFO [main] [com.atlassian.jira.Startup] Jira started\n"
        "2024-01-15 10:30:47,500 WARN [main] [com.atlassian.jira.Mail] Mail queue is slow\n"
        "2024-01-15 10:30:48,000 INFO [main] [com.atlassian.jira.Mail] Mail queue flushed\n"
        "2024-01-15 10:30:49,250 DEBUG [main] [com.atlassian.jira.Index] Index optimized\n"
    )


@pytest.fixture
def access_log_lines():
    """Fifty combined-format access log lines with mixed status codes."""
    statuses = [200, 304, 404, 500, 201]
    return [
        f'192.168.1.{i % 255} - - [15/Jan/2024:10:30:{i % 60:02d} +0900] '
        f'"GET /api/items/{i} HTTP/1.1" {statuses[i % len(statuses)]} {100 + i} '
        f'"-" "curl/8.0"'
        for i in range(50)
    ]


@pytest.fixture(autouse=True)
def reset_logging():
    """Drop handlers bound to per-test capture streams once a test finishes."""
    yield
    structlog.reset_defaults()
    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        if type(handler) is logging.StreamHandler:
            root_logger.removeHandler(handler)
