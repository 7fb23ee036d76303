"""
Tests for environment-driven configuration.
"""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from querycomposer.shared.config import ComposerConfig

_ENV_VARS = (
    "QUERYCOMPOSER_MAX_SUGGESTIONS",
    "QUERYCOMPOSER_HISTORY_SIZE",
    "QUERYCOMPOSER_DATA_DIR",
    "QUERYCOMPOSER_LOG_LEVEL",
    "MCP_TRANSPORT",
    "MCP_HOST",
    "MCP_PORT",
)


@pytest.fixture
def clean_env(monkeypatch):
    """Remove composer variables so defaults apply."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestComposerConfig:
    """Test ComposerConfig.from_env."""

    def test_defaults(self, clean_env):
        config = ComposerConfig.from_env()
        assert config.max_suggestions == 8
        assert config.history_size == 50
        assert config.data_dir == Path(".cache")
        assert config.log_level == "INFO"
        assert config.transport == "stdio"
        assert config.port == 8080
        assert config.saved_filters_path == Path(".cache") / "saved_filters.json"

    def test_values_from_environment(self, clean_env, tmp_path):
        clean_env.setenv("QUERYCOMPOSER_MAX_SUGGESTIONS", "5")
        clean_env.setenv("QUERYCOMPOSER_HISTORY_SIZE", "10")
        clean_env.setenv("QUERYCOMPOSER_DATA_DIR", str(tmp_path))
        clean_env.setenv("QUERYCOMPOSER_LOG_LEVEL", "debug")
        clean_env.setenv("MCP_TRANSPORT", "SSE")
        clean_env.setenv("MCP_HOST", "127.0.0.1")
        clean_env.setenv("MCP_PORT", "9000")

        config = ComposerConfig.from_env()
        assert config.max_suggestions == 5
        assert config.history_size == 10
        assert config.data_dir == tmp_path
        assert config.log_level == "DEBUG"
        assert config.transport == "sse"
        assert config.host == "127.0.0.1"
        assert config.port == 9000

    @pytest.mark.parametrize("raw", ["abc", "0", "-3", "1.5"])
    def test_invalid_integers_fall_back(self, clean_env, caplog, raw):
        clean_env.setenv("QUERYCOMPOSER_MAX_SUGGESTIONS", raw)
        with caplog.at_level(logging.WARNING):
            config = ComposerConfig.from_env()
        assert config.max_suggestions == 8
        assert "QUERYCOMPOSER_MAX_SUGGESTIONS" in caplog.text

    def test_invalid_log_level_and_transport_fall_back(self, clean_env):
        clean_env.setenv("QUERYCOMPOSER_LOG_LEVEL", "chatty")
        clean_env.setenv("MCP_TRANSPORT", "carrier-pigeon")
        config = ComposerConfig.from_env()
        assert config.log_level == "INFO"
        assert config.transport == "stdio"
