"""Configuration management for the query composer and its MCP server."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_MAX_SUGGESTIONS = 8
DEFAULT_HISTORY_SIZE = 50
DEFAULT_DATA_DIR = ".cache"
SAVED_FILTERS_FILENAME = "saved_filters.json"
_VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
_VALID_TRANSPORTS = {"stdio", "sse"}


def _int_from_env(name: str, default: int, minimum: int = 1) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning("%s=%r is not an integer. Using default: %d", name, raw, default)
        return default
    if value < minimum:
        logger.warning("%s=%d is below %d. Using default: %d", name, value, minimum, default)
        return default
    return value


@dataclass
class ComposerConfig:
    """Runtime settings for suggestion, history and persistence."""

    max_suggestions: int = DEFAULT_MAX_SUGGESTIONS
    history_size: int = DEFAULT_HISTORY_SIZE
    data_dir: Path = field(default_factory=lambda: Path(DEFAULT_DATA_DIR))
    log_level: str = "INFO"
    transport: str = "stdio"
    host: str = "0.0.0.0"
    port: int = 8080

    @property
    def saved_filters_path(self) -> Path:
        """Location of the JSON file holding saved filters."""
        return Path(self.data_dir) / SAVED_FILTERS_FILENAME

    @classmethod
    def from_env(cls) -> ComposerConfig:
        """Load configuration from environment variables.

        Invalid values are logged and replaced by their defaults so a bad
        variable never prevents the composer from starting.

        Returns
        -------
        ComposerConfig
            Configuration object populated from the environment.
        """
        max_suggestions = _int_from_env("QUERYCOMPOSER_MAX_SUGGESTIONS", DEFAULT_MAX_SUGGESTIONS)
        history_size = _int_from_env("QUERYCOMPOSER_HISTORY_SIZE", DEFAULT_HISTORY_SIZE)
        data_dir = os.getenv("QUERYCOMPOSER_DATA_DIR", DEFAULT_DATA_DIR).strip() or DEFAULT_DATA_DIR

        log_level = os.getenv("QUERYCOMPOSER_LOG_LEVEL", "INFO").strip().upper()
        if log_level not in _VALID_LOG_LEVELS:
            logger.warning("Unknown log level %r. Using default: INFO", log_level)
            log_level = "INFO"

        transport = os.getenv("MCP_TRANSPORT", "stdio").strip().lower()
        if transport not in _VALID_TRANSPORTS:
            logger.warning("Unknown MCP transport %r. Using default: stdio", transport)
            transport = "stdio"

        host = os.getenv("MCP_HOST", "0.0.0.0").strip() or "0.0.0.0"
        port = _int_from_env("MCP_PORT", 8080)

        logger.info(
            "Composer config loaded: data_dir=%s, max_suggestions=%d, history_size=%d",
            data_dir,
            max_suggestions,
            history_size,
        )

        return cls(
            max_suggestions=max_suggestions,
            history_size=history_size,
            data_dir=Path(data_dir),
            log_level=log_level,
            transport=transport,
            host=host,
            port=port,
        )
