"""Tests for structured logging configuration."""

import logging

import structlog

from cli.logging_config import setup_logging
from shared_types import LogLevel


class TestLoggingConfig:
    """Test structlog setup modes."""

    def test_console_mode(self, capsys):
        """Console mode writes to stderr, never stdout."""
        setup_logging(level="debug", json_mode=False)
        logger = structlog.get_logger()
        logger.info("test_message", key="value")
        captured = capsys.readouterr()
        assert "test_message" not in captured.out

    def test_json_mode(self):
        """JSON mode configures a processor chain."""
        setup_logging(level=LogLevel.DEBUG, json_mode=True)
        assert len(structlog.get_config()["processors"]) >= 2

    def test_facter_level_names(self):
        setup_logging(level=LogLevel.TRACE)
        assert logging.getLogger().level == logging.DEBUG
        setup_logging(level=LogLevel.FATAL)
        assert logging.getLogger().level == logging.CRITICAL

    def test_stdlib_level_names(self):
        setup_logging(level="ERROR")
        assert logging.getLogger().level == logging.ERROR

    def test_default_level_is_warning(self):
        setup_logging()
        assert logging.getLogger().level == logging.WARNING

    def test_single_handler(self):
        setup_logging()
        setup_logging()
        assert len(logging.getLogger().handlers) == 1
