"""Tests for smart_thinking.logging module."""

from __future__ import annotations

import logging
import tempfile
from pathlib import Path

from smart_thinking.config import Settings
from smart_thinking.logging import get_logger, logger, setup_logging


class TestSetupLogging:
    """Tests for setup_logging function."""

    def test_returns_logger(self):
        """Test setup_logging returns the package logger."""
        result = setup_logging()
        assert isinstance(result, logging.Logger)
        assert result.name == "smart_thinking"

    def test_sets_log_level(self):
        """Test setup_logging sets the log level."""
        log = setup_logging(log_level="DEBUG")
        assert log.level == logging.DEBUG

        log = setup_logging(log_level="warning")
        assert log.level == logging.WARNING

    def test_uses_settings(self):
        """Test the level comes from settings when not overridden."""
        log = setup_logging(Settings(_env_file=None, log_level="ERROR"))
        assert log.level == logging.ERROR

    def test_file_handler(self):
        """Test setup_logging writes structlog events to a log file."""
        with tempfile.TemporaryDirectory() as tmpdir:
            log_file = Path(tmpdir) / "nested" / "verification.log"
            setup_logging(log_level="INFO", log_file=log_file)

            get_logger("verification.memory").info("verification_added", session_id="s1")
            for handler in logger.handlers:
                handler.flush()

            content = log_file.read_text(encoding="utf-8")
            assert "event='verification_added'" in content
            assert "session_id='s1'" in content

            for handler in list(logger.handlers):
                handler.close()
                logger.removeHandler(handler)

    def test_does_not_accumulate_handlers(self):
        """Test repeated setup replaces handlers."""
        setup_logging()
        initial_count = len(logger.handlers)
        setup_logging()
        assert len(logger.handlers) == initial_count

    def test_prevents_propagation(self):
        """Test logger does not propagate to root logger."""
        log = setup_logging()
        assert log.propagate is False


class TestGetLogger:
    """Tests for get_logger function."""

    def test_prefixes_name(self):
        """Test events land on a child of the package logger."""
        setup_logging()
        bound = get_logger("verification.service")
        assert bound.name == "smart_thinking.verification.service"

    def test_already_prefixed_name(self):
        """Test already prefixed names are kept."""
        setup_logging()
        bound = get_logger("smart_thinking.context")
        assert bound.name == "smart_thinking.context"
