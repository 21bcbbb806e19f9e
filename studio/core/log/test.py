"""Tests for core logging module."""

import logging
from io import StringIO

from .lib import LOG_FORMAT, get_logger, setup_logging


class TestLogging:
    """Test core logging API."""

    def test_get_logger(self) -> None:
        """Verify logger instance creation."""
        logger = get_logger("test")
        assert logger.name == "test"
        assert isinstance(logger, logging.Logger)

    def test_get_logger_default_name(self) -> None:
        """Verify default logger name."""
        logger = get_logger()
        assert logger.name == "artifact-studio"

    def test_setup_logging(self) -> None:
        """Verify logging setup does not raise and leaves loggers at NOTSET."""
        stream = StringIO()
        setup_logging(level=logging.DEBUG, stream=stream)
        logger = get_logger("test_setup")
        logger.debug("test message")

        # basicConfig is a no-op when the root logger already has handlers,
        # so only the API contract is checked here.
        assert logger.level == logging.NOTSET

    def test_format_includes_logger_name(self) -> None:
        """Log format names the emitting logger."""
        assert "%(name)s" in LOG_FORMAT
