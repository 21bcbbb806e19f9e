"""Logging micro API for artifact-studio."""

from .lib import get_logger, setup_logging

__all__ = ["get_logger", "setup_logging"]
