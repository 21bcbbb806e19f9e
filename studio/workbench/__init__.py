"""Editing session orchestration for artifact-studio.

Example:
    >>> from studio.workbench import Workbench
    >>> bench = Workbench(gateway, store)
    >>> await bench.generate("a kanban board")
    >>> await bench.refine("make the columns scroll")
"""

from .lib import (
    BUSY_MESSAGE,
    DEFAULT_ARTIFACT_NAME,
    ERROR_MESSAGES,
    FALLBACK_ERROR_MESSAGE,
    NOTICE_LIMIT,
    STORAGE_FULL_MESSAGE,
    Notice,
    Workbench,
    artifact_name,
    describe_error,
)

__all__ = [
    "Workbench",
    "Notice",
    "describe_error",
    "artifact_name",
    "ERROR_MESSAGES",
    "BUSY_MESSAGE",
    "STORAGE_FULL_MESSAGE",
    "FALLBACK_ERROR_MESSAGE",
    "DEFAULT_ARTIFACT_NAME",
    "NOTICE_LIMIT",
]
