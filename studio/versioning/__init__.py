"""Undo/redo version control for the active artifact."""

from .lib import EditSession, VersionController

__all__ = ["EditSession", "VersionController"]
