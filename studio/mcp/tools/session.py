"""Shared Workbench used by all MCP tools."""

import logging
from typing import Any, NoReturn

from ...history import Artifact, get_artifact_store
from ...llm.synthesis import SynthesisGateway
from ...workbench import Notice, Workbench

logger = logging.getLogger(__name__)

_workbench: Workbench | None = None


def get_workbench() -> Workbench:
    """Get or create the server's Workbench.

    The first call builds a gateway from the environment and opens the
    global artifact store.
    """
    global _workbench
    if _workbench is None:
        _workbench = Workbench(SynthesisGateway(), get_artifact_store())
        logger.info(f"Workbench ready with {len(_workbench.history)} artifacts")
    return _workbench


def peek_workbench() -> Workbench | None:
    """The server's Workbench if one has been created."""
    return _workbench


def set_workbench(workbench: Workbench | None) -> None:
    """Replace the server's Workbench (None to reset)."""
    global _workbench
    _workbench = workbench


def raise_notice(notices: list[Notice], fallback: str) -> NoReturn:
    """Raise the first of ``notices``, or ``fallback`` when there are none.

    Tools drain the Workbench before an operation, so ``notices`` holds only
    what that operation emitted.

    Raises:
        ValueError: Always.
    """
    raise ValueError(notices[0].message if notices else fallback)


def with_notices(state: dict[str, Any], notices: list[Notice]) -> dict[str, Any]:
    """Attach warnings emitted by a successful operation to its result."""
    state["notices"] = [notice.message for notice in notices]
    return state


def artifact_summary(artifact: Artifact, active_id: str | None = None) -> dict[str, Any]:
    """Short description of an artifact for tool results."""
    return {
        "id": artifact.id,
        "name": artifact.name,
        "created_at": artifact.created_at.isoformat(),
        "size_bytes": artifact.size_bytes,
        "has_source_image": artifact.source_image is not None,
        "active": artifact.id == active_id,
    }


def active_state(workbench: Workbench) -> dict[str, Any]:
    """The active artifact with its body and undo/redo availability."""
    active = workbench.active
    return {
        "artifact": artifact_summary(active, active.id) if active else None,
        "body": active.body if active else None,
        "can_undo": workbench.versions.can_undo,
        "can_redo": workbench.versions.can_redo,
    }


__all__ = [
    "get_workbench",
    "peek_workbench",
    "set_workbench",
    "raise_notice",
    "with_notices",
    "artifact_summary",
    "active_state",
]
