"""Undo/redo over the body of the active artifact.

The VersionController owns an explicit EditSession: the id of the artifact
being edited plus its undo and redo stacks of prior bodies. Every body
change it applies goes through ArtifactStore.update_body so history and the
active artifact stay synchronized.
"""

import logging
from dataclasses import dataclass, field

from ..history import Artifact, ArtifactStore

logger = logging.getLogger(__name__)


@dataclass
class EditSession:
    """Undo/redo state scoped to one artifact.

    Attributes:
        artifact_id: Id of the artifact being edited, None when idle.
        undo_stack: Prior bodies, most recent last.
        redo_stack: Undone bodies, most recent last.
    """

    artifact_id: str | None = None
    undo_stack: list[str] = field(default_factory=list)
    redo_stack: list[str] = field(default_factory=list)

    def reset(self, artifact_id: str | None) -> None:
        """Point the session at ``artifact_id`` with empty stacks."""
        self.artifact_id = artifact_id
        self.undo_stack.clear()
        self.redo_stack.clear()


class VersionController:
    """Linear undo/redo for the active artifact.

    Example:
        >>> versions = VersionController(store)
        >>> versions.activate(artifact)
        >>> versions.record_change(artifact.body)
        >>> store.update_body(artifact.id, new_body)
        >>> versions.undo()  # restores the previous body
    """

    def __init__(self, store: ArtifactStore):
        self._store = store
        self._session = EditSession()

    @property
    def session(self) -> EditSession:
        """Get the current edit session."""
        return self._session

    @property
    def can_undo(self) -> bool:
        return bool(self._session.undo_stack)

    @property
    def can_redo(self) -> bool:
        return bool(self._session.redo_stack)

    def activate(self, artifact: Artifact) -> None:
        """Start a fresh session for ``artifact``.

        Both stacks are cleared, even when ``artifact`` is already active.
        """
        self._session.reset(artifact.id)
        logger.debug(f"Edit session reset for artifact {artifact.id}")

    def deactivate(self) -> None:
        """End the session and drop both stacks."""
        self._session.reset(None)

    def record_change(self, previous_body: str) -> None:
        """Remember ``previous_body`` before a new version is applied.

        Any redo history is discarded.
        """
        self._session.undo_stack.append(previous_body)
        self._session.redo_stack.clear()

    def _current(self) -> Artifact | None:
        active = self._store.active
        if active is None or active.id != self._session.artifact_id:
            return None
        return active

    def undo(self) -> str | None:
        """Restore the previous body of the active artifact.

        Returns:
            The restored body, or None when there is nothing to undo or no
            artifact is active.
        """
        active = self._current()
        if active is None or not self._session.undo_stack:
            return None

        previous = self._session.undo_stack.pop()
        self._session.redo_stack.append(active.body)
        self._store.update_body(active.id, previous)
        logger.info(
            f"Undo on {active.id}: {len(self._session.undo_stack)} undo, "
            f"{len(self._session.redo_stack)} redo"
        )
        return previous

    def redo(self) -> str | None:
        """Re-apply the most recently undone body.

        Returns:
            The restored body, or None when there is nothing to redo or no
            artifact is active.
        """
        active = self._current()
        if active is None or not self._session.redo_stack:
            return None

        following = self._session.redo_stack.pop()
        self._session.undo_stack.append(active.body)
        self._store.update_body(active.id, following)
        logger.info(
            f"Redo on {active.id}: {len(self._session.undo_stack)} undo, "
            f"{len(self._session.redo_stack)} redo"
        )
        return following


__all__ = ["EditSession", "VersionController"]
