"""Tests for VersionController."""

import pytest

from ..history import Artifact
from .lib import EditSession, VersionController


def _apply(store, versions, body: str) -> None:
    """Simulate a refinement of the active artifact."""
    versions.record_change(store.active.body)
    store.update_body(store.active.id, body)


@pytest.fixture
def active(artifact_store, version_controller):
    """An active artifact with body B0 and a fresh session."""
    artifact = Artifact.create("doc", "B0")
    artifact_store.add(artifact)
    version_controller.activate(artifact)
    return artifact


class TestEditSession:
    """Tests for EditSession."""

    @pytest.mark.unit
    def test_reset(self):
        """Reset clears both stacks and retargets."""
        session = EditSession("a", ["x"], ["y"])
        session.reset("b")
        assert session == EditSession("b", [], [])


class TestVersionController:
    """Tests for undo/redo semantics."""

    @pytest.mark.unit
    def test_empty_stacks_are_noops(self, version_controller, active):
        """Undo/redo with empty stacks return None."""
        assert version_controller.undo() is None
        assert version_controller.redo() is None
        assert not version_controller.can_undo
        assert not version_controller.can_redo

    @pytest.mark.unit
    def test_no_active_artifact(self, artifact_store, version_controller, active):
        """Nothing active means undo does nothing."""
        _apply(artifact_store, version_controller, "B1")
        artifact_store.clear_active()
        assert version_controller.undo() is None
        assert version_controller.can_undo

    @pytest.mark.unit
    def test_record_change_clears_redo(
        self, artifact_store, version_controller, active
    ):
        """A new change after undo empties redo."""
        _apply(artifact_store, version_controller, "B1")
        version_controller.undo()
        assert version_controller.can_redo

        _apply(artifact_store, version_controller, "B2")
        assert not version_controller.can_redo
        assert version_controller.session.undo_stack == ["B0"]

    @pytest.mark.unit
    def test_undo_redo_sequence(self, artifact_store, version_controller, active):
        """n undos return to B0 and n redos return to Bn."""
        bodies = ["B1", "B2", "B3"]
        for body in bodies:
            _apply(artifact_store, version_controller, body)

        assert [version_controller.undo() for _ in bodies] == ["B2", "B1", "B0"]
        assert artifact_store.active.body == "B0"
        assert artifact_store.get(active.id).body == "B0"
        assert version_controller.undo() is None

        assert [version_controller.redo() for _ in bodies] == ["B1", "B2", "B3"]
        assert artifact_store.active.body == "B3"
        assert version_controller.redo() is None

    @pytest.mark.unit
    def test_activate_clears_stacks(self, artifact_store, version_controller, active):
        """Activating any artifact, even the same one, clears both stacks."""
        _apply(artifact_store, version_controller, "B1")
        _apply(artifact_store, version_controller, "B2")
        version_controller.undo()

        version_controller.activate(active)
        assert version_controller.session == EditSession(active.id, [], [])

    @pytest.mark.unit
    def test_stacks_ignore_other_artifact(
        self, artifact_store, version_controller, active
    ):
        """A stale session does not touch a different active artifact."""
        _apply(artifact_store, version_controller, "B1")
        other = Artifact.create("other", "O0")
        artifact_store.add(other)

        assert version_controller.undo() is None
        assert other.body == "O0"

    @pytest.mark.unit
    def test_deactivate(self, artifact_store, version_controller, active):
        """Deactivate drops the session."""
        _apply(artifact_store, version_controller, "B1")
        version_controller.deactivate()
        assert version_controller.session.artifact_id is None
        assert not version_controller.can_undo
