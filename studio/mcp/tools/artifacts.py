"""Artifact lifecycle tools: generate, refine, versions, history, transfer."""

import logging
from pathlib import Path
from typing import Any

from ...llm.synthesis import DEFAULT_STYLE, STYLE_PRESETS
from .session import (
    active_state,
    artifact_summary,
    get_workbench,
    raise_notice,
    with_notices,
)

logger = logging.getLogger(__name__)


def _validate_style(style_preset: str) -> None:
    if style_preset not in STYLE_PRESETS:
        raise ValueError(f"Unknown style preset '{style_preset}'. Valid: {list(STYLE_PRESETS)}")


async def generate_artifact(
    prompt: str = "",
    image_path: str | None = None,
    style_preset: str = DEFAULT_STYLE,
    custom_css: str = "",
) -> dict[str, Any]:
    """Generate a new artifact and make it active.

    Args:
        prompt: Description of the app to build. Ignored with an image.
        image_path: Optional JPEG/PNG/WebP/HEIC/PDF to bring to life.
        style_preset: Aesthetic to enforce.
        custom_css: CSS rules to include verbatim.

    Returns:
        Active artifact state.

    Raises:
        ValueError: With a user-facing message when generation fails.
    """
    _validate_style(style_preset)
    bench = get_workbench()
    bench.drain_notices()

    source = None
    if image_path:
        source = bench.load_source(image_path)
        if source is None:
            raise_notice(bench.drain_notices(), f"Could not load {image_path}")

    artifact = await bench.generate(prompt, source, style_preset, custom_css)
    notices = bench.drain_notices()
    if artifact is None:
        raise_notice(notices, "Generation failed")
    return with_notices(active_state(bench), notices)


async def refine_artifact(instruction: str) -> dict[str, Any]:
    """Apply a natural-language change to the active artifact.

    Raises:
        ValueError: If nothing is active or the refinement fails.
    """
    if not instruction.strip():
        raise ValueError("Instruction must not be empty")
    bench = get_workbench()
    if bench.active is None:
        raise ValueError("No active artifact. Generate, select or import one first.")

    bench.drain_notices()
    new_body = await bench.refine(instruction)
    notices = bench.drain_notices()
    if new_body is None:
        raise_notice(notices, "Refinement failed")
    return with_notices(active_state(bench), notices)


def undo() -> dict[str, Any]:
    """Restore the previous version of the active artifact."""
    bench = get_workbench()
    state = active_state(bench)
    state["changed"] = bench.undo() is not None
    if state["changed"]:
        state.update(active_state(bench))
    return state


def redo() -> dict[str, Any]:
    """Re-apply the most recently undone version."""
    bench = get_workbench()
    state = active_state(bench)
    state["changed"] = bench.redo() is not None
    if state["changed"]:
        state.update(active_state(bench))
    return state


def list_history(limit: int = 20, offset: int = 0) -> dict[str, Any]:
    """List artifacts, most recent first.

    Args:
        limit: Maximum results (1-100).
        offset: Number of entries to skip.
    """
    limit = max(1, min(100, limit))
    offset = max(0, offset)

    bench = get_workbench()
    history = bench.history
    active_id = bench.active.id if bench.active else None
    page = history[offset : offset + limit]
    return {
        "artifacts": [artifact_summary(a, active_id) for a in page],
        "total_count": len(history),
        "has_more": offset + limit < len(history),
    }


def select_artifact(artifact_id: str) -> dict[str, Any]:
    """Make a history entry active. Clears undo/redo."""
    bench = get_workbench()
    if bench.select(artifact_id) is None:
        raise ValueError(f"Artifact not found: {artifact_id}")
    return active_state(bench)


def export_artifact(directory: str, document: bool = False) -> dict[str, Any]:
    """Write the active artifact as a JSON snapshot or bare HTML document."""
    bench = get_workbench()
    path = bench.export_artifact(directory, document=document)
    if path is None:
        raise ValueError("No active artifact to export")
    return {"path": str(path), "format": "html" if document else "json"}


def import_artifact(path: str) -> dict[str, Any]:
    """Import an exported artifact file and make it active."""
    bench = get_workbench()
    bench.drain_notices()
    artifact = bench.import_artifact(Path(path))
    notices = bench.drain_notices()
    if artifact is None:
        raise_notice(notices, "Import failed")
    return with_notices(active_state(bench), notices)


__all__ = [
    "generate_artifact",
    "refine_artifact",
    "undo",
    "redo",
    "list_history",
    "select_artifact",
    "export_artifact",
    "import_artifact",
]
