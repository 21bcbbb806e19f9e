"""Overlay tools: interaction mode, element inspection and element edits."""

from typing import Any

from ...overlay import EditAction, InteractionMode, PreviewError
from .session import active_state, get_workbench, raise_notice, with_notices


def _require_active():
    bench = get_workbench()
    if bench.active is None:
        raise ValueError("No active artifact. Generate, select or import one first.")
    return bench


async def set_interaction_mode(mode: str) -> dict[str, Any]:
    """Switch the overlay between interact, inspect and edit."""
    try:
        interaction_mode = InteractionMode(mode)
    except ValueError as e:
        valid = [m.value for m in InteractionMode]
        raise ValueError(f"Invalid mode '{mode}'. Valid: {valid}") from e

    bench = get_workbench()
    await bench.set_interaction_mode(interaction_mode)
    return {"mode": bench.overlay.mode.value}


async def inspect_element(selector: str) -> dict[str, Any]:
    """Report tag, id, classes, text and computed style of an element.

    Args:
        selector: CSS selector, matched in the rendered page.
    """
    bench = _require_active()
    try:
        report = await bench.inspect(selector)
    except PreviewError as e:
        raise ValueError(f"Preview unavailable: {e}") from e
    if report is None:
        raise ValueError(f"No element matches '{selector}'")
    return report.to_dict()


async def edit_element(
    selector: str,
    action: str,
    value: str | None = None,
    confirmed: bool = True,
) -> dict[str, Any]:
    """Edit an element by sending a targeted refinement.

    Args:
        selector: CSS selector of the element.
        action: One of "text", "style", "size", "remove".
        value: New text, style or size. Unused for "remove".
        confirmed: Confirmation for "remove".

    Returns:
        The instruction sent and the new active state.
    """
    try:
        edit_action = EditAction(action)
    except ValueError as e:
        valid = [a.value for a in EditAction]
        raise ValueError(f"Invalid action '{action}'. Valid: {valid}") from e

    bench = _require_active()
    try:
        document = await bench.render_preview()
        if not await document.exists(selector):
            raise ValueError(f"No element matches '{selector}'")

        bench.drain_notices()
        body_before = bench.active.body
        instruction = await bench.edit(selector, edit_action, value, confirmed=confirmed)
    except PreviewError as e:
        raise ValueError(f"Preview unavailable: {e}") from e

    notices = bench.drain_notices()
    if instruction is None:
        return {"instruction": None, "cancelled": True, **active_state(bench)}
    if notices and bench.active.body == body_before:
        raise_notice(notices, "Edit failed")
    return with_notices(
        {"instruction": instruction, "cancelled": False, **active_state(bench)}, notices
    )


__all__ = ["set_interaction_mode", "inspect_element", "edit_element"]
