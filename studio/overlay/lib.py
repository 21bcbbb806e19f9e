"""Inspect and edit overlay for a rendered artifact document.

The overlay is a small state machine over InteractionMode. On every page
load it installs listeners on the document body that, in inspect and edit
modes, stop pointer events from reaching the artifact, highlight the
hovered element and queue a description of it. The Python side turns
queued clicks into an inspection report or into a context menu whose
actions become natural-language refinement instructions.
"""

import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Protocol

from .document import EVENT_QUEUE, STYLE_PROPERTIES, RenderedDocument
from .models import (
    EDIT_HOVER_CLASS,
    INSPECT_HOVER_CLASS,
    PROMPT_MESSAGES,
    REMOVE_CONFIRMATION,
    ContextMenu,
    EditAction,
    EditTargetDescriptor,
    InspectedElementReport,
    InteractionMode,
    ViewMode,
    format_instruction,
)

logger = logging.getLogger(__name__)

RefineCallback = Callable[[str], Awaitable[object] | object]


class Prompter(Protocol):
    """Asks the user for edit values."""

    def ask(self, message: str) -> str | None:
        """Return the answer, or None when the user cancels."""
        ...

    def confirm(self, message: str) -> bool:
        ...


class StaticPrompter:
    """Prompter that answers every question with a fixed value.

    Used where the value is known up front, such as a tool call that
    carries it as an argument.
    """

    def __init__(self, value: str | None = None, confirmed: bool = True):
        self.value = value
        self.confirmed = confirmed
        self.asked: list[str] = []

    def ask(self, message: str) -> str | None:
        self.asked.append(message)
        return self.value

    def confirm(self, message: str) -> bool:
        self.asked.append(message)
        return self.confirmed


def build_instruction(
    action: EditAction, target: EditTargetDescriptor, prompter: Prompter
) -> str | None:
    """Ask for the action's value and render its instruction.

    Returns:
        The instruction, or None when the user cancelled. An empty answer
        cancels every action except TEXT, where it clears the text.
    """
    if action is EditAction.REMOVE:
        if not prompter.confirm(REMOVE_CONFIRMATION):
            return None
        return format_instruction(action, target)

    value = prompter.ask(PROMPT_MESSAGES[action])
    if value is None:
        return None
    if not value and action is not EditAction.TEXT:
        return None
    return format_instruction(action, target, value)


OVERLAY_STYLES = f"""
.{INSPECT_HOVER_CLASS} {{
    outline: 2px solid #3b82f6 !important;
    outline-offset: -2px !important;
    background-color: rgba(59, 130, 246, 0.1) !important;
}}
.{EDIT_HOVER_CLASS} {{
    outline: 2px dashed #f59e0b !important;
    outline-offset: -2px !important;
    background-color: rgba(245, 158, 11, 0.05) !important;
    cursor: pointer !important;
}}
"""

# Installs the body listeners once per page and applies the overlay state on
# every call. Highlight classes are lifted while computed style is read.
OVERLAY_SCRIPT = """(state) => {
    const overlay = window.__studioOverlay || (window.__studioOverlay = {});
    const hoverClasses = Object.values(state.classes);
    const clearHighlight = () => {
        document.querySelectorAll(hoverClasses.map((name) => "." + name).join(","))
            .forEach((element) => element.classList.remove(...hoverClasses));
    };
    overlay.mode = state.mode;
    overlay.active = state.active;
    clearHighlight();
    if (overlay.installed || !document.body) {
        return;
    }
    overlay.installed = true;

    const style = document.createElement("style");
    style.textContent = state.css;
    (document.head || document.documentElement).appendChild(style);

    const queue = window[state.queue] || (window[state.queue] = []);
    const isContainer = (element) =>
        !(element instanceof Element) ||
        element === document.body ||
        element === document.documentElement;
    const describe = (type, element, event) => {
        const applied = hoverClasses.filter((name) => element.classList.contains(name));
        element.classList.remove(...applied);
        const computed = window.getComputedStyle(element);
        const style = Object.fromEntries(
            state.styleProperties.map((name) => [name, computed.getPropertyValue(name)])
        );
        const classes = Array.from(element.classList);
        element.classList.add(...applied);
        return {
            type,
            tagName: element.tagName,
            id: element.id || "",
            classes,
            text: element.innerText || "",
            innerHTML: element.innerHTML,
            clientX: event.clientX,
            clientY: event.clientY,
            style,
        };
    };

    document.body.addEventListener("mouseover", (event) => {
        if (!overlay.active) return;
        event.stopPropagation();
        if (isContainer(event.target)) return;
        clearHighlight();
        event.target.classList.add(state.classes[overlay.mode]);
        queue.push(describe("mouseover", event.target, event));
    });
    document.body.addEventListener("mouseout", (event) => {
        if (!overlay.active) return;
        event.stopPropagation();
        if (event.target instanceof Element) {
            event.target.classList.remove(...hoverClasses);
        }
        queue.push({ type: "mouseout" });
    });
    document.body.addEventListener("click", (event) => {
        if (!overlay.active) return;
        event.preventDefault();
        event.stopPropagation();
        if (isContainer(event.target)) return;
        queue.push(describe("click", event.target, event));
    });
}"""


class InteractionOverlay:
    """Pointer interception over a RenderedDocument.

    Args:
        on_refine: Called with each edit instruction. May be a coroutine
            function.
        prompter: Source of edit values.
        frame_offset: Position of the document frame in host coordinates,
            added to click coordinates when placing the context menu.

    Example:
        >>> overlay = InteractionOverlay(workbench.refine, prompter)
        >>> await overlay.mount(document)
        >>> await overlay.set_mode(InteractionMode.EDIT)
        >>> await document.click("button.cta")
        >>> await overlay.choose_action(EditAction.STYLE)
    """

    def __init__(
        self,
        on_refine: RefineCallback,
        prompter: Prompter | None = None,
        frame_offset: tuple[float, float] = (0.0, 0.0),
    ):
        self._on_refine = on_refine
        self.prompter = prompter or StaticPrompter()
        self.frame_offset = frame_offset

        self._mode = InteractionMode.INTERACT
        self._view = ViewMode.PREVIEW
        self._document: RenderedDocument | None = None
        self._wired = False
        self._highlighted: EditTargetDescriptor | None = None
        self._report: InspectedElementReport | None = None
        self._menu: ContextMenu | None = None

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    @property
    def mode(self) -> InteractionMode:
        return self._mode

    @property
    def view(self) -> ViewMode:
        return self._view

    @property
    def active(self) -> bool:
        """Whether pointer events are intercepted."""
        return self._mode is not InteractionMode.INTERACT and self._view is ViewMode.PREVIEW

    @property
    def document(self) -> RenderedDocument | None:
        return self._document

    @property
    def highlighted(self) -> EditTargetDescriptor | None:
        """Locator of the element under the pointer, if highlighted."""
        return self._highlighted

    @property
    def report(self) -> InspectedElementReport | None:
        return self._report

    @property
    def context_menu(self) -> ContextMenu | None:
        return self._menu

    async def set_mode(self, mode: InteractionMode) -> None:
        """Switch modes, dropping any report, menu and highlight."""
        self._mode = InteractionMode(mode)
        self._clear()
        await self._push_state()
        logger.debug(f"Overlay mode: {self._mode.value}")

    async def set_view(self, view: ViewMode) -> None:
        self._view = ViewMode(view)
        self._clear()
        await self._push_state()

    def dismiss(self) -> None:
        """Close the report or context menu."""
        self._report = None
        self._menu = None

    def _clear(self) -> None:
        self.dismiss()
        self._highlighted = None

    def _state(self, active: bool | None = None) -> dict:
        return {
            "mode": self._mode.value,
            "active": self.active if active is None else active,
            "classes": {
                InteractionMode.INSPECT.value: INSPECT_HOVER_CLASS,
                InteractionMode.EDIT.value: EDIT_HOVER_CLASS,
            },
            "css": OVERLAY_STYLES,
            "queue": EVENT_QUEUE,
            "styleProperties": list(STYLE_PROPERTIES),
        }

    async def _push_state(self, active: bool | None = None) -> None:
        document = self._document
        if document is None or not self._wired or document.ready_state != "complete":
            return
        await document.evaluate(OVERLAY_SCRIPT, self._state(active))

    # -------------------------------------------------------------------------
    # Wiring
    # -------------------------------------------------------------------------

    async def mount(self, document: RenderedDocument) -> None:
        """Attach to ``document``, now or once it finishes loading."""
        await self.unmount()
        self._document = document
        document.add_load_listener(self._wire)
        document.add_event_listener(self._on_event)
        if document.ready_state == "complete":
            await self._wire()

    async def unmount(self) -> None:
        document = self._document
        if document is None:
            return
        document.remove_load_listener(self._wire)
        document.remove_event_listener(self._on_event)
        await self._push_state(active=False)
        self._clear()
        self._wired = False
        self._document = None

    async def _wire(self) -> None:
        self._clear()
        await self._document.evaluate(OVERLAY_SCRIPT, self._state())
        self._wired = True
        logger.debug("Overlay listeners attached")

    # -------------------------------------------------------------------------
    # Handlers
    # -------------------------------------------------------------------------

    def _on_event(self, payload: dict) -> None:
        if not self.active:
            return
        kind = payload.get("type")
        if kind == "mouseover":
            self._highlighted = EditTargetDescriptor.from_payload(payload)
        elif kind == "mouseout":
            self._highlighted = None
        elif kind == "click":
            self._on_click(payload)

    def _on_click(self, payload: dict) -> None:
        if self._mode is InteractionMode.INSPECT:
            self._menu = None
            self._report = InspectedElementReport.from_payload(payload)
            return

        offset_x, offset_y = self.frame_offset
        self._report = None
        self._menu = ContextMenu(
            x=offset_x + (payload.get("clientX") or 0),
            y=offset_y + (payload.get("clientY") or 0),
            target=EditTargetDescriptor.from_payload(payload),
            target_inner_html=payload.get("innerHTML") or "",
        )

    # -------------------------------------------------------------------------
    # Actions
    # -------------------------------------------------------------------------

    async def choose_action(self, action: EditAction) -> str | None:
        """Run a context menu action against the menu's target.

        The menu closes either way. When the user supplies a value the
        instruction is passed to the refine callback and returned.
        """
        menu = self._menu
        if menu is None:
            return None
        self._menu = None

        instruction = build_instruction(EditAction(action), menu.target, self.prompter)
        if instruction is None:
            logger.debug(f"Edit action {action} cancelled")
            return None

        logger.info(f"Edit instruction: {instruction}")
        result = self._on_refine(instruction)
        if inspect.isawaitable(result):
            await result
        return instruction


__all__ = [
    "InteractionOverlay",
    "Prompter",
    "StaticPrompter",
    "build_instruction",
]
