"""Overlay modes, reports and edit instruction templates."""

from dataclasses import dataclass, field
from enum import Enum

from .document import ComputedStyle

INSPECT_HOVER_CLASS = "studio-inspector-hover"
EDIT_HOVER_CLASS = "studio-edit-hover"
HIGHLIGHT_CLASSES = (INSPECT_HOVER_CLASS, EDIT_HOVER_CLASS)

# Report text is cut at this many characters, locator text at LOCATOR_TEXT_LIMIT
REPORT_TEXT_LIMIT = 100
LOCATOR_TEXT_LIMIT = 20


class InteractionMode(str, Enum):
    """How pointer input on the rendered document is handled."""

    INTERACT = "interact"
    INSPECT = "inspect"
    EDIT = "edit"


class ViewMode(str, Enum):
    """Which sub-view of the artifact is shown."""

    PREVIEW = "preview"
    SOURCE = "source"


class EditAction(str, Enum):
    """Context menu actions in edit mode."""

    TEXT = "text"
    STYLE = "style"
    SIZE = "size"
    REMOVE = "remove"

    @property
    def label(self) -> str:
        return _ACTION_LABELS[self]


_ACTION_LABELS = {
    EditAction.TEXT: "Edit Text",
    EditAction.STYLE: "Change Style/Color",
    EditAction.SIZE: "Adjust Dimensions",
    EditAction.REMOVE: "Remove Element",
}

EDIT_ACTIONS: tuple[EditAction, ...] = (
    EditAction.TEXT,
    EditAction.STYLE,
    EditAction.SIZE,
    EditAction.REMOVE,
)

# Questions asked through the Prompter
PROMPT_MESSAGES = {
    EditAction.STYLE: "New color or theme (e.g. 'ocean blue', '#ff5500', 'soft gradients'):",
    EditAction.TEXT: "Enter the new text content:",
    EditAction.SIZE: "New size or dimensions (e.g. 'larger', 'wider', 'height: 400px'):",
}
REMOVE_CONFIRMATION = "Are you sure you want to remove this element?"

INSTRUCTION_TEMPLATES = {
    EditAction.STYLE: "Update the style of the element [{locator}] to use {value}.",
    EditAction.TEXT: 'Change the text content of the element [{locator}] to "{value}".',
    EditAction.SIZE: "Adjust the size/scale of the element [{locator}] to be {value}.",
    EditAction.REMOVE: "Remove the element [{locator}] completely from the application.",
}


def _visible_classes(payload: dict) -> list[str]:
    return [c for c in payload.get("classes") or [] if c not in HIGHLIGHT_CLASSES]


@dataclass(frozen=True)
class InspectedElementReport:
    """What inspect mode shows for a clicked element.

    Attributes:
        tag_name: Lower-case tag name.
        element_id: The element's id attribute, "" when absent.
        class_list: Author classes, highlight classes removed.
        text: Rendered text, cut to REPORT_TEXT_LIMIT characters.
        style: Computed style of the element.
    """

    tag_name: str
    element_id: str
    class_list: tuple[str, ...]
    text: str
    style: ComputedStyle

    @classmethod
    def from_payload(cls, payload: dict) -> "InspectedElementReport":
        """Build from a page event payload."""
        return cls(
            tag_name=payload["tagName"].lower(),
            element_id=payload.get("id") or "",
            class_list=tuple(_visible_classes(payload)),
            text=(payload.get("text") or "")[:REPORT_TEXT_LIMIT],
            style=ComputedStyle.from_css(payload.get("style") or {}),
        )

    @property
    def class_name(self) -> str:
        return " ".join(self.class_list)

    def to_dict(self) -> dict:
        return {
            "tagName": self.tag_name,
            "id": self.element_id,
            "className": self.class_name,
            "innerText": self.text,
            "computedStyle": self.style.as_dict(),
        }


@dataclass(frozen=True)
class EditTargetDescriptor:
    """Textual locator of an element for edit instructions.

    The locator reads ``tag#id.class1.class2 (current text: "...")`` with
    each part present only when the element has it.
    """

    tag_name: str
    element_id: str
    classes: tuple[str, ...]
    text: str

    @classmethod
    def from_payload(cls, payload: dict) -> "EditTargetDescriptor":
        return cls(
            tag_name=payload["tagName"].lower(),
            element_id=payload.get("id") or "",
            classes=tuple(_visible_classes(payload)),
            text=payload.get("text") or "",
        )

    @property
    def locator(self) -> str:
        locator = self.tag_name
        if self.element_id:
            locator += f"#{self.element_id}"
        if self.classes:
            locator += "." + ".".join(self.classes)
        if self.text:
            locator += f' (current text: "{self.text[:LOCATOR_TEXT_LIMIT]}...")'
        return locator


@dataclass(frozen=True)
class ContextMenu:
    """Edit mode context menu anchored at host coordinates."""

    x: float
    y: float
    target: EditTargetDescriptor
    target_inner_html: str
    actions: tuple[EditAction, ...] = field(default=EDIT_ACTIONS)


def format_instruction(action: EditAction, target: EditTargetDescriptor, value: str = "") -> str:
    """Render the refinement instruction for an edit action."""
    return INSTRUCTION_TEMPLATES[action].format(locator=target.locator, value=value)


__all__ = [
    "INSPECT_HOVER_CLASS",
    "EDIT_HOVER_CLASS",
    "HIGHLIGHT_CLASSES",
    "InteractionMode",
    "ViewMode",
    "EditAction",
    "EDIT_ACTIONS",
    "PROMPT_MESSAGES",
    "REMOVE_CONFIRMATION",
    "InspectedElementReport",
    "EditTargetDescriptor",
    "ContextMenu",
    "format_instruction",
]
