"""Inspect and edit overlay over an isolated rendered document."""

from .browser import PreviewBrowser, PreviewError, close_preview_browser, get_preview_browser
from .document import (
    SANDBOX_FLAGS,
    ComputedStyle,
    RenderedDocument,
    render_preview_frame,
)
from .lib import InteractionOverlay, Prompter, StaticPrompter, build_instruction
from .models import (
    EDIT_ACTIONS,
    EDIT_HOVER_CLASS,
    HIGHLIGHT_CLASSES,
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

__all__ = [
    # Browser
    "PreviewBrowser",
    "get_preview_browser",
    "close_preview_browser",
    # Document
    "RenderedDocument",
    "PreviewError",
    "ComputedStyle",
    "SANDBOX_FLAGS",
    "render_preview_frame",
    # Overlay
    "InteractionOverlay",
    "Prompter",
    "StaticPrompter",
    "build_instruction",
    # Models
    "InteractionMode",
    "ViewMode",
    "EditAction",
    "EDIT_ACTIONS",
    "INSPECT_HOVER_CLASS",
    "EDIT_HOVER_CLASS",
    "HIGHLIGHT_CLASSES",
    "PROMPT_MESSAGES",
    "REMOVE_CONFIRMATION",
    "InspectedElementReport",
    "EditTargetDescriptor",
    "ContextMenu",
    "format_instruction",
]
