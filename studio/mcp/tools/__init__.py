"""MCP tools for artifact-studio.

Tools:
    - generate_artifact / refine_artifact: synthesis
    - undo / redo: version control of the active artifact
    - list_history / select_artifact: history browsing
    - export_artifact / import_artifact: file transfer
    - set_interaction_mode / inspect_element / edit_element: overlay
    - status: readiness
"""

from .artifacts import (
    export_artifact,
    generate_artifact,
    import_artifact,
    list_history,
    redo,
    refine_artifact,
    select_artifact,
    undo,
)
from .overlay import edit_element, inspect_element, set_interaction_mode
from .session import get_workbench, set_workbench
from .status import status

__all__ = [
    "generate_artifact",
    "refine_artifact",
    "undo",
    "redo",
    "list_history",
    "select_artifact",
    "export_artifact",
    "import_artifact",
    "set_interaction_mode",
    "inspect_element",
    "edit_element",
    "status",
    "get_workbench",
    "set_workbench",
]
