"""MCP (Model Context Protocol) server for artifact-studio.

Example:
    # Start server in STDIO mode
    >>> from studio.mcp import run_server
    >>> run_server()

    # Start server in HTTP mode
    >>> from studio.mcp import ServerConfig, TransportType, run_server
    >>> run_server(ServerConfig(transport=TransportType.HTTP, port=18080))

Available Tools:
    - generate_artifact, refine_artifact
    - undo, redo
    - list_history, select_artifact, export_artifact, import_artifact
    - set_interaction_mode, inspect_element, edit_element
    - status
"""

from .lib import SERVER_NAME, ServerConfig, TransportType, get_server_version
from .server import create_server, mcp, run_server

__all__ = [
    # Server instance
    "mcp",
    "create_server",
    "run_server",
    # Configuration
    "SERVER_NAME",
    "ServerConfig",
    "TransportType",
    "get_server_version",
]
