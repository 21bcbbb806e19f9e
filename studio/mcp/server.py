"""FastMCP server instance for artifact-studio.

Exposes the artifact lifecycle to MCP clients: generate an app from a
prompt or image, refine it with natural language, step through versions,
browse history, and inspect or edit elements of the rendered document.

Usage:
    # STDIO mode (for desktop clients)
    python -m studio.mcp.server

    # HTTP mode
    python -m studio.mcp.server --transport http --port 18080

    # Via CLI
    python . mcp --transport sse
"""

import argparse
import logging
import sys
from typing import Any

from fastmcp import FastMCP

from ..core.log import setup_logging
from ..history import close_artifact_store
from .lib import SERVER_NAME, ServerConfig, TransportType, get_server_version

logger = logging.getLogger(__name__)


# =============================================================================
# Server Instructions (LLM Guidance)
# =============================================================================

SERVER_INSTRUCTIONS = """\
## Artifact Studio MCP Server

Turns descriptions, sketches and screenshots into self-contained single-file
web apps, then iterates on them.

### Quick Start
1. `status()` → check readiness
2. `generate_artifact("a pomodoro timer")` → new active artifact
3. `refine_artifact("make it dark")` → new version
4. `undo()` / `redo()` → step through versions

### Targeted Edits
- `inspect_element("#save")` → tag, classes, text and computed style
- `edit_element("#save", "style", "ocean blue")` → refine just that element
- Actions: text, style, size, remove

### History
- `list_history()` / `select_artifact(id)` (selecting clears undo/redo)
- `export_artifact(dir)` / `import_artifact(path)`
"""

# =============================================================================
# Server Instance
# =============================================================================

mcp = FastMCP(
    name=SERVER_NAME,
    instructions=SERVER_INSTRUCTIONS,
)


# =============================================================================
# Synthesis Tools
# =============================================================================


@mcp.tool
async def generate_artifact(
    prompt: str = "",
    image_path: str | None = None,
    style_preset: str = "Default",
    custom_css: str = "",
) -> dict[str, Any]:
    """Generate a new single-file web app and make it active.

    Args:
        prompt: What to build, e.g. "habit tracker with streaks". Ignored
            when image_path is given.
        image_path: Sketch, screenshot or PDF to bring to life.
        style_preset: Aesthetic such as "Sketch", "Cyberpunk" or "Default".
        custom_css: CSS rules the document must include verbatim.

    Returns:
        Active artifact summary, its HTML body and undo/redo availability.
    """
    from .tools.artifacts import generate_artifact as _generate

    return await _generate(prompt, image_path, style_preset, custom_css)


@mcp.tool
async def refine_artifact(instruction: str) -> dict[str, Any]:
    """Change the active artifact according to an instruction.

    Args:
        instruction: e.g. "add a reset button under the timer".

    Returns:
        Updated active state. The previous version can be restored with undo().
    """
    from .tools.artifacts import refine_artifact as _refine

    return await _refine(instruction)


# =============================================================================
# Version Tools
# =============================================================================


@mcp.tool
def undo() -> dict[str, Any]:
    """Restore the previous version of the active artifact."""
    from .tools.artifacts import undo as _undo

    return _undo()


@mcp.tool
def redo() -> dict[str, Any]:
    """Re-apply the most recently undone version."""
    from .tools.artifacts import redo as _redo

    return _redo()


# =============================================================================
# History Tools
# =============================================================================


@mcp.tool
def list_history(limit: int = 20, offset: int = 0) -> dict[str, Any]:
    """List saved artifacts, most recent first.

    Args:
        limit: Maximum results (1-100). Default: 20
        offset: Number of entries to skip. Default: 0
    """
    from .tools.artifacts import list_history as _list

    return _list(limit, offset)


@mcp.tool
def select_artifact(artifact_id: str) -> dict[str, Any]:
    """Make a saved artifact active. Clears undo/redo."""
    from .tools.artifacts import select_artifact as _select

    return _select(artifact_id)


@mcp.tool
def export_artifact(directory: str, document: bool = False) -> dict[str, Any]:
    """Save the active artifact to a directory.

    Args:
        directory: Target directory (created if missing).
        document: Write the bare HTML document instead of a JSON snapshot.
    """
    from .tools.artifacts import export_artifact as _export

    return _export(directory, document)


@mcp.tool
def import_artifact(path: str) -> dict[str, Any]:
    """Import a JSON snapshot exported earlier and make it active."""
    from .tools.artifacts import import_artifact as _import

    return _import(path)


# =============================================================================
# Overlay Tools
# =============================================================================


@mcp.tool
async def set_interaction_mode(mode: str) -> dict[str, Any]:
    """Switch the overlay mode: "interact", "inspect" or "edit"."""
    from .tools.overlay import set_interaction_mode as _set_mode

    return await _set_mode(mode)


@mcp.tool
async def inspect_element(selector: str) -> dict[str, Any]:
    """Inspect an element of the active artifact.

    Args:
        selector: CSS selector such as "#hero h1" or "button.primary".

    Returns:
        tagName, id, className, innerText and computedStyle.
    """
    from .tools.overlay import inspect_element as _inspect

    return await _inspect(selector)


@mcp.tool
async def edit_element(
    selector: str,
    action: str,
    value: str | None = None,
    confirmed: bool = True,
) -> dict[str, Any]:
    """Edit one element of the active artifact.

    Args:
        selector: CSS selector of the element.
        action: "text", "style", "size" or "remove".
        value: New text, color/theme, or size. Not used for "remove".
        confirmed: Must be true to remove an element.
    """
    from .tools.overlay import edit_element as _edit

    return await _edit(selector, action, value, confirmed)


# =============================================================================
# Status
# =============================================================================


@mcp.tool
def status() -> dict[str, Any]:
    """Check server readiness, configured providers and session state."""
    from .tools.status import status as _status

    return _status()


# =============================================================================
# Server Factory & Runner
# =============================================================================


def create_server() -> FastMCP:
    """Create and configure the MCP server instance."""
    return mcp


def run_server(config: ServerConfig | None = None) -> None:
    """Run the MCP server.

    Args:
        config: Transport and bind settings. Read from the environment if None.
    """
    config = config or ServerConfig.from_env()
    logger.info(f"Starting {config.name} server v{get_server_version()}")
    logger.info(f"Transport: {config.transport.value}")

    if config.transport == TransportType.STDIO:
        mcp.run()
    elif config.transport == TransportType.HTTP:
        logger.info(f"Running in HTTP mode at http://{config.host}:{config.port}{config.path}")
        mcp.run(transport="http", host=config.host, port=config.port, path=config.path)
    elif config.transport == TransportType.SSE:
        logger.info(f"Running in SSE mode at http://{config.host}:{config.port}")
        mcp.run(transport="sse", host=config.host, port=config.port)
    else:
        raise ValueError(f"Unknown transport: {config.transport}")


# =============================================================================
# CLI Entry Point
# =============================================================================


def build_parser(parser: argparse.ArgumentParser | None = None) -> argparse.ArgumentParser:
    """Add server options to ``parser`` (or a new parser)."""
    parser = parser or argparse.ArgumentParser(
        prog=SERVER_NAME,
        description="MCP server for generating and refining web app artifacts",
    )
    parser.add_argument(
        "--transport",
        "-t",
        choices=[t.value for t in TransportType],
        default="stdio",
        help="Transport type (default: stdio)",
    )
    parser.add_argument("--host", default=None, help="Bind address for HTTP/SSE")
    parser.add_argument("--port", "-p", type=int, default=None, help="Port for HTTP/SSE")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")
    return parser


def serve(args: argparse.Namespace) -> int:
    """Run the server from parsed arguments."""
    # STDIO carries the protocol on stdout, so logs go to stderr
    setup_logging(logging.DEBUG if args.verbose else logging.INFO, stream=sys.stderr)

    config = ServerConfig.from_env(TransportType(args.transport))
    if args.host:
        config.host = args.host
    if args.port:
        config.port = args.port

    try:
        run_server(config)
        return 0
    except KeyboardInterrupt:
        logger.info("Server stopped by user")
        return 0
    except Exception as e:
        logger.error(f"Server error: {e}")
        return 1
    finally:
        close_artifact_store()


def main(argv: list[str] | None = None) -> int:
    """CLI entry point for the MCP server."""
    return serve(build_parser().parse_args(argv))


if __name__ == "__main__":
    sys.exit(main())
