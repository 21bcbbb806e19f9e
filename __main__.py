"""CLI entry point for artifact-studio.

This module acts as the central entry point for the project's CLI tools.
It delegates commands to the appropriate submodules.
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

from dotenv import load_dotenv

from studio.core import get_logger, setup_logging

# Load environment variables from .env file
load_dotenv()

logger = get_logger("cli")


# =============================================================================
# Shared Helpers
# =============================================================================


class ConsolePrompter:
    """Asks edit questions on the terminal."""

    def ask(self, message: str) -> str | None:
        try:
            return input(f"{message} ")
        except EOFError:
            return None

    def confirm(self, message: str) -> bool:
        answer = self.ask(f"{message} [y/N]")
        return (answer or "").strip().lower() in ("y", "yes")


def _report_notice(notice) -> None:
    print(notice.message, file=sys.stderr)


def _open_store():
    from studio.history import get_artifact_store

    return get_artifact_store()


def _resolve_artifact(store, artifact_id: str | None):
    """The artifact with ``artifact_id``, or the most recent one."""
    if artifact_id:
        artifact = store.get(artifact_id)
        if artifact is None:
            logger.error(f"Artifact not found: {artifact_id}")
        return artifact
    if not store.history:
        logger.error("History is empty. Generate or import an artifact first.")
        return None
    return store.history[0]


def _open_workbench(model: str | None, artifact_id: str | None = None):
    """Workbench over the global store, optionally with an artifact selected."""
    from studio.llm import SynthesisGateway, create_llm_backend
    from studio.workbench import Workbench

    store = _open_store()
    backend = create_llm_backend(model) if model else None
    bench = Workbench(
        SynthesisGateway(backend),
        store,
        prompter=ConsolePrompter(),
        notify=_report_notice,
    )
    if artifact_id is not None:
        bench.select(artifact_id)
    return bench


def _write_output(text: str, output: Path | None) -> None:
    if output:
        output.write_text(text, encoding="utf-8")
        logger.info(f"Saved to {output}")
    else:
        print(text)


def _add_model_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--model",
        "-m",
        type=str,
        default=None,
        help="Model name (e.g. gemini-2.5-flash, gpt-4.1, claude-sonnet-4-5)",
    )


# =============================================================================
# Generate / Refine / Edit Commands
# =============================================================================


def cmd_generate(args: argparse.Namespace) -> int:
    """Handle the generate command."""
    try:
        bench = _open_workbench(args.model)
        source = None
        if args.image:
            source = bench.load_source(args.image)
            if source is None:
                return 1

        custom_css = args.css or ""
        if custom_css.startswith("@"):
            custom_css = Path(custom_css[1:]).read_text(encoding="utf-8")

        artifact = asyncio.run(bench.generate(args.prompt, source, args.style, custom_css))
        if artifact is None:
            return 1

        logger.info(f"Created artifact {artifact.id} ('{artifact.name}')")
        _write_output(artifact.body, args.output)
        return 0

    except Exception as e:
        logger.error(f"Generation failed: {e}")
        return 1


def cmd_refine(args: argparse.Namespace) -> int:
    """Handle the refine command."""
    try:
        store = _open_store()
        artifact = _resolve_artifact(store, args.id)
        if artifact is None:
            return 1

        bench = _open_workbench(args.model, artifact.id)
        body = asyncio.run(bench.refine(args.instruction))
        if body is None:
            return 1

        logger.info(f"Refined artifact {artifact.id}")
        _write_output(body, args.output)
        return 0

    except Exception as e:
        logger.error(f"Refinement failed: {e}")
        return 1


def cmd_edit(args: argparse.Namespace) -> int:
    """Handle the edit command (interactive element edit)."""
    try:
        store = _open_store()
        artifact = _resolve_artifact(store, args.id)
        if artifact is None:
            return 1

        bench = _open_workbench(args.model, artifact.id)
        return asyncio.run(_edit_element(bench, args.selector, args.action, args.output))

    except Exception as e:
        logger.error(f"Edit failed: {e}")
        return 1


async def _edit_element(bench, selector: str, action: str, output: Path | None) -> int:
    from studio.overlay import InteractionMode, close_preview_browser

    try:
        document = await bench.render_preview()
        if not await document.exists(selector):
            logger.error(f"No element matches '{selector}'")
            return 1

        # Edit mode opens the context menu on click; the prompter asks for the value
        await bench.set_interaction_mode(InteractionMode.EDIT)
        await document.click(selector)
        bench.drain_notices()
        instruction = await bench.overlay.choose_action(action)
    finally:
        await bench.close()
        await close_preview_browser()

    if instruction is None:
        logger.info("Edit cancelled")
        return 0
    if bench.drain_notices():
        return 1

    logger.info(f"Sent: {instruction}")
    _write_output(bench.active.body, output)
    return 0


def cmd_inspect(args: argparse.Namespace) -> int:
    """Handle the inspect command."""
    from studio.overlay import PreviewError

    store = _open_store()
    artifact = _resolve_artifact(store, args.id)
    if artifact is None:
        return 1

    try:
        report = asyncio.run(_inspect_element(artifact.body, args.selector))
    except ValueError as e:
        logger.error(str(e))
        return 1
    except PreviewError as e:
        logger.error(f"Preview unavailable: {e}")
        return 1
    if report is None:
        logger.error(f"No element matches '{args.selector}'")
        return 1

    print(json.dumps(report.to_dict(), indent=2))
    return 0


async def _inspect_element(body: str, selector: str):
    from studio.overlay import (
        InteractionMode,
        InteractionOverlay,
        PreviewBrowser,
        RenderedDocument,
    )

    async with PreviewBrowser() as browser:
        document = RenderedDocument(browser)
        overlay = InteractionOverlay(lambda _instruction: None)
        await overlay.mount(document)
        await document.load(body)
        if not await document.exists(selector):
            return None
        await overlay.set_mode(InteractionMode.INSPECT)
        await document.click(selector)
        return overlay.report


def handle_generate_command(argv: list[str]) -> int:
    """Handle generate-specific arguments."""
    from studio.llm.synthesis import DEFAULT_STYLE, STYLE_PRESETS

    parser = argparse.ArgumentParser(
        prog="python . generate",
        description="Generate a single-file web app from a prompt or image",
    )
    parser.add_argument("prompt", nargs="?", default="", help="What to build")
    parser.add_argument(
        "--image",
        "-i",
        type=Path,
        default=None,
        help="Sketch, screenshot or PDF to bring to life",
    )
    parser.add_argument(
        "--style",
        "-s",
        default=DEFAULT_STYLE,
        choices=STYLE_PRESETS,
        metavar="STYLE",
        help="Style preset (see: python . styles)",
    )
    parser.add_argument(
        "--css",
        default=None,
        help="CSS rules to include verbatim (or @file.css)",
    )
    parser.add_argument(
        "--output",
        "-o",
        type=Path,
        default=None,
        help="Output file path (prints to stdout if not specified)",
    )
    _add_model_argument(parser)

    args = parser.parse_args(argv)
    if not args.prompt and not args.image:
        logger.info("No prompt or image given, generating a demo app")
    return cmd_generate(args)


def handle_refine_command(argv: list[str]) -> int:
    """Handle refine-specific arguments."""
    parser = argparse.ArgumentParser(
        prog="python . refine",
        description="Apply a natural-language change to an artifact",
    )
    parser.add_argument("instruction", help="Change request, e.g. 'make it dark'")
    parser.add_argument("--id", default=None, help="Artifact id (default: most recent)")
    parser.add_argument("--output", "-o", type=Path, default=None, help="Output file")
    _add_model_argument(parser)
    return cmd_refine(parser.parse_args(argv))


def handle_edit_command(argv: list[str]) -> int:
    """Handle edit-specific arguments."""
    from studio.overlay import EditAction

    parser = argparse.ArgumentParser(
        prog="python . edit",
        description="Edit one element of an artifact",
    )
    parser.add_argument("selector", help="CSS selector of the element")
    parser.add_argument(
        "action",
        choices=[a.value for a in EditAction],
        help="What to change",
    )
    parser.add_argument("--id", default=None, help="Artifact id (default: most recent)")
    parser.add_argument("--output", "-o", type=Path, default=None, help="Output file")
    _add_model_argument(parser)
    return cmd_edit(parser.parse_args(argv))


def handle_inspect_command(argv: list[str]) -> int:
    """Handle inspect-specific arguments."""
    parser = argparse.ArgumentParser(
        prog="python . inspect",
        description="Show tag, classes, text and computed style of an element",
    )
    parser.add_argument("selector", help="CSS selector of the element")
    parser.add_argument("--id", default=None, help="Artifact id (default: most recent)")
    return cmd_inspect(parser.parse_args(argv))


# =============================================================================
# History Commands
# =============================================================================


def cmd_history_list(args: argparse.Namespace) -> int:
    """Handle the history list command."""
    store = _open_store()
    history = store.history[: args.limit]
    if not history:
        print("History is empty.")
        return 0

    for artifact in history:
        created = artifact.created_at.strftime("%Y-%m-%d %H:%M")
        source = " [image]" if artifact.source_image else ""
        print(f"{artifact.id}  {created}  {artifact.name}{source}")
    if len(store) > args.limit:
        print(f"... {len(store) - args.limit} more")
    return 0


def cmd_history_show(args: argparse.Namespace) -> int:
    """Handle the history show command."""
    from studio.overlay import render_preview_frame

    store = _open_store()
    artifact = _resolve_artifact(store, args.id)
    if artifact is None:
        return 1

    if args.frame:
        print(render_preview_frame(artifact.body, title=artifact.name))
    else:
        print(artifact.body)
    return 0


def cmd_history_remove(args: argparse.Namespace) -> int:
    """Handle the history remove command."""
    store = _open_store()
    if not store.remove(args.id):
        logger.error(f"Artifact not found: {args.id}")
        return 1
    logger.info(f"Removed artifact {args.id}")
    return 0


def handle_history_command(argv: list[str]) -> int:
    """Handle history subcommands."""
    parser = argparse.ArgumentParser(
        prog="python . history",
        description="Browse and manage saved artifacts",
    )
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    list_parser = subparsers.add_parser("list", help="List artifacts, newest first")
    list_parser.add_argument("--limit", "-n", type=int, default=20, help="Max entries")
    list_parser.set_defaults(func=cmd_history_list)

    show_parser = subparsers.add_parser("show", help="Print an artifact's document")
    show_parser.add_argument("id", nargs="?", default=None, help="Artifact id")
    show_parser.add_argument(
        "--frame",
        action="store_true",
        help="Wrap the document in a sandboxed preview frame",
    )
    show_parser.set_defaults(func=cmd_history_show)

    remove_parser = subparsers.add_parser("remove", help="Delete an artifact")
    remove_parser.add_argument("id", help="Artifact id")
    remove_parser.set_defaults(func=cmd_history_remove)

    if not argv:
        argv = ["list"]

    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        return 1
    return args.func(args)


# =============================================================================
# Export / Import Commands
# =============================================================================


def cmd_export(args: argparse.Namespace) -> int:
    """Handle the export command."""
    from studio.history import save_export

    store = _open_store()
    artifact = _resolve_artifact(store, args.id)
    if artifact is None:
        return 1

    path = save_export(artifact, args.dir, document=args.html)
    print(path)
    return 0


def cmd_import(args: argparse.Namespace) -> int:
    """Handle the import command."""
    from studio.history import ImportRejectedError, read_import_file

    store = _open_store()
    try:
        artifact = read_import_file(args.path)
    except ImportRejectedError as e:
        print(str(e), file=sys.stderr)
        return 1

    if artifact.id in store:
        logger.info(f"Artifact {artifact.id} is already in history")
        return 0

    result = store.add(artifact)
    if not result.saved:
        from studio.workbench import STORAGE_FULL_MESSAGE

        print(STORAGE_FULL_MESSAGE, file=sys.stderr)
        return 1
    logger.info(f"Imported artifact {artifact.id} ('{artifact.name}')")
    return 0


def handle_export_command(argv: list[str]) -> int:
    """Handle export-specific arguments."""
    parser = argparse.ArgumentParser(
        prog="python . export",
        description="Export an artifact as a JSON snapshot or HTML document",
    )
    parser.add_argument("id", nargs="?", default=None, help="Artifact id (default: most recent)")
    parser.add_argument("--dir", "-d", type=Path, default=Path("."), help="Target directory")
    parser.add_argument("--html", action="store_true", help="Write the bare HTML document")
    return cmd_export(parser.parse_args(argv))


def handle_import_command(argv: list[str]) -> int:
    """Handle import-specific arguments."""
    parser = argparse.ArgumentParser(
        prog="python . import",
        description="Import an exported artifact JSON snapshot",
    )
    parser.add_argument("path", type=Path, help="Snapshot file")
    return cmd_import(parser.parse_args(argv))


# =============================================================================
# Catalog Commands
# =============================================================================


def cmd_styles(_argv: list[str]) -> int:
    """List style presets."""
    from studio.llm.synthesis import STYLE_PRESETS

    for preset in STYLE_PRESETS:
        print(preset)
    return 0


def cmd_models(_argv: list[str]) -> int:
    """List models by provider, marking configured providers."""
    from studio.config import get_available_llm_providers
    from studio.llm.backend import LLMModel, LLMProviderType

    available = set(get_available_llm_providers())
    for provider in LLMProviderType:
        marker = "configured" if provider.value in available else "no API key"
        print(f"{provider.value} ({marker}):")
        for model in LLMModel.list_by_provider(provider):
            print(f"  {model.spec.name:<24} {model.spec.description}")
    return 0


# =============================================================================
# MCP Command
# =============================================================================


def handle_mcp_command(argv: list[str]) -> int:
    """Run the MCP server.

    Usage:
        python . mcp                          # STDIO mode
        python . mcp --transport http --port 18080
    """
    from studio.mcp.server import build_parser, serve

    parser = argparse.ArgumentParser(
        prog="python . mcp",
        description="Run the artifact-studio MCP server",
    )
    return serve(build_parser(parser).parse_args(argv))


# =============================================================================
# Main
# =============================================================================


def show_help() -> None:
    """Display CLI help message."""
    print("Usage: python . {command} [args]")
    print("\n=== Artifacts ===")
    print("  generate   Generate a web app from a prompt or image")
    print("  refine     Apply a natural-language change")
    print("  edit       Edit one element interactively")
    print("  inspect    Show an element's tag, text and computed style")
    print("\n=== History ===")
    print("  history    List, show or remove saved artifacts")
    print("  export     Export an artifact (JSON snapshot or HTML)")
    print("  import     Import a JSON snapshot")
    print("\n=== Catalog ===")
    print("  styles     List style presets")
    print("  models     List models and configured providers")
    print("\n=== MCP Server ===")
    print("  mcp        Run MCP server (stdio, http or sse)")
    print("\nExamples:")
    print("  python . generate 'a pomodoro timer' --style Sketch -o timer.html")
    print("  python . generate --image sketch.png")
    print("  python . refine 'make it dark'")
    print("  python . edit 'button.start' style")
    print("  python . history list")
    print("  python . export --html -d out/")
    print("  python . mcp --transport http --port 18080")


def main() -> int:
    """Main entry point for the CLI."""
    if len(sys.argv) < 2:
        show_help()
        return 1

    command = sys.argv[1]
    rest_args = sys.argv[2:]

    if command in ("-h", "--help"):
        show_help()
        return 0

    commands = {
        "generate": lambda: handle_generate_command(rest_args),
        "refine": lambda: handle_refine_command(rest_args),
        "edit": lambda: handle_edit_command(rest_args),
        "inspect": lambda: handle_inspect_command(rest_args),
        "history": lambda: handle_history_command(rest_args),
        "export": lambda: handle_export_command(rest_args),
        "import": lambda: handle_import_command(rest_args),
        "styles": lambda: cmd_styles(rest_args),
        "models": lambda: cmd_models(rest_args),
    }

    # The MCP server configures its own logging
    if command == "mcp":
        return handle_mcp_command(rest_args)

    if command in commands:
        from studio.history import close_artifact_store

        setup_logging()
        try:
            return commands[command]()
        finally:
            close_artifact_store()

    logger.error(f"Unknown command: {command}")
    show_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
