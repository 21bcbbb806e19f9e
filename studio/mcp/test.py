"""Unit tests for the MCP server and its tools.

Tests cover:
- Server configuration
- Tool registration
- Tool behavior over a scripted Workbench
"""

import asyncio

import pytest
from fastmcp import Client

from ..history import (
    Artifact,
    ArtifactStore,
    InMemorySlotStorage,
    StorageConfig,
    export_snapshot,
)
from ..llm.backend import ServiceUnavailableError
from ..workbench import STORAGE_FULL_MESSAGE, Workbench
from .lib import ServerConfig, TransportType, get_server_version
from .server import build_parser, create_server, mcp
from .tools import (
    edit_element,
    export_artifact,
    generate_artifact,
    import_artifact,
    inspect_element,
    list_history,
    redo,
    refine_artifact,
    select_artifact,
    set_interaction_mode,
    set_workbench,
    status,
    undo,
)

PAGE = '<!DOCTYPE html><html><body><h1 id="title" class="hero">Hi</h1></body></html>'

EXPECTED_TOOLS = {
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
}


@pytest.fixture
def bench(scripted_backend, make_gateway, artifact_store):
    """Install a Workbench over a scripted backend for the tools."""

    def _install(*script):
        workbench = Workbench(make_gateway(scripted_backend(*script)), artifact_store)
        set_workbench(workbench)
        return workbench

    yield _install
    set_workbench(None)


# =============================================================================
# Configuration Tests
# =============================================================================


class TestServerConfig:
    """Tests for ServerConfig."""

    @pytest.mark.unit
    def test_default_config(self):
        """Default config has expected values."""
        config = ServerConfig()

        assert config.name == "artifact-studio"
        assert config.transport == TransportType.STDIO
        assert config.port == 18080
        assert config.path == "/mcp"

    @pytest.mark.unit
    def test_from_env(self, monkeypatch):
        """from_env reads host and port."""
        monkeypatch.setenv("MCP_PORT", "19090")
        config = ServerConfig.from_env(transport=TransportType.SSE)

        assert config.transport == TransportType.SSE
        assert config.port == 19090

    @pytest.mark.unit
    def test_transport_from_string(self):
        """TransportType can be created from string."""
        assert TransportType("http") == TransportType.HTTP

    @pytest.mark.unit
    def test_parser(self):
        """Server arguments parse with defaults."""
        args = build_parser().parse_args(["-t", "http", "-p", "9000"])
        assert args.transport == "http"
        assert args.port == 9000
        assert args.host is None

    @pytest.mark.unit
    def test_version(self):
        """Version is a dotted string."""
        assert get_server_version().count(".") == 2


# =============================================================================
# Server Tests
# =============================================================================


class TestServerInstance:
    """Tests for the FastMCP instance."""

    @pytest.mark.unit
    def test_create_server_returns_mcp(self):
        """create_server returns the module-level instance."""
        assert create_server() is mcp
        assert mcp.name == "artifact-studio"

    @pytest.mark.unit
    def test_tools_registered(self):
        """Exactly the lifecycle tools are exposed."""

        async def names():
            async with Client(mcp) as client:
                return {tool.name for tool in await client.list_tools()}

        assert asyncio.run(names()) == EXPECTED_TOOLS


# =============================================================================
# Tool Tests
# =============================================================================


class TestArtifactTools:
    """Tests for synthesis, version and history tools."""

    @pytest.mark.unit
    def test_generate_refine_undo_redo(self, bench):
        """Tools drive the whole version cycle."""
        bench(PAGE, "<p>dark</p>")

        state = asyncio.run(generate_artifact("landing page"))
        assert state["body"] == PAGE
        assert state["artifact"]["name"] == "landing page"
        assert not state["can_undo"]

        state = asyncio.run(refine_artifact("make it dark"))
        assert state["body"] == "<p>dark</p>"
        assert state["can_undo"]

        state = undo()
        assert state["changed"]
        assert state["body"] == PAGE
        assert state["can_redo"]

        state = redo()
        assert state["body"] == "<p>dark</p>"
        assert not redo()["changed"]

    @pytest.mark.unit
    def test_generate_failure_raises_notice(self, bench):
        """Failures surface the user-facing message."""
        bench(ServiceUnavailableError("down", 503))
        with pytest.raises(ValueError, match="currently unavailable"):
            asyncio.run(generate_artifact("x"))

    @pytest.mark.unit
    def test_generate_validates_style(self, bench):
        """Unknown presets are rejected before any call."""
        bench(PAGE)
        with pytest.raises(ValueError, match="Unknown style preset"):
            asyncio.run(generate_artifact("x", style_preset="Baroque"))

    @pytest.mark.unit
    def test_generate_rejects_bad_source(self, bench, tmp_path):
        """Unsupported image files raise with the rejection message."""
        bench(PAGE)
        path = tmp_path / "notes.txt"
        path.write_text("x")
        with pytest.raises(ValueError, match="Unsupported format"):
            asyncio.run(generate_artifact(image_path=str(path)))

    @pytest.mark.unit
    def test_refine_requires_active(self, bench):
        """Refining with nothing active is an error."""
        bench(PAGE)
        with pytest.raises(ValueError, match="No active artifact"):
            asyncio.run(refine_artifact("x"))
        with pytest.raises(ValueError, match="must not be empty"):
            asyncio.run(refine_artifact("  "))

    @pytest.mark.unit
    def test_history_and_select(self, bench):
        """History lists newest first; select switches and clears undo."""
        bench(PAGE, "<p>b</p>", "<p>b2</p>")
        first = asyncio.run(generate_artifact("first"))["artifact"]
        asyncio.run(generate_artifact("second"))
        asyncio.run(refine_artifact("change"))

        listing = list_history(limit=1)
        assert listing["total_count"] == 2
        assert listing["has_more"]
        assert listing["artifacts"][0]["name"] == "second"
        assert listing["artifacts"][0]["active"]

        state = select_artifact(first["id"])
        assert state["artifact"]["id"] == first["id"]
        assert not state["can_undo"]
        with pytest.raises(ValueError, match="not found"):
            select_artifact("missing")

    @pytest.mark.unit
    def test_export_import(self, bench, tmp_path):
        """Export writes files; import activates the snapshot."""
        bench(PAGE)
        with pytest.raises(ValueError):
            export_artifact(str(tmp_path))

        asyncio.run(generate_artifact("My App"))
        result = export_artifact(str(tmp_path), document=True)
        assert result["format"] == "html"
        assert result["path"].endswith("my_app.html")

        path = tmp_path / "other_artifact.json"
        path.write_text(export_snapshot(Artifact.create("Other", "<p>o</p>")))
        state = import_artifact(str(path))
        assert state["artifact"]["name"] == "Other"

        bad = tmp_path / "bad.json"
        bad.write_text("{not json")
        with pytest.raises(ValueError, match="corrupted"):
            import_artifact(str(bad))


class TestToolNotices:
    """Tests for notices reported by tools."""

    @pytest.mark.unit
    def test_earlier_notices_do_not_leak(self, bench, tmp_path):
        """A failure's notice is not reported by the next successful call."""
        workbench = bench(PAGE)
        path = tmp_path / "notes.txt"
        path.write_text("x")
        with pytest.raises(ValueError, match="Unsupported format"):
            asyncio.run(generate_artifact(image_path=str(path)))

        state = asyncio.run(generate_artifact("x"))
        assert state["notices"] == []
        assert not workbench.notices

    @pytest.mark.unit
    def test_storage_warning_reported(self, scripted_backend, make_gateway):
        """Warnings from a successful call come back with its result."""
        store = ArtifactStore(InMemorySlotStorage(quota_bytes=50), StorageConfig(slot_name="s"))
        set_workbench(Workbench(make_gateway(scripted_backend(PAGE)), store))
        try:
            state = asyncio.run(generate_artifact("big"))
        finally:
            set_workbench(None)

        assert state["artifact"]["name"] == "big"
        assert state["notices"] == [STORAGE_FULL_MESSAGE]


class TestOverlayTools:
    """Tests for mode, inspect and edit tools."""

    @pytest.mark.unit
    def test_set_mode(self, bench):
        """Modes switch and invalid ones are rejected."""
        bench(PAGE)
        assert asyncio.run(set_interaction_mode("edit")) == {"mode": "edit"}
        with pytest.raises(ValueError, match="Invalid mode"):
            asyncio.run(set_interaction_mode("hover"))

    @pytest.mark.unit
    def test_overlay_requires_active(self, bench):
        """Inspecting or editing with nothing active is an error."""
        bench(PAGE)
        with pytest.raises(ValueError, match="No active artifact"):
            asyncio.run(inspect_element("h1"))
        with pytest.raises(ValueError, match="Invalid action"):
            asyncio.run(edit_element("#title", "rotate", "90deg"))

    @pytest.mark.browser
    def test_inspect(self, scripted_backend, make_gateway, artifact_store, in_browser):
        """Inspection returns the element report."""

        async def scenario(browser):
            workbench = Workbench(
                make_gateway(scripted_backend(PAGE)), artifact_store, preview=browser
            )
            set_workbench(workbench)
            try:
                await generate_artifact("x")
                report = await inspect_element("h1.hero")
                with pytest.raises(ValueError, match="No element"):
                    await inspect_element("#nope")
                return report
            finally:
                await workbench.close()
                set_workbench(None)

        report = in_browser(scenario)
        assert report["tagName"] == "h1"
        assert report["id"] == "title"
        assert report["innerText"] == "Hi"
        assert report["computedStyle"]["font_size"] == "32px"

    @pytest.mark.browser
    def test_edit(self, scripted_backend, make_gateway, artifact_store, in_browser):
        """Edits send a targeted instruction; cancelled ones change nothing."""

        async def scenario(browser):
            workbench = Workbench(
                make_gateway(scripted_backend(PAGE, "<h1>Hello</h1>")),
                artifact_store,
                preview=browser,
            )
            set_workbench(workbench)
            try:
                await generate_artifact("x")
                cancelled = await edit_element("#title", "style", "")
                result = await edit_element("#title", "text", "Hello")
                with pytest.raises(ValueError, match="No element"):
                    await edit_element("#title", "text", "again")
                return cancelled, result
            finally:
                await workbench.close()
                set_workbench(None)

        cancelled, result = in_browser(scenario)
        assert cancelled["cancelled"]
        assert cancelled["body"] == PAGE
        assert result["instruction"] == (
            'Change the text content of the element [h1#title.hero (current text: "Hi...")] '
            'to "Hello".'
        )
        assert result["body"] == "<h1>Hello</h1>"
        assert result["can_undo"]
        assert result["notices"] == []


class TestStatus:
    """Tests for the status tool."""

    @pytest.mark.unit
    def test_status_before_session(self):
        """Status works before any Workbench exists."""
        set_workbench(None)
        result = status()
        assert result["server"]["name"] == "artifact-studio"
        assert result["session"] is None
        assert isinstance(result["providers"], list)

    @pytest.mark.unit
    def test_status_with_session(self, bench):
        """Status reports session state."""
        bench(PAGE)
        asyncio.run(generate_artifact("x"))
        session = status()["session"]

        assert session["history_count"] == 1
        assert session["active"]["name"] == "x"
        assert session["mode"] == "interact"
        assert not session["busy"]
