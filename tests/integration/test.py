"""Integration tests for the artifact lifecycle.

Tests the full workflow over a SQLite-backed history:
1. Generate an artifact -> newest history entry, empty undo/redo
2. Refine it -> previous body on the undo stack
3. Undo / redo -> bodies swap between the stacks
4. Switch artifacts -> edit session starts over
5. Reopen the database -> history survives, nothing active
6. Export and import -> artifact round-trips through a file
7. Inspect and edit -> the rendered preview drives targeted refinements
"""

import asyncio

import pytest

from studio.history import StorageConfig, open_artifact_store
from studio.overlay import EditAction, InteractionMode, RenderedDocument, ViewMode
from studio.workbench import STORAGE_FULL_MESSAGE, Workbench

DASHBOARD = (
    "<!DOCTYPE html><html><head><style>"
    "#total { color: #0a0; font-size: 24px }"
    "</style></head><body>"
    '<h1 class="title">Dashboard</h1>'
    '<p id="total">42 orders</p>'
    "</body></html>"
)
DARK_DASHBOARD = DASHBOARD.replace("<body>", '<body style="background: #111">')


@pytest.fixture
def sqlite_store(tmp_path):
    """SQLite-backed store in a temporary directory."""
    store = open_artifact_store(tmp_path / "history.db", StorageConfig())
    yield store
    store.close()


@pytest.fixture
def bench(sqlite_store, scripted_backend, make_gateway):
    """Workbench over the SQLite store with a scripted backend."""

    def _make(*script):
        return Workbench(make_gateway(scripted_backend(*script)), sqlite_store)

    return _make


@pytest.mark.integration
class TestArtifactLifecycle:
    """End-to-end generate, refine and version workflow."""

    def test_generate_refine_undo_switch(self, bench):
        """Versions follow the active artifact through a session."""
        workbench = bench(DASHBOARD, DARK_DASHBOARD, "<p>other</p>")

        dashboard = asyncio.run(workbench.generate("dashboard"))
        assert workbench.history[0] is dashboard
        assert workbench.versions.session.undo_stack == []
        assert workbench.versions.session.redo_stack == []

        asyncio.run(workbench.refine("make it dark"))
        assert workbench.active.body == DARK_DASHBOARD
        assert workbench.versions.session.undo_stack == [DASHBOARD]
        assert workbench.versions.session.redo_stack == []

        assert workbench.undo() == DASHBOARD
        assert workbench.active.body == DASHBOARD
        assert workbench.history[0].body == DASHBOARD
        assert len(workbench.versions.session.redo_stack) == 1

        other = asyncio.run(workbench.generate("other"))
        assert workbench.history[0] is other
        assert workbench.select(dashboard.id) is dashboard
        assert not workbench.versions.can_undo
        assert not workbench.versions.can_redo

    def test_history_survives_reopen(self, bench, tmp_path):
        """A new store over the same file sees the same history."""
        workbench = bench(DASHBOARD, DARK_DASHBOARD)
        first = asyncio.run(workbench.generate("first"))
        asyncio.run(workbench.refine("make it dark"))
        second = asyncio.run(workbench.generate("second"))

        reopened = open_artifact_store(tmp_path / "history.db", StorageConfig())
        try:
            assert [a.id for a in reopened.history] == [second.id, first.id]
            assert reopened.get(first.id).body == DARK_DASHBOARD
            assert reopened.active is None
        finally:
            reopened.close()

    def test_export_import_round_trip(self, bench, tmp_path):
        """An exported snapshot imports into a fresh history."""
        workbench = bench(DASHBOARD)
        original = asyncio.run(workbench.generate("Sales Board"))
        path = workbench.export_artifact(tmp_path / "out")
        assert path.name == "sales_board_artifact.json"

        target = open_artifact_store(tmp_path / "other.db", StorageConfig())
        try:
            other = Workbench(workbench.gateway, target)
            imported = other.import_artifact(path)

            assert imported.id == original.id
            assert imported.name == "Sales Board"
            assert imported.body == DASHBOARD
            assert other.active is imported

            # Importing again activates the existing entry
            assert other.import_artifact(path.read_text()).id == original.id
            assert len(other.history) == 1
        finally:
            target.close()

    def test_storage_quota_notice(self, tmp_path, scripted_backend, make_gateway):
        """A history that cannot fit its quota keeps working in memory."""
        store = open_artifact_store(tmp_path / "tiny.db", StorageConfig(quota_bytes=50))
        try:
            workbench = Workbench(make_gateway(scripted_backend(DASHBOARD)), store)
            artifact = asyncio.run(workbench.generate("dashboard"))

            assert workbench.active is artifact
            assert workbench.notices[-1].message == STORAGE_FULL_MESSAGE
        finally:
            store.close()


@pytest.mark.integration
@pytest.mark.browser
class TestOverlayWorkflow:
    """Inspect and edit against the rendered preview."""

    def test_inspect_then_edit(self, sqlite_store, scripted_backend, make_gateway, in_browser):
        """Inspection reads the preview; an edit refines and can be undone."""
        backend = scripted_backend(DASHBOARD, DASHBOARD.replace("42 orders", "43 orders"))

        async def scenario(browser):
            workbench = Workbench(make_gateway(backend), sqlite_store, preview=browser)
            await workbench.generate("dashboard")
            report = await workbench.inspect("#total")

            instruction = await workbench.edit("#total", EditAction.TEXT, "43 orders")
            edited = await (await workbench.render_preview()).inner_text("#total")
            undone = workbench.undo()
            restored = await (await workbench.render_preview()).inner_text("#total")
            await workbench.close()
            return report, instruction, edited, undone, restored

        report, instruction, edited, undone, restored = in_browser(scenario)
        assert report.tag_name == "p"
        assert report.text == "42 orders"
        assert report.style.font_size == "24px"
        assert report.style.color == "rgb(0, 170, 0)"
        assert instruction.startswith("Change the text content of the element [p#total")
        assert edited == "43 orders"
        assert undone == DASHBOARD
        assert restored == "42 orders"

    def test_source_view_disables_overlay(
        self, sqlite_store, scripted_backend, make_gateway, in_browser
    ):
        """The overlay only reacts in preview view."""
        workbench = Workbench(make_gateway(scripted_backend(DASHBOARD)), sqlite_store)

        async def scenario(browser):
            workbench.document = RenderedDocument(browser)
            await workbench.generate("dashboard")
            document = await workbench.render_preview()
            await workbench.set_interaction_mode(InteractionMode.INSPECT)
            await workbench.overlay.set_view(ViewMode.SOURCE)
            await document.click("h1.title")
            await workbench.close()

        in_browser(scenario)
        assert workbench.overlay.report is None
