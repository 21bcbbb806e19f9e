"""Tests for CLI commands that do not call a synthesis provider."""

import json
import os
import subprocess
import sys
from pathlib import Path

import pytest

from studio.history import Artifact, export_snapshot

REPO_ROOT = Path(__file__).resolve().parents[2]

PAGE = (
    "<!DOCTYPE html><html><body>"
    '<button id="go" class="cta" style="color: red">Start</button>'
    "</body></html>"
)


@pytest.fixture
def run_cli(tmp_path):
    """Run ``python . <args>`` with history in a temporary directory."""
    env = {**os.environ, "STUDIO_DATA_DIR": str(tmp_path / "data")}

    def _run(*args: str) -> subprocess.CompletedProcess:
        return subprocess.run(
            [sys.executable, ".", *args],
            capture_output=True,
            text=True,
            cwd=REPO_ROOT,
            env=env,
            timeout=60,
        )

    return _run


@pytest.fixture
def snapshot_file(tmp_path):
    """Exported artifact file ready to import."""
    artifact = Artifact.create("Start Page", PAGE)
    path = tmp_path / "start_page_artifact.json"
    path.write_text(export_snapshot(artifact))
    return artifact, path


class TestCatalogCommands:
    """Tests for help, styles and models."""

    @pytest.mark.unit
    def test_help(self, run_cli):
        """--help lists the command groups."""
        result = run_cli("--help")
        assert result.returncode == 0
        assert "generate" in result.stdout
        assert "MCP Server" in result.stdout

    @pytest.mark.unit
    def test_unknown_command(self, run_cli):
        """Unknown commands fail with usage."""
        result = run_cli("frobnicate")
        assert result.returncode == 1
        assert "Usage:" in result.stdout

    @pytest.mark.unit
    def test_styles(self, run_cli):
        """styles prints one preset per line, Default first."""
        result = run_cli("styles")
        assert result.returncode == 0
        assert result.stdout.splitlines()[0] == "Default"

    @pytest.mark.unit
    def test_models(self, run_cli):
        """models groups models under each provider."""
        result = run_cli("models")
        assert result.returncode == 0
        assert "gemini (" in result.stdout
        assert "anthropic (" in result.stdout


class TestHistoryCommands:
    """Tests for history, import, export and inspect."""

    @pytest.mark.unit
    def test_empty_history(self, run_cli):
        """An empty history lists nothing."""
        result = run_cli("history", "list")
        assert result.returncode == 0
        assert "History is empty." in result.stdout

    @pytest.mark.unit
    def test_import_show_remove(self, run_cli, snapshot_file):
        """Imported artifacts can be listed, shown and removed."""
        artifact, path = snapshot_file

        assert run_cli("import", str(path)).returncode == 0
        listing = run_cli("history", "list")
        assert artifact.id in listing.stdout
        assert "Start Page" in listing.stdout

        shown = run_cli("history", "show", artifact.id)
        assert shown.stdout.strip() == PAGE

        framed = run_cli("history", "show", "--frame")
        assert framed.stdout.startswith("<iframe")
        assert 'sandbox="allow-scripts' in framed.stdout

        assert run_cli("history", "remove", artifact.id).returncode == 0
        assert run_cli("history", "remove", artifact.id).returncode == 1

    @pytest.mark.unit
    def test_import_rejects_corrupted(self, run_cli, tmp_path):
        """Corrupted files print the import error."""
        bad = tmp_path / "bad.json"
        bad.write_text("{nope")
        result = run_cli("import", str(bad))

        assert result.returncode == 1
        assert "The file might be corrupted." in result.stderr

    @pytest.mark.unit
    def test_export_html(self, run_cli, snapshot_file, tmp_path):
        """export --html writes the bare document."""
        _, path = snapshot_file
        run_cli("import", str(path))

        out = tmp_path / "out"
        result = run_cli("export", "--html", "--dir", str(out))
        assert result.returncode == 0
        assert (out / "start_page.html").read_text() == PAGE

    @pytest.mark.browser
    def test_inspect(self, run_cli, snapshot_file):
        """inspect prints the element report as JSON."""
        _, path = snapshot_file
        run_cli("import", str(path))

        result = run_cli("inspect", "button.cta")
        assert result.returncode == 0
        report = json.loads(result.stdout)
        assert report["tagName"] == "button"
        assert report["id"] == "go"
        assert report["innerText"] == "Start"
        assert report["computedStyle"]["color"] == "rgb(255, 0, 0)"

    @pytest.mark.unit
    def test_refine_without_history(self, run_cli):
        """refine fails cleanly when there is nothing to refine."""
        result = run_cli("refine", "make it dark")
        assert result.returncode == 1
