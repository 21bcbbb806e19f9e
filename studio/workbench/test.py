"""Tests for the Workbench orchestration boundary."""

import asyncio
import json

import pytest

from ..history import (
    INVALID_FORMAT_MESSAGE,
    Artifact,
    ArtifactSnapshot,
    ArtifactStore,
    InMemorySlotStorage,
    SourceImage,
    StorageConfig,
    export_snapshot,
)
from ..llm.backend import (
    ContentSafetyError,
    GenerationResult,
    InlineImage,
    InvalidRequestError,
    LLMBackend,
    RateLimitError,
    ServiceUnavailableError,
)
from ..overlay import InteractionMode
from .lib import (
    BUSY_MESSAGE,
    ERROR_MESSAGES,
    FALLBACK_ERROR_MESSAGE,
    NOTICE_LIMIT,
    STORAGE_FULL_MESSAGE,
    Workbench,
    artifact_name,
    describe_error,
)

PAGE = '<!DOCTYPE html><html><body><button id="go" class="cta">Go</button></body></html>'


class GatedBackend(LLMBackend):
    """Backend that can hold a call open until a gate is set."""

    def __init__(self, responses: list[str]):
        self.responses = responses
        self.calls = 0
        self.gate: asyncio.Event | None = None

    @property
    def model_name(self) -> str:
        return "gated"

    @property
    def provider(self) -> str:
        return "mock"

    async def generate(
        self, prompt, *, system_prompt=None, image=None, image_first=False, config=None
    ):
        index = min(self.calls, len(self.responses) - 1)
        self.calls += 1
        if self.gate is not None:
            gate, self.gate = self.gate, None
            await gate.wait()
        return GenerationResult(
            content=self.responses[index],
            finish_reason="stop",
            usage={},
            model=self.model_name,
        )


@pytest.fixture
def bench_for(make_gateway, artifact_store):
    """Factory for a Workbench over a given backend."""

    def _make(backend, store=None):
        return Workbench(make_gateway(backend), store if store is not None else artifact_store)

    return _make


class TestErrorMessages:
    """Tests for mapping failures to user-facing text."""

    @pytest.mark.unit
    def test_typed_errors(self):
        """Synthesis errors map by their status."""
        assert describe_error(RateLimitError("slow down")) == (
            "You're sending requests too quickly. Please wait a moment before trying again."
        )
        assert describe_error(ServiceUnavailableError("down", 503)) == (
            "The AI service is currently unavailable. Please try again later."
        )
        assert describe_error(InvalidRequestError("bad", 400)) == (
            "The AI couldn't process this specific input. Try a different image or prompt."
        )
        assert describe_error(ContentSafetyError("blocked")) == (
            "The content was flagged by safety filters. Please try a different input."
        )

    @pytest.mark.unit
    def test_foreign_errors(self):
        """Other exceptions map by markers in their message."""
        assert describe_error(RuntimeError("HTTP 503 from upstream")) == ERROR_MESSAGES[
            ServiceUnavailableError.status
        ]
        assert describe_error(RuntimeError("finishReason: SAFETY")) == ERROR_MESSAGES[
            ContentSafetyError.status
        ]
        assert describe_error(ValueError("boom")) == FALLBACK_ERROR_MESSAGE

    @pytest.mark.unit
    def test_artifact_name(self):
        """Names come from the file, the prompt prefix or a default."""
        source = SourceImage("sketch.png", "image/png", "aGk=")
        assert artifact_name("ignored", source) == "sketch.png"
        assert artifact_name("a todo list with drag and drop") == "a todo list with dra"
        assert artifact_name("") == "New Creation"


class TestGenerate:
    """Tests for Workbench.generate."""

    @pytest.mark.unit
    def test_generate_activates(self, scripted_backend, bench_for, artifact_store):
        """A new artifact is prepended, active, rendered and has empty stacks."""
        bench = bench_for(scripted_backend(PAGE))
        artifact = asyncio.run(bench.generate("dashboard"))

        assert artifact.name == "dashboard"
        assert artifact.body == PAGE
        assert artifact_store.history[0] is artifact
        assert bench.active is artifact
        assert not bench.versions.can_undo
        assert "id=&quot;go&quot;" in bench.preview_frame()
        assert not bench.notices

    @pytest.mark.unit
    def test_generate_from_source(self, scripted_backend, bench_for):
        """Source images name the artifact and are kept as a data URI."""
        backend = scripted_backend(PAGE)
        bench = bench_for(backend)
        source = SourceImage("shot.png", "image/png", "aGk=")
        artifact = asyncio.run(bench.generate("", source, "Sketch"))

        assert artifact.name == "shot.png"
        assert artifact.source_image == "data:image/png;base64,aGk="
        assert backend.calls[0]["image"] == InlineImage(data="aGk=", mime_type="image/png")

    @pytest.mark.unit
    def test_generate_failure(self, scripted_backend, bench_for, artifact_store):
        """Client errors produce a notice and no artifact."""
        bench = bench_for(scripted_backend(InvalidRequestError("bad input", 400)))
        assert asyncio.run(bench.generate("x")) is None

        assert len(artifact_store) == 0
        assert bench.active is None
        assert not bench.busy
        assert [n.message for n in bench.notices] == [
            ERROR_MESSAGES[InvalidRequestError.status]
        ]

    @pytest.mark.unit
    def test_generate_retries_then_reports(
        self, scripted_backend, bench_for, no_sleep
    ):
        """Transient failures are retried before the notice."""
        backend = scripted_backend(ServiceUnavailableError("down", 503))
        bench = bench_for(backend)
        asyncio.run(bench.generate("x"))

        assert len(backend.calls) == 3
        assert no_sleep.delays == [1.0, 2.0]
        assert bench.notices[-1].message == (
            "The AI service is currently unavailable. Please try again later."
        )

    @pytest.mark.unit
    def test_generate_clears_active_first(self, scripted_backend, bench_for):
        """The previous artifact is deselected even if generation fails."""
        backend = scripted_backend(PAGE, ValueError("boom"))
        bench = bench_for(backend)
        asyncio.run(bench.generate("first"))
        asyncio.run(bench.generate("second"))

        assert bench.active is None
        assert bench.notices[-1].message == FALLBACK_ERROR_MESSAGE

    @pytest.mark.unit
    def test_busy_refuses_second_call(self, bench_for, artifact_store):
        """A call while one is in flight is refused with a notice."""
        backend = GatedBackend(["<p>one</p>"])
        bench = bench_for(backend)

        async def scenario():
            backend.gate = asyncio.Event()
            gate = backend.gate
            first = asyncio.create_task(bench.generate("first"))
            await asyncio.sleep(0)
            assert bench.busy
            assert await bench.generate("second") is None
            gate.set()
            return await first

        artifact = asyncio.run(scenario())
        assert artifact.name == "first"
        assert len(artifact_store) == 1
        assert backend.calls == 1
        assert bench.notices[0].message == BUSY_MESSAGE
        assert bench.notices[0].level == "warning"

    @pytest.mark.unit
    def test_storage_full_notice(self, scripted_backend, make_gateway):
        """An artifact too large to persist alone emits a notice."""
        store = ArtifactStore(InMemorySlotStorage(quota_bytes=50), StorageConfig(slot_name="s"))
        bench = Workbench(make_gateway(scripted_backend(PAGE)), store)
        artifact = asyncio.run(bench.generate("big"))

        assert bench.active is artifact
        assert [n.message for n in bench.notices] == [STORAGE_FULL_MESSAGE]


class TestRefine:
    """Tests for Workbench.refine and version control."""

    @pytest.mark.unit
    def test_refine_undo_redo(self, scripted_backend, bench_for, artifact_store):
        """Refinement records the old body; undo and redo restore it."""
        backend = scripted_backend(PAGE, "<p>dark</p>")
        bench = bench_for(backend)
        artifact = asyncio.run(bench.generate("dashboard"))

        assert asyncio.run(bench.refine("make it dark")) == "<p>dark</p>"
        assert artifact_store.get(artifact.id).body == "<p>dark</p>"
        assert bench.versions.session.undo_stack == [PAGE]
        assert "&lt;p&gt;dark&lt;/p&gt;" in bench.preview_frame()
        assert backend.calls[-1]["image_first"] is True

        assert bench.undo() == PAGE
        assert bench.active.body == PAGE
        assert "id=&quot;go&quot;" in bench.preview_frame()
        assert bench.redo() == "<p>dark</p>"
        assert bench.redo() is None

    @pytest.mark.unit
    def test_refine_without_active(self, scripted_backend, bench_for):
        """Nothing active means no call."""
        backend = scripted_backend()
        bench = bench_for(backend)
        assert asyncio.run(bench.refine("anything")) is None
        assert backend.calls == []

    @pytest.mark.unit
    def test_refine_sends_source_image(self, scripted_backend, bench_for):
        """The artifact's source image goes along with refinements."""
        backend = scripted_backend(PAGE)
        bench = bench_for(backend)
        asyncio.run(bench.generate("", SourceImage("a.webp", "image/webp", "d2Vi")))
        asyncio.run(bench.refine("tweak"))
        assert backend.calls[-1]["image"] == InlineImage(data="d2Vi", mime_type="image/webp")

    @pytest.mark.unit
    def test_refine_after_active_entry_evicted(self, scripted_backend, bench_for):
        """Refining keeps working once the active entry no longer fits in history."""
        old_body, new_body = "<p>" + "o" * 500 + "</p>", "<p>" + "n" * 500 + "</p>"
        grown = "<p>" + "g" * 900 + "</p>"
        sample = ArtifactSnapshot.from_artifact(Artifact.create("old", old_body)).to_json_dict()
        quota = len(json.dumps([sample])) * 2 + 50
        store = ArtifactStore(InMemorySlotStorage(quota), StorageConfig(slot_name="s"))
        bench = bench_for(scripted_backend(old_body, new_body, grown, "<p>final</p>"), store)

        old = asyncio.run(bench.generate("old"))
        asyncio.run(bench.generate("new"))
        bench.select(old.id)

        assert asyncio.run(bench.refine("make it longer")) == grown
        assert old.id not in store
        assert bench.active.id == old.id

        assert asyncio.run(bench.refine("shorten it")) == "<p>final</p>"
        assert bench.active.body == "<p>final</p>"
        assert [a.name for a in bench.history] == ["new"]
        assert bench.undo() == grown
        assert not bench.notices

    @pytest.mark.unit
    def test_refine_failure_keeps_state(self, scripted_backend, bench_for):
        """A failed refinement records nothing."""
        bench = bench_for(scripted_backend(PAGE, ContentSafetyError("blocked")))
        asyncio.run(bench.generate("x"))
        assert asyncio.run(bench.refine("y")) is None

        assert bench.active.body == PAGE
        assert not bench.versions.can_undo
        assert bench.notices[-1].message == ERROR_MESSAGES[ContentSafetyError.status]

    @pytest.mark.unit
    def test_late_refine_targets_requested_artifact(self, bench_for, artifact_store):
        """A result arriving after a switch updates its own artifact only."""
        backend = GatedBackend(["<p>A</p>", "<p>B</p>", "<p>A2</p>"])
        bench = bench_for(backend)

        async def scenario():
            first = await bench.generate("A")
            second = await bench.generate("B")
            bench.select(first.id)

            backend.gate = asyncio.Event()
            gate = backend.gate
            task = asyncio.create_task(bench.refine("change"))
            await asyncio.sleep(0)
            bench.select(second.id)
            gate.set()
            return first, second, await task

        first, second, result = asyncio.run(scenario())
        assert result == "<p>A2</p>"
        assert artifact_store.get(first.id).body == "<p>A2</p>"
        assert bench.active.id == second.id
        assert bench.active.body == "<p>B</p>"
        assert not bench.versions.can_undo
        assert "&lt;p&gt;B&lt;/p&gt;" in bench.preview_frame()


class TestHistoryOperations:
    """Tests for select, reset, remove, import and export."""

    @pytest.fixture
    def bench(self, scripted_backend, bench_for):
        return bench_for(scripted_backend(PAGE, "<p>v2</p>"))

    @pytest.mark.unit
    def test_select_resets_session(self, bench):
        """Selecting clears the undo history."""
        artifact = asyncio.run(bench.generate("x"))
        asyncio.run(bench.refine("y"))
        assert bench.select(artifact.id) is artifact
        assert not bench.versions.can_undo
        assert bench.select("missing") is None
        assert bench.active is artifact

    @pytest.mark.unit
    def test_reset_and_remove(self, bench, artifact_store):
        """Reset deselects; removing the active artifact ends its session."""
        artifact = asyncio.run(bench.generate("x"))
        bench.reset()
        assert bench.active is None
        assert bench.preview_frame() is None

        bench.select(artifact.id)
        assert bench.remove(artifact.id)
        assert bench.active is None
        assert bench.versions.session.artifact_id is None
        assert not bench.remove(artifact.id)

    @pytest.mark.unit
    def test_import_new_and_existing(self, bench, artifact_store):
        """New ids are added; known ids are activated without duplication."""
        imported = Artifact.create("Imported", "<p>hi</p>")
        payload = export_snapshot(imported)

        result = bench.import_artifact(payload)
        assert result.id == imported.id
        assert bench.active.id == imported.id

        other = asyncio.run(bench.generate("other"))
        assert bench.active is other
        again = bench.import_artifact(payload)
        assert again.id == imported.id
        assert bench.active.id == imported.id
        assert len(artifact_store) == 2

    @pytest.mark.unit
    def test_import_rejected(self, bench, artifact_store):
        """Malformed files leave state unchanged and emit a notice."""
        artifact = asyncio.run(bench.generate("x"))
        assert bench.import_artifact('{"name": "no body"}') is None
        assert bench.active is artifact
        assert len(artifact_store) == 1
        assert bench.notices[-1].message == INVALID_FORMAT_MESSAGE

    @pytest.mark.unit
    def test_import_from_path(self, bench, tmp_path):
        """Files on disk import the same way."""
        path = tmp_path / "thing_artifact.json"
        path.write_text(export_snapshot(Artifact.create("Thing", "<p>t</p>")))
        assert bench.import_artifact(path).name == "Thing"
        assert bench.import_artifact(tmp_path / "missing.json") is None

    @pytest.mark.unit
    def test_export(self, bench, tmp_path):
        """The active artifact exports as snapshot or document."""
        assert bench.export_artifact(tmp_path) is None
        asyncio.run(bench.generate("My App"))

        snapshot = bench.export_artifact(tmp_path)
        document = bench.export_artifact(tmp_path, document=True)
        assert snapshot.name.endswith("_artifact.json")
        assert document.read_text(encoding="utf-8") == PAGE

    @pytest.mark.unit
    def test_preview_frame(self, bench):
        """Preview markup is sandboxed without same-origin access."""
        assert bench.preview_frame() is None
        asyncio.run(bench.generate("x"))
        frame = bench.preview_frame()
        assert "allow-scripts" in frame
        assert "allow-same-origin" not in frame

    @pytest.mark.unit
    def test_load_source_rejects(self, bench, tmp_path):
        """Unsupported uploads produce a notice."""
        path = tmp_path / "notes.txt"
        path.write_text("hello")
        assert bench.load_source(path) is None
        assert "Unsupported format" in bench.notices[-1].message


class RecordingDocument:
    """Preview document that records loads instead of rendering them."""

    def __init__(self):
        self.ready_state = "uninitialized"
        self.loads: list[str] = []
        self.closed = False
        self._load_listeners = []

    def add_load_listener(self, listener):
        self._load_listeners.append(listener)

    def remove_load_listener(self, listener):
        self._load_listeners.remove(listener)

    def add_event_listener(self, listener):
        pass

    def remove_event_listener(self, listener):
        pass

    async def evaluate(self, expression, arg=None):
        return None

    async def load(self, source):
        self.loads.append(source)
        self.ready_state = "complete"
        for listener in list(self._load_listeners):
            await listener()

    async def close(self):
        self.closed = True


class TestNotices:
    """Tests for the notice queue."""

    @pytest.mark.unit
    def test_drain(self, scripted_backend, bench_for):
        """Draining returns pending notices oldest first and empties the queue."""
        bench = bench_for(scripted_backend(InvalidRequestError("bad", 400)))
        asyncio.run(bench.generate("a"))
        bench.load_source("missing.txt")

        drained = bench.drain_notices()
        assert drained[0].message == ERROR_MESSAGES[InvalidRequestError.status]
        assert "Unsupported format" in drained[1].message
        assert not bench.notices
        assert bench.drain_notices() == []

    @pytest.mark.unit
    def test_queue_is_capped(self, scripted_backend, bench_for):
        """Only the most recent NOTICE_LIMIT notices are kept."""
        bench = bench_for(scripted_backend(ValueError("boom")))
        asyncio.run(bench.generate("x"))
        for index in range(NOTICE_LIMIT):
            bench.load_source(f"notes_{index}.txt")

        notices = bench.drain_notices()
        assert len(notices) == NOTICE_LIMIT
        assert FALLBACK_ERROR_MESSAGE not in [n.message for n in notices]
        assert all("Unsupported format" in n.message for n in notices)


class TestPreview:
    """Tests for lazy preview rendering."""

    @pytest.mark.unit
    def test_preview_reloads_only_when_stale(self, scripted_backend, bench_for):
        """The preview follows the active artifact on demand."""
        bench = bench_for(scripted_backend(PAGE, "<p>v2</p>"))
        document = RecordingDocument()
        bench.document = document

        async def scenario():
            await bench.generate("x")
            assert document.loads == []

            assert await bench.render_preview() is document
            await bench.render_preview()
            assert document.loads == [PAGE]

            await bench.refine("y")
            bench.undo()
            await bench.render_preview()
            assert document.loads == [PAGE, PAGE]

            bench.reset()
            await bench.render_preview()
            assert document.loads[-1] == ""
            await bench.close()

        asyncio.run(scenario())
        assert document.closed
        assert bench.overlay.document is None


class TestOverlayIntegration:
    """Tests for overlay-driven edits in a rendered preview."""

    @pytest.mark.browser
    def test_inspect(self, scripted_backend, make_gateway, artifact_store, in_browser):
        """Inspecting reports on the matched element."""

        async def scenario(browser):
            bench = Workbench(make_gateway(scripted_backend(PAGE)), artifact_store, preview=browser)
            await bench.generate("x")
            report = await bench.inspect("#go")
            missing = await bench.inspect("#missing")
            mode = bench.overlay.mode
            await bench.close()
            return report, missing, mode

        report, missing, mode = in_browser(scenario)
        assert report.tag_name == "button"
        assert report.class_list == ("cta",)
        assert report.text == "Go"
        assert mode is InteractionMode.INSPECT
        assert missing is None

    @pytest.mark.browser
    def test_edit_refines(self, scripted_backend, make_gateway, artifact_store, in_browser):
        """Edit actions become refinement instructions and re-render."""
        backend = scripted_backend(PAGE, "<p id='done'>red</p>")

        async def scenario(browser):
            bench = Workbench(make_gateway(backend), artifact_store, preview=browser)
            await bench.generate("x")
            instruction = await bench.edit("#go", "style", "red")
            document = await bench.render_preview()
            text = await document.inner_text("#done")
            await bench.close()
            return bench, instruction, text

        bench, instruction, text = in_browser(scenario)
        assert instruction == (
            'Update the style of the element [button#go.cta (current text: "Go...")] '
            "to use red."
        )
        assert instruction in backend.calls[-1]["prompt"]
        assert bench.active.body == "<p id='done'>red</p>"
        assert bench.versions.session.undo_stack == [PAGE]
        assert text == "red"

    @pytest.mark.browser
    def test_edit_cancelled(self, scripted_backend, make_gateway, artifact_store, in_browser):
        """A declined removal sends nothing."""
        backend = scripted_backend(PAGE)

        async def scenario(browser):
            bench = Workbench(make_gateway(backend), artifact_store, preview=browser)
            await bench.generate("x")
            result = await bench.edit("#go", "remove", confirmed=False)
            await bench.close()
            return result

        assert in_browser(scenario) is None
        assert len(backend.calls) == 1
