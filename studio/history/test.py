"""Tests for artifact history: models, storage, store and transfer."""

import base64
import json
from datetime import UTC, datetime

import pytest

from .lib import (
    ArtifactStore,
    close_artifact_store,
    get_artifact_store,
    open_artifact_store,
)
from .models import (
    Artifact,
    ArtifactSnapshot,
    StorageConfig,
    make_data_uri,
    parse_data_uri,
)
from .storage import (
    InMemorySlotStorage,
    QuotaExceededError,
    SQLiteSlotStorage,
)
from .transfer import (
    CORRUPTED_FILE_MESSAGE,
    INVALID_FORMAT_MESSAGE,
    ImportRejectedError,
    UnsupportedSourceError,
    export_document,
    export_filename,
    export_snapshot,
    import_snapshot,
    load_source_image,
    read_import_file,
    save_export,
)

SLOT = "test_history"


def _artifact(name: str, size: int = 10) -> Artifact:
    return Artifact.create(name, "x" * size)


def _store(quota: int | None = None) -> ArtifactStore:
    return ArtifactStore(InMemorySlotStorage(quota), StorageConfig(slot_name=SLOT))


def _persisted_ids(store: ArtifactStore) -> list[str]:
    return [e["id"] for e in json.loads(store.storage.read(SLOT))]


# =============================================================================
# Models
# =============================================================================


class TestArtifactModels:
    """Tests for Artifact and ArtifactSnapshot."""

    @pytest.mark.unit
    def test_create_assigns_unique_ids(self):
        """Factory generates distinct ids and aware timestamps."""
        a, b = _artifact("a"), _artifact("b")
        assert a.id != b.id
        assert a.created_at.tzinfo is not None

    @pytest.mark.unit
    def test_data_uri_helpers(self):
        """Data URIs round-trip through the helpers."""
        uri = make_data_uri("image/png", "QUJD")
        assert uri == "data:image/png;base64,QUJD"
        assert parse_data_uri(uri) == ("image/png", "QUJD")
        assert parse_data_uri("https://example.com/x.png") is None
        assert parse_data_uri(None) is None

    @pytest.mark.unit
    def test_source_mime_type(self):
        """MIME type is read from the source image data URI."""
        artifact = Artifact.create("a", "b", make_data_uri("application/pdf", "JV"))
        assert artifact.source_mime_type == "application/pdf"

    @pytest.mark.unit
    def test_snapshot_canonical_keys(self):
        """Snapshots dump id/name/body/source_image/created_at."""
        artifact = _artifact("a")
        data = ArtifactSnapshot.from_artifact(artifact).to_json_dict()
        assert set(data) == {"id", "name", "body", "source_image", "created_at"}
        assert data["body"] == artifact.body

    @pytest.mark.unit
    def test_snapshot_legacy_keys(self):
        """html/originalImage/timestamp are accepted as aliases."""
        snapshot = ArtifactSnapshot.model_validate(
            {
                "id": "legacy",
                "name": "Old",
                "html": "<p>hi</p>",
                "originalImage": "data:image/png;base64,QUJD",
                "timestamp": "2024-05-01T10:00:00.000Z",
            }
        )
        artifact = snapshot.to_artifact()
        assert artifact.body == "<p>hi</p>"
        assert artifact.source_image.startswith("data:image/png")
        assert artifact.created_at == datetime(2024, 5, 1, 10, tzinfo=UTC)

    @pytest.mark.unit
    def test_naive_timestamp_becomes_utc(self):
        """Naive timestamps are interpreted as UTC."""
        snapshot = ArtifactSnapshot.model_validate(
            {"name": "n", "body": "b", "created_at": "2024-05-01T10:00:00"}
        )
        assert snapshot.created_at.tzinfo is not None


# =============================================================================
# Storage
# =============================================================================


class TestSlotStorage:
    """Tests for slot storage backends."""

    @pytest.mark.unit
    def test_memory_quota(self):
        """In-memory storage rejects oversized values."""
        storage = InMemorySlotStorage(quota_bytes=5)
        storage.write("a", "12345")
        with pytest.raises(QuotaExceededError) as info:
            storage.write("a", "123456")
        assert info.value.size_bytes == 6
        assert storage.read("a") == "12345"

    @pytest.mark.unit
    def test_sqlite_roundtrip(self, tmp_path):
        """SQLite storage persists values across connections."""
        path = tmp_path / "nested" / "history.db"
        storage = SQLiteSlotStorage(path)
        storage.initialize()
        storage.write("slot", "value-1")
        storage.write("slot", "value-2")
        storage.close()

        reopened = SQLiteSlotStorage(path)
        reopened.initialize()
        assert reopened.read("slot") == "value-2"
        assert reopened.size_of("slot") == 7
        reopened.delete("slot")
        assert reopened.read("slot") is None
        reopened.close()

    @pytest.mark.unit
    def test_sqlite_quota(self):
        """SQLite storage enforces the byte quota."""
        storage = SQLiteSlotStorage(":memory:", quota_bytes=4)
        storage.initialize()
        with pytest.raises(QuotaExceededError):
            storage.write("slot", "héllo")
        assert storage.read("slot") is None

    @pytest.mark.unit
    def test_sqlite_requires_initialize(self, tmp_path):
        """Using storage before initialize() is an error."""
        storage = SQLiteSlotStorage(tmp_path / "x.db")
        with pytest.raises(RuntimeError):
            storage.read("slot")


# =============================================================================
# ArtifactStore
# =============================================================================


class TestArtifactStore:
    """Tests for ArtifactStore history operations."""

    @pytest.mark.unit
    def test_add_prepends_and_activates(self):
        """New artifacts go first and become active."""
        store = _store()
        first, second = _artifact("first"), _artifact("second")
        store.add(first)
        result = store.add(second)

        assert result.saved
        assert [a.id for a in store.history] == [second.id, first.id]
        assert store.active is second
        assert _persisted_ids(store) == [second.id, first.id]

    @pytest.mark.unit
    def test_add_existing_id_moves_to_front(self):
        """History stays unique by id."""
        store = _store()
        a, b = _artifact("a"), _artifact("b")
        store.add(a)
        store.add(b)
        store.add(a)
        assert [x.id for x in store.history] == [a.id, b.id]

    @pytest.mark.unit
    def test_update_body_syncs_history(self):
        """Active artifact and its history entry share the new body."""
        store = _store()
        artifact = _artifact("a")
        store.add(artifact)

        assert store.update_body(artifact.id, "new body")
        assert store.active.body == "new body"
        assert store.get(artifact.id).body == "new body"
        assert json.loads(store.storage.read(SLOT))[0]["body"] == "new body"

    @pytest.mark.unit
    def test_update_body_without_active(self):
        """No active artifact means no-op returning False."""
        store = _store()
        artifact = _artifact("a")
        store.add(artifact)
        store.clear_active()
        writes = store.storage.write_attempts

        assert store.update_body(artifact.id, "changed") is False
        assert store.get(artifact.id).body == artifact.body
        assert store.storage.write_attempts == writes

    @pytest.mark.unit
    def test_update_body_non_active_entry(self):
        """A history entry other than the active one can be updated by id."""
        store = _store()
        a, b = _artifact("a"), _artifact("b")
        store.add(a)
        store.add(b)
        assert store.update_body(a.id, "late result")
        assert store.get(a.id).body == "late result"
        assert store.active.body == b.body

    @pytest.mark.unit
    def test_set_active_and_unknown(self):
        """Unknown ids leave the active artifact unchanged."""
        store = _store()
        a, b = _artifact("a"), _artifact("b")
        store.add(a)
        store.add(b)
        assert store.set_active(a.id) is a
        assert store.set_active("missing") is None
        assert store.active is a

    @pytest.mark.unit
    def test_remove(self):
        """Removing the active artifact deselects it."""
        store = _store()
        a = _artifact("a")
        store.add(a)
        assert store.remove(a.id)
        assert store.active is None
        assert len(store) == 0
        assert store.remove(a.id) is False

    @pytest.mark.unit
    def test_evict_oldest(self):
        """Eviction drops the last entry."""
        store = _store()
        a, b = _artifact("a"), _artifact("b")
        store.add(a)
        store.add(b)
        assert store.evict_oldest() is a
        assert [x.id for x in store.history] == [b.id]
        assert _store().evict_oldest() is None


class TestArtifactStorePersistence:
    """Tests for quota-driven eviction and loading."""

    @pytest.mark.unit
    def test_eviction_under_quota(self):
        """Oldest entries are dropped until the write fits."""
        sample = ArtifactSnapshot.from_artifact(_artifact("a", 500)).to_json_dict()
        entry_size = len(json.dumps([sample]))
        store = _store(quota=entry_size * 2 + 50)
        artifacts = [_artifact(f"a{i}", 500) for i in range(4)]
        results = [store.add(a) for a in artifacts]

        final = results[-1]
        assert final.saved
        assert final.evicted
        assert len(store) < 4
        assert store.history[0].id == artifacts[-1].id
        # Persisted list is a prefix of the most-recent-first order.
        assert _persisted_ids(store) == [
            a.id for a in reversed(artifacts)
        ][: len(store)]
        assert artifacts[0].id not in store

    @pytest.mark.unit
    def test_active_entry_evicted_during_refinement(self):
        """An evicted active artifact keeps receiving body updates."""
        sample = ArtifactSnapshot.from_artifact(_artifact("a", 500)).to_json_dict()
        store = _store(quota=len(json.dumps([sample])) * 2 + 50)
        old, new = _artifact("old", 500), _artifact("new", 500)
        store.add(old)
        store.add(new)
        store.set_active(old.id)

        # The grown body pushes the oldest entry, the active one, out of history
        result = store.update_body(old.id, "y" * 900)
        assert result
        assert store.last_result.evicted_ids == [old.id]
        assert old.id not in store
        assert store.active.id == old.id
        assert store.active.body == "y" * 900

        # Later results only touch the active artifact
        assert store.update_body(old.id, "refined again")
        assert store.active.body == "refined again"
        assert store.get(new.id).body == new.body
        assert _persisted_ids(store) == [new.id]

    @pytest.mark.unit
    def test_single_entry_too_large(self, caplog):
        """Failure is reported only when one entry still does not fit."""
        store = _store(quota=400)
        small = _artifact("small", 1)
        store.add(small)
        huge = _artifact("huge", 1000)

        with caplog.at_level("ERROR"):
            result = store.add(huge)

        assert result.saved is False
        assert result.evicted_ids == [small.id]
        assert [a.id for a in store.history] == [huge.id]
        assert store.active is huge
        assert "History not saved" in caplog.text

    @pytest.mark.unit
    def test_load_roundtrip(self):
        """History survives a reload, with no active artifact."""
        storage = InMemorySlotStorage()
        store = ArtifactStore(storage, StorageConfig(slot_name=SLOT))
        a, b = _artifact("a"), _artifact("b")
        store.add(a)
        store.add(b)

        reloaded = ArtifactStore(storage, StorageConfig(slot_name=SLOT))
        assert reloaded.load() == 2
        assert [x.id for x in reloaded.history] == [b.id, a.id]
        assert reloaded.active is None

    @pytest.mark.unit
    @pytest.mark.parametrize("raw", ["not json", '{"a": 1}', "", "null"])
    def test_load_unreadable(self, raw):
        """Unreadable slots yield an empty history."""
        storage = InMemorySlotStorage()
        storage.values[SLOT] = raw
        store = ArtifactStore(storage, StorageConfig(slot_name=SLOT))
        assert store.load() == 0
        assert store.history == []

    @pytest.mark.unit
    def test_load_drops_invalid_and_duplicates(self):
        """Invalid entries are dropped and duplicate ids keep the first."""
        storage = InMemorySlotStorage()
        storage.values[SLOT] = json.dumps(
            [
                {"id": "1", "name": "one", "body": "<p>1</p>"},
                {"id": "2", "name": "", "body": "<p>2</p>"},
                {"name": "no id", "body": "<p>x</p>"},
                {"id": "1", "name": "dup", "body": "<p>dup</p>"},
                "garbage",
                {"id": "3", "name": "legacy", "html": "<p>3</p>"},
            ]
        )
        store = ArtifactStore(storage, StorageConfig(slot_name=SLOT))
        assert store.load() == 2
        assert [(a.id, a.name) for a in store.history] == [
            ("1", "one"),
            ("3", "legacy"),
        ]

    @pytest.mark.unit
    def test_open_artifact_store(self, tmp_path):
        """SQLite-backed store persists across opens."""
        db = tmp_path / "history.db"
        config = StorageConfig(slot_name=SLOT)
        store = open_artifact_store(db, config)
        artifact = _artifact("persisted")
        store.add(artifact)
        store.close()

        reopened = open_artifact_store(db, config)
        assert reopened.get(artifact.id).name == "persisted"
        reopened.close()

    @pytest.mark.unit
    def test_global_store_lifecycle(self, tmp_path, monkeypatch):
        """The global store is created once and reopened after closing."""
        monkeypatch.setenv("STUDIO_DATA_DIR", str(tmp_path))
        close_artifact_store()

        store = get_artifact_store()
        assert get_artifact_store() is store
        store.add(_artifact("kept"))

        close_artifact_store()
        reopened = get_artifact_store()
        assert reopened is not store
        assert [a.name for a in reopened.history] == ["kept"]
        close_artifact_store()


# =============================================================================
# Transfer
# =============================================================================


class TestExportImport:
    """Tests for artifact file import/export."""

    @pytest.mark.unit
    def test_export_filename(self):
        """Names are slugged per character and lower-cased."""
        assert export_filename("My App!") == "my_app__artifact.json"
        assert export_filename("My App!", document=True) == "my_app_.html"

    @pytest.mark.unit
    def test_round_trip_preserves_fields(self):
        """Export then import keeps id, name and body."""
        artifact = Artifact.create("Demo", "<p>x</p>", make_data_uri("image/png", "QQ"))
        imported = import_snapshot(export_snapshot(artifact))
        assert imported.id == artifact.id
        assert imported.name == artifact.name
        assert imported.body == artifact.body
        assert imported.source_image == artifact.source_image

    @pytest.mark.unit
    def test_missing_id_gets_fresh_one(self):
        """Files without an id get a newly generated one."""
        imported = import_snapshot('{"name": "n", "html": "<p/>"}')
        assert imported.id
        assert imported.body == "<p/>"

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "text",
        ['{"name": "n"}', '{"html": "<p/>"}', '{"name": "", "body": "b"}', "[1, 2]"],
    )
    def test_invalid_format(self, text):
        """Missing body or name is rejected as invalid format."""
        with pytest.raises(ImportRejectedError, match=INVALID_FORMAT_MESSAGE):
            import_snapshot(text)

    @pytest.mark.unit
    def test_corrupted(self):
        """Non-JSON content is rejected as corrupted."""
        with pytest.raises(ImportRejectedError) as info:
            import_snapshot("{not json")
        assert str(info.value) == CORRUPTED_FILE_MESSAGE

    @pytest.mark.unit
    def test_save_and_read_files(self, tmp_path):
        """Exports land in the directory under derived names."""
        artifact = Artifact.create("Board Game", "<p>game</p>")
        json_path = save_export(artifact, tmp_path)
        html_path = save_export(artifact, tmp_path, document=True)

        assert json_path.name == "board_game_artifact.json"
        assert html_path.read_text(encoding="utf-8") == export_document(artifact)
        assert read_import_file(json_path).id == artifact.id

    @pytest.mark.unit
    def test_read_missing_file(self, tmp_path):
        """Unreadable files are rejected, not raised as OSError."""
        with pytest.raises(ImportRejectedError):
            read_import_file(tmp_path / "missing.json")


class TestSourceImages:
    """Tests for source image loading."""

    @pytest.mark.unit
    def test_loads_png(self, tmp_path):
        """Supported files are base64 encoded with their MIME type."""
        path = tmp_path / "sketch.PNG"
        path.write_bytes(b"\x89PNG data")
        source = load_source_image(path)
        assert source.mime_type == "image/png"
        assert base64.b64decode(source.data) == b"\x89PNG data"
        assert source.data_uri.startswith("data:image/png;base64,")

    @pytest.mark.unit
    def test_rejects_type(self, tmp_path):
        """Unsupported extensions are rejected."""
        path = tmp_path / "notes.txt"
        path.write_text("hi")
        with pytest.raises(UnsupportedSourceError, match="Unsupported format"):
            load_source_image(path)

    @pytest.mark.unit
    def test_rejects_size(self, tmp_path):
        """Files over 15MB are rejected."""
        path = tmp_path / "big.pdf"
        with path.open("wb") as handle:
            handle.truncate(15 * 1024 * 1024 + 1)
        with pytest.raises(UnsupportedSourceError, match="too large"):
            load_source_image(path)
