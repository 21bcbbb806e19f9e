"""ArtifactStore for artifact-studio.

Keeps the most-recent-first history list and the active artifact in memory
and mirrors the list into one durable key-value slot on every change. When
the slot refuses a write for lack of space, the oldest entries are evicted
until it fits.
"""

import json
import logging
from pathlib import Path

from pydantic import ValidationError

from ..config import get_history_db_path
from .models import Artifact, ArtifactSnapshot, PersistResult, StorageConfig
from .storage import KeyValueSlot, QuotaExceededError, SQLiteSlotStorage

logger = logging.getLogger(__name__)


class ArtifactStore:
    """Bounded, persisted history of artifacts plus the active artifact.

    The active artifact may outlive its history entry (for example after
    eviction). While both exist they are kept value-synchronized.

    Example:
        >>> store = ArtifactStore(SQLiteSlotStorage("data/history.db"))
        >>> store.load()
        >>> store.add(Artifact.create("Timer", "<!DOCTYPE html>..."))
        >>> store.update_body(store.active.id, "<!DOCTYPE html>...v2")

    Args:
        storage: Durable slot backend.
        config: Slot name and quota. Defaults to environment settings.
    """

    def __init__(
        self,
        storage: KeyValueSlot,
        config: StorageConfig | None = None,
    ):
        self._storage = storage
        self._config = config or StorageConfig.from_environment()
        self._history: list[Artifact] = []
        self._active: Artifact | None = None
        self._last_result: PersistResult | None = None

        self._storage.initialize()

    @property
    def config(self) -> StorageConfig:
        """Get storage configuration."""
        return self._config

    @property
    def storage(self) -> KeyValueSlot:
        """Get the slot backend."""
        return self._storage

    @property
    def history(self) -> list[Artifact]:
        """Copy of the history list, most recent first."""
        return list(self._history)

    @property
    def active(self) -> Artifact | None:
        """The active artifact, if any."""
        return self._active

    @property
    def last_result(self) -> PersistResult | None:
        """Outcome of the most recent persist()."""
        return self._last_result

    def __len__(self) -> int:
        return len(self._history)

    def __contains__(self, artifact_id: object) -> bool:
        return any(entry.id == artifact_id for entry in self._history)

    def close(self) -> None:
        """Close storage connections."""
        self._storage.close()

    # =========================================================================
    # Lookup & Selection
    # =========================================================================

    def get(self, artifact_id: str) -> Artifact | None:
        """Get a history entry by id."""
        for entry in self._history:
            if entry.id == artifact_id:
                return entry
        return None

    def set_active(self, artifact_id: str) -> Artifact | None:
        """Make the history entry with ``artifact_id`` active.

        Returns:
            The newly active artifact, or None if the id is unknown (the
            active artifact is left unchanged in that case).
        """
        entry = self.get(artifact_id)
        if entry is not None:
            self._active = entry
        return entry

    def clear_active(self) -> None:
        """Deselect the active artifact."""
        self._active = None

    # =========================================================================
    # Mutation
    # =========================================================================

    def add(self, artifact: Artifact) -> PersistResult:
        """Prepend ``artifact``, make it active and persist.

        An existing entry with the same id is replaced.
        """
        self._history = [e for e in self._history if e.id != artifact.id]
        self._history.insert(0, artifact)
        self._active = artifact
        logger.info(f"Added artifact {artifact.id} ('{artifact.name}')")
        return self.persist()

    def update_body(self, artifact_id: str, new_body: str) -> bool:
        """Replace the body of the artifact with ``artifact_id``.

        Updates the history entry and the active artifact when it has that
        id, then persists.

        Returns:
            False without side effects when no artifact is active or when no
            artifact with that id exists; True otherwise.
        """
        if self._active is None:
            return False

        updated = False
        entry = self.get(artifact_id)
        if entry is not None:
            entry.body = new_body
            updated = True
        if self._active.id == artifact_id:
            self._active.body = new_body
            updated = True

        if updated:
            self.persist()
        return updated

    def remove(self, artifact_id: str) -> bool:
        """Delete a history entry and persist.

        Removing the active artifact also deselects it.
        """
        before = len(self._history)
        self._history = [e for e in self._history if e.id != artifact_id]
        if len(self._history) == before:
            return False

        if self._active is not None and self._active.id == artifact_id:
            self._active = None
        self.persist()
        return True

    def evict_oldest(self) -> Artifact | None:
        """Drop the oldest (last) history entry without persisting."""
        if not self._history:
            return None
        return self._history.pop()

    # =========================================================================
    # Persistence
    # =========================================================================

    def _serialize(self) -> str:
        return json.dumps(
            [ArtifactSnapshot.from_artifact(e).to_json_dict() for e in self._history]
        )

    def persist(self) -> PersistResult:
        """Write the whole history list to the slot.

        On quota overflow the oldest entry is evicted and the write retried,
        down to a single entry. Evictions stay applied even when the final
        write fails.

        Returns:
            PersistResult; ``saved`` is False only when a single entry still
            does not fit.
        """
        evicted: list[str] = []
        while True:
            payload = self._serialize()
            try:
                self._storage.write(self._config.slot_name, payload)
            except QuotaExceededError as e:
                if len(self._history) <= 1:
                    logger.error(
                        f"History not saved: {len(self._history)} entry exceeds "
                        f"storage quota ({e})"
                    )
                    result = PersistResult(saved=False, evicted_ids=evicted)
                    break
                victim = self.evict_oldest()
                evicted.append(victim.id)
                logger.warning(
                    f"Storage quota exceeded, evicted oldest artifact {victim.id}; "
                    f"{len(self._history)} remain"
                )
                continue

            result = PersistResult(
                saved=True,
                persisted_count=len(self._history),
                evicted_ids=evicted,
            )
            break

        self._last_result = result
        return result

    def load(self) -> int:
        """Replace in-memory history with the persisted list.

        Unreadable slots yield an empty history. Entries failing validation
        are dropped; duplicate ids keep the first occurrence. No artifact is
        active afterwards.

        Returns:
            Number of entries loaded.
        """
        self._history = []
        self._active = None

        raw = self._storage.read(self._config.slot_name)
        if not raw:
            return 0

        try:
            entries = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning(f"History slot is not valid JSON, starting empty: {e}")
            return 0

        if not isinstance(entries, list):
            logger.warning("History slot does not hold a list, starting empty")
            return 0

        seen: set[str] = set()
        for index, entry in enumerate(entries):
            try:
                snapshot = ArtifactSnapshot.model_validate(entry)
            except ValidationError as e:
                logger.debug(f"Dropping history entry {index}: {e.error_count()} errors")
                continue
            if not snapshot.id:
                logger.debug(f"Dropping history entry {index}: missing id")
                continue
            if snapshot.id in seen:
                logger.debug(f"Dropping duplicate history entry {snapshot.id}")
                continue
            seen.add(snapshot.id)
            self._history.append(snapshot.to_artifact())

        logger.info(f"Loaded {len(self._history)} artifacts from history")
        return len(self._history)


# =============================================================================
# Global Store
# =============================================================================

_global_store: ArtifactStore | None = None


def open_artifact_store(
    db_path: Path | str | None = None,
    config: StorageConfig | None = None,
) -> ArtifactStore:
    """Create a SQLite-backed store and load its history."""
    config = config or StorageConfig.from_environment()
    storage = SQLiteSlotStorage(
        db_path or get_history_db_path(),
        quota_bytes=config.quota_bytes,
    )
    store = ArtifactStore(storage, config)
    store.load()
    return store


def get_artifact_store(
    db_path: Path | str | None = None,
    config: StorageConfig | None = None,
) -> ArtifactStore:
    """Get or create the global artifact store.

    Args:
        db_path: Database path (only used on first call).
        config: Storage config (only used on first call).

    Returns:
        Global ArtifactStore instance.
    """
    global _global_store
    if _global_store is None:
        _global_store = open_artifact_store(db_path, config)
    return _global_store


def close_artifact_store() -> None:
    """Close and clear the global artifact store."""
    global _global_store
    if _global_store:
        _global_store.close()
        _global_store = None


__all__ = [
    "ArtifactStore",
    "open_artifact_store",
    "get_artifact_store",
    "close_artifact_store",
]
