"""Artifact history for artifact-studio.

This module keeps the most-recent-first list of generated artifacts, the
active artifact, and their durable mirror in a single key-value slot.

Example:
    >>> from studio.history import Artifact, get_artifact_store
    >>> store = get_artifact_store()
    >>> store.add(Artifact.create("Timer", "<!DOCTYPE html>..."))
    >>> print(len(store))

Features:
    - SQLite slot storage with a byte quota
    - Oldest-first eviction when the quota is exceeded
    - JSON snapshot import/export with legacy key support
    - Source image loading with type and size checks

Configuration:
    - HISTORY_SLOT: slot key (default: artifact_history)
    - HISTORY_QUOTA_BYTES: per-value limit (default: 5 MB)
    - STUDIO_DATA_DIR: directory holding history.db
"""

from .lib import (
    ArtifactStore,
    close_artifact_store,
    get_artifact_store,
    open_artifact_store,
)
from .models import (
    Artifact,
    ArtifactSnapshot,
    PersistResult,
    StorageConfig,
    make_data_uri,
    parse_data_uri,
)
from .storage import (
    InMemorySlotStorage,
    KeyValueSlot,
    QuotaExceededError,
    SQLiteSlotStorage,
    StorageError,
)
from .transfer import (
    CORRUPTED_FILE_MESSAGE,
    INVALID_FORMAT_MESSAGE,
    MAX_SOURCE_BYTES,
    ImportRejectedError,
    SourceImage,
    UnsupportedSourceError,
    export_document,
    export_filename,
    export_snapshot,
    import_snapshot,
    load_source_image,
    read_import_file,
    save_export,
)

__all__ = [
    # Store
    "ArtifactStore",
    "open_artifact_store",
    "get_artifact_store",
    "close_artifact_store",
    # Models
    "Artifact",
    "ArtifactSnapshot",
    "PersistResult",
    "StorageConfig",
    "make_data_uri",
    "parse_data_uri",
    # Storage
    "KeyValueSlot",
    "StorageError",
    "QuotaExceededError",
    "SQLiteSlotStorage",
    "InMemorySlotStorage",
    # Transfer
    "ImportRejectedError",
    "UnsupportedSourceError",
    "INVALID_FORMAT_MESSAGE",
    "CORRUPTED_FILE_MESSAGE",
    "MAX_SOURCE_BYTES",
    "SourceImage",
    "export_snapshot",
    "export_document",
    "export_filename",
    "save_export",
    "import_snapshot",
    "read_import_file",
    "load_source_image",
]
