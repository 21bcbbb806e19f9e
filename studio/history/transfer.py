"""Artifact import/export and source image loading.

Everything that crosses the filesystem boundary for a single artifact:
JSON snapshots, bare HTML documents and uploaded source images.
"""

import base64
import json
import logging
import re
from dataclasses import dataclass
from pathlib import Path

from pydantic import ValidationError

from .models import Artifact, ArtifactSnapshot, make_data_uri

logger = logging.getLogger(__name__)

INVALID_FORMAT_MESSAGE = "Invalid artifact file format."
CORRUPTED_FILE_MESSAGE = "Failed to import artifact. The file might be corrupted."

MAX_SOURCE_BYTES = 15 * 1024 * 1024

SOURCE_MIME_TYPES: dict[str, str] = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".webp": "image/webp",
    ".heic": "image/heic",
    ".pdf": "application/pdf",
}


class ImportRejectedError(Exception):
    """Raised when an artifact file cannot be imported."""


class UnsupportedSourceError(Exception):
    """Raised when a source image has the wrong type or size."""


# =============================================================================
# Export
# =============================================================================


def export_snapshot(artifact: Artifact) -> str:
    """Serialize an artifact to a pretty-printed JSON snapshot."""
    return json.dumps(
        ArtifactSnapshot.from_artifact(artifact).to_json_dict(),
        indent=2,
    )


def export_document(artifact: Artifact) -> str:
    """Return the bare HTML document of an artifact."""
    return artifact.body


def export_filename(name: str, *, document: bool = False) -> str:
    """Derive a download file name from an artifact name.

    Every character outside ``[a-z0-9]`` (case-insensitive) becomes ``_``
    and the result is lower-cased.

    Example:
        >>> export_filename("My App!")
        'my_app__artifact.json'
        >>> export_filename("My App!", document=True)
        'my_app_.html'
    """
    slug = re.sub(r"[^a-z0-9]", "_", name, flags=re.IGNORECASE).lower()
    return f"{slug}.html" if document else f"{slug}_artifact.json"


def save_export(
    artifact: Artifact,
    directory: Path | str,
    *,
    document: bool = False,
) -> Path:
    """Write an export file into ``directory``.

    Returns:
        Path of the written file.
    """
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / export_filename(artifact.name, document=document)
    content = export_document(artifact) if document else export_snapshot(artifact)
    path.write_text(content, encoding="utf-8")
    logger.info(f"Exported artifact {artifact.id} to {path}")
    return path


# =============================================================================
# Import
# =============================================================================


def import_snapshot(text: str | bytes) -> Artifact:
    """Parse an exported artifact file.

    The ``id`` is kept when present, otherwise a new one is assigned.

    Raises:
        ImportRejectedError: If the content is not JSON, or lacks a
            non-empty ``body``/``html`` and ``name``.
    """
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        logger.warning(f"Artifact import failed to parse: {e}")
        raise ImportRejectedError(CORRUPTED_FILE_MESSAGE) from e

    if not isinstance(data, dict):
        raise ImportRejectedError(INVALID_FORMAT_MESSAGE)

    try:
        snapshot = ArtifactSnapshot.model_validate(data)
    except ValidationError as e:
        logger.warning(f"Artifact import rejected: {e.error_count()} validation errors")
        raise ImportRejectedError(INVALID_FORMAT_MESSAGE) from e

    return snapshot.to_artifact()


def read_import_file(path: Path | str) -> Artifact:
    """Read and parse an exported artifact file from disk.

    Raises:
        ImportRejectedError: If the file cannot be read or parsed.
    """
    try:
        raw = Path(path).read_bytes()
    except OSError as e:
        raise ImportRejectedError(CORRUPTED_FILE_MESSAGE) from e
    return import_snapshot(raw)


# =============================================================================
# Source Images
# =============================================================================


@dataclass(frozen=True)
class SourceImage:
    """An uploaded image or document ready to send for synthesis.

    Attributes:
        file_name: Original file name.
        mime_type: Detected MIME type.
        data: Base64 payload without prefix.
    """

    file_name: str
    mime_type: str
    data: str

    @property
    def data_uri(self) -> str:
        """The payload as a data URI."""
        return make_data_uri(self.mime_type, self.data)


def load_source_image(path: Path | str) -> SourceImage:
    """Load and encode a source image or PDF.

    Accepts JPEG, PNG, WebP, HEIC and PDF up to 15 MB.

    Raises:
        UnsupportedSourceError: For other types or larger files.
        FileNotFoundError: If ``path`` does not exist.
    """
    path = Path(path)
    mime_type = SOURCE_MIME_TYPES.get(path.suffix.lower())
    if mime_type is None:
        raise UnsupportedSourceError(
            f"Unsupported format ({path.suffix or 'Unknown'}). "
            "Please upload JPEG, PNG, WebP, HEIC or PDF."
        )

    size = path.stat().st_size
    if size > MAX_SOURCE_BYTES:
        raise UnsupportedSourceError(
            f"File too large ({size / 1024 / 1024:.2f}MB). Limit is 15MB."
        )

    data = base64.b64encode(path.read_bytes()).decode("ascii")
    return SourceImage(file_name=path.name, mime_type=mime_type, data=data)


__all__ = [
    "ImportRejectedError",
    "UnsupportedSourceError",
    "INVALID_FORMAT_MESSAGE",
    "CORRUPTED_FILE_MESSAGE",
    "MAX_SOURCE_BYTES",
    "SOURCE_MIME_TYPES",
    "SourceImage",
    "export_snapshot",
    "export_document",
    "export_filename",
    "save_export",
    "import_snapshot",
    "read_import_file",
    "load_source_image",
]
