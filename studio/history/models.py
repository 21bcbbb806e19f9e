"""Data models for artifact history.

This module defines the artifact record, the pydantic snapshot schema used
for persistence and file transfer, and the small result records returned by
the store.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from ..config import EnvVar, get_environment

DATA_URI_PATTERN = re.compile(
    r"^data:(?P<mime>[\w.+-]+/[\w.+-]+);base64,(?P<data>.*)$", re.S
)


def make_data_uri(mime_type: str, data: str) -> str:
    """Build ``data:<mime>;base64,<payload>`` from a base64 payload."""
    return f"data:{mime_type};base64,{data}"


def parse_data_uri(uri: str | None) -> tuple[str, str] | None:
    """Split a base64 data URI into (mime_type, payload).

    Returns:
        Tuple of MIME type and base64 payload, or None if ``uri`` is not a
        base64 data URI.
    """
    if not uri:
        return None
    match = DATA_URI_PATTERN.match(uri)
    if match is None:
        return None
    return match.group("mime"), match.group("data")


@dataclass
class Artifact:
    """A generated markup document and its provenance.

    Attributes:
        id: Opaque unique identifier.
        name: Display name.
        body: Complete HTML document. The only field mutated after creation.
        source_image: Data URI of the image/document it was generated from.
        created_at: Creation timestamp (timezone-aware).
    """

    id: str
    name: str
    body: str
    source_image: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @classmethod
    def create(
        cls,
        name: str,
        body: str,
        source_image: str | None = None,
    ) -> Artifact:
        """Factory method to create a new artifact with generated ID."""
        return cls(id=str(uuid4()), name=name, body=body, source_image=source_image)

    @property
    def source_mime_type(self) -> str | None:
        """MIME type of the source image, if any."""
        parsed = parse_data_uri(self.source_image)
        return parsed[0] if parsed else None

    @property
    def size_bytes(self) -> int:
        """Approximate serialized size in bytes."""
        return len(self.body.encode("utf-8")) + len(
            (self.source_image or "").encode("utf-8")
        )


class ArtifactSnapshot(BaseModel):
    """Serialized form of an Artifact.

    Used for the persisted history slot and for exported artifact files.
    Older files written with ``html``, ``originalImage`` and ``timestamp``
    keys are accepted on input.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str | None = None
    name: str = Field(..., min_length=1)
    body: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("body", "html"),
    )
    source_image: str | None = Field(
        default=None,
        validation_alias=AliasChoices("source_image", "originalImage"),
    )
    created_at: datetime | None = Field(
        default=None,
        validation_alias=AliasChoices("created_at", "timestamp"),
    )

    @field_validator("created_at")
    @classmethod
    def _ensure_aware(cls, value: datetime | None) -> datetime | None:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value

    @classmethod
    def from_artifact(cls, artifact: Artifact) -> ArtifactSnapshot:
        """Build a snapshot from an artifact."""
        return cls(
            id=artifact.id,
            name=artifact.name,
            body=artifact.body,
            source_image=artifact.source_image,
            created_at=artifact.created_at,
        )

    def to_artifact(self) -> Artifact:
        """Build an artifact, filling in a new id or timestamp when missing."""
        return Artifact(
            id=self.id or str(uuid4()),
            name=self.name,
            body=self.body,
            source_image=self.source_image,
            created_at=self.created_at or datetime.now(UTC),
        )

    def to_json_dict(self) -> dict[str, Any]:
        """Dump using canonical keys and JSON-compatible values."""
        return self.model_dump(mode="json")


@dataclass
class StorageConfig:
    """Configuration for history persistence.

    Attributes:
        slot_name: Key of the slot holding the serialized history.
        quota_bytes: Byte limit for a single slot value (None = unbounded).
    """

    slot_name: str = "artifact_history"
    quota_bytes: int | None = None

    @classmethod
    def from_environment(cls) -> StorageConfig:
        """Build from HISTORY_SLOT and HISTORY_QUOTA_BYTES."""
        quota = get_environment(EnvVar.HISTORY_QUOTA_BYTES)
        return cls(
            slot_name=get_environment(EnvVar.HISTORY_SLOT),
            quota_bytes=quota if quota and quota > 0 else None,
        )


@dataclass
class PersistResult:
    """Outcome of writing the history list to its slot.

    Attributes:
        saved: Whether the write eventually succeeded.
        persisted_count: Number of entries written (0 when not saved).
        evicted_ids: Ids dropped from history to fit the quota, oldest first.
    """

    saved: bool
    persisted_count: int = 0
    evicted_ids: list[str] = field(default_factory=list)

    @property
    def evicted(self) -> bool:
        """True when entries were dropped to make the write fit."""
        return bool(self.evicted_ids)


__all__ = [
    "Artifact",
    "ArtifactSnapshot",
    "StorageConfig",
    "PersistResult",
    "make_data_uri",
    "parse_data_uri",
]
