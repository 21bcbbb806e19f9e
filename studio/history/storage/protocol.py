"""Storage protocol for history persistence.

Defines the durable key-value slot interface that all storage backends must
implement, and the errors they raise.
"""

from typing import Protocol


class StorageError(Exception):
    """Base exception for slot storage failures."""


class QuotaExceededError(StorageError):
    """Raised when a value does not fit in the available quota.

    Attributes:
        size_bytes: Size of the rejected value.
        quota_bytes: Configured limit, if known.
    """

    def __init__(
        self,
        message: str,
        size_bytes: int | None = None,
        quota_bytes: int | None = None,
    ):
        super().__init__(message)
        self.size_bytes = size_bytes
        self.quota_bytes = quota_bytes


class KeyValueSlot(Protocol):
    """Protocol for a durable store of named string values.

    All storage backends (SQLite, in-memory) must implement this interface
    to be compatible with ArtifactStore.
    """

    def initialize(self) -> None:
        """Prepare storage (create tables, directories, etc.)."""
        ...

    def close(self) -> None:
        """Release resources."""
        ...

    def read(self, name: str) -> str | None:
        """Get the value stored under ``name``.

        Returns:
            Stored value, or None when the slot is empty.
        """
        ...

    def write(self, name: str, value: str) -> None:
        """Replace the value stored under ``name``.

        Raises:
            QuotaExceededError: If the value does not fit.
            StorageError: For other write failures.
        """
        ...

    def delete(self, name: str) -> None:
        """Remove ``name``. Missing slots are ignored."""
        ...


__all__ = ["KeyValueSlot", "StorageError", "QuotaExceededError"]
