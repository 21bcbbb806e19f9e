"""Storage backends for history persistence."""

from .memory import InMemorySlotStorage
from .protocol import KeyValueSlot, QuotaExceededError, StorageError
from .sqlite import SQLiteSlotStorage

__all__ = [
    "KeyValueSlot",
    "StorageError",
    "QuotaExceededError",
    "SQLiteSlotStorage",
    "InMemorySlotStorage",
]
