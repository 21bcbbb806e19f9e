"""In-memory slot storage, used by tests and ephemeral sessions."""

from .protocol import QuotaExceededError


class InMemorySlotStorage:
    """Dictionary-backed key-value slot storage.

    Args:
        quota_bytes: Maximum encoded size of a single value (None = unbounded).
    """

    def __init__(self, quota_bytes: int | None = None):
        self.quota_bytes = quota_bytes
        self.values: dict[str, str] = {}
        self.write_attempts = 0

    def initialize(self) -> None:
        pass

    def close(self) -> None:
        pass

    def read(self, name: str) -> str | None:
        return self.values.get(name)

    def write(self, name: str, value: str) -> None:
        self.write_attempts += 1
        size = len(value.encode("utf-8"))
        if self.quota_bytes is not None and size > self.quota_bytes:
            raise QuotaExceededError(
                f"Value for slot '{name}' is {size} bytes, quota is "
                f"{self.quota_bytes} bytes",
                size_bytes=size,
                quota_bytes=self.quota_bytes,
            )
        self.values[name] = value

    def delete(self, name: str) -> None:
        self.values.pop(name, None)


__all__ = ["InMemorySlotStorage"]
