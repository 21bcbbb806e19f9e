"""Retry logic for synthesis calls.

Wraps an async unit of work and retries it on transient service errors
with exponential backoff. Backoff state lives inside each ``call`` so a
single caller can be shared by concurrent requests.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Generic, TypeVar

from ...config import get_retry_settings
from ..backend import ErrorStatus, classify_error

logger = logging.getLogger(__name__)

T = TypeVar("T")

TRANSIENT_STATUSES = frozenset({ErrorStatus.RATE_LIMITED, ErrorStatus.SERVER_ERROR})


@dataclass
class RetryConfig:
    """Configuration for retry behaviour.

    Attributes:
        max_attempts: Total attempts, the first call included.
        base_delay: Delay before the first retry (seconds). Doubles per retry.
    """

    max_attempts: int = 3
    base_delay: float = 1.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.base_delay < 0:
            raise ValueError("base_delay must not be negative")

    @classmethod
    def from_environment(cls) -> "RetryConfig":
        """Build from RETRY_MAX_ATTEMPTS and RETRY_BASE_DELAY_MS."""
        attempts, delay = get_retry_settings()
        return cls(max_attempts=attempts, base_delay=delay)

    def get_backoff_delay(self, attempt: int) -> float:
        """Delay to wait after a failed attempt.

        Args:
            attempt: Number of the attempt that just failed (1-based).

        Returns:
            ``base_delay * 2 ** (attempt - 1)`` seconds.
        """
        return self.base_delay * (2 ** (attempt - 1))


def is_transient_error(error: BaseException) -> bool:
    """True for rate-limited and server-side failures."""
    return classify_error(error) in TRANSIENT_STATUSES


class RetryingCaller(Generic[T]):
    """Runs async units of work, retrying transient failures.

    Example:
        >>> caller: RetryingCaller[str] = RetryingCaller()
        >>> text = await caller.call(lambda: backend_call("prompt"))
    """

    def __init__(
        self,
        config: RetryConfig | None = None,
        *,
        is_transient: Callable[[BaseException], bool] = is_transient_error,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    ):
        """Initialize the caller.

        Args:
            config: Attempts and base delay. Defaults to 3 attempts, 1s.
            is_transient: Predicate deciding whether an error is retried.
            sleep: Awaitable timer used between attempts.
        """
        self._config = config or RetryConfig()
        self._is_transient = is_transient
        self._sleep = sleep

    @property
    def config(self) -> RetryConfig:
        """Get the retry configuration."""
        return self._config

    async def call(self, unit_of_work: Callable[[], Awaitable[T]]) -> T:
        """Invoke ``unit_of_work`` until it succeeds or attempts run out.

        Args:
            unit_of_work: Zero-argument callable returning an awaitable.

        Returns:
            The value produced by the first successful attempt.

        Raises:
            Exception: The non-transient error, or the error of the final
                attempt, exactly as raised.
        """
        attempt = 1
        while True:
            try:
                return await unit_of_work()
            except Exception as e:
                if attempt >= self._config.max_attempts or not self._is_transient(e):
                    raise
                delay = self._config.get_backoff_delay(attempt)
                logger.warning(
                    f"Transient error on attempt {attempt}/"
                    f"{self._config.max_attempts}, retrying in {delay:.2f}s: {e}"
                )
                await self._sleep(delay)
                attempt += 1


__all__ = [
    "RetryConfig",
    "RetryingCaller",
    "TRANSIENT_STATUSES",
    "is_transient_error",
]
