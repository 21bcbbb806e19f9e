"""Root pytest configuration and fixtures.

This module provides:
- Environment setup (loads .env)
- A scripted synthesis backend for offline tests
- In-memory history storage fixtures
- A headless preview browser runner
- Auto-skipping of tests that need live provider keys or Chromium
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

import pytest
from dotenv import load_dotenv

from studio.config import get_available_llm_providers
from studio.history import ArtifactStore, InMemorySlotStorage, StorageConfig
from studio.llm.backend import (
    GenerationConfig,
    GenerationResult,
    InlineImage,
    LLMBackend,
)
from studio.llm.synthesis import RetryConfig, RetryingCaller, SynthesisGateway
from studio.overlay import PreviewBrowser, PreviewError
from studio.versioning import VersionController

# Load environment variables from .env file
load_dotenv()


# =============================================================================
# Scripted Backend
# =============================================================================


class ScriptedBackend(LLMBackend):
    """Synthesis backend that replays a script of responses.

    Each script entry is either a string (returned as content) or an
    exception instance (raised). When the script runs out, the last entry
    is repeated. Every call is recorded in ``calls``.
    """

    def __init__(self, script: list[str | BaseException] | None = None):
        self.script: list[str | BaseException] = list(
            script or ["<!DOCTYPE html><html><body><h1>Demo</h1></body></html>"]
        )
        self.calls: list[dict[str, Any]] = []

    @property
    def model_name(self) -> str:
        return "scripted"

    @property
    def provider(self) -> str:
        return "mock"

    async def generate(
        self,
        prompt: str,
        *,
        system_prompt: str | None = None,
        image: InlineImage | None = None,
        image_first: bool = False,
        config: GenerationConfig | None = None,
    ) -> GenerationResult:
        self.calls.append(
            {
                "prompt": prompt,
                "system_prompt": system_prompt,
                "image": image,
                "image_first": image_first,
                "config": config,
            }
        )
        index = min(len(self.calls) - 1, len(self.script) - 1)
        entry = self.script[index]
        if isinstance(entry, BaseException):
            raise entry
        return GenerationResult(
            content=entry,
            finish_reason="stop",
            usage={"prompt_tokens": 0, "completion_tokens": 0, "total_tokens": 0},
            model=self.model_name,
        )


class SleepRecorder:
    """Async stand-in for asyncio.sleep that records requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


# =============================================================================
# Pytest Hooks
# =============================================================================


def _chromium_launches() -> bool:
    async def _launch() -> None:
        async with PreviewBrowser():
            pass

    try:
        asyncio.run(_launch())
    except (PreviewError, OSError):
        return False
    return True


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]):
    """Auto-skip ``live`` tests without a provider key and ``browser`` tests
    when Chromium cannot be launched."""
    if not get_available_llm_providers():
        skip_live = pytest.mark.skip(reason="No synthesis provider API key configured")
        for item in items:
            if "live" in item.keywords:
                item.add_marker(skip_live)

    browser_items = [item for item in items if "browser" in item.keywords]
    if browser_items and not _chromium_launches():
        skip_browser = pytest.mark.skip(reason="Chromium unavailable (playwright install chromium)")
        for item in browser_items:
            item.add_marker(skip_browser)


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def scripted_backend() -> Callable[..., ScriptedBackend]:
    """Factory for ScriptedBackend instances."""

    def _make(*script: str | BaseException) -> ScriptedBackend:
        return ScriptedBackend(list(script) if script else None)

    return _make


@pytest.fixture
def no_sleep() -> SleepRecorder:
    """Sleep replacement that returns immediately."""
    return SleepRecorder()


@pytest.fixture
def make_gateway(no_sleep: SleepRecorder) -> Callable[..., SynthesisGateway]:
    """Build a gateway whose retries never actually wait."""

    def _make(backend: LLMBackend, max_attempts: int = 3) -> SynthesisGateway:
        caller: RetryingCaller[str] = RetryingCaller(
            RetryConfig(max_attempts=max_attempts, base_delay=1.0),
            sleep=no_sleep,
        )
        return SynthesisGateway(backend, retry=caller)

    return _make


@pytest.fixture
def in_browser() -> Callable[[Callable[[PreviewBrowser], Awaitable[Any]]], Any]:
    """Run ``scenario(browser)`` on a fresh event loop with a live browser.

    Playwright objects belong to the loop that created them, so each
    scenario gets its own browser and closes it before returning.
    """

    def _run(scenario: Callable[[PreviewBrowser], Awaitable[Any]]) -> Any:
        async def _main() -> Any:
            async with PreviewBrowser() as browser:
                return await scenario(browser)

        return asyncio.run(_main())

    return _run


@pytest.fixture
def memory_slot() -> InMemorySlotStorage:
    """Unbounded in-memory slot."""
    return InMemorySlotStorage()


@pytest.fixture
def artifact_store(memory_slot: InMemorySlotStorage) -> ArtifactStore:
    """ArtifactStore backed by the in-memory slot."""
    return ArtifactStore(memory_slot, StorageConfig(slot_name="test_history"))


@pytest.fixture
def version_controller(artifact_store: ArtifactStore) -> VersionController:
    """VersionController over the shared artifact store."""
    return VersionController(artifact_store)
