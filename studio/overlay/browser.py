"""Headless Chromium that renders artifact previews.

One browser process is shared by every preview; each load gets its own
context, so no cookies, storage or cache carry over between artifacts.
"""

import asyncio
import logging

from playwright.async_api import Browser, BrowserContext, Playwright, async_playwright
from playwright.async_api import Error as PlaywrightError

from ..config import get_preview_settings

logger = logging.getLogger(__name__)

LAUNCH_ARGS = ["--disable-gpu", "--no-sandbox", "--disable-dev-shm-usage"]
VIEWPORT = {"width": 1280, "height": 800}


class PreviewError(Exception):
    """The preview browser or page could not be started or driven."""


class PreviewBrowser:
    """Lazily launched Chromium instance.

    Playwright objects are bound to the event loop that created them, so a
    PreviewBrowser must be started and closed on the same loop.

    Args:
        headless: Run without a window. Defaults to PREVIEW_HEADLESS.
        timeout_ms: Default timeout for page operations. Defaults to
            PREVIEW_TIMEOUT_MS.

    Example:
        >>> async with PreviewBrowser() as browser:
        ...     context = await browser.new_context()
        ...     page = await context.new_page()
    """

    def __init__(self, *, headless: bool | None = None, timeout_ms: int | None = None):
        default_timeout, default_headless = get_preview_settings()
        self.headless = default_headless if headless is None else headless
        self.timeout_ms = timeout_ms or default_timeout
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._lock: asyncio.Lock | None = None

    @property
    def running(self) -> bool:
        return self._browser is not None and self._browser.is_connected()

    async def start(self) -> Browser:
        """Launch Chromium if it is not running yet.

        Raises:
            PreviewError: If Chromium cannot be launched.
        """
        if self._lock is None:
            self._lock = asyncio.Lock()
        async with self._lock:
            if self.running:
                return self._browser
            try:
                if self._playwright is None:
                    self._playwright = await async_playwright().start()
                self._browser = await self._playwright.chromium.launch(
                    headless=self.headless, args=LAUNCH_ARGS
                )
            except PlaywrightError as e:
                raise PreviewError(
                    f"Could not launch Chromium ({e}). Run: playwright install chromium"
                ) from e
            logger.info(f"Preview browser launched (chromium {self._browser.version})")
            return self._browser

    async def new_context(self) -> BrowserContext:
        """Open an isolated context with no storage state."""
        browser = await self.start()
        context = await browser.new_context(
            viewport=VIEWPORT,
            storage_state=None,
            service_workers="block",
        )
        context.set_default_timeout(self.timeout_ms)
        return context

    async def close(self) -> None:
        if self._browser is not None:
            await self._browser.close()
            self._browser = None
        if self._playwright is not None:
            await self._playwright.stop()
            self._playwright = None
            logger.debug("Preview browser stopped")

    async def __aenter__(self) -> "PreviewBrowser":
        await self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()


# =============================================================================
# Global Instance
# =============================================================================

_browser: PreviewBrowser | None = None


def get_preview_browser() -> PreviewBrowser:
    """Get the process-wide preview browser. Launching happens on first use."""
    global _browser
    if _browser is None:
        _browser = PreviewBrowser()
    return _browser


async def close_preview_browser() -> None:
    global _browser
    if _browser is not None:
        await _browser.close()
        _browser = None


__all__ = [
    "PreviewBrowser",
    "PreviewError",
    "get_preview_browser",
    "close_preview_browser",
    "LAUNCH_ARGS",
]
