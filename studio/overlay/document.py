"""Rendered artifact documents.

An artifact body is loaded into a Chromium page inside its own browser
context, so scripts run, stylesheets cascade and media queries apply the
way they do in a preview frame. Pointer input is dispatched through the
page; anything page scripts push onto the event queue is handed to the
registered event listeners after each dispatch.
"""

from __future__ import annotations

import html
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from playwright.async_api import BrowserContext, Locator, Page
from playwright.async_api import Error as PlaywrightError

from .browser import PreviewBrowser, PreviewError, get_preview_browser

logger = logging.getLogger(__name__)

SANDBOX_FLAGS: tuple[str, ...] = (
    "allow-scripts",
    "allow-forms",
    "allow-popups",
    "allow-modals",
)

# Page global that page scripts append event payloads to
EVENT_QUEUE = "__studioEvents"

# Properties read from getComputedStyle, in report order
STYLE_PROPERTIES: tuple[str, ...] = (
    "color",
    "background-color",
    "font-size",
    "font-weight",
    "font-family",
    "padding",
    "margin",
    "border-radius",
    "border",
    "display",
    "position",
)

_READ_STYLE = """(element, names) => {
    const computed = window.getComputedStyle(element);
    return Object.fromEntries(names.map((name) => [name, computed.getPropertyValue(name)]));
}"""

_CREATE_QUEUE = f"() => {{ window.{EVENT_QUEUE} = window.{EVENT_QUEUE} || []; }}"
_DRAIN_QUEUE = f"() => (window.{EVENT_QUEUE} || []).splice(0)"


@dataclass(frozen=True)
class ComputedStyle:
    """Computed values of the style properties reported for an element.

    Values are what the browser returns, so colors read ``rgb(...)`` and
    lengths are resolved to pixels.
    """

    color: str
    background_color: str
    font_size: str
    font_weight: str
    font_family: str
    padding: str
    margin: str
    border_radius: str
    border: str
    display: str
    position: str

    @classmethod
    def from_css(cls, values: dict[str, str]) -> ComputedStyle:
        """Build from a mapping keyed by CSS property name."""
        return cls(
            **{name.replace("-", "_"): str(values.get(name, "")) for name in STYLE_PROPERTIES}
        )

    def as_dict(self) -> dict[str, str]:
        return {name: getattr(self, name) for name in self.__dataclass_fields__}


LoadListener = Callable[[], Awaitable[None]]
EventListener = Callable[[dict[str, Any]], None]


class RenderedDocument:
    """An artifact body rendered in an isolated browser page.

    Args:
        browser: Browser to render in. The process-wide preview browser is
            used when None.

    Example:
        >>> doc = RenderedDocument()
        >>> await doc.load("<button class='cta'>Go</button>")
        >>> (await doc.computed_style("button.cta")).display
        'inline-block'
        >>> await doc.close()
    """

    def __init__(self, browser: PreviewBrowser | None = None):
        self._browser = browser
        self._context: BrowserContext | None = None
        self._page: Page | None = None
        self._load_listeners: list[LoadListener] = []
        self._event_listeners: list[EventListener] = []
        self.source = ""
        self.ready_state = "uninitialized"

    @property
    def page(self) -> Page | None:
        return self._page

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def add_load_listener(self, listener: LoadListener) -> None:
        self._load_listeners.append(listener)

    def remove_load_listener(self, listener: LoadListener) -> None:
        if listener in self._load_listeners:
            self._load_listeners.remove(listener)

    def add_event_listener(self, listener: EventListener) -> None:
        self._event_listeners.append(listener)

    def remove_event_listener(self, listener: EventListener) -> None:
        if listener in self._event_listeners:
            self._event_listeners.remove(listener)

    async def load(self, source: str) -> None:
        """Render ``source`` in a fresh context, replacing the current page.

        Load listeners run once the page's load event has fired.

        Raises:
            PreviewError: If the page cannot be created or loaded.
        """
        await self._close_page()
        self.source = source
        self.ready_state = "loading"

        browser = self._browser or get_preview_browser()
        try:
            self._context = await browser.new_context()
            self._page = await self._context.new_page()
            self._page.on("pageerror", lambda error: logger.debug(f"Preview script error: {error}"))
            await self._page.set_content(source, wait_until="load")
            await self._page.evaluate(_CREATE_QUEUE)
        except PlaywrightError as e:
            raise PreviewError(f"Preview failed to load: {e}") from e

        self.ready_state = "complete"
        logger.debug(f"Preview loaded ({len(source)} chars)")
        for listener in list(self._load_listeners):
            await listener()

    async def close(self) -> None:
        await self._close_page()
        self.ready_state = "uninitialized"

    async def _close_page(self) -> None:
        context = self._context
        self._context = None
        self._page = None
        if context is not None:
            try:
                await context.close()
            except PlaywrightError as e:
                logger.debug(f"Preview context already gone: {e}")

    def _require_page(self) -> Page:
        if self._page is None or self.ready_state != "complete":
            raise PreviewError("Preview is not loaded")
        return self._page

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    async def count(self, selector: str) -> int:
        """Number of elements matching ``selector``.

        Raises:
            ValueError: If the selector cannot be parsed.
        """
        page = self._require_page()
        try:
            return await page.locator(selector).count()
        except PlaywrightError as e:
            raise ValueError(f"Unsupported selector: {selector!r}") from e

    async def exists(self, selector: str) -> bool:
        return await self.count(selector) > 0

    async def _first(self, selector: str) -> Locator | None:
        if not await self.exists(selector):
            return None
        return self._require_page().locator(selector).first

    async def inner_text(self, selector: str) -> str | None:
        locator = await self._first(selector)
        if locator is None:
            return None
        return await locator.inner_text()

    async def computed_style(self, selector: str) -> ComputedStyle | None:
        """Computed style of the first element matching ``selector``."""
        locator = await self._first(selector)
        if locator is None:
            return None
        values = await locator.evaluate(_READ_STYLE, list(STYLE_PROPERTIES))
        return ComputedStyle.from_css(values)

    async def evaluate(self, expression: str, arg: Any = None) -> Any:
        """Run a script in the page and return its result."""
        page = self._require_page()
        try:
            return await page.evaluate(expression, arg)
        except PlaywrightError as e:
            raise PreviewError(f"Preview script failed: {e}") from e

    # -------------------------------------------------------------------------
    # Pointer input
    # -------------------------------------------------------------------------

    async def hover(self, selector: str) -> bool:
        """Move the pointer onto the first match. False when nothing matched."""
        return await self._pointer(selector, "hover")

    async def click(self, selector: str) -> bool:
        """Click the first match. False when nothing matched."""
        return await self._pointer(selector, "click")

    async def unhover(self) -> None:
        """Move the pointer to the bottom-right corner of the viewport."""
        page = self._require_page()
        size = page.viewport_size or {"width": 1, "height": 1}
        await page.mouse.move(size["width"] - 1, size["height"] - 1)
        await self._dispatch_events()

    async def _pointer(self, selector: str, action: str) -> bool:
        locator = await self._first(selector)
        if locator is None:
            return False
        try:
            await getattr(locator, action)()
        except PlaywrightError as e:
            raise PreviewError(f"Could not {action} {selector!r}: {e}") from e
        await self._dispatch_events()
        return True

    async def _dispatch_events(self) -> None:
        events = await self.evaluate(_DRAIN_QUEUE)
        for event in events or []:
            for listener in list(self._event_listeners):
                listener(event)


def render_preview_frame(body: str, *, title: str = "Artifact preview") -> str:
    """Markup for a sandboxed frame rendering ``body``.

    The frame never gets ``allow-same-origin``, so the document cannot
    reach the host's storage or credentials.
    """
    return (
        f'<iframe title="{html.escape(title, quote=True)}" '
        f'sandbox="{" ".join(SANDBOX_FLAGS)}" '
        f'srcdoc="{html.escape(body, quote=True)}"></iframe>'
    )


__all__ = [
    "RenderedDocument",
    "ComputedStyle",
    "PreviewError",
    "EVENT_QUEUE",
    "STYLE_PROPERTIES",
    "render_preview_frame",
    "SANDBOX_FLAGS",
]
