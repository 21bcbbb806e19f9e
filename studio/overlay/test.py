"""Tests for the rendered document and the interaction overlay."""

import asyncio

import pytest

from .document import ComputedStyle, RenderedDocument, render_preview_frame
from .lib import InteractionOverlay, StaticPrompter, build_instruction
from .models import (
    EDIT_HOVER_CLASS,
    INSPECT_HOVER_CLASS,
    EditAction,
    EditTargetDescriptor,
    InspectedElementReport,
    InteractionMode,
    ViewMode,
)

PAGE = """<!DOCTYPE html>
<html lang="en">
<head>
<title>Demo</title>
<style>
:root { --brand: #ff5500; }
body { font-family: Inter, sans-serif; color: #222; margin: 0; }
.card { padding: 12px 16px; border-radius: 8px; }
#hero h1 { color: navy; font-size: 32px; }
button.cta { background-color: var(--brand); font-weight: 600; }
@media (max-width: 2000px) { .card { padding: 4px; } }
</style>
</head>
<body>
<div id="hero" class="card"><h1>Welcome</h1><p>Hello <b>world</b></p></div>
<a href="#moved" id="link">Next</a>
<div id="slot"></div>
<script>
const button = document.createElement("button");
button.id = "go";
button.className = "cta primary";
button.textContent = "Click me";
document.getElementById("slot").appendChild(button);
</script>
</body>
</html>"""

LOCATOR = 'button#go.cta.primary (current text: "Click me...")'

STYLE = {
    "color": "rgb(34, 34, 34)",
    "background-color": "rgb(255, 85, 0)",
    "font-size": "13.3333px",
    "font-weight": "600",
    "font-family": "Inter, sans-serif",
    "padding": "1px 6px",
    "margin": "0px",
    "border-radius": "0px",
    "border": "2px outset rgb(0, 0, 0)",
    "display": "inline-block",
    "position": "static",
}


def event(kind: str = "click", **overrides) -> dict:
    """A page event payload for the #go button."""
    payload = {
        "type": kind,
        "tagName": "BUTTON",
        "id": "go",
        "classes": ["cta", "primary"],
        "text": "Click me",
        "innerHTML": "Click me",
        "clientX": 10,
        "clientY": 20,
        "style": STYLE,
    }
    payload.update(overrides)
    return payload


class FakeDocument:
    """Records overlay scripts and replays event payloads."""

    def __init__(self, ready_state: str = "complete"):
        self.ready_state = ready_state
        self.states: list[dict] = []
        self._load_listeners = []
        self._event_listeners = []

    def add_load_listener(self, listener):
        self._load_listeners.append(listener)

    def remove_load_listener(self, listener):
        self._load_listeners.remove(listener)

    def add_event_listener(self, listener):
        self._event_listeners.append(listener)

    def remove_event_listener(self, listener):
        self._event_listeners.remove(listener)

    async def evaluate(self, expression, arg=None):
        self.states.append(arg)

    async def complete_load(self):
        self.ready_state = "complete"
        for listener in list(self._load_listeners):
            await listener()

    def emit(self, payload: dict) -> None:
        for listener in list(self._event_listeners):
            listener(payload)


@pytest.fixture
def instructions():
    return []


@pytest.fixture
def prompter():
    return StaticPrompter("ocean blue")


@pytest.fixture
def fake_doc():
    return FakeDocument()


@pytest.fixture
def overlay(fake_doc, instructions, prompter):
    overlay = InteractionOverlay(instructions.append, prompter, frame_offset=(100, 50))
    asyncio.run(overlay.mount(fake_doc))
    return overlay


# =============================================================================
# Reports and Locators
# =============================================================================


class TestReports:
    """Tests for building reports and locators from page payloads."""

    @pytest.mark.unit
    def test_computed_style_from_css(self):
        """CSS property names map onto the fixed style fields."""
        style = ComputedStyle.from_css(STYLE)
        assert style.background_color == "rgb(255, 85, 0)"
        assert style.border_radius == "0px"
        assert list(style.as_dict()) == [
            "color",
            "background_color",
            "font_size",
            "font_weight",
            "font_family",
            "padding",
            "margin",
            "border_radius",
            "border",
            "display",
            "position",
        ]
        assert ComputedStyle.from_css({}).color == ""

    @pytest.mark.unit
    def test_inspect_report(self):
        """Tags lower-case, highlight classes dropped, text cut at 100."""
        report = InspectedElementReport.from_payload(
            event(classes=["cta", INSPECT_HOVER_CLASS], text="x" * 150)
        )
        assert report.tag_name == "button"
        assert report.class_list == ("cta",)
        assert len(report.text) == 100
        assert report.to_dict()["computedStyle"]["font_weight"] == "600"
        assert report.to_dict()["className"] == "cta"

    @pytest.mark.unit
    def test_locator(self):
        """Locator lists lower-case tag, id, classes and a text excerpt."""
        target = EditTargetDescriptor.from_payload(
            event(classes=["cta", EDIT_HOVER_CLASS, "primary"])
        )
        assert target.locator == LOCATOR

        bare = EditTargetDescriptor.from_payload({"tagName": "HR", "classes": [], "text": ""})
        assert bare.locator == "hr"

        svg = EditTargetDescriptor.from_payload({"tagName": "circle", "id": "dot"})
        assert svg.locator == "circle#dot"

    @pytest.mark.unit
    def test_preview_frame_is_sandboxed(self):
        """The preview frame never grants same-origin access."""
        frame = render_preview_frame('<p class="x">hi</p>')
        assert 'sandbox="allow-scripts allow-forms allow-popups allow-modals"' in frame
        assert "allow-same-origin" not in frame
        assert "&lt;p class=&quot;x&quot;&gt;" in frame


class TestInstructions:
    """Tests for edit instruction building."""

    @pytest.fixture
    def target(self):
        return EditTargetDescriptor.from_payload(event())

    @pytest.mark.unit
    def test_templates(self, target):
        """Each action renders its template."""
        assert build_instruction(EditAction.STYLE, target, StaticPrompter("red")) == (
            f"Update the style of the element [{LOCATOR}] to use red."
        )
        assert build_instruction(EditAction.SIZE, target, StaticPrompter("larger")) == (
            f"Adjust the size/scale of the element [{LOCATOR}] to be larger."
        )
        assert build_instruction(EditAction.TEXT, target, StaticPrompter("Go")) == (
            f'Change the text content of the element [{LOCATOR}] to "Go".'
        )
        assert build_instruction(EditAction.REMOVE, target, StaticPrompter()) == (
            f"Remove the element [{LOCATOR}] completely from the application."
        )

    @pytest.mark.unit
    def test_cancellation(self, target):
        """Empty answers cancel except for text; None always cancels."""
        assert build_instruction(EditAction.STYLE, target, StaticPrompter("")) is None
        assert build_instruction(EditAction.SIZE, target, StaticPrompter(None)) is None
        assert build_instruction(EditAction.TEXT, target, StaticPrompter(None)) is None
        assert build_instruction(EditAction.TEXT, target, StaticPrompter("")) == (
            f'Change the text content of the element [{LOCATOR}] to "".'
        )
        declined = StaticPrompter(confirmed=False)
        assert build_instruction(EditAction.REMOVE, target, declined) is None


# =============================================================================
# Overlay State Machine
# =============================================================================


class TestInteractionOverlay:
    """Tests for overlay modes over a stand-in document."""

    @pytest.mark.unit
    def test_state_pushed_to_page(self, fake_doc, overlay):
        """Mounting wires the page; mode and view changes reach it."""
        assert fake_doc.states[0]["active"] is False
        assert fake_doc.states[0]["classes"] == {
            "inspect": INSPECT_HOVER_CLASS,
            "edit": EDIT_HOVER_CLASS,
        }

        asyncio.run(overlay.set_mode(InteractionMode.EDIT))
        assert fake_doc.states[-1]["mode"] == "edit"
        assert fake_doc.states[-1]["active"] is True

        asyncio.run(overlay.set_view(ViewMode.SOURCE))
        assert fake_doc.states[-1]["active"] is False

    @pytest.mark.unit
    def test_interact_mode_ignores_events(self, fake_doc, overlay):
        """Interact mode leaves pointer input alone."""
        fake_doc.emit(event("mouseover"))
        fake_doc.emit(event())
        assert overlay.highlighted is None
        assert overlay.report is None

    @pytest.mark.unit
    def test_hover_tracks_highlight(self, fake_doc, overlay):
        """Mouseover highlights; mouseout clears."""
        asyncio.run(overlay.set_mode(InteractionMode.INSPECT))
        fake_doc.emit(event("mouseover"))
        assert overlay.highlighted.locator == LOCATOR
        fake_doc.emit({"type": "mouseout"})
        assert overlay.highlighted is None

    @pytest.mark.unit
    def test_inspect_click(self, fake_doc, overlay):
        """Inspect clicks produce a report and no menu."""
        asyncio.run(overlay.set_mode(InteractionMode.INSPECT))
        fake_doc.emit(event())
        assert overlay.report.element_id == "go"
        assert overlay.report.style.background_color == "rgb(255, 85, 0)"
        assert overlay.context_menu is None

    @pytest.mark.unit
    def test_edit_context_menu(self, fake_doc, overlay, instructions, prompter):
        """Edit click opens a menu at frame offset plus click position."""
        asyncio.run(overlay.set_mode(InteractionMode.EDIT))
        fake_doc.emit(event())

        menu = overlay.context_menu
        assert (menu.x, menu.y) == (110, 70)
        assert menu.target.locator == LOCATOR
        assert menu.target_inner_html == "Click me"
        assert overlay.report is None

        instruction = asyncio.run(overlay.choose_action(EditAction.STYLE))
        assert instruction == f"Update the style of the element [{LOCATOR}] to use ocean blue."
        assert instructions == [instruction]
        assert prompter.asked == [
            "New color or theme (e.g. 'ocean blue', '#ff5500', 'soft gradients'):"
        ]
        assert overlay.context_menu is None

    @pytest.mark.unit
    def test_cancelled_action_dispatches_nothing(self, fake_doc, overlay, instructions):
        """A cancelled prompt closes the menu without refining."""
        overlay.prompter = StaticPrompter("")
        asyncio.run(overlay.set_mode(InteractionMode.EDIT))
        fake_doc.emit(event())

        assert asyncio.run(overlay.choose_action(EditAction.SIZE)) is None
        assert instructions == []
        assert overlay.context_menu is None
        assert asyncio.run(overlay.choose_action(EditAction.SIZE)) is None

    @pytest.mark.unit
    def test_async_refine_callback(self, fake_doc):
        """Coroutine callbacks are awaited."""
        received = []

        async def refine(instruction):
            received.append(instruction)

        async def scenario():
            overlay = InteractionOverlay(refine, StaticPrompter())
            await overlay.mount(fake_doc)
            await overlay.set_mode(InteractionMode.EDIT)
            fake_doc.emit(event())
            await overlay.choose_action(EditAction.REMOVE)

        asyncio.run(scenario())
        assert received == [f"Remove the element [{LOCATOR}] completely from the application."]

    @pytest.mark.unit
    def test_mode_switch_clears_state(self, fake_doc, overlay):
        """Switching modes drops report, menu and highlight."""
        asyncio.run(overlay.set_mode(InteractionMode.INSPECT))
        fake_doc.emit(event("mouseover"))
        fake_doc.emit(event())
        assert overlay.report is not None

        asyncio.run(overlay.set_mode(InteractionMode.EDIT))
        assert overlay.report is None
        assert overlay.highlighted is None

        fake_doc.emit(event())
        assert overlay.context_menu is not None
        asyncio.run(overlay.set_mode(InteractionMode.INTERACT))
        assert overlay.context_menu is None

    @pytest.mark.unit
    def test_wiring_waits_for_load(self, instructions):
        """Nothing is pushed to the page until it has loaded."""
        doc = FakeDocument(ready_state="loading")
        overlay = InteractionOverlay(instructions.append)
        asyncio.run(overlay.mount(doc))
        asyncio.run(overlay.set_mode(InteractionMode.INSPECT))
        assert doc.states == []

        asyncio.run(doc.complete_load())
        assert doc.states[-1]["mode"] == "inspect"
        assert doc.states[-1]["active"] is True

    @pytest.mark.unit
    def test_unmount(self, fake_doc, overlay):
        """Unmounting deactivates the page and stops listening."""
        asyncio.run(overlay.set_mode(InteractionMode.INSPECT))
        asyncio.run(overlay.unmount())
        assert fake_doc.states[-1]["active"] is False

        fake_doc.emit(event())
        assert overlay.report is None
        assert overlay.document is None


# =============================================================================
# Browser Rendering
# =============================================================================


async def mounted(browser, instructions, prompter=None, body=PAGE):
    """Load ``body`` with an overlay attached."""
    doc = RenderedDocument(browser)
    overlay = InteractionOverlay(
        instructions.append, prompter or StaticPrompter("ocean blue"), frame_offset=(100, 50)
    )
    await overlay.mount(doc)
    await doc.load(body)
    return doc, overlay


async def class_list(doc, selector):
    return await doc.evaluate("(s) => Array.from(document.querySelector(s).classList)", selector)


class TestRenderedDocument:
    """Tests for documents rendered in Chromium."""

    @pytest.mark.browser
    def test_script_built_elements(self, in_browser):
        """Elements created by page scripts are queryable."""

        async def scenario(browser):
            doc = RenderedDocument(browser)
            await doc.load(PAGE)
            assert doc.ready_state == "complete"
            assert await doc.exists("#go")
            assert await doc.inner_text("#go") == "Click me"
            assert await doc.count("#hero > *") == 2
            assert await doc.inner_text("#nope") is None
            await doc.close()

        in_browser(scenario)

    @pytest.mark.browser
    def test_computed_style_cascade(self, in_browser):
        """Media queries, custom properties and inheritance resolve."""

        async def scenario(browser):
            doc = RenderedDocument(browser)
            await doc.load(PAGE)
            card = await doc.computed_style("#hero")
            heading = await doc.computed_style("h1")
            button = await doc.computed_style("#go")
            await doc.close()
            return card, heading, button

        card, heading, button = in_browser(scenario)
        assert card.padding == "4px"
        assert card.border_radius == "8px"
        assert card.color == "rgb(34, 34, 34)"
        assert heading.color == "rgb(0, 0, 128)"
        assert heading.font_size == "32px"
        assert heading.font_weight == "700"
        assert heading.font_family == "Inter, sans-serif"
        assert heading.display == "block"
        assert button.background_color == "rgb(255, 85, 0)"
        assert button.font_weight == "600"
        assert button.position == "static"

    @pytest.mark.browser
    def test_unsupported_selector(self, in_browser):
        """Unparseable selectors raise ValueError."""

        async def scenario(browser):
            doc = RenderedDocument(browser)
            await doc.load(PAGE)
            try:
                with pytest.raises(ValueError, match="Unsupported selector"):
                    await doc.exists("a[")
            finally:
                await doc.close()

        in_browser(scenario)

    @pytest.mark.browser
    def test_each_load_is_isolated(self, in_browser):
        """Reloading starts from a fresh context and fires load listeners."""
        loads = []

        async def scenario(browser):
            doc = RenderedDocument(browser)

            async def on_load():
                loads.append(doc.source)

            doc.add_load_listener(on_load)
            await doc.load("<script>window.leftover = 1</script><p>a</p>")
            first_context = doc.page.context
            await doc.load("<p>b</p>")

            assert doc.page.context is not first_context
            assert await doc.evaluate("() => typeof window.leftover") == "undefined"
            assert (await doc.page.context.storage_state())["cookies"] == []
            assert await doc.inner_text("p") == "b"
            await doc.close()
            assert doc.page is None

        in_browser(scenario)
        assert loads == ["<script>window.leftover = 1</script><p>a</p>", "<p>b</p>"]


class TestOverlayInBrowser:
    """Tests for the overlay driving a real page."""

    @pytest.mark.browser
    def test_interact_mode_passes_through(self, in_browser, instructions):
        """Interact mode leaves native navigation alone."""

        async def scenario(browser):
            doc, overlay = await mounted(browser, instructions)
            await doc.hover("#link")
            await doc.click("#link")
            hash_ = await doc.evaluate("() => location.hash")
            classes = await class_list(doc, "#link")
            await doc.close()
            return overlay, hash_, classes

        overlay, hash_, classes = in_browser(scenario)
        assert hash_ == "#moved"
        assert classes == []
        assert overlay.report is None

    @pytest.mark.browser
    def test_inspect_hover_highlights_one_element(self, in_browser, instructions):
        """Only the element under the pointer carries the highlight."""

        async def scenario(browser):
            doc, overlay = await mounted(browser, instructions)
            await overlay.set_mode(InteractionMode.INSPECT)

            await doc.hover("h1")
            assert INSPECT_HOVER_CLASS in await class_list(doc, "h1")
            assert overlay.highlighted.locator.startswith("h1")

            await doc.hover("#go")
            assert await class_list(doc, "h1") == []
            assert overlay.highlighted.locator == LOCATOR

            await doc.unhover()
            assert overlay.highlighted is None
            assert await class_list(doc, "#go") == ["cta", "primary"]
            await doc.close()

        in_browser(scenario)

    @pytest.mark.browser
    def test_inspect_click(self, in_browser, instructions):
        """Inspect clicks prevent navigation and report computed style."""

        async def scenario(browser):
            doc, overlay = await mounted(browser, instructions)
            await overlay.set_mode(InteractionMode.INSPECT)
            await doc.hover("#link")
            await doc.click("#link")
            hash_ = await doc.evaluate("() => location.hash")
            link_report = overlay.report

            await doc.click("#go")
            await doc.close()
            return hash_, link_report, overlay.report

        hash_, link_report, report = in_browser(scenario)
        assert hash_ == ""
        assert link_report.tag_name == "a"
        assert link_report.class_list == ()
        assert report.to_dict()["tagName"] == "button"
        assert report.class_name == "cta primary"
        assert report.text == "Click me"
        assert report.style.background_color == "rgb(255, 85, 0)"

    @pytest.mark.browser
    def test_report_style_ignores_highlight(self, in_browser, instructions):
        """The hover highlight never leaks into the reported style."""

        async def scenario(browser):
            doc, overlay = await mounted(browser, instructions, body="<div id='plain'>x</div>")
            await overlay.set_mode(InteractionMode.INSPECT)
            await doc.hover("#plain")
            await doc.click("#plain")
            await doc.close()
            return overlay.report

        report = in_browser(scenario)
        assert report.style.background_color == "rgba(0, 0, 0, 0)"
        assert report.class_list == ()

    @pytest.mark.browser
    def test_edit_menu_and_instruction(self, in_browser, instructions, prompter):
        """Edit clicks open a menu at frame offset plus click position."""

        async def scenario(browser):
            doc, overlay = await mounted(browser, instructions, prompter)
            await overlay.set_mode(InteractionMode.EDIT)
            await doc.hover("#go")
            assert EDIT_HOVER_CLASS in await class_list(doc, "#go")

            await doc.click("#go")
            box = await doc.page.locator("#go").bounding_box()
            menu = overlay.context_menu
            instruction = await overlay.choose_action(EditAction.STYLE)
            await doc.close()
            return box, menu, instruction

        box, menu, instruction = in_browser(scenario)
        assert menu.x == pytest.approx(100 + box["x"] + box["width"] / 2, abs=1)
        assert menu.y == pytest.approx(50 + box["y"] + box["height"] / 2, abs=1)
        assert menu.target.locator == LOCATOR
        assert menu.target_inner_html == "Click me"
        assert instruction == f"Update the style of the element [{LOCATOR}] to use ocean blue."
        assert instructions == [instruction]

    @pytest.mark.browser
    def test_source_view_is_inactive(self, in_browser, instructions):
        """The overlay only acts on the preview view."""

        async def scenario(browser):
            doc, overlay = await mounted(browser, instructions)
            await overlay.set_mode(InteractionMode.INSPECT)
            await overlay.set_view(ViewMode.SOURCE)
            await doc.click("#link")
            hash_ = await doc.evaluate("() => location.hash")
            await doc.close()
            return overlay, hash_

        overlay, hash_ = in_browser(scenario)
        assert overlay.report is None
        assert hash_ == "#moved"

    @pytest.mark.browser
    def test_reload_rewires(self, in_browser, instructions):
        """A reloaded page is intercepted again in the current mode."""

        async def scenario(browser):
            doc, overlay = await mounted(browser, instructions)
            await overlay.set_mode(InteractionMode.INSPECT)
            await doc.load('<section id="new">Fresh</section>')
            await doc.click("#new")
            await doc.close()
            return overlay

        overlay = in_browser(scenario)
        assert overlay.report.element_id == "new"
        assert overlay.mode is InteractionMode.INSPECT

    @pytest.mark.browser
    def test_unmount_restores_native_clicks(self, in_browser, instructions):
        """Unmounted overlays stop intercepting."""

        async def scenario(browser):
            doc, overlay = await mounted(browser, instructions)
            await overlay.set_mode(InteractionMode.INSPECT)
            await overlay.unmount()
            await doc.click("#link")
            hash_ = await doc.evaluate("() => location.hash")
            await doc.close()
            return overlay, hash_

        overlay, hash_ = in_browser(scenario)
        assert overlay.report is None
        assert hash_ == "#moved"
