"""Tests for the synthesis gateway and retry wrapper."""

import asyncio

import pytest

from ..backend import (
    ContentSafetyError,
    InvalidRequestError,
    RateLimitError,
    ServiceUnavailableError,
)
from .lib import (
    EMPTY_OUTPUT_PLACEHOLDER,
    SynthesisGateway,
    build_generate_prompt,
    build_refine_prompt,
    strip_code_fences,
)
from .prompts import (
    ARTIFACT_BUILDER_DIRECTIVE,
    DEMO_DIRECTIVE,
    FRONTEND_EDITOR_DIRECTIVE,
    IMAGE_ANALYSIS_DIRECTIVE,
    STYLE_PRESETS,
)
from .retry import RetryConfig, RetryingCaller, is_transient_error


class _Flaky:
    """Unit of work failing with the given errors before succeeding."""

    def __init__(self, *errors: Exception, result: str = "ok"):
        self.errors = list(errors)
        self.result = result
        self.calls = 0

    async def __call__(self) -> str:
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return self.result


class TestRetryConfig:
    """Tests for backoff arithmetic."""

    @pytest.mark.unit
    def test_defaults(self):
        """Three attempts with a one second base."""
        config = RetryConfig()
        assert config.max_attempts == 3
        assert config.base_delay == 1.0

    @pytest.mark.unit
    def test_backoff_doubles(self):
        """Delay after attempt k is base * 2**(k-1)."""
        config = RetryConfig(base_delay=0.5)
        assert [config.get_backoff_delay(k) for k in (1, 2, 3, 4)] == [
            0.5,
            1.0,
            2.0,
            4.0,
        ]

    @pytest.mark.unit
    def test_rejects_zero_attempts(self):
        """At least one attempt is required."""
        with pytest.raises(ValueError):
            RetryConfig(max_attempts=0)

    @pytest.mark.unit
    def test_from_environment(self, monkeypatch):
        """Environment settings are honoured."""
        monkeypatch.setenv("RETRY_MAX_ATTEMPTS", "5")
        monkeypatch.setenv("RETRY_BASE_DELAY_MS", "200")
        config = RetryConfig.from_environment()
        assert config.max_attempts == 5
        assert config.base_delay == 0.2


class TestRetryingCaller:
    """Tests for RetryingCaller."""

    @pytest.mark.unit
    def test_transient_predicate(self):
        """Only rate-limit and server errors are transient."""
        assert is_transient_error(RateLimitError("x"))
        assert is_transient_error(ServiceUnavailableError("x"))
        assert not is_transient_error(InvalidRequestError("x"))
        assert not is_transient_error(ContentSafetyError("x"))
        assert not is_transient_error(ValueError("x"))

    @pytest.mark.unit
    def test_success_first_try(self, no_sleep):
        """No retries, no sleeping on success."""
        work = _Flaky()
        caller = RetryingCaller(sleep=no_sleep)
        assert asyncio.run(caller.call(work)) == "ok"
        assert work.calls == 1
        assert no_sleep.delays == []

    @pytest.mark.unit
    def test_recovers_after_transient(self, no_sleep):
        """Transient failures are retried with doubling delays."""
        work = _Flaky(RateLimitError("429"), ServiceUnavailableError("503"))
        caller = RetryingCaller(RetryConfig(base_delay=1.0), sleep=no_sleep)
        assert asyncio.run(caller.call(work)) == "ok"
        assert work.calls == 3
        assert no_sleep.delays == [1.0, 2.0]

    @pytest.mark.unit
    def test_exhaustion_propagates_final_error(self, no_sleep):
        """The final attempt's error is raised unchanged."""
        final = ServiceUnavailableError("third")
        work = _Flaky(
            ServiceUnavailableError("first"),
            ServiceUnavailableError("second"),
            final,
        )
        caller = RetryingCaller(sleep=no_sleep)
        with pytest.raises(ServiceUnavailableError) as info:
            asyncio.run(caller.call(work))
        assert info.value is final
        assert work.calls == 3
        assert no_sleep.delays == [1.0, 2.0]

    @pytest.mark.unit
    def test_non_transient_not_retried(self, no_sleep):
        """Client errors surface on the first attempt."""
        work = _Flaky(InvalidRequestError("400"))
        caller = RetryingCaller(sleep=no_sleep)
        with pytest.raises(InvalidRequestError):
            asyncio.run(caller.call(work))
        assert work.calls == 1
        assert no_sleep.delays == []

    @pytest.mark.unit
    def test_custom_predicate(self, no_sleep):
        """An explicit predicate decides what is retried."""
        work = _Flaky(KeyError("k"))
        caller = RetryingCaller(
            is_transient=lambda e: isinstance(e, KeyError), sleep=no_sleep
        )
        assert asyncio.run(caller.call(work)) == "ok"
        assert work.calls == 2

    @pytest.mark.unit
    def test_single_attempt(self, no_sleep):
        """max_attempts=1 never retries."""
        work = _Flaky(RateLimitError("429"))
        caller = RetryingCaller(RetryConfig(max_attempts=1), sleep=no_sleep)
        with pytest.raises(RateLimitError):
            asyncio.run(caller.call(work))
        assert work.calls == 1

    @pytest.mark.unit
    def test_concurrent_calls_have_independent_backoff(self, no_sleep):
        """Backoff state is per call."""
        caller = RetryingCaller(sleep=no_sleep)
        first = _Flaky(RateLimitError("a"), result="one")
        second = _Flaky(RateLimitError("b"), result="two")

        async def both():
            return await asyncio.gather(caller.call(first), caller.call(second))

        assert asyncio.run(both()) == ["one", "two"]
        assert no_sleep.delays == [1.0, 1.0]

    @pytest.mark.unit
    def test_logs_retry(self, no_sleep, caplog):
        """Each retry is logged at WARNING with the delay."""
        work = _Flaky(RateLimitError("429"))
        caller = RetryingCaller(sleep=no_sleep)
        with caplog.at_level("WARNING"):
            asyncio.run(caller.call(work))
        assert "retrying in 1.00s" in caplog.text


class TestStripCodeFences:
    """Tests for model output cleanup."""

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("```html\n<p>x</p>\n```", "<p>x</p>"),
            ("```\n<p>x</p>\n```", "<p>x</p>"),
            ("<p>x</p>", "<p>x</p>"),
            ("  \n```html\n<p>x</p>```  \n", "<p>x</p>"),
            ("```HTML\n<p>x</p>", "<p>x</p>"),
            ("```html\n```html\n<p>x</p>\n```\n```", "<p>x</p>"),
        ],
    )
    def test_strips(self, raw, expected):
        """Leading and trailing fences are removed."""
        assert strip_code_fences(raw) == expected

    @pytest.mark.unit
    @pytest.mark.parametrize("raw", ["", None, "```", "```html\n```", "   "])
    def test_empty_becomes_placeholder(self, raw):
        """Nothing left means the placeholder."""
        assert strip_code_fences(raw) == EMPTY_OUTPUT_PLACEHOLDER

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "raw",
        [
            "```html\n<div>a</div>\n```",
            "``` \n```\n<b>x</b>",
            "<p>ok</p>\n```",
            "\n\n```js\nconsole.log(1)\n```\n\n",
        ],
    )
    def test_idempotent(self, raw):
        """Cleaning twice equals cleaning once."""
        once = strip_code_fences(raw)
        assert strip_code_fences(once) == once

    @pytest.mark.unit
    def test_inner_fences_kept(self):
        """Fences in the middle of the document are untouched."""
        body = "<pre>```code```</pre>\n<p>x</p>"
        assert strip_code_fences(body) == body


class TestPromptBuilding:
    """Tests for instruction composition."""

    @pytest.mark.unit
    def test_image_overrides_text(self):
        """An attached image replaces free text with the analysis directive."""
        prompt = build_generate_prompt("ignored", has_image=True)
        assert prompt == IMAGE_ANALYSIS_DIRECTIVE

    @pytest.mark.unit
    def test_empty_text_uses_demo(self):
        """Empty free text falls back to the demo directive."""
        assert build_generate_prompt("") == DEMO_DIRECTIVE

    @pytest.mark.unit
    def test_text_verbatim(self):
        """Free text passes through unchanged."""
        assert build_generate_prompt("a dashboard") == "a dashboard"

    @pytest.mark.unit
    def test_default_style_adds_nothing(self):
        """The Default preset is a sentinel."""
        assert "DESIGN CONSTRAINT" not in build_generate_prompt(
            "x", style_preset="Default"
        )

    @pytest.mark.unit
    def test_style_and_css_constraints(self):
        """Style and CSS append their constraints in order."""
        prompt = build_generate_prompt(
            "x", style_preset="Cyberpunk", custom_css="body { color: red; }"
        )
        assert 'aesthetic: "Cyberpunk"' in prompt
        assert prompt.index("DESIGN CONSTRAINT") < prompt.index(
            "TECHNICAL CONSTRAINT"
        )
        assert prompt.endswith("body { color: red; }")

    @pytest.mark.unit
    def test_refine_prompt_contains_body(self):
        """Refinement sends full body and instruction."""
        prompt = build_refine_prompt("<p>old</p>", "make it dark")
        assert "<p>old</p>" in prompt
        assert "USER INSTRUCTION: make it dark" in prompt

    @pytest.mark.unit
    def test_style_presets(self):
        """Preset list starts with the sentinel and has no duplicates."""
        assert STYLE_PRESETS[0] == "Default"
        assert "Pixel Art" in STYLE_PRESETS
        assert len(set(STYLE_PRESETS)) == len(STYLE_PRESETS) == 22


class TestSynthesisGateway:
    """Tests for SynthesisGateway against a scripted backend."""

    @pytest.mark.unit
    def test_generate_request_shape(self, scripted_backend, make_gateway):
        """Generation sends text then image at temperature 0.5."""
        backend = scripted_backend("```html\n<p>hi</p>\n```")
        gateway = make_gateway(backend)

        result = asyncio.run(
            gateway.generate("ignored", image_data="QUJD", mime_type="image/png")
        )

        assert result == "<p>hi</p>"
        call = backend.calls[0]
        assert call["prompt"] == IMAGE_ANALYSIS_DIRECTIVE
        assert call["system_prompt"] == ARTIFACT_BUILDER_DIRECTIVE
        assert call["image"].mime_type == "image/png"
        assert call["image_first"] is False
        assert call["config"].temperature == 0.5

    @pytest.mark.unit
    def test_image_needs_mime_type(self, scripted_backend, make_gateway):
        """Image part is only sent with both data and MIME type."""
        backend = scripted_backend("<p/>")
        asyncio.run(make_gateway(backend).generate("", image_data="QUJD"))
        assert backend.calls[0]["image"] is None
        assert backend.calls[0]["prompt"] == IMAGE_ANALYSIS_DIRECTIVE

    @pytest.mark.unit
    def test_refine_request_shape(self, scripted_backend, make_gateway):
        """Refinement sends image first at temperature 0.3."""
        backend = scripted_backend("<p>new</p>")
        gateway = make_gateway(backend)

        result = asyncio.run(
            gateway.refine(
                "<p>old</p>", "change", image_data="QUJD", mime_type="image/png"
            )
        )

        assert result == "<p>new</p>"
        call = backend.calls[0]
        assert call["system_prompt"] == FRONTEND_EDITOR_DIRECTIVE
        assert call["image_first"] is True
        assert call["config"].temperature == 0.3
        assert "<p>old</p>" in call["prompt"]

    @pytest.mark.unit
    def test_empty_output_placeholder(self, scripted_backend, make_gateway):
        """Empty model text becomes the placeholder."""
        gateway = make_gateway(scripted_backend(""))
        assert asyncio.run(gateway.generate("x")) == EMPTY_OUTPUT_PLACEHOLDER

    @pytest.mark.unit
    def test_retries_transient(self, scripted_backend, make_gateway, no_sleep):
        """Gateway calls go through the retry wrapper."""
        backend = scripted_backend(RateLimitError("429"), "<p>ok</p>")
        gateway = make_gateway(backend)
        assert asyncio.run(gateway.generate("x")) == "<p>ok</p>"
        assert len(backend.calls) == 2
        assert no_sleep.delays == [1.0]

    @pytest.mark.unit
    def test_safety_error_surfaces(self, scripted_backend, make_gateway):
        """Content safety errors are not retried and surface untouched."""
        error = ContentSafetyError("SAFETY")
        backend = scripted_backend(error)
        with pytest.raises(ContentSafetyError) as info:
            asyncio.run(make_gateway(backend).refine("<p/>", "x"))
        assert info.value is error
        assert len(backend.calls) == 1


class TestLiveGateway:
    """Smoke test against the configured provider."""

    @pytest.mark.live
    def test_generate_returns_document(self):
        """A real provider returns an unfenced HTML document."""
        body = asyncio.run(SynthesisGateway().generate("a counter with + and - buttons"))

        assert "<html" in body.lower()
        assert not body.startswith("```")
