"""SynthesisGateway: turns prompts and source images into markup documents.

Builds the generation and refinement instructions, sends them to a
synthesis backend through a RetryingCaller, and normalizes the raw model
text into a bare HTML document.
"""

import logging
import re

from ..backend import GenerationConfig, InlineImage, LLMBackend, create_llm_backend
from .prompts import (
    ARTIFACT_BUILDER_DIRECTIVE,
    DEFAULT_STYLE,
    DEMO_DIRECTIVE,
    DESIGN_CONSTRAINT_TEMPLATE,
    FRONTEND_EDITOR_DIRECTIVE,
    IMAGE_ANALYSIS_DIRECTIVE,
    REFINE_TEMPLATE,
    TECHNICAL_CONSTRAINT_TEMPLATE,
)
from .retry import RetryConfig, RetryingCaller

logger = logging.getLogger(__name__)

GENERATE_TEMPERATURE = 0.5
REFINE_TEMPERATURE = 0.3

EMPTY_OUTPUT_PLACEHOLDER = "<!-- Failed to generate content -->"

# Applied in order, repeatedly, until the text stops changing.
FENCE_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"^```[a-zA-Z][\w+-]*\s*"),
    re.compile(r"^```(?![a-zA-Z])\s*"),
    re.compile(r"\s*```$"),
)


def strip_code_fences(text: str | None) -> str:
    """Remove markdown code fences wrapped around model output.

    Idempotent: ``strip_code_fences(strip_code_fences(x)) ==
    strip_code_fences(x)``.

    Args:
        text: Raw model output.

    Returns:
        The bare document, or EMPTY_OUTPUT_PLACEHOLDER when nothing remains.
    """
    if not text:
        return EMPTY_OUTPUT_PLACEHOLDER

    cleaned = text
    while True:
        previous = cleaned
        cleaned = cleaned.strip()
        for pattern in FENCE_PATTERNS:
            cleaned = pattern.sub("", cleaned, count=1)
        if cleaned == previous:
            break

    return cleaned or EMPTY_OUTPUT_PLACEHOLDER


def build_generate_prompt(
    prompt_text: str,
    *,
    has_image: bool = False,
    style_preset: str = DEFAULT_STYLE,
    custom_css: str = "",
) -> str:
    """Compose the instruction for a fresh generation.

    An attached image replaces the free text with the fixed analysis
    directive. Empty free text falls back to the demo directive.
    """
    if has_image:
        instruction = IMAGE_ANALYSIS_DIRECTIVE
    else:
        instruction = prompt_text or DEMO_DIRECTIVE

    if style_preset and style_preset != DEFAULT_STYLE:
        instruction += DESIGN_CONSTRAINT_TEMPLATE.format(style=style_preset)

    if custom_css:
        instruction += TECHNICAL_CONSTRAINT_TEMPLATE.format(css=custom_css)

    return instruction


def build_refine_prompt(current_body: str, instruction: str) -> str:
    """Compose the instruction for refining an existing document."""
    return REFINE_TEMPLATE.format(body=current_body, instruction=instruction)


def _inline_image(image_data: str | None, mime_type: str | None) -> InlineImage | None:
    if image_data and mime_type:
        return InlineImage(data=image_data, mime_type=mime_type)
    return None


class SynthesisGateway:
    """Generates and refines artifacts through a synthesis backend.

    Example:
        >>> gateway = SynthesisGateway(create_llm_backend("gemini-2.5-flash"))
        >>> html = await gateway.generate("a pomodoro timer", style_preset="Sketch")
        >>> html = await gateway.refine(html, "make it dark")
    """

    def __init__(
        self,
        backend: LLMBackend | None = None,
        *,
        retry: RetryingCaller[str] | RetryConfig | None = None,
    ):
        """Initialize the gateway.

        Args:
            backend: Synthesis backend. Created from the environment if None.
            retry: Caller or config used to retry transient failures.
        """
        self._backend = backend or create_llm_backend()
        if isinstance(retry, RetryingCaller):
            self._caller = retry
        else:
            self._caller = RetryingCaller(retry or RetryConfig.from_environment())

    @property
    def backend(self) -> LLMBackend:
        """Get the underlying backend."""
        return self._backend

    async def generate(
        self,
        prompt_text: str,
        image_data: str | None = None,
        mime_type: str | None = None,
        style_preset: str = DEFAULT_STYLE,
        custom_css: str = "",
    ) -> str:
        """Produce a new document from text and/or an inline image.

        Args:
            prompt_text: Free-text description. Ignored when an image is given.
            image_data: Base64 payload without data URI prefix.
            mime_type: MIME type of ``image_data``.
            style_preset: Aesthetic to enforce, "Default" for none.
            custom_css: CSS rules that must appear verbatim in <style>.

        Returns:
            Cleaned document text.
        """
        instruction = build_generate_prompt(
            prompt_text,
            has_image=bool(image_data),
            style_preset=style_preset,
            custom_css=custom_css,
        )
        image = _inline_image(image_data, mime_type)
        config = GenerationConfig(temperature=GENERATE_TEMPERATURE)

        logger.info(
            f"Generating artifact via {self._backend.name} "
            f"(image={'yes' if image else 'no'}, style={style_preset})"
        )

        async def attempt() -> str:
            result = await self._backend.generate(
                instruction,
                system_prompt=ARTIFACT_BUILDER_DIRECTIVE,
                image=image,
                image_first=False,
                config=config,
            )
            return result.content

        raw = await self._caller.call(attempt)
        return strip_code_fences(raw)

    async def refine(
        self,
        current_body: str,
        instruction: str,
        image_data: str | None = None,
        mime_type: str | None = None,
    ) -> str:
        """Produce a new version of ``current_body`` satisfying ``instruction``.

        Args:
            current_body: Full current document.
            instruction: Natural-language change request.
            image_data: Optional reference image, sent before the text.
            mime_type: MIME type of ``image_data``.

        Returns:
            Cleaned document text.
        """
        prompt = build_refine_prompt(current_body, instruction)
        image = _inline_image(image_data, mime_type)
        config = GenerationConfig(temperature=REFINE_TEMPERATURE)

        logger.info(f"Refining artifact via {self._backend.name}: {instruction[:80]}")

        async def attempt() -> str:
            result = await self._backend.generate(
                prompt,
                system_prompt=FRONTEND_EDITOR_DIRECTIVE,
                image=image,
                image_first=True,
                config=config,
            )
            return result.content

        raw = await self._caller.call(attempt)
        return strip_code_fences(raw)


__all__ = [
    "SynthesisGateway",
    "strip_code_fences",
    "build_generate_prompt",
    "build_refine_prompt",
    "EMPTY_OUTPUT_PLACEHOLDER",
    "GENERATE_TEMPERATURE",
    "REFINE_TEMPERATURE",
]
