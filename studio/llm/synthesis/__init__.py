"""Artifact synthesis: prompt building, retries and output cleanup."""

from .lib import (
    EMPTY_OUTPUT_PLACEHOLDER,
    GENERATE_TEMPERATURE,
    REFINE_TEMPERATURE,
    SynthesisGateway,
    build_generate_prompt,
    build_refine_prompt,
    strip_code_fences,
)
from .prompts import DEFAULT_STYLE, STYLE_PRESETS
from .retry import (
    RetryConfig,
    RetryingCaller,
    is_transient_error,
)

__all__ = [
    "SynthesisGateway",
    "strip_code_fences",
    "build_generate_prompt",
    "build_refine_prompt",
    "EMPTY_OUTPUT_PLACEHOLDER",
    "GENERATE_TEMPERATURE",
    "REFINE_TEMPERATURE",
    "DEFAULT_STYLE",
    "STYLE_PRESETS",
    "RetryConfig",
    "RetryingCaller",
    "is_transient_error",
]
