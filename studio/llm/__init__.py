"""Synthesis layer: remote model backends and the artifact gateway."""

from .backend import (
    ErrorStatus,
    LLMBackend,
    LLMError,
    LLMModel,
    classify_error,
    create_llm_backend,
)
from .synthesis import (
    STYLE_PRESETS,
    RetryConfig,
    RetryingCaller,
    SynthesisGateway,
    strip_code_fences,
)

__all__ = [
    "ErrorStatus",
    "LLMBackend",
    "LLMError",
    "LLMModel",
    "classify_error",
    "create_llm_backend",
    "STYLE_PRESETS",
    "RetryConfig",
    "RetryingCaller",
    "SynthesisGateway",
    "strip_code_fences",
]
