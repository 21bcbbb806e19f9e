"""Synthesis backend implementations.

Provides the abstract base class, the error taxonomy, and concrete
implementations for Gemini, OpenAI and Anthropic.
"""

from .base import (
    AuthenticationError,
    ContentSafetyError,
    ErrorStatus,
    GenerationConfig,
    GenerationResult,
    InlineImage,
    InvalidRequestError,
    InvalidResponseError,
    LLMBackend,
    LLMError,
    RateLimitError,
    ServiceUnavailableError,
    classify_error,
    classify_status_code,
    error_for_status,
)
from .factory import create_llm_backend, resolve_default_model
from .model_spec import (
    DEFAULT_ANTHROPIC_MODEL,
    DEFAULT_GEMINI_MODEL,
    DEFAULT_MODEL,
    DEFAULT_OPENAI_MODEL,
    LLMCapability,
    LLMModel,
    LLMProviderType,
    LLMSpec,
    get_llm_spec,
)

__all__ = [
    # Base classes and types
    "LLMBackend",
    "GenerationConfig",
    "GenerationResult",
    "InlineImage",
    # Exceptions
    "ErrorStatus",
    "LLMError",
    "RateLimitError",
    "ServiceUnavailableError",
    "InvalidRequestError",
    "AuthenticationError",
    "ContentSafetyError",
    "InvalidResponseError",
    "classify_error",
    "classify_status_code",
    "error_for_status",
    # Model specification
    "LLMCapability",
    "LLMProviderType",
    "LLMSpec",
    "LLMModel",
    "get_llm_spec",
    # Defaults
    "DEFAULT_MODEL",
    "DEFAULT_GEMINI_MODEL",
    "DEFAULT_OPENAI_MODEL",
    "DEFAULT_ANTHROPIC_MODEL",
    # Factory
    "create_llm_backend",
    "resolve_default_model",
]
