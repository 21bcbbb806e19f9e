"""Backend factory for creating synthesis backends from model specifications.

Provides a unified entry point for creating any supported backend.
"""

from ...config import EnvVar, get_available_llm_providers, get_environment
from .base import LLMBackend
from .model_spec import (
    DEFAULT_BY_PROVIDER,
    DEFAULT_MODEL,
    LLMModel,
    LLMProviderType,
    LLMSpec,
    get_llm_spec,
)


def resolve_default_model() -> LLMModel | str:
    """Pick the model to use when none is given explicitly.

    Resolution: SYNTHESIS_MODEL > LLM_PROVIDER default > first provider
    with a configured key > DEFAULT_MODEL.
    """
    configured = get_environment(EnvVar.SYNTHESIS_MODEL)
    if configured:
        return configured

    provider = get_environment(EnvVar.LLM_PROVIDER)
    if not provider:
        available = get_available_llm_providers()
        provider = available[0] if available else None

    if provider:
        try:
            return DEFAULT_BY_PROVIDER[LLMProviderType(provider.lower())]
        except ValueError as e:
            raise ValueError(f"Unknown provider: {provider}") from e

    return DEFAULT_MODEL


def create_llm_backend(
    model: str | LLMModel | LLMSpec | None = None,
    *,
    api_key: str | None = None,
    base_url: str | None = None,
    **kwargs,
) -> LLMBackend:
    """Create a synthesis backend from a model specification.

    Args:
        model: Model to use. Can be:
            - String model name (e.g., "gemini-2.5-flash", "claude-sonnet-4-5")
            - LLMModel enum value (e.g., LLMModel.GPT_4_1)
            - LLMSpec instance
            - None to resolve from the environment
        api_key: API key. Falls back to the provider's environment variable.
        base_url: Optional custom API endpoint. Uses provider default if None.
        **kwargs: Additional arguments passed to backend constructor
            (e.g., timeout).

    Returns:
        Configured LLMBackend instance.

    Raises:
        ValueError: If model is unknown or configuration invalid.
        AuthenticationError: If API key required but not provided.

    Example:
        >>> backend = create_llm_backend()
        >>> backend = create_llm_backend("claude-sonnet-4-5", timeout=60.0)
    """
    spec = get_llm_spec(model if model is not None else resolve_default_model())

    if spec.provider == LLMProviderType.GEMINI:
        from .gemini import GeminiBackend

        return GeminiBackend(
            api_key=api_key,
            model=spec.name,
            base_url=base_url,
            **kwargs,
        )

    if spec.provider == LLMProviderType.OPENAI:
        from .openai import OpenAIBackend

        return OpenAIBackend(
            api_key=api_key,
            model=spec.name,
            base_url=base_url,
            **kwargs,
        )

    if spec.provider == LLMProviderType.ANTHROPIC:
        from .anthropic import AnthropicBackend

        return AnthropicBackend(
            api_key=api_key,
            model=spec.name,
            **kwargs,
        )

    raise ValueError(f"Unsupported provider type: {spec.provider}")


__all__ = ["create_llm_backend", "resolve_default_model"]
