"""Anthropic Claude backend implementation.

Supports Claude 4.5 models via the Anthropic messages API.
"""

import logging
from typing import Any

from ...config import EnvVar, get_environment
from .base import (
    AuthenticationError,
    GenerationConfig,
    GenerationResult,
    InlineImage,
    LLMBackend,
    LLMError,
    ServiceUnavailableError,
    error_for_status,
)
from .model_spec import DEFAULT_ANTHROPIC_MODEL, get_llm_spec

logger = logging.getLogger(__name__)


class AnthropicBackend(LLMBackend):
    """Anthropic Claude backend.

    Environment:
        ANTHROPIC_API_KEY: API key (required if not passed to constructor).

    Example:
        >>> backend = AnthropicBackend(model="claude-sonnet-4-5")
        >>> result = await backend.generate("Build a unit converter")
        >>> print(result.content)
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str = DEFAULT_ANTHROPIC_MODEL.spec.name,
        timeout: float = 120.0,
    ):
        """Initialize Anthropic backend.

        Args:
            api_key: Anthropic API key. Falls back to ANTHROPIC_API_KEY env var.
            model: Model name (claude-sonnet-4-5, claude-haiku-4-5).
            timeout: Request timeout in seconds.

        Raises:
            AuthenticationError: If no API key available.
        """
        self._api_key = api_key or get_environment(EnvVar.ANTHROPIC_API_KEY)
        if not self._api_key:
            raise AuthenticationError(
                "Anthropic API key required. Set ANTHROPIC_API_KEY environment "
                "variable or pass api_key parameter."
            )

        self._spec = get_llm_spec(model)
        self._timeout = timeout
        self._client: Any = None

    def _get_client(self) -> Any:
        """Lazily initialize the async Anthropic client."""
        if self._client is None:
            from anthropic import AsyncAnthropic

            self._client = AsyncAnthropic(
                api_key=self._api_key,
                timeout=self._timeout,
                max_retries=0,
            )
        return self._client

    @property
    def model_name(self) -> str:
        """Get the model identifier."""
        return self._spec.name

    @property
    def provider(self) -> str:
        """Get the provider identifier."""
        return "anthropic"

    @staticmethod
    def build_user_content(
        prompt: str,
        image: InlineImage | None,
        image_first: bool,
    ) -> list[dict[str, Any]]:
        """Build the content blocks of the user message."""
        content: list[dict[str, Any]] = [{"type": "text", "text": prompt}]
        if image is None:
            return content

        block_type = "document" if image.mime_type == "application/pdf" else "image"
        block = {
            "type": block_type,
            "source": {
                "type": "base64",
                "media_type": image.mime_type,
                "data": image.data,
            },
        }
        if image_first:
            content.insert(0, block)
        else:
            content.append(block)
        return content

    async def generate(
        self,
        prompt: str,
        *,
        system_prompt: str | None = None,
        image: InlineImage | None = None,
        image_first: bool = False,
        config: GenerationConfig | None = None,
    ) -> GenerationResult:
        """Generate text using the Anthropic API."""
        config = config or GenerationConfig()
        client = self._get_client()

        kwargs: dict[str, Any] = {
            "model": self._spec.name,
            "max_tokens": min(config.max_tokens, self._spec.max_output_tokens),
            "messages": [
                {
                    "role": "user",
                    "content": self.build_user_content(prompt, image, image_first),
                }
            ],
            "temperature": config.temperature,
        }
        if system_prompt:
            kwargs["system"] = system_prompt

        try:
            response = await client.messages.create(**kwargs)
        except Exception as e:
            self._handle_error(e)
            raise

        content = ""
        for block in response.content:
            if hasattr(block, "text"):
                content += block.text

        return GenerationResult(
            content=content,
            finish_reason=response.stop_reason or "unknown",
            usage={
                "prompt_tokens": response.usage.input_tokens,
                "completion_tokens": response.usage.output_tokens,
                "total_tokens": response.usage.input_tokens
                + response.usage.output_tokens,
            },
            model=response.model,
            raw_response=response,
        )

    def _handle_error(self, error: Exception) -> None:
        """Convert provider errors to standard exceptions.

        Anthropic reports overload as HTTP 529, which maps to a server error.
        """
        if isinstance(error, LLMError):
            raise error

        status_code = getattr(error, "status_code", None)
        if isinstance(status_code, int):
            raise error_for_status(status_code, str(error)) from error

        name = type(error).__name__
        if name in ("APIConnectionError", "APITimeoutError"):
            raise ServiceUnavailableError(str(error)) from error
        raise LLMError(str(error)) from error


__all__ = ["AnthropicBackend"]
