"""OpenAI GPT backend implementation.

Supports GPT-4.x vision models via the OpenAI chat completions API.
"""

import logging
from typing import Any

from ...config import EnvVar, get_environment
from .base import (
    AuthenticationError,
    ContentSafetyError,
    GenerationConfig,
    GenerationResult,
    InlineImage,
    InvalidRequestError,
    LLMBackend,
    LLMError,
    ServiceUnavailableError,
    error_for_status,
)
from .model_spec import DEFAULT_OPENAI_MODEL, get_llm_spec

logger = logging.getLogger(__name__)


class OpenAIBackend(LLMBackend):
    """OpenAI GPT backend.

    Environment:
        OPENAI_API_KEY: API key (required if not passed to constructor).

    Example:
        >>> backend = OpenAIBackend(model="gpt-4.1")
        >>> result = await backend.generate("Build a markdown previewer")
        >>> print(result.content)
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str = DEFAULT_OPENAI_MODEL.spec.name,
        base_url: str | None = None,
        timeout: float = 120.0,
    ):
        """Initialize OpenAI backend.

        Args:
            api_key: OpenAI API key. Falls back to OPENAI_API_KEY env var.
            model: Model name (gpt-4.1, gpt-4.1-mini).
            base_url: Optional custom API endpoint.
            timeout: Request timeout in seconds.

        Raises:
            AuthenticationError: If no API key available.
        """
        self._api_key = api_key or get_environment(EnvVar.OPENAI_API_KEY)
        if not self._api_key:
            raise AuthenticationError(
                "OpenAI API key required. Set OPENAI_API_KEY environment "
                "variable or pass api_key parameter."
            )

        self._spec = get_llm_spec(model)
        self._base_url = base_url
        self._timeout = timeout
        self._client: Any = None

    def _get_client(self) -> Any:
        """Lazily initialize the async OpenAI client.

        Retries are disabled on the SDK side; they are owned by the caller.
        """
        if self._client is None:
            from openai import AsyncOpenAI

            self._client = AsyncOpenAI(
                api_key=self._api_key,
                base_url=self._base_url,
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
        return "openai"

    @staticmethod
    def build_user_content(
        prompt: str,
        image: InlineImage | None,
        image_first: bool,
    ) -> list[dict[str, Any]]:
        """Build the multimodal user message content."""
        content: list[dict[str, Any]] = [{"type": "text", "text": prompt}]
        if image is None:
            return content

        if image.mime_type == "application/pdf":
            part: dict[str, Any] = {
                "type": "file",
                "file": {
                    "filename": "source.pdf",
                    "file_data": f"data:{image.mime_type};base64,{image.data}",
                },
            }
        else:
            part = {
                "type": "image_url",
                "image_url": {"url": f"data:{image.mime_type};base64,{image.data}"},
            }

        if image_first:
            content.insert(0, part)
        else:
            content.append(part)
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
        """Generate text using the OpenAI API.

        Raises:
            LLMError: Subclass matching the provider failure.
        """
        config = config or GenerationConfig()
        client = self._get_client()

        messages: list[dict[str, Any]] = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append(
            {
                "role": "user",
                "content": self.build_user_content(prompt, image, image_first),
            }
        )

        try:
            response = await client.chat.completions.create(
                model=self._spec.name,
                messages=messages,
                temperature=config.temperature,
                max_tokens=min(config.max_tokens, self._spec.max_output_tokens),
                top_p=config.top_p,
            )
        except Exception as e:
            self._handle_error(e)
            raise

        choice = response.choices[0]
        if choice.finish_reason == "content_filter":
            raise ContentSafetyError("Response blocked by SAFETY filter")

        usage = response.usage
        return GenerationResult(
            content=choice.message.content or "",
            finish_reason=choice.finish_reason or "unknown",
            usage={
                "prompt_tokens": usage.prompt_tokens if usage else 0,
                "completion_tokens": usage.completion_tokens if usage else 0,
                "total_tokens": usage.total_tokens if usage else 0,
            },
            model=response.model,
            raw_response=response,
        )

    def _handle_error(self, error: Exception) -> None:
        """Convert provider errors to standard exceptions.

        Raises:
            LLMError: Subclass chosen from the HTTP status, when present.
            ServiceUnavailableError: For connection failures and timeouts.
        """
        if isinstance(error, LLMError):
            raise error

        status_code = getattr(error, "status_code", None)
        if isinstance(status_code, int):
            mapped = error_for_status(status_code, str(error))
            if isinstance(mapped, InvalidRequestError) and "content_policy" in str(
                error
            ):
                raise ContentSafetyError(str(error), status_code) from error
            raise mapped from error

        name = type(error).__name__
        if name in ("APIConnectionError", "APITimeoutError"):
            raise ServiceUnavailableError(str(error)) from error
        raise LLMError(str(error)) from error


__all__ = ["OpenAIBackend"]
