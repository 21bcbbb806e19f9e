"""Google Gemini backend implementation.

Talks to the Gemini REST API (``generateContent``) over httpx so that both
inline images and PDF documents can be attached to the instruction.
"""

import logging
from typing import Any

import httpx

from ...config import EnvVar, get_environment
from .base import (
    AuthenticationError,
    ContentSafetyError,
    GenerationConfig,
    GenerationResult,
    InlineImage,
    InvalidResponseError,
    LLMBackend,
    ServiceUnavailableError,
    error_for_status,
)
from .model_spec import DEFAULT_GEMINI_MODEL, get_llm_spec

logger = logging.getLogger(__name__)


class GeminiBackend(LLMBackend):
    """Google Gemini backend.

    Environment:
        GEMINI_API_KEY: API key (required if not passed to constructor).
        GEMINI_BASE_URL: Endpoint root, defaults to the public API.

    Example:
        >>> backend = GeminiBackend()
        >>> result = await backend.generate("Build a tip calculator")
        >>> print(result.content)
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str = DEFAULT_GEMINI_MODEL.spec.name,
        base_url: str | None = None,
        timeout: float = 120.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize Gemini backend.

        Args:
            api_key: Gemini API key. Falls back to GEMINI_API_KEY env var.
            model: Model name (gemini-3-pro-preview, gemini-2.5-flash, etc.).
            base_url: Optional custom API endpoint.
            timeout: Request timeout in seconds.
            transport: Optional httpx transport (used by tests).

        Raises:
            AuthenticationError: If no API key available.
        """
        self._api_key = api_key or get_environment(EnvVar.GEMINI_API_KEY)
        if not self._api_key:
            raise AuthenticationError(
                "Gemini API key required. Set GEMINI_API_KEY environment "
                "variable or pass api_key parameter."
            )

        self._spec = get_llm_spec(model)
        self._base_url = (
            base_url or get_environment(EnvVar.GEMINI_BASE_URL)
        ).rstrip("/")
        self._timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def _get_client(self) -> httpx.AsyncClient:
        """Lazily initialize the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                transport=self._transport,
                headers={"x-goog-api-key": self._api_key},
            )
        return self._client

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    @property
    def model_name(self) -> str:
        """Get the model identifier."""
        return self._spec.name

    @property
    def provider(self) -> str:
        """Get the provider identifier."""
        return "gemini"

    def build_payload(
        self,
        prompt: str,
        *,
        system_prompt: str | None = None,
        image: InlineImage | None = None,
        image_first: bool = False,
        config: GenerationConfig | None = None,
    ) -> dict[str, Any]:
        """Build the generateContent request body."""
        config = config or GenerationConfig()

        parts: list[dict[str, Any]] = [{"text": prompt}]
        if image is not None:
            image_part = {
                "inlineData": {"mimeType": image.mime_type, "data": image.data}
            }
            if image_first:
                parts.insert(0, image_part)
            else:
                parts.append(image_part)

        payload: dict[str, Any] = {
            "contents": [{"role": "user", "parts": parts}],
            "generationConfig": {
                "temperature": config.temperature,
                "maxOutputTokens": min(
                    config.max_tokens, self._spec.max_output_tokens
                ),
                "topP": config.top_p,
            },
        }
        if system_prompt:
            payload["systemInstruction"] = {"parts": [{"text": system_prompt}]}
        return payload

    async def generate(
        self,
        prompt: str,
        *,
        system_prompt: str | None = None,
        image: InlineImage | None = None,
        image_first: bool = False,
        config: GenerationConfig | None = None,
    ) -> GenerationResult:
        """Generate text using the Gemini API.

        Raises:
            RateLimitError: On HTTP 429.
            ServiceUnavailableError: On 5xx responses or transport failures.
            InvalidRequestError: On other 4xx responses.
            ContentSafetyError: If the prompt or the candidate was blocked.
            InvalidResponseError: If the body cannot be interpreted.
        """
        payload = self.build_payload(
            prompt,
            system_prompt=system_prompt,
            image=image,
            image_first=image_first,
            config=config,
        )
        client = self._get_client()
        path = f"/v1beta/models/{self._spec.name}:generateContent"

        try:
            response = await client.post(path, json=payload)
        except httpx.TimeoutException as e:
            raise ServiceUnavailableError(f"Gemini request timed out: {e}") from e
        except httpx.TransportError as e:
            raise ServiceUnavailableError(f"Gemini transport error: {e}") from e

        if response.status_code >= 400:
            self._handle_error(response)

        try:
            body = response.json()
        except ValueError as e:
            raise InvalidResponseError(
                f"Gemini returned non-JSON body: {response.text[:200]}"
            ) from e

        return self._parse_body(body)

    def _parse_body(self, body: dict[str, Any]) -> GenerationResult:
        """Extract text and metadata from a generateContent response."""
        if not isinstance(body, dict):
            raise InvalidResponseError(
                f"Gemini returned unexpected body type: {type(body).__name__}"
            )

        feedback = body.get("promptFeedback") or {}
        if feedback.get("blockReason"):
            raise ContentSafetyError(
                f"Prompt blocked by SAFETY filter: {feedback['blockReason']}"
            )

        candidates = body.get("candidates") or []
        if not candidates:
            raise InvalidResponseError("Gemini response contained no candidates")

        candidate = candidates[0]
        finish_reason = candidate.get("finishReason", "STOP")
        if finish_reason == "SAFETY":
            raise ContentSafetyError("Response blocked by SAFETY filter")

        parts = (candidate.get("content") or {}).get("parts") or []
        text = "".join(part.get("text", "") for part in parts)

        usage_meta = body.get("usageMetadata") or {}
        return GenerationResult(
            content=text,
            finish_reason=finish_reason.lower(),
            usage={
                "prompt_tokens": usage_meta.get("promptTokenCount", 0),
                "completion_tokens": usage_meta.get("candidatesTokenCount", 0),
                "total_tokens": usage_meta.get("totalTokenCount", 0),
            },
            model=body.get("modelVersion", self._spec.name),
            raw_response=body,
        )

    def _handle_error(self, response: httpx.Response) -> None:
        """Convert an HTTP error response to a standard exception.

        Error bodies may be an object or a list of objects; anything else
        falls back to the raw text.
        """
        try:
            payload = response.json()
        except ValueError:
            payload = None

        if isinstance(payload, list) and payload:
            payload = payload[0]
        error = payload.get("error") if isinstance(payload, dict) else None
        if isinstance(error, dict):
            detail = str(error.get("message", ""))
        else:
            detail = response.text[:200]

        retry_after: float | None = None
        header = response.headers.get("retry-after")
        if header:
            try:
                retry_after = float(header)
            except ValueError:
                retry_after = None

        message = f"Gemini API error {response.status_code}: {detail}"
        logger.debug(message)
        raise error_for_status(response.status_code, message, retry_after=retry_after)


__all__ = ["GeminiBackend"]
