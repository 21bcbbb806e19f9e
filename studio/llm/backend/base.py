"""Abstract base class for synthesis backends.

Defines the interface that every remote model provider must follow, the
request/response records exchanged with it, and the error taxonomy the rest
of the engine uses to decide whether a failure is worth retrying.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any


@dataclass
class GenerationConfig:
    """Configuration for a single synthesis request.

    Attributes:
        temperature: Sampling temperature (0.0-2.0). Lower = more deterministic.
        max_tokens: Maximum tokens to generate in response.
        top_p: Nucleus sampling parameter (0.0-1.0).
    """

    temperature: float = 0.5
    max_tokens: int = 32768
    top_p: float = 1.0


@dataclass(frozen=True)
class InlineImage:
    """Binary payload sent alongside the instruction text.

    Attributes:
        data: Base64-encoded bytes (no data URI prefix).
        mime_type: MIME type of the payload, e.g. "image/png".
    """

    data: str
    mime_type: str


@dataclass
class GenerationResult:
    """Result from a synthesis request.

    Attributes:
        content: Raw generated text.
        finish_reason: Why generation stopped ('stop', 'length', 'safety').
        usage: Token usage dict (prompt_tokens, completion_tokens, total_tokens).
        model: Model identifier that was used.
        raw_response: Provider-specific raw response for debugging.
    """

    content: str
    finish_reason: str
    usage: dict[str, int]
    model: str
    raw_response: Any = None


class LLMBackend(ABC):
    """Abstract interface for synthesis backends.

    Backends turn an instruction (plus an optional inline image) into raw
    text. Implementations talk to remote APIs and translate provider
    failures into the exceptions defined below.

    Example:
        >>> backend = GeminiBackend(model="gemini-2.5-flash")
        >>> result = await backend.generate("Build a pomodoro timer")
        >>> print(result.content)
    """

    @abstractmethod
    async def generate(
        self,
        prompt: str,
        *,
        system_prompt: str | None = None,
        image: InlineImage | None = None,
        image_first: bool = False,
        config: GenerationConfig | None = None,
    ) -> GenerationResult:
        """Generate text from a prompt.

        Args:
            prompt: Instruction text.
            system_prompt: Optional system directive.
            image: Optional inline binary payload.
            image_first: Place the image part before the text part.
            config: Generation configuration options.

        Returns:
            GenerationResult with generated content and metadata.

        Raises:
            RateLimitError: If the provider throttled the request.
            ServiceUnavailableError: For server-side failures.
            InvalidRequestError: If the provider rejected the input.
            ContentSafetyError: If safety filters blocked the request.
        """

    @property
    @abstractmethod
    def model_name(self) -> str:
        """Get the model identifier."""

    @property
    @abstractmethod
    def provider(self) -> str:
        """Get the provider identifier (e.g., 'gemini', 'openai')."""

    @property
    def name(self) -> str:
        """Get backend identifier for logging, as 'provider:model'."""
        return f"{self.provider}:{self.model_name}"


# =============================================================================
# Error Taxonomy
# =============================================================================


class ErrorStatus(str, Enum):
    """Status classification carried by synthesis errors."""

    RATE_LIMITED = "rate_limited"
    SERVER_ERROR = "server_error"
    CLIENT_ERROR = "client_error"
    CONTENT_SAFETY = "content_safety"


class LLMError(Exception):
    """Base exception for synthesis backend errors.

    Attributes:
        status: Classification of the failure, None when unknown.
        status_code: HTTP status code reported by the provider, if any.
    """

    status: ErrorStatus | None = None

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class RateLimitError(LLMError):
    """Raised when the provider rate limit is exceeded.

    Attributes:
        retry_after: Suggested wait time in seconds before retry.
    """

    status = ErrorStatus.RATE_LIMITED

    def __init__(
        self,
        message: str,
        status_code: int | None = 429,
        retry_after: float | None = None,
    ):
        super().__init__(message, status_code)
        self.retry_after = retry_after


class ServiceUnavailableError(LLMError):
    """Raised for 5xx responses and transport failures."""

    status = ErrorStatus.SERVER_ERROR


class InvalidRequestError(LLMError):
    """Raised when the provider rejects the request (4xx)."""

    status = ErrorStatus.CLIENT_ERROR


class AuthenticationError(InvalidRequestError):
    """Raised when API authentication fails (invalid or missing key)."""


class ContentSafetyError(LLMError):
    """Raised when safety filters block the prompt or the response."""

    status = ErrorStatus.CONTENT_SAFETY


class InvalidResponseError(LLMError):
    """Raised when the provider response has an unexpected shape."""


def classify_status_code(status_code: int | None) -> ErrorStatus | None:
    """Map an HTTP status code onto an ErrorStatus."""
    if status_code is None:
        return None
    if status_code == 429:
        return ErrorStatus.RATE_LIMITED
    if status_code >= 500:
        return ErrorStatus.SERVER_ERROR
    if 400 <= status_code < 500:
        return ErrorStatus.CLIENT_ERROR
    return None


def classify_error(error: BaseException) -> ErrorStatus | None:
    """Classify any exception raised by a synthesis call.

    Errors from this module carry their status directly. Foreign exceptions
    (SDK errors that escaped translation) are classified from a
    ``status_code`` attribute, then from markers in the message.

    Args:
        error: The exception to classify.

    Returns:
        ErrorStatus, or None when the failure is not recognized.
    """
    status = getattr(error, "status", None)
    if isinstance(status, ErrorStatus):
        return status

    from_code = classify_status_code(getattr(error, "status_code", None))
    if from_code is not None:
        return from_code

    message = str(error)
    if "429" in message:
        return ErrorStatus.RATE_LIMITED
    if "503" in message or "500" in message:
        return ErrorStatus.SERVER_ERROR
    if "SAFETY" in message:
        return ErrorStatus.CONTENT_SAFETY
    if "400" in message:
        return ErrorStatus.CLIENT_ERROR
    return None


def error_for_status(
    status_code: int,
    message: str,
    retry_after: float | None = None,
) -> LLMError:
    """Build the exception matching an HTTP status code."""
    if status_code == 429:
        return RateLimitError(message, status_code, retry_after=retry_after)
    if status_code in (401, 403):
        return AuthenticationError(message, status_code)
    if status_code >= 500:
        return ServiceUnavailableError(message, status_code)
    if status_code >= 400:
        return InvalidRequestError(message, status_code)
    return LLMError(message, status_code)


__all__ = [
    "LLMBackend",
    "GenerationConfig",
    "GenerationResult",
    "InlineImage",
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
]
