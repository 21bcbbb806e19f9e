"""Tests for synthesis backend implementations."""

import asyncio
import json

import httpx
import pytest

from .base import (
    AuthenticationError,
    ContentSafetyError,
    ErrorStatus,
    GenerationConfig,
    InlineImage,
    InvalidRequestError,
    InvalidResponseError,
    LLMError,
    RateLimitError,
    ServiceUnavailableError,
    classify_error,
    error_for_status,
)
from .anthropic import AnthropicBackend
from .factory import create_llm_backend, resolve_default_model
from .gemini import GeminiBackend
from .model_spec import (
    DEFAULT_MODEL,
    LLMCapability,
    LLMModel,
    LLMProviderType,
    get_llm_spec,
)
from .openai import OpenAIBackend


def _gemini_ok(text: str) -> dict:
    return {
        "candidates": [
            {"content": {"parts": [{"text": text}]}, "finishReason": "STOP"}
        ],
        "usageMetadata": {
            "promptTokenCount": 10,
            "candidatesTokenCount": 5,
            "totalTokenCount": 15,
        },
    }


def _gemini(handler) -> GeminiBackend:
    return GeminiBackend(
        api_key="test-key",
        model="gemini-2.5-flash",
        base_url="https://gemini.test",
        transport=httpx.MockTransport(handler),
    )


class TestLLMModel:
    """Tests for LLMModel enum registry."""

    @pytest.mark.unit
    def test_all_models_support_vision(self):
        """Every registered model accepts image input."""
        for model in LLMModel:
            assert model.spec.supports(LLMCapability.VISION), model.name

    @pytest.mark.unit
    def test_by_name(self):
        """Lookup by identifier."""
        assert LLMModel.by_name("gpt-4.1") is LLMModel.GPT_4_1
        assert LLMModel.by_name("nope") is None

    @pytest.mark.unit
    def test_list_by_provider(self):
        """Filter registry by provider."""
        gemini = LLMModel.list_by_provider(LLMProviderType.GEMINI)
        assert LLMModel.GEMINI_3_PRO in gemini
        assert LLMModel.GPT_4_1 not in gemini

    @pytest.mark.unit
    def test_get_llm_spec_unknown(self):
        """Unknown model names are rejected with the available list."""
        with pytest.raises(ValueError, match="Unknown model"):
            get_llm_spec("not-a-model")

    @pytest.mark.unit
    def test_default_is_gemini(self):
        """Default model targets Gemini."""
        assert DEFAULT_MODEL.spec.provider == LLMProviderType.GEMINI


class TestErrorClassification:
    """Tests for the error taxonomy."""

    @pytest.mark.unit
    def test_typed_errors_carry_status(self):
        """Each error class carries its own status."""
        assert classify_error(RateLimitError("slow")) == ErrorStatus.RATE_LIMITED
        assert (
            classify_error(ServiceUnavailableError("down"))
            == ErrorStatus.SERVER_ERROR
        )
        assert classify_error(InvalidRequestError("bad")) == ErrorStatus.CLIENT_ERROR
        assert (
            classify_error(AuthenticationError("key")) == ErrorStatus.CLIENT_ERROR
        )
        assert (
            classify_error(ContentSafetyError("blocked"))
            == ErrorStatus.CONTENT_SAFETY
        )

    @pytest.mark.unit
    def test_foreign_error_status_code(self):
        """Foreign exceptions with a status_code attribute are classified."""

        class SDKError(Exception):
            status_code = 503

        assert classify_error(SDKError("boom")) == ErrorStatus.SERVER_ERROR

    @pytest.mark.unit
    def test_message_markers(self):
        """Plain exceptions fall back to message markers."""
        assert classify_error(Exception("HTTP 429 Too Many")) == (
            ErrorStatus.RATE_LIMITED
        )
        assert classify_error(Exception("got 500")) == ErrorStatus.SERVER_ERROR
        assert classify_error(Exception("blocked: SAFETY")) == (
            ErrorStatus.CONTENT_SAFETY
        )
        assert classify_error(Exception("status 400")) == ErrorStatus.CLIENT_ERROR
        assert classify_error(Exception("weird")) is None

    @pytest.mark.unit
    def test_unclassified_llm_errors(self):
        """Response-shape errors have no status."""
        assert classify_error(InvalidResponseError("shape")) is None

    @pytest.mark.unit
    def test_error_for_status(self):
        """HTTP codes map to the expected classes."""
        assert isinstance(error_for_status(429, "x"), RateLimitError)
        assert isinstance(error_for_status(401, "x"), AuthenticationError)
        assert isinstance(error_for_status(502, "x"), ServiceUnavailableError)
        assert isinstance(error_for_status(404, "x"), InvalidRequestError)


class TestGeminiBackend:
    """Tests for the Gemini REST backend."""

    @pytest.mark.unit
    def test_requires_api_key(self, monkeypatch):
        """Missing key raises AuthenticationError."""
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        with pytest.raises(AuthenticationError):
            GeminiBackend()

    @pytest.mark.unit
    def test_payload_part_order(self):
        """Image part placement follows image_first."""
        backend = _gemini(lambda request: httpx.Response(200))
        image = InlineImage(data="QUJD", mime_type="image/png")

        text_first = backend.build_payload("hi", image=image)
        parts = text_first["contents"][0]["parts"]
        assert parts[0] == {"text": "hi"}
        assert parts[1]["inlineData"]["mimeType"] == "image/png"

        image_first = backend.build_payload("hi", image=image, image_first=True)
        assert "inlineData" in image_first["contents"][0]["parts"][0]

    @pytest.mark.unit
    def test_payload_config(self):
        """System instruction and temperature are forwarded."""
        backend = _gemini(lambda request: httpx.Response(200))
        payload = backend.build_payload(
            "hi",
            system_prompt="be terse",
            config=GenerationConfig(temperature=0.3),
        )
        assert payload["systemInstruction"]["parts"][0]["text"] == "be terse"
        assert payload["generationConfig"]["temperature"] == 0.3

    @pytest.mark.unit
    def test_generate_success(self):
        """Successful response is parsed into GenerationResult."""
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["key"] = request.headers["x-goog-api-key"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json=_gemini_ok("<html></html>"))

        result = asyncio.run(_gemini(handler).generate("make a thing"))

        assert result.content == "<html></html>"
        assert result.usage["total_tokens"] == 15
        assert seen["url"].endswith(
            "/v1beta/models/gemini-2.5-flash:generateContent"
        )
        assert seen["key"] == "test-key"
        assert seen["body"]["contents"][0]["parts"][0]["text"] == "make a thing"

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "status,error_cls",
        [
            (429, RateLimitError),
            (500, ServiceUnavailableError),
            (503, ServiceUnavailableError),
            (400, InvalidRequestError),
            (403, AuthenticationError),
        ],
    )
    def test_http_errors(self, status, error_cls):
        """HTTP failures map onto the error taxonomy."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(status, json={"error": {"message": "nope"}})

        with pytest.raises(error_cls) as info:
            asyncio.run(_gemini(handler).generate("x"))
        assert info.value.status_code == status

    @pytest.mark.unit
    def test_retry_after_header(self):
        """Retry-After is exposed on RateLimitError."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(429, headers={"retry-after": "7"}, json={})

        with pytest.raises(RateLimitError) as info:
            asyncio.run(_gemini(handler).generate("x"))
        assert info.value.retry_after == 7.0

    @pytest.mark.unit
    def test_transport_error_is_server_error(self):
        """Connection failures are treated as server errors."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(ServiceUnavailableError):
            asyncio.run(_gemini(handler).generate("x"))

    @pytest.mark.unit
    def test_blocked_prompt(self):
        """promptFeedback.blockReason raises ContentSafetyError."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200, json={"promptFeedback": {"blockReason": "SAFETY"}}
            )

        with pytest.raises(ContentSafetyError):
            asyncio.run(_gemini(handler).generate("x"))

    @pytest.mark.unit
    def test_safety_finish_reason(self):
        """finishReason SAFETY raises ContentSafetyError."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200, json={"candidates": [{"finishReason": "SAFETY"}]}
            )

        with pytest.raises(ContentSafetyError):
            asyncio.run(_gemini(handler).generate("x"))

    @pytest.mark.unit
    def test_no_candidates(self):
        """Empty candidate list is an invalid response."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"candidates": []})

        with pytest.raises(InvalidResponseError):
            asyncio.run(_gemini(handler).generate("x"))

    @pytest.mark.unit
    def test_list_error_body(self):
        """A list-shaped error body still maps to the typed error."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                503, json=[{"error": {"code": 503, "message": "model overloaded"}}]
            )

        with pytest.raises(ServiceUnavailableError) as info:
            asyncio.run(_gemini(handler).generate("x"))
        assert "model overloaded" in str(info.value)
        assert classify_error(info.value) == ErrorStatus.SERVER_ERROR

    @pytest.mark.unit
    @pytest.mark.parametrize("body", ["upstream gone", "[]", '"busy"', '{"error": "busy"}'])
    def test_unstructured_error_body(self, body):
        """Error bodies without an error object fall back to the raw text."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(502, text=body)

        with pytest.raises(ServiceUnavailableError) as info:
            asyncio.run(_gemini(handler).generate("x"))
        assert body in str(info.value)

    @pytest.mark.unit
    def test_list_error_body_is_retried(self, make_gateway, no_sleep):
        """Transient list-shaped errors go through the retry path."""
        responses = [
            httpx.Response(503, json=[{"error": {"message": "overloaded"}}]),
            httpx.Response(200, json=_gemini_ok("<p>ok</p>")),
        ]

        def handler(request: httpx.Request) -> httpx.Response:
            return responses.pop(0)

        gateway = make_gateway(_gemini(handler))
        assert asyncio.run(gateway.generate("x")) == "<p>ok</p>"
        assert no_sleep.delays == [1.0]

    @pytest.mark.unit
    def test_non_object_success_body(self):
        """A 200 response that is not an object is an invalid response."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=[_gemini_ok("x")])

        with pytest.raises(InvalidResponseError):
            asyncio.run(_gemini(handler).generate("x"))


class TestSDKBackends:
    """Tests for OpenAI and Anthropic request shaping and error mapping."""

    @pytest.mark.unit
    def test_openai_image_content(self):
        """Images become data-URL image parts."""
        image = InlineImage(data="QUJD", mime_type="image/jpeg")
        content = OpenAIBackend.build_user_content("hi", image, image_first=True)
        assert content[0]["type"] == "image_url"
        assert content[0]["image_url"]["url"] == "data:image/jpeg;base64,QUJD"
        assert content[1] == {"type": "text", "text": "hi"}

    @pytest.mark.unit
    def test_anthropic_pdf_content(self):
        """PDFs become document blocks."""
        doc = InlineImage(data="JVBE", mime_type="application/pdf")
        content = AnthropicBackend.build_user_content("hi", doc, image_first=False)
        assert content[1]["type"] == "document"
        assert content[1]["source"]["media_type"] == "application/pdf"

    @pytest.mark.unit
    def test_sdk_status_code_mapping(self):
        """SDK errors with status_code are translated."""

        class APIStatusError(Exception):
            def __init__(self, message, status_code):
                super().__init__(message)
                self.status_code = status_code

        backend = AnthropicBackend(api_key="k")
        with pytest.raises(ServiceUnavailableError):
            backend._handle_error(APIStatusError("overloaded", 529))
        with pytest.raises(RateLimitError):
            backend._handle_error(APIStatusError("slow", 429))

    @pytest.mark.unit
    def test_sdk_connection_error(self):
        """Connection errors become server errors."""

        class APIConnectionError(Exception):
            pass

        backend = OpenAIBackend(api_key="k")
        with pytest.raises(ServiceUnavailableError):
            backend._handle_error(APIConnectionError("reset"))

    @pytest.mark.unit
    def test_unknown_sdk_error(self):
        """Unrecognized errors become plain LLMError."""
        backend = OpenAIBackend(api_key="k")
        with pytest.raises(LLMError):
            backend._handle_error(RuntimeError("??"))


class TestFactory:
    """Tests for create_llm_backend."""

    @pytest.mark.unit
    def test_routes_by_provider(self):
        """Each provider gets its backend class."""
        assert isinstance(
            create_llm_backend("gemini-2.5-flash", api_key="k"), GeminiBackend
        )
        assert isinstance(create_llm_backend("gpt-4.1", api_key="k"), OpenAIBackend)
        assert isinstance(
            create_llm_backend("claude-haiku-4-5", api_key="k"), AnthropicBackend
        )

    @pytest.mark.unit
    def test_resolve_from_model_env(self, monkeypatch):
        """SYNTHESIS_MODEL wins."""
        monkeypatch.setenv("SYNTHESIS_MODEL", "gpt-4.1-mini")
        assert resolve_default_model() == "gpt-4.1-mini"

    @pytest.mark.unit
    def test_resolve_from_provider_env(self, monkeypatch):
        """LLM_PROVIDER selects that provider's default."""
        monkeypatch.delenv("SYNTHESIS_MODEL", raising=False)
        monkeypatch.setenv("LLM_PROVIDER", "anthropic")
        assert resolve_default_model() is LLMModel.CLAUDE_SONNET_4_5

    @pytest.mark.unit
    def test_resolve_from_available_keys(self, monkeypatch):
        """First provider with a key is used."""
        for name in ("SYNTHESIS_MODEL", "LLM_PROVIDER", "GEMINI_API_KEY"):
            monkeypatch.delenv(name, raising=False)
        monkeypatch.setenv("OPENAI_API_KEY", "k")
        assert resolve_default_model() is LLMModel.GPT_4_1

    @pytest.mark.unit
    def test_resolve_unknown_provider(self, monkeypatch):
        """Unknown provider names are rejected."""
        monkeypatch.delenv("SYNTHESIS_MODEL", raising=False)
        monkeypatch.setenv("LLM_PROVIDER", "mystery")
        with pytest.raises(ValueError, match="Unknown provider"):
            resolve_default_model()
