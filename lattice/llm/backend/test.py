"""Tests for provider adapter implementations."""

import httpx
import pytest

from lattice.ir import GenerateRequest

from .anthropic import AnthropicAdapter
from .base import (
    AuthenticationError,
    ContentPolicyError,
    EmptyResponseError,
    LLMError,
    MalformedEventError,
    ModelUnavailableError,
    QuotaError,
    TransportError,
    classify_http_error,
    decode_event,
    describe_error,
    sse_data,
    strip_code_fences,
)
from .deepseek import DeepSeekAdapter
from .factory import create_provider_adapter
from .gemini import GeminiAdapter
from .model_spec import (
    DEFAULT_MODELS,
    LLMModel,
    LLMProviderType,
    suggest_alternative_model,
)
from .openai import OpenAIAdapter


def _openai_delta(text: str) -> dict:
    return {"choices": [{"index": 0, "delta": {"content": text}}]}


def _openai_usage(prompt: int, completion: int) -> dict:
    return {"choices": [], "usage": {"prompt_tokens": prompt, "completion_tokens": completion}}


def _openai_message(text: str) -> httpx.Response:
    return httpx.Response(
        200,
        json={
            "choices": [{"message": {"role": "assistant", "content": text}}],
            "usage": {"prompt_tokens": 10, "completion_tokens": 4},
        },
    )


@pytest.fixture
def request_() -> GenerateRequest:
    return GenerateRequest(prompt="Build a hero", system_prompt="You are a UI engineer")


class Collector:
    """Records streamed chunks."""

    def __init__(self):
        self.chunks: list[str] = []

    def __call__(self, text: str) -> None:
        self.chunks.append(text)


# =============================================================================
# Model Registry
# =============================================================================


class TestLLMModel:
    """Tests for the LLMModel registry."""

    @pytest.mark.unit
    def test_openai_models_exist(self):
        names = [m.spec.name for m in LLMModel.list_by_provider(LLMProviderType.OPENAI)]
        assert names == ["gpt-4o", "gpt-4o-mini", "gpt-4-turbo", "gpt-3.5-turbo"]

    @pytest.mark.unit
    def test_gemini_models_exist(self):
        names = {m.spec.name for m in LLMModel.list_by_provider(LLMProviderType.GEMINI)}
        assert {"gemini-2.5-flash", "gemini-2.5-pro", "gemini-1.5-flash"} <= names

    @pytest.mark.unit
    def test_by_name_lookup(self):
        assert LLMModel.by_name("deepseek-reasoner") == LLMModel.DEEPSEEK_REASONER
        assert LLMModel.by_name("nonexistent") is None

    @pytest.mark.unit
    def test_defaults_belong_to_provider(self):
        for provider, model in DEFAULT_MODELS.items():
            assert model.spec.provider == provider

    @pytest.mark.unit
    def test_suggest_alternative(self):
        assert suggest_alternative_model(LLMProviderType.GEMINI, "gemini-x") == "gemini-2.5-flash"
        assert suggest_alternative_model(LLMProviderType.GEMINI, "gemini-2.5-flash") == "gemini-2.5-pro"


# =============================================================================
# Helpers
# =============================================================================


class TestStripCodeFences:
    """Tests for code fence stripping."""

    @pytest.mark.unit
    def test_strips_language_fence(self):
        assert strip_code_fences("```tsx\nexport const A = 1;\n```") == "export const A = 1;"

    @pytest.mark.unit
    def test_strips_bare_fence_with_whitespace(self):
        assert strip_code_fences("\n```\nline1\nline2\n```  \n") == "line1\nline2"

    @pytest.mark.unit
    def test_leaves_unfenced_code_trimmed(self):
        assert strip_code_fences("  const a = 1;  \n") == "const a = 1;"

    @pytest.mark.unit
    def test_only_one_enclosing_fence(self):
        code = "Here you go:\n```tsx\nx\n```"
        assert strip_code_fences(code) == code


class TestEventDecoding:
    """Tests for SSE line handling."""

    @pytest.mark.unit
    def test_sse_data(self):
        assert sse_data('data: {"a": 1}') == '{"a": 1}'
        assert sse_data("data:[DONE]") == "[DONE]"
        assert sse_data("event: message_start") is None
        assert sse_data("") is None

    @pytest.mark.unit
    def test_decode_event_rejects_garbage(self):
        with pytest.raises(MalformedEventError):
            decode_event("{not json")
        with pytest.raises(MalformedEventError):
            decode_event("[1, 2]")


class TestClassifyHttpError:
    """Tests for vendor error classification."""

    @pytest.mark.unit
    @pytest.mark.parametrize(
        ("status", "body", "expected"),
        [
            (401, '{"error": {"message": "Incorrect API key"}}', AuthenticationError),
            (400, '{"error": {"message": "API key not valid."}}', AuthenticationError),
            (429, '{"error": {"message": "Slow down"}}', QuotaError),
            (400, '{"error": {"message": "Resource has been exhausted (quota)."}}', QuotaError),
            (400, '{"error": {"message": "Prompt blocked by safety filters"}}', ContentPolicyError),
            (404, '{"error": {"message": "models/x is not found"}}', ModelUnavailableError),
            (500, '{"error": {"message": "Internal error"}}', TransportError),
            (502, "<html>bad gateway</html>", TransportError),
        ],
    )
    def test_classification(self, status, body, expected):
        error = classify_http_error(LLMProviderType.GEMINI, status, body, "gemini-x")
        assert type(error) is expected

    @pytest.mark.unit
    def test_transport_uses_vendor_message(self):
        error = classify_http_error(
            LLMProviderType.OPENAI, 500, '{"error": {"message": "Server exploded"}}', "gpt-4o"
        )
        assert str(error) == "Server exploded"
        assert error.status_code == 500

    @pytest.mark.unit
    def test_transport_generic_message(self):
        error = classify_http_error(LLMProviderType.OPENAI, 502, "", "gpt-4o")
        assert str(error) == "OpenAI API error: 502"

    @pytest.mark.unit
    def test_model_unavailable_suggests(self):
        error = classify_http_error(LLMProviderType.GEMINI, 404, "{}", "gemini-9")
        assert error.suggestion == "gemini-2.5-flash"
        assert 'Try using "gemini-2.5-flash" instead.' in str(error)

    @pytest.mark.unit
    def test_quota_retry_after(self):
        error = classify_http_error(
            LLMProviderType.OPENAI, 429, "{}", "gpt-4o", {"retry-after": "3"}
        )
        assert error.retry_after == 3.0

    @pytest.mark.unit
    def test_auth_names_provider(self):
        error = classify_http_error(LLMProviderType.ANTHROPIC, 401, "{}", "claude")
        assert "Anthropic" in str(error)
        assert error.provider == "anthropic"

    @pytest.mark.unit
    def test_describe_error_redacts_keys(self):
        error = TransportError("Bad key sk-abcdefghijklmnop")
        assert describe_error(error) == "Bad key ***"
        assert describe_error(RuntimeError("boom")) == "Unexpected error: boom"


# =============================================================================
# OpenAI
# =============================================================================


class TestOpenAIAdapter:
    """Tests for the OpenAI adapter."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_streams_chunks_and_usage(self, scripted, sse, request_, mock_api_key):
        api = scripted(
            sse([
                _openai_delta("```tsx\n"),
                _openai_delta("export const Hero = () => null;"),
                _openai_delta("\n```"),
                _openai_usage(12, 7),
            ])
        )
        collector = Collector()
        adapter = OpenAIAdapter(transport=api.transport)

        response = await adapter.generate(request_, mock_api_key, on_chunk=collector)

        assert collector.chunks == ["```tsx\n", "export const Hero = () => null;", "\n```"]
        assert response.code == "export const Hero = () => null;"
        assert response.usage.prompt_tokens == 12
        assert response.usage.completion_tokens == 7

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_request_shape(self, scripted, sse, request_, mock_api_key):
        api = scripted(sse([_openai_delta("x")]))
        adapter = OpenAIAdapter(transport=api.transport)
        await adapter.generate(request_, mock_api_key, on_chunk=Collector())

        sent = api.requests[0]
        assert sent.url == "https://api.openai.com/v1/chat/completions"
        assert sent.headers["authorization"] == f"Bearer {mock_api_key}"
        payload = api.payload()
        assert payload["model"] == "gpt-4o"
        assert payload["stream"] is True
        assert payload["stream_options"] == {"include_usage": True}
        assert payload["messages"][0] == {"role": "system", "content": "You are a UI engineer"}
        assert payload["temperature"] == 0.7
        assert payload["max_tokens"] == 4096

    @pytest.mark.unit
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "model,asked,sent",
        [
            ("gpt-3.5-turbo", 8192, 4096),
            ("gpt-4o", 8192, 8192),
            ("gpt-custom", 50000, 50000),
        ],
    )
    async def test_max_tokens_capped_by_model(
        self, scripted, sse, mock_api_key, model, asked, sent
    ):
        api = scripted(sse([_openai_delta("x")]))
        request = GenerateRequest(prompt="p", model=model, max_tokens=asked)
        await OpenAIAdapter(transport=api.transport).generate(
            request, mock_api_key, on_chunk=Collector()
        )
        assert api.payload()["max_tokens"] == sent

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_skips_malformed_events(self, scripted, sse, request_, mock_api_key):
        api = scripted(
            sse([
                _openai_delta("a"),
                "data: {this is not json",
                ": keep-alive comment",
                _openai_delta("b"),
            ])
        )
        collector = Collector()
        response = await OpenAIAdapter(transport=api.transport).generate(
            request_, mock_api_key, on_chunk=collector
        )
        assert collector.chunks == ["a", "b"]
        assert response.code == "ab"
        assert response.usage is None

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_async_chunk_callback(self, scripted, sse, request_, mock_api_key):
        api = scripted(sse([_openai_delta("a"), _openai_delta("b")]))
        seen = []

        async def on_chunk(text: str) -> None:
            seen.append(text)

        await OpenAIAdapter(transport=api.transport).generate(
            request_, mock_api_key, on_chunk=on_chunk
        )
        assert seen == ["a", "b"]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_non_streaming_without_callback(self, scripted, request_, mock_api_key):
        api = scripted(_openai_message("```\nconst a = 1;\n```"))
        response = await OpenAIAdapter(transport=api.transport).generate(request_, mock_api_key)
        assert api.payload()["stream"] is False
        assert "stream_options" not in api.payload()
        assert response.code == "const a = 1;"
        assert response.usage.completion_tokens == 4

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_stream_false_overrides_callback(self, scripted, mock_api_key):
        api = scripted(_openai_message("code"))
        collector = Collector()
        request = GenerateRequest(prompt="p", stream=False)
        response = await OpenAIAdapter(transport=api.transport).generate(
            request, mock_api_key, on_chunk=collector
        )
        assert collector.chunks == []
        assert response.code == "code"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_empty_stream_falls_back_once(self, scripted, sse, request_, mock_api_key):
        api = scripted(sse([_openai_usage(5, 0)]), _openai_message("recovered"))
        collector = Collector()
        response = await OpenAIAdapter(transport=api.transport).generate(
            request_, mock_api_key, on_chunk=collector
        )
        assert len(api.requests) == 2
        assert api.payload(1)["stream"] is False
        assert collector.chunks == []
        assert response.code == "recovered"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_empty_fallback_raises(self, scripted, sse, request_, mock_api_key):
        api = scripted(sse([]), _openai_message("   "))
        with pytest.raises(EmptyResponseError):
            await OpenAIAdapter(transport=api.transport).generate(
                request_, mock_api_key, on_chunk=Collector()
            )
        assert len(api.requests) == 2

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_missing_key_makes_no_request(self, scripted, request_):
        api = scripted()
        with pytest.raises(AuthenticationError, match="No API key configured for OpenAI"):
            await OpenAIAdapter(transport=api.transport).generate(request_, None)
        assert api.requests == []

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_stream_http_error_classified(self, scripted, request_, mock_api_key):
        api = scripted(
            httpx.Response(401, json={"error": {"message": "Incorrect API key provided"}})
        )
        with pytest.raises(AuthenticationError):
            await OpenAIAdapter(transport=api.transport).generate(
                request_, mock_api_key, on_chunk=Collector()
            )

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_unknown_model(self, scripted, mock_api_key):
        api = scripted(
            httpx.Response(404, json={"error": {"message": "The model `gpt-9` does not exist"}})
        )
        with pytest.raises(ModelUnavailableError) as info:
            await OpenAIAdapter(transport=api.transport).generate(
                GenerateRequest(prompt="p", model="gpt-9"), mock_api_key
            )
        assert info.value.model == "gpt-9"
        assert info.value.suggestion == "gpt-4o"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_network_failure(self, scripted, request_, mock_api_key):
        api = scripted(httpx.ConnectError("connection refused"))
        with pytest.raises(TransportError, match="OpenAI request failed"):
            await OpenAIAdapter(transport=api.transport).generate(request_, mock_api_key)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_error_event_mid_stream(self, scripted, sse, request_, mock_api_key):
        api = scripted(
            sse([_openai_delta("part"), {"error": {"message": "Rate limit reached"}}])
        )
        with pytest.raises(QuotaError):
            await OpenAIAdapter(transport=api.transport).generate(
                request_, mock_api_key, on_chunk=Collector()
            )


# =============================================================================
# Anthropic
# =============================================================================


class TestAnthropicAdapter:
    """Tests for the Anthropic adapter."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_streams_typed_events(self, scripted, sse, request_, mock_api_key):
        api = scripted(
            sse(
                [
                    "event: message_start",
                    {"type": "message_start", "message": {"usage": {"input_tokens": 20, "output_tokens": 1}}},
                    {"type": "content_block_start", "index": 0, "content_block": {"type": "text", "text": ""}},
                    {"type": "content_block_delta", "index": 0, "delta": {"type": "text_delta", "text": "export "}},
                    {"type": "content_block_delta", "index": 0, "delta": {"type": "text_delta", "text": "default X;"}},
                    {"type": "message_delta", "delta": {"stop_reason": "end_turn"}, "usage": {"output_tokens": 9}},
                    {"type": "message_stop"},
                ],
                done=False,
            )
        )
        collector = Collector()
        response = await AnthropicAdapter(transport=api.transport).generate(
            request_, mock_api_key, on_chunk=collector
        )
        assert collector.chunks == ["export ", "default X;"]
        assert response.code == "export default X;"
        assert (response.usage.prompt_tokens, response.usage.completion_tokens) == (20, 9)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_request_shape(self, scripted, sse, request_, mock_api_key):
        api = scripted(
            sse([{"type": "content_block_delta", "delta": {"type": "text_delta", "text": "x"}}])
        )
        await AnthropicAdapter(transport=api.transport).generate(
            request_, mock_api_key, on_chunk=Collector()
        )
        sent = api.requests[0]
        assert sent.url == "https://api.anthropic.com/v1/messages"
        assert sent.headers["x-api-key"] == mock_api_key
        assert sent.headers["anthropic-version"] == "2023-06-01"
        payload = api.payload()
        assert payload["model"] == "claude-sonnet-4-20250514"
        assert payload["system"] == "You are a UI engineer"
        assert payload["messages"] == [{"role": "user", "content": "Build a hero"}]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_non_streaming_response(self, scripted, request_, mock_api_key):
        api = scripted(
            httpx.Response(
                200,
                json={
                    "content": [{"type": "text", "text": "const a = 1;"}],
                    "usage": {"input_tokens": 3, "output_tokens": 5},
                },
            )
        )
        response = await AnthropicAdapter(transport=api.transport).generate(
            request_, mock_api_key
        )
        assert response.code == "const a = 1;"
        assert response.usage.prompt_tokens == 3

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_error_event(self, scripted, sse, request_, mock_api_key):
        api = scripted(
            sse(
                [{"type": "error", "error": {"type": "overloaded_error", "message": "Overloaded"}}],
                done=False,
            )
        )
        with pytest.raises(TransportError, match="Overloaded"):
            await AnthropicAdapter(transport=api.transport).generate(
                request_, mock_api_key, on_chunk=Collector()
            )


# =============================================================================
# Gemini
# =============================================================================


def _gemini_chunk(text: str, usage: dict | None = None) -> dict:
    chunk: dict = {"candidates": [{"content": {"role": "model", "parts": [{"text": text}]}}]}
    if usage:
        chunk["usageMetadata"] = usage
    return chunk


class TestGeminiAdapter:
    """Tests for the Gemini adapter."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_streams_with_header_key(self, scripted, sse, request_, mock_api_key):
        api = scripted(
            sse(
                [
                    _gemini_chunk("<div>"),
                    _gemini_chunk("</div>", {"promptTokenCount": 8, "candidatesTokenCount": 2}),
                ],
                done=False,
            )
        )
        collector = Collector()
        response = await GeminiAdapter(transport=api.transport).generate(
            request_, mock_api_key, on_chunk=collector
        )

        sent = api.requests[0]
        assert sent.url.path == "/v1beta/models/gemini-2.5-flash:streamGenerateContent"
        assert sent.url.params["alt"] == "sse"
        assert sent.headers["x-goog-api-key"] == mock_api_key
        assert mock_api_key not in str(sent.url)
        assert collector.chunks == ["<div>", "</div>"]
        assert response.code == "<div></div>"
        assert response.usage.completion_tokens == 2

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_combines_system_prompt(self, scripted, request_, mock_api_key):
        api = scripted(httpx.Response(200, json=_gemini_chunk("ok")))
        await GeminiAdapter(transport=api.transport).generate(request_, mock_api_key)

        payload = api.payload()
        assert api.requests[0].url.path.endswith(":generateContent")
        assert payload["contents"][0]["parts"][0]["text"] == (
            "You are a UI engineer\n\nBuild a hero"
        )
        assert payload["generationConfig"]["maxOutputTokens"] == 8192

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_prompt_blocked(self, scripted, sse, request_, mock_api_key):
        api = scripted(sse([{"promptFeedback": {"blockReason": "SAFETY"}}], done=False))
        with pytest.raises(ContentPolicyError, match="Try rephrasing"):
            await GeminiAdapter(transport=api.transport).generate(
                request_, mock_api_key, on_chunk=Collector()
            )

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_invalid_key(self, scripted, request_, mock_api_key):
        api = scripted(
            httpx.Response(
                400,
                json={"error": {"code": 400, "message": "API key not valid.", "status": "INVALID_ARGUMENT"}},
            )
        )
        with pytest.raises(AuthenticationError, match="Google Gemini authentication error"):
            await GeminiAdapter(transport=api.transport).generate(
                request_, mock_api_key, on_chunk=Collector()
            )

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_zero_chunk_fallback(self, scripted, sse, request_, mock_api_key):
        api = scripted(
            sse([{"candidates": [{"content": {"parts": []}}]}], done=False),
            httpx.Response(200, json=_gemini_chunk("<main/>")),
        )
        response = await GeminiAdapter(transport=api.transport).generate(
            request_, mock_api_key, on_chunk=Collector()
        )
        assert len(api.requests) == 2
        assert api.requests[1].url.path.endswith(":generateContent")
        assert response.code == "<main/>"


# =============================================================================
# DeepSeek and Factory
# =============================================================================


class TestDeepSeekAdapter:
    """Tests for the DeepSeek adapter."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_uses_deepseek_endpoint(self, scripted, sse, request_, mock_api_key):
        api = scripted(sse([_openai_delta("x")]))
        adapter = DeepSeekAdapter(transport=api.transport)
        await adapter.generate(request_, mock_api_key, on_chunk=Collector())

        assert api.requests[0].url == "https://api.deepseek.com/chat/completions"
        assert api.payload()["model"] == "deepseek-chat"
        assert adapter.name == "DeepSeek"


class TestFactory:
    """Tests for create_provider_adapter."""

    @pytest.mark.unit
    @pytest.mark.parametrize(
        ("provider", "cls"),
        [
            ("openai", OpenAIAdapter),
            ("anthropic", AnthropicAdapter),
            ("gemini", GeminiAdapter),
            ("deepseek", DeepSeekAdapter),
            (LLMProviderType.GEMINI, GeminiAdapter),
        ],
    )
    def test_creates_adapter(self, provider, cls):
        assert type(create_provider_adapter(provider)) is cls

    @pytest.mark.unit
    def test_unknown_provider(self):
        with pytest.raises(LLMError, match="Unknown AI provider: mistral"):
            create_provider_adapter("mistral")

    @pytest.mark.unit
    def test_adapter_metadata(self):
        adapter = create_provider_adapter("anthropic")
        assert adapter.id == "anthropic"
        assert adapter.name == "Anthropic"
        assert adapter.default_model == "claude-sonnet-4-20250514"
        assert "claude-3-haiku-20240307" in adapter.models

    @pytest.mark.unit
    def test_timeout_from_environment(self, monkeypatch):
        monkeypatch.setenv("LATTICE_REQUEST_TIMEOUT", "15")
        assert create_provider_adapter("openai")._timeout == 15.0
        assert create_provider_adapter("openai", timeout=3.0)._timeout == 3.0
