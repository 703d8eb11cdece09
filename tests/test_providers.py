import json

import httpx
import pytest
import requests

from chatrelay.config import Settings
from chatrelay.core.errors import (
    ProviderApplicationError,
    ProviderHttpError,
    ProviderMalformedResponseError,
    UnsupportedProviderError,
)
from chatrelay.providers.anthropic import AnthropicAdapter
from chatrelay.providers.gemini import GeminiAdapter
from chatrelay.providers.openai_compatible import MistralAdapter, OpenAIAdapter
from chatrelay.providers.registry import ProviderRegistry, build_registry
from tests.conftest import FakeHTTPSession, StubAdapter, make_response

GEMINI_OK = {"candidates": [{"content": {"parts": [{"text": "Gemini says hi"}]}}]}
ANTHROPIC_OK = {"content": [{"type": "text", "text": "Claude says hi"}]}
OPENAI_OK = {"choices": [{"message": {"role": "assistant", "content": "GPT says hi"}}]}


def gemini(session, api_key="gem-key"):
    return GeminiAdapter(
        api_key,
        "gemini-1.5-pro",
        "https://generativelanguage.googleapis.com/v1beta",
        session=session,
    )


def anthropic(session, api_key="ant-key"):
    return AnthropicAdapter(api_key, "claude-3-haiku-20240307", "https://api.anthropic.com/v1", session=session)


class MockVendor:
    """httpx transport handler that records requests and replays one response."""

    def __init__(self, response: httpx.Response):
        self.response = response
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.response


def openai_adapter(vendor, cls=OpenAIAdapter, base_url="https://api.openai.com/v1"):
    http_client = httpx.Client(transport=httpx.MockTransport(vendor))
    return cls("sk-test", "gpt-3.5-turbo", base_url, http_client=http_client)


# Gemini

def test_gemini_builds_vendor_request_and_extracts_text():
    session = FakeHTTPSession(make_response(200, GEMINI_OK))

    result = gemini(session).invoke("Hello")

    assert result.text == "Gemini says hi"
    assert result.provider_id == "gemini"
    call = session.calls[0]
    assert call["url"].endswith("/models/gemini-1.5-pro:generateContent")
    assert call["params"] == {"key": "gem-key"}
    assert "Authorization" not in call["headers"]
    assert call["json"]["contents"] == [{"parts": [{"text": "Hello"}]}]
    assert call["json"]["generationConfig"] == {"maxOutputTokens": 500, "temperature": 0.7}


def test_gemini_http_500_is_provider_http_error():
    session = FakeHTTPSession(make_response(500, "rate limited"))

    with pytest.raises(ProviderHttpError) as excinfo:
        gemini(session).invoke("Hello")

    assert excinfo.value.status == 500
    assert "500" in excinfo.value.message
    assert "rate limited" in excinfo.value.message


def test_gemini_empty_body_is_malformed():
    session = FakeHTTPSession(make_response(200, ""))

    with pytest.raises(ProviderMalformedResponseError):
        gemini(session).invoke("Hello")


def test_gemini_non_json_body_is_malformed():
    session = FakeHTTPSession(make_response(200, "<html>oops</html>"))

    with pytest.raises(ProviderMalformedResponseError):
        gemini(session).invoke("Hello")


def test_gemini_error_inside_200_is_application_error():
    session = FakeHTTPSession(make_response(200, {"error": {"message": "API key invalid"}}))

    with pytest.raises(ProviderApplicationError) as excinfo:
        gemini(session).invoke("Hello")

    assert "API key invalid" in excinfo.value.message


def test_gemini_missing_candidates_is_malformed():
    session = FakeHTTPSession(make_response(200, {"candidates": []}))

    with pytest.raises(ProviderMalformedResponseError):
        gemini(session).invoke("Hello")


def test_missing_api_key_fails_before_any_call():
    session = FakeHTTPSession(make_response(200, GEMINI_OK))

    with pytest.raises(ProviderApplicationError) as excinfo:
        gemini(session, api_key="").invoke("Hello")

    assert "not configured" in excinfo.value.message
    assert session.calls == []


def test_timeout_surfaces_as_http_error_without_status():
    session = FakeHTTPSession(error=requests.Timeout("read timed out"))

    with pytest.raises(ProviderHttpError) as excinfo:
        gemini(session).invoke("Hello")

    assert excinfo.value.status is None
    assert "timed out" in excinfo.value.message


def test_connection_error_does_not_echo_url_with_key():
    session = FakeHTTPSession(
        error=requests.ConnectionError("https://example.invalid/?key=gem-key refused")
    )

    with pytest.raises(ProviderHttpError) as excinfo:
        gemini(session).invoke("Hello")

    assert "gem-key" not in excinfo.value.message


def test_long_error_bodies_are_truncated():
    session = FakeHTTPSession(make_response(503, "x" * 1000))

    with pytest.raises(ProviderHttpError) as excinfo:
        gemini(session).invoke("Hello")

    assert len(excinfo.value.message) < 300


# Anthropic

def test_anthropic_sends_key_and_version_headers():
    session = FakeHTTPSession(make_response(200, ANTHROPIC_OK))

    result = anthropic(session).invoke("Hello")

    assert result.text == "Claude says hi"
    call = session.calls[0]
    assert call["url"] == "https://api.anthropic.com/v1/messages"
    assert call["headers"]["x-api-key"] == "ant-key"
    assert call["headers"]["anthropic-version"] == "2023-06-01"
    assert call["json"] == {
        "model": "claude-3-haiku-20240307",
        "max_tokens": 500,
        "messages": [{"role": "user", "content": "Hello"}],
    }


def test_anthropic_error_body_is_application_error():
    body = {"type": "error", "error": {"type": "overloaded_error", "message": "Overloaded"}}
    session = FakeHTTPSession(make_response(200, body))

    with pytest.raises(ProviderApplicationError) as excinfo:
        anthropic(session).invoke("Hello")

    assert "Overloaded" in excinfo.value.message


def test_anthropic_unexpected_shape_is_malformed():
    session = FakeHTTPSession(make_response(200, {"content": "not a list"}))

    with pytest.raises(ProviderMalformedResponseError):
        anthropic(session).invoke("Hello")


# OpenAI-compatible

def test_openai_posts_chat_completion_and_extracts_text():
    vendor = MockVendor(httpx.Response(200, json=OPENAI_OK))

    result = openai_adapter(vendor).invoke("Hello")

    assert result.text == "GPT says hi"
    request = vendor.requests[0]
    assert request.method == "POST"
    assert str(request.url) == "https://api.openai.com/v1/chat/completions"
    assert request.headers["Authorization"] == "Bearer sk-test"
    body = json.loads(request.content)
    assert body["max_tokens"] == 500
    assert body["messages"] == [{"role": "user", "content": "Hello"}]


def test_openai_http_500_is_not_retried():
    vendor = MockVendor(httpx.Response(500, text="rate limited"))

    with pytest.raises(ProviderHttpError) as excinfo:
        openai_adapter(vendor).invoke("Hello")

    assert excinfo.value.status == 500
    assert "500" in excinfo.value.message
    assert "rate limited" in excinfo.value.message
    assert len(vendor.requests) == 1


def test_openai_empty_200_body_is_malformed():
    vendor = MockVendor(httpx.Response(200, content=b""))

    with pytest.raises(ProviderMalformedResponseError):
        openai_adapter(vendor).invoke("Hello")


def test_openai_error_inside_200_is_application_error():
    vendor = MockVendor(httpx.Response(200, json={"error": {"message": "quota exceeded"}}))

    with pytest.raises(ProviderApplicationError) as excinfo:
        openai_adapter(vendor).invoke("Hello")

    assert "quota exceeded" in excinfo.value.message


def test_mistral_uses_its_own_endpoint():
    vendor = MockVendor(httpx.Response(200, json=OPENAI_OK))

    result = openai_adapter(vendor, MistralAdapter, "https://api.mistral.ai/v1").invoke("Hi")

    assert result.provider_id == "mistral"
    assert str(vendor.requests[0].url) == "https://api.mistral.ai/v1/chat/completions"


# Registry

def test_registry_resolves_registered_adapters():
    adapter = StubAdapter("openai")
    registry = ProviderRegistry([adapter])

    assert registry.resolve("openai") is adapter
    assert "openai" in registry


def test_registry_rejects_unknown_provider():
    registry = ProviderRegistry([StubAdapter("openai")])

    with pytest.raises(UnsupportedProviderError) as excinfo:
        registry.resolve("unknown-vendor")

    assert "unknown-vendor" in excinfo.value.message


def test_registry_rejects_duplicate_ids():
    with pytest.raises(ValueError):
        ProviderRegistry([StubAdapter("openai"), StubAdapter("openai")])


def test_build_registry_has_the_four_vendors():
    registry = build_registry(Settings())

    ids = [p["id"] for p in registry.providers()]
    assert ids == ["openai", "gemini", "anthropic", "mistral"]
    assert registry.resolve("anthropic").max_tokens == 500
