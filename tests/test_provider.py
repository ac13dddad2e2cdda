"""
Tests for provider error classification and the OpenAI-compatible client.

The message strings below are real provider wordings. If a provider
changes its wording, add the new string here before touching the rules.
"""
import asyncio
from types import SimpleNamespace

import httpx
import openai
import pytest

from narrate.core.errors import ProviderError, ProviderErrorCategory
from narrate.services.provider import (
    OpenAITextGenerator,
    classify_message,
    classify_provider_error,
    validate_provider,
)
from conftest import FakeGenerator

_REQUEST = httpx.Request("POST", "https://example.test/v1/chat/completions")


def _response(status_code: int) -> httpx.Response:
    return httpx.Response(status_code, request=_REQUEST)


class TestClassifyMessage:
    @pytest.mark.parametrize("message,expected", [
        ("429 Too Many Requests", ProviderErrorCategory.RATE_LIMITED),
        ("Resource has been exhausted (e.g. check quota).", ProviderErrorCategory.RATE_LIMITED),
        ("rate limit exceeded", ProviderErrorCategory.RATE_LIMITED),
        ("Rate limit reached for requests", ProviderErrorCategory.RATE_LIMITED),
        ("fetch failed", ProviderErrorCategory.NETWORK_ERROR),
        ("Connection error.", ProviderErrorCategory.NETWORK_ERROR),
        ("Request timed out.", ProviderErrorCategory.NETWORK_ERROR),
        ("network unreachable", ProviderErrorCategory.NETWORK_ERROR),
        ("API key not valid. Please pass a valid API key.", ProviderErrorCategory.AUTH_FAILED),
        ("Incorrect API key provided", ProviderErrorCategory.AUTH_FAILED),
        ("Request had invalid authentication credentials.", ProviderErrorCategory.AUTH_FAILED),
        ("Permission denied on resource project", ProviderErrorCategory.AUTH_FAILED),
        ("Failed to generate content", ProviderErrorCategory.UNKNOWN),
        ("The model is overloaded", ProviderErrorCategory.UNKNOWN),
        ("", ProviderErrorCategory.UNKNOWN),
    ])
    def test_pinned_messages(self, message, expected):
        assert classify_message(message) == expected


class TestClassifyProviderError:
    def test_provider_error_keeps_category(self):
        err = ProviderError(ProviderErrorCategory.EMPTY_RESPONSE)
        assert classify_provider_error(err) == ProviderErrorCategory.EMPTY_RESPONSE

    def test_rate_limit_type(self):
        exc = openai.RateLimitError("slow down", response=_response(429), body=None)
        assert classify_provider_error(exc) == ProviderErrorCategory.RATE_LIMITED

    def test_authentication_type(self):
        exc = openai.AuthenticationError("nope", response=_response(401), body=None)
        assert classify_provider_error(exc) == ProviderErrorCategory.AUTH_FAILED

    def test_permission_denied_type(self):
        exc = openai.PermissionDeniedError("nope", response=_response(403), body=None)
        assert classify_provider_error(exc) == ProviderErrorCategory.AUTH_FAILED

    def test_connection_type(self):
        exc = openai.APIConnectionError(request=_REQUEST)
        assert classify_provider_error(exc) == ProviderErrorCategory.NETWORK_ERROR

    def test_timeout_type(self):
        exc = openai.APITimeoutError(request=_REQUEST)
        assert classify_provider_error(exc) == ProviderErrorCategory.NETWORK_ERROR

    def test_httpx_transport_type(self):
        exc = httpx.ConnectError("boom", request=_REQUEST)
        assert classify_provider_error(exc) == ProviderErrorCategory.NETWORK_ERROR

    def test_structured_type_wins_over_message(self):
        # Message mentions a key, but the status says rate limited.
        exc = openai.RateLimitError("key quota exhausted", response=_response(429), body=None)
        assert classify_provider_error(exc) == ProviderErrorCategory.RATE_LIMITED

    def test_untyped_exception_falls_back_to_message(self):
        assert classify_provider_error(ValueError("quota exceeded")) == ProviderErrorCategory.RATE_LIMITED


def _client_returning(resp=None, error=None):
    calls = []

    async def create(**kwargs):
        calls.append(kwargs)
        if error is not None:
            raise error
        return resp

    client = SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create)))
    return client, calls


def _completion(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


class TestOpenAITextGenerator:
    def test_missing_key(self):
        client, calls = _client_returning(_completion("hi"))
        gen = OpenAITextGenerator("  ", model="m", client=client)
        assert gen.configured is False
        with pytest.raises(ProviderError) as exc_info:
            asyncio.run(gen.generate_text("hello"))
        assert exc_info.value.category == ProviderErrorCategory.MISSING_CREDENTIAL
        assert calls == []

    def test_returns_stripped_text(self):
        client, calls = _client_returning(_completion("  some text \n"))
        gen = OpenAITextGenerator("k", model="gemini-2.0-flash", temperature=0.2, max_tokens=50, client=client)
        assert asyncio.run(gen.generate_text("hello")) == "some text"
        assert calls[0]["model"] == "gemini-2.0-flash"
        assert calls[0]["messages"] == [{"role": "user", "content": "hello"}]
        assert calls[0]["temperature"] == 0.2
        assert calls[0]["max_tokens"] == 50

    def test_no_choices_is_empty_text(self):
        client, _ = _client_returning(SimpleNamespace(choices=[]))
        gen = OpenAITextGenerator("k", model="m", client=client)
        assert asyncio.run(gen.generate_text("hello")) == ""

    def test_null_content_is_empty_text(self):
        client, _ = _client_returning(_completion(None))
        gen = OpenAITextGenerator("k", model="m", client=client)
        assert asyncio.run(gen.generate_text("hello")) == ""

    def test_sdk_error_is_classified(self):
        client, _ = _client_returning(error=openai.APIConnectionError(request=_REQUEST))
        gen = OpenAITextGenerator("k", model="m", client=client)
        with pytest.raises(ProviderError) as exc_info:
            asyncio.run(gen.generate_text("hello"))
        assert exc_info.value.category == ProviderErrorCategory.NETWORK_ERROR
        assert isinstance(exc_info.value.__cause__, openai.APIConnectionError)


class TestValidateProvider:
    def test_reachable(self):
        assert asyncio.run(validate_provider(FakeGenerator(default="API is working"))) is True

    def test_unexpected_reply(self):
        assert asyncio.run(validate_provider(FakeGenerator(default="Hello there"))) is False

    def test_unconfigured_skips_call(self):
        gen = FakeGenerator(configured=False)
        assert asyncio.run(validate_provider(gen)) is False
        assert gen.calls == 0

    def test_provider_error_is_false(self):
        gen = FakeGenerator(script=[ProviderError(ProviderErrorCategory.AUTH_FAILED)])
        assert asyncio.run(validate_provider(gen)) is False
