"""Provider tests with mocked async clients.

Covers the request each backend sends, how answers and usage are read back,
shared transient-error backoff, tool schema cleaning, and the registry cache.
"""

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from storefront.config import CustomProviderConfig, StorefrontConfig, configure
from storefront.core import providers as registry
from storefront.core.providers import base as base_module
from storefront.core.providers.anthropic import AnthropicProvider, _tool_schema
from storefront.core.providers.base import TokenUsage, call_with_backoff
from storefront.core.providers.openai import OpenAIProvider
from storefront.core.providers.openai_compat import OpenAICompatProvider


SCHEMA = {
    "type": "object",
    "properties": {"decision": {"type": "string", "enum": ["Buy", "Skip"]}},
    "required": ["decision"],
    "additionalProperties": False,
}


class _Transient(Exception):
    pass


@pytest.fixture
def no_sleep(monkeypatch):
    sleep = AsyncMock()
    monkeypatch.setattr(base_module.asyncio, "sleep", sleep)
    return sleep


# =============================================================================
# Mock response factories
# =============================================================================


def _make_responses_response(text: str | None = '{"decision": "Buy"}'):
    """Create a mock Responses API response."""
    response = MagicMock()
    response.output_text = text
    response.usage.input_tokens = 100
    response.usage.output_tokens = 50
    return response


def _make_chat_response(text: str | None = '{"decision": "Skip"}'):
    """Create a mock Chat Completions response."""
    choice = MagicMock()
    choice.message.content = text
    response = MagicMock()
    response.choices = [choice]
    response.usage.prompt_tokens = 30
    response.usage.completion_tokens = 12
    return response


def _make_claude_response(tool_input: dict | None = None):
    """Create a mock Messages API response, optionally with a tool_use block."""
    text = MagicMock()
    text.type = "text"
    blocks = [text]
    if tool_input is not None:
        block = MagicMock()
        block.type = "tool_use"
        block.input = tool_input
        blocks.append(block)
    response = MagicMock()
    response.content = blocks
    response.usage.input_tokens = 80
    response.usage.output_tokens = 40
    return response


# =============================================================================
# Shared base
# =============================================================================


class TestTokenUsage:
    def test_missing_usage_is_zero(self):
        assert TokenUsage.from_usage(None) == TokenUsage()

    def test_custom_attribute_names(self):
        usage = MagicMock(prompt_tokens=7, completion_tokens=None)
        assert TokenUsage.from_usage(usage, "prompt_tokens", "completion_tokens") == TokenUsage(7, 0)


class TestCallWithBackoff:
    def test_retries_then_succeeds(self, no_sleep):
        call = AsyncMock(side_effect=[_Transient("busy"), _Transient("busy"), "ok"])
        assert asyncio.run(call_with_backoff(call, (_Transient,), "test")) == "ok"
        assert call.await_count == 3
        assert no_sleep.await_count == 2

    def test_gives_up_after_retries(self, no_sleep):
        call = AsyncMock(side_effect=_Transient("down"))
        with pytest.raises(_Transient):
            asyncio.run(call_with_backoff(call, (_Transient,), "test", retries=2))
        assert call.await_count == 3

    def test_other_errors_are_not_retried(self, no_sleep):
        call = AsyncMock(side_effect=KeyError("bad"))
        with pytest.raises(KeyError):
            asyncio.run(call_with_backoff(call, (_Transient,), "test"))
        assert call.await_count == 1
        no_sleep.assert_not_awaited()


# =============================================================================
# OpenAI
# =============================================================================


class TestOpenAIProvider:
    def test_requires_api_key(self):
        with pytest.raises(ValueError, match="OPENAI_API_KEY"):
            OpenAIProvider(api_key="")

    def test_responses_request(self):
        provider = OpenAIProvider(api_key="test-key")
        client = MagicMock()
        client.responses.create = AsyncMock(return_value=_make_responses_response())

        with patch.object(OpenAIProvider, "_make_client", return_value=client):
            data, usage = asyncio.run(
                provider.simple_call_async("hi", SCHEMA, "persona_decision", max_tokens=200)
            )

        assert data == {"decision": "Buy"}
        assert (usage.input_tokens, usage.output_tokens) == (100, 50)
        params = client.responses.create.await_args.kwargs
        assert params["model"] == "gpt-5-mini"
        assert params["input"] == "hi"
        assert params["max_output_tokens"] == 200
        assert params["text"]["format"]["name"] == "persona_decision"
        assert params["text"]["format"]["strict"] is True

    def test_empty_output_returns_empty_dict(self):
        provider = OpenAIProvider(api_key="test-key")
        response = _make_responses_response(text="")
        response.usage = None
        client = MagicMock()
        client.responses.create = AsyncMock(return_value=response)

        with patch.object(OpenAIProvider, "_make_client", return_value=client):
            data, usage = asyncio.run(provider.simple_call_async("hi", SCHEMA, model="gpt-5"))

        assert data == {}
        assert usage == TokenUsage()
        assert "max_output_tokens" not in client.responses.create.await_args.kwargs

    def test_client_built_once(self):
        provider = OpenAIProvider(api_key="test-key")
        with patch.object(OpenAIProvider, "_make_client", return_value=MagicMock()) as make:
            assert provider.client is provider.client
        make.assert_called_once()


# =============================================================================
# Anthropic
# =============================================================================


class TestAnthropicProvider:
    def test_requires_api_key(self):
        with pytest.raises(ValueError, match="ANTHROPIC_API_KEY"):
            AnthropicProvider(api_key="")

    def test_forced_tool_call(self):
        provider = AnthropicProvider(api_key="test-key")
        client = MagicMock()
        client.messages.create = AsyncMock(
            return_value=_make_claude_response({"decision": "Buy"})
        )

        with patch.object(AnthropicProvider, "_make_client", return_value=client):
            data, usage = asyncio.run(
                provider.simple_call_async("hi", SCHEMA, "persona_decision")
            )

        assert data == {"decision": "Buy"}
        assert usage.output_tokens == 40
        kwargs = client.messages.create.await_args.kwargs
        assert kwargs["tool_choice"] == {"type": "tool", "name": "persona_decision"}
        assert kwargs["tools"][0]["name"] == "persona_decision"
        assert kwargs["tools"][0]["input_schema"]["additionalProperties"] is False
        assert kwargs["max_tokens"] == 1024
        assert kwargs["model"] == "claude-haiku-4-5-20251001"

    def test_missing_tool_block_returns_empty_dict(self):
        provider = AnthropicProvider(api_key="test-key")
        client = MagicMock()
        client.messages.create = AsyncMock(return_value=_make_claude_response(None))

        with patch.object(AnthropicProvider, "_make_client", return_value=client):
            data, _ = asyncio.run(provider.simple_call_async("hi", SCHEMA))

        assert data == {}

    def test_retries_transient_errors(self, monkeypatch, no_sleep):
        monkeypatch.setattr(AnthropicProvider, "transient_errors", (_Transient,))
        provider = AnthropicProvider(api_key="test-key")
        client = MagicMock()
        client.messages.create = AsyncMock(
            side_effect=[_Transient("overloaded"), _make_claude_response({"decision": "Skip"})]
        )

        with patch.object(AnthropicProvider, "_make_client", return_value=client):
            data, _ = asyncio.run(provider.simple_call_async("hi", SCHEMA))

        assert data == {"decision": "Skip"}
        assert client.messages.create.await_count == 2


class TestToolSchema:
    def test_keeps_false_additional_properties(self):
        assert _tool_schema(SCHEMA)["additionalProperties"] is False

    def test_drops_other_additional_properties(self):
        schema = {
            "type": "object",
            "properties": {
                "counts": {"type": "object", "additionalProperties": {"type": "integer"}},
                "extra": {"type": "object", "additionalProperties": True},
                "items": {"type": "array", "items": [{"type": "string"}]},
            },
        }
        cleaned = _tool_schema(schema)
        assert "additionalProperties" not in cleaned["properties"]["counts"]
        assert "additionalProperties" not in cleaned["properties"]["extra"]
        assert cleaned["properties"]["items"]["items"] == [{"type": "string"}]

    def test_does_not_mutate_input(self):
        schema = {"type": "object", "additionalProperties": {"type": "string"}}
        _tool_schema(schema)
        assert schema["additionalProperties"] == {"type": "string"}


# =============================================================================
# OpenAI-compatible
# =============================================================================


class TestOpenAICompatProvider:
    def _provider(self):
        return OpenAICompatProvider(
            api_key="test-key",
            base_url="https://example.test/v1",
            provider_label="local",
            default_model="tiny-model",
        )

    def test_requires_api_key(self):
        with pytest.raises(ValueError, match="LOCAL_API_KEY"):
            OpenAICompatProvider(api_key="", provider_label="local")

    def test_chat_completions_request(self):
        provider = self._provider()
        client = MagicMock()
        client.chat.completions.create = AsyncMock(
            return_value=_make_chat_response(json.dumps({"decision": "Buy"}))
        )

        with patch.object(OpenAICompatProvider, "_make_client", return_value=client):
            data, usage = asyncio.run(
                provider.simple_call_async("hello", SCHEMA, "persona_decision", max_tokens=64)
            )

        assert data == {"decision": "Buy"}
        assert (usage.input_tokens, usage.output_tokens) == (30, 12)
        params = client.chat.completions.create.await_args.kwargs
        assert params["model"] == "tiny-model"
        assert params["messages"] == [{"role": "user", "content": "hello"}]
        assert params["response_format"]["json_schema"]["name"] == "persona_decision"
        assert params["max_tokens"] == 64

    def test_no_choices_returns_empty_dict(self):
        provider = self._provider()
        response = _make_chat_response()
        response.choices = []
        client = MagicMock()
        client.chat.completions.create = AsyncMock(return_value=response)

        with patch.object(OpenAICompatProvider, "_make_client", return_value=client):
            data, _ = asyncio.run(provider.simple_call_async("hi", SCHEMA))

        assert data == {}
        assert "max_tokens" not in client.chat.completions.create.await_args.kwargs

    def test_gives_up_after_retries(self, monkeypatch, no_sleep):
        monkeypatch.setattr(OpenAICompatProvider, "transient_errors", (_Transient,))
        provider = self._provider()
        client = MagicMock()
        client.chat.completions.create = AsyncMock(side_effect=_Transient("down"))

        with patch.object(OpenAICompatProvider, "_make_client", return_value=client):
            with pytest.raises(_Transient):
                asyncio.run(provider.simple_call_async("hi", SCHEMA))

        assert client.chat.completions.create.await_count == base_module.API_RETRIES + 1

    def test_close_async_releases_client(self):
        provider = self._provider()
        client = MagicMock()
        client.close = AsyncMock()

        with patch.object(OpenAICompatProvider, "_make_client", return_value=client):
            assert provider.client is client
        asyncio.run(provider.close_async())

        client.close.assert_awaited_once()
        assert provider._client is None


# =============================================================================
# Registry
# =============================================================================


class TestProviderRegistry:
    def test_unknown_provider(self):
        with pytest.raises(ValueError, match="Unknown LLM provider"):
            registry.get_provider("nope")

    def test_missing_api_key(self, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        with pytest.raises(ValueError):
            registry.get_provider("openai")

    def test_claude_alias(self, monkeypatch):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-ant-test")
        provider = registry.get_provider("claude")
        assert isinstance(provider, AnthropicProvider)

    def test_builtin_compat_provider(self, monkeypatch):
        monkeypatch.setenv("GEMINI_API_KEY", "g-test")
        provider = registry.get_provider("gemini")
        assert isinstance(provider, OpenAICompatProvider)
        assert provider.provider_name == "gemini"
        assert provider.default_model == "gemini-2.5-flash"
        assert "generativelanguage" in provider._base_url

    def test_custom_provider(self, monkeypatch):
        monkeypatch.setenv("LOCAL_LLM_KEY", "local-key")
        custom = {
            "local": CustomProviderConfig(
                base_url="http://localhost:8000/v1", api_key_env="LOCAL_LLM_KEY"
            )
        }
        provider = registry.get_provider("local", custom)
        assert isinstance(provider, OpenAICompatProvider)
        assert provider._base_url == "http://localhost:8000/v1"
        assert "local" in registry.available_providers(custom)

    def test_custom_provider_names_its_key_variable(self, monkeypatch):
        monkeypatch.delenv("LOCAL_LLM_KEY", raising=False)
        custom = {
            "local": CustomProviderConfig(
                base_url="http://localhost:8000/v1", api_key_env="LOCAL_LLM_KEY"
            )
        }
        with pytest.raises(ValueError, match="LOCAL_LLM_KEY"):
            registry.get_provider("local", custom)

    def test_oracle_provider_is_cached(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        configure(StorefrontConfig())
        first = registry.get_oracle_provider("openai/gpt-5-mini")
        second = registry.get_oracle_provider("openai/gpt-5")
        assert first is second

    def test_close_oracle_providers_clears_cache(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        configure(StorefrontConfig())
        first = registry.get_oracle_provider("openai/gpt-5-mini")
        first.close_async = AsyncMock()

        asyncio.run(registry.close_oracle_providers())

        first.close_async.assert_awaited_once()
        assert registry.get_oracle_provider("openai/gpt-5-mini") is not first
