"""Tests for agents.llm_provider module."""

from __future__ import annotations

import json

import httpx
import pytest

from agents.errors import ConfigurationError, ProviderError
from agents.llm_provider import (
    DEFAULT_GROQ_MODEL,
    DEFAULT_OLLAMA_URL,
    GroqProvider,
    LLMResponse,
    LLMSettings,
    OllamaProvider,
    create_provider,
)
from tests.conftest import MockProvider


class TestMockProvider:
    """Verify the mock provider works correctly for downstream tests."""

    @pytest.mark.asyncio
    async def test_generate_returns_llm_response(self, mock_provider: MockProvider):
        resp = await mock_provider.generate(
            [{"role": "user", "content": "Hello"}],
            temperature=0.5,
            max_tokens=100,
        )
        assert isinstance(resp, LLMResponse)
        assert resp.provider == "mock"
        assert resp.model == "mock-v1"
        assert len(resp.text) > 0
        assert resp.tokens_used > 0
        assert resp.latency_ms >= 0

    @pytest.mark.asyncio
    async def test_multiple_responses_cycle(self):
        provider = MockProvider(responses=["first", "second"])
        texts = [
            (await provider.generate([{"role": "user", "content": c}])).text for c in "abc"
        ]
        assert texts == ["first", "second", "first"]

    @pytest.mark.asyncio
    async def test_responder_sees_messages(self):
        provider = MockProvider(responder=lambda messages: messages[-1]["content"].upper())
        resp = await provider.generate([{"role": "user", "content": "echo"}])
        assert resp.text == "ECHO"

    @pytest.mark.asyncio
    async def test_call_log_records_parameters(self, mock_provider: MockProvider):
        await mock_provider.generate(
            [{"role": "system", "content": "sys"}, {"role": "user", "content": "hi"}],
            temperature=0.9,
            max_tokens=200,
        )
        log = mock_provider.call_log[0]
        assert log["temperature"] == 0.9
        assert log["max_tokens"] == 200
        assert len(log["messages"]) == 2


class _BrokenProvider(MockProvider):
    async def _call_api(self, messages, **kwargs):
        raise ConnectionError("connection refused")


class TestGenerateErrors:
    @pytest.mark.asyncio
    async def test_transport_failure_becomes_provider_error(self):
        with pytest.raises(ProviderError, match="connection refused"):
            await _BrokenProvider().generate([{"role": "user", "content": "x"}])


class TestCreateProvider:
    def test_unknown_provider_raises(self):
        with pytest.raises(ConfigurationError, match="Unknown provider"):
            create_provider("openai", api_key="k")

    def test_missing_api_key_raises(self, monkeypatch):
        monkeypatch.delenv("GROQ_API_KEY", raising=False)
        with pytest.raises(ConfigurationError, match="No API key"):
            create_provider("groq")

    def test_groq_provider_created(self):
        provider = create_provider("groq", api_key="test-key", model="llama-3.1-8b-instant")
        assert isinstance(provider, GroqProvider)
        assert provider.name == "groq"
        assert provider.model == "llama-3.1-8b-instant"

    def test_ollama_needs_no_key(self):
        provider = create_provider("Ollama", model="llama3.1", base_url="http://box:11434/")
        assert isinstance(provider, OllamaProvider)
        assert provider.base_url == "http://box:11434"


class TestLLMSettings:
    def test_defaults_to_groq(self):
        settings = LLMSettings.resolve({}, env={})
        assert settings.provider == "groq"
        assert settings.model == DEFAULT_GROQ_MODEL
        assert settings.api_key is None
        assert settings.prompt_version == "v1"

    def test_env_wins_over_config(self):
        config = {
            "provider": "groq",
            "temperature": 0.3,
            "ollama": {"model": "from-yaml", "url": "http://yaml:11434"},
        }
        env = {"LLM_PROVIDER": "ollama", "OLLAMA_MODEL": "from-env", "LLM_TEMPERATURE": "0.1"}
        settings = LLMSettings.resolve(config, env=env)
        assert settings.provider == "ollama"
        assert settings.model == "from-env"
        assert settings.url == "http://yaml:11434"
        assert settings.temperature == 0.1

    def test_override_wins_over_env(self):
        settings = LLMSettings.resolve({}, "ollama", env={"LLM_PROVIDER": "groq"})
        assert settings.provider == "ollama"
        assert settings.url == DEFAULT_OLLAMA_URL

    def test_api_key_env_from_config(self):
        settings = LLMSettings.resolve(
            {"groq": {"api_key_env": "MY_KEY"}}, env={"MY_KEY": "abc"}
        )
        assert settings.api_key == "abc"

    def test_ollama_without_model_is_unconfigured(self):
        settings = LLMSettings.resolve({"provider": "ollama"}, env={})
        with pytest.raises(ConfigurationError, match="not configured"):
            settings.build_provider()

    @pytest.mark.parametrize("name", ["olama", "openai", " Groq2 "])
    def test_unknown_provider_name_is_rejected(self, name):
        settings = LLMSettings.resolve({}, env={"LLM_PROVIDER": name})
        assert settings.provider == name.strip().lower()
        with pytest.raises(ConfigurationError, match="Unknown provider"):
            settings.build_provider()

    def test_config_provider_is_normalised(self):
        settings = LLMSettings.resolve({"provider": " Ollama ", "ollama": {"model": "m"}}, env={})
        assert settings.provider == "ollama"

    def test_bad_numbers_fall_back(self):
        settings = LLMSettings.resolve({"max_tokens": "lots"}, env={"LLM_AGENT_TEMPERATURE": "hot"})
        assert settings.max_tokens == 400
        assert settings.agent_temperature == 0.6


def _patch_transport(monkeypatch, handler):
    real_client = httpx.AsyncClient
    monkeypatch.setattr(
        httpx,
        "AsyncClient",
        lambda **kwargs: real_client(transport=httpx.MockTransport(handler), **kwargs),
    )


class TestOllamaProvider:
    @pytest.mark.asyncio
    async def test_chat_request(self, monkeypatch):
        seen: dict = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["body"] = json.loads(request.content)
            return httpx.Response(
                200,
                json={
                    "message": {"role": "assistant", "content": '{"category": "meta-prompt"}'},
                    "prompt_eval_count": 12,
                    "eval_count": 8,
                },
            )

        _patch_transport(monkeypatch, handler)
        provider = OllamaProvider(model="llama3.1")
        resp = await provider.generate(
            [{"role": "user", "content": "hi"}], temperature=0.3, max_tokens=50
        )
        assert seen["url"] == "http://localhost:11434/api/chat"
        assert seen["body"]["format"] == "json"
        assert seen["body"]["stream"] is False
        assert seen["body"]["options"] == {"temperature": 0.3, "num_predict": 50}
        assert resp.text == '{"category": "meta-prompt"}'
        assert resp.tokens_used == 20

    @pytest.mark.asyncio
    async def test_non_200(self, monkeypatch):
        _patch_transport(monkeypatch, lambda request: httpx.Response(500, text="model not found"))
        with pytest.raises(ProviderError, match="model not found"):
            await OllamaProvider(model="llama3.1").generate([{"role": "user", "content": "x"}])

    @pytest.mark.asyncio
    async def test_empty_content(self, monkeypatch):
        _patch_transport(monkeypatch, lambda request: httpx.Response(200, json={"message": {}}))
        with pytest.raises(ProviderError, match="missing content"):
            await OllamaProvider(model="llama3.1").generate([{"role": "user", "content": "x"}])


class TestLLMResponse:
    def test_frozen_dataclass(self):
        resp = LLMResponse(
            text="hi", tokens_used=5, model="m", provider="p", latency_ms=10.0
        )
        assert resp.text == "hi"
        with pytest.raises(AttributeError):
            resp.text = "modified"  # type: ignore[misc]
