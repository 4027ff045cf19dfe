"""LLM Provider abstraction layer for Groq and Ollama.

Provides a unified async interface to the supported chat backends with
latency tracking, bounded retries, and configuration resolution from the
YAML config plus environment overrides.
"""

from __future__ import annotations

import asyncio
import logging
import os
import time
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

import httpx

from agents.errors import ConfigurationError, ProviderError

logger = logging.getLogger(__name__)

DEFAULT_GROQ_URL = "https://api.groq.com/openai/v1"
DEFAULT_GROQ_MODEL = "llama-3.1-70b-versatile"
DEFAULT_OLLAMA_URL = "http://localhost:11434"


# ---------------------------------------------------------------------------
# Data containers
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class LLMResponse:
    """Standardised response from any LLM provider."""

    text: str
    tokens_used: int
    model: str
    provider: str
    latency_ms: float
    raw: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class LLMSettings:
    """Resolved connection and sampling settings for one provider."""

    provider: str
    model: str | None
    url: str | None
    api_key: str | None = None
    temperature: float = 0.2
    agent_temperature: float = 0.6
    max_tokens: int = 400
    prompt_version: str = "v1"
    timeout: int = 30

    @classmethod
    def resolve(
        cls,
        config: Mapping[str, Any] | None = None,
        provider_override: str | None = None,
        env: Mapping[str, str] | None = None,
    ) -> LLMSettings:
        """Merge the ``llm`` config section with environment overrides.

        Environment variables win over the YAML file; an explicit
        *provider_override* wins over both.
        """
        cfg = dict(config or {})
        env = os.environ if env is None else env

        provider = str(
            provider_override or env.get("LLM_PROVIDER") or cfg.get("provider") or "groq"
        ).strip().lower()
        section = cfg.get(provider, {}) or {}

        if provider == "ollama":
            url = env.get("OLLAMA_URL") or env.get("LLM_URL") or section.get("url") or DEFAULT_OLLAMA_URL
            model = env.get("OLLAMA_MODEL") or env.get("LLM_MODEL") or section.get("model")
            api_key = None
        else:
            url = env.get("GROQ_URL") or env.get("LLM_URL") or section.get("url") or DEFAULT_GROQ_URL
            model = (
                env.get("GROQ_MODEL") or env.get("LLM_MODEL") or section.get("model") or DEFAULT_GROQ_MODEL
            )
            api_key_env = section.get("api_key_env", "GROQ_API_KEY")
            api_key = env.get(api_key_env) or env.get("LLM_API_KEY")

        return cls(
            provider=provider,
            model=model,
            url=url,
            api_key=api_key,
            temperature=_as_float(env.get("LLM_TEMPERATURE", cfg.get("temperature")), 0.2),
            agent_temperature=_as_float(
                env.get("LLM_AGENT_TEMPERATURE", cfg.get("agent_temperature")), 0.6
            ),
            max_tokens=int(_as_float(env.get("LLM_MAX_TOKENS", cfg.get("max_tokens")), 400)),
            prompt_version=str(env.get("LLM_PROMPT_VERSION", cfg.get("prompt_version", "v1"))),
            timeout=int(cfg.get("timeout", 30)),
        )

    def build_provider(self) -> LLMProvider:
        if not self.model:
            raise ConfigurationError(
                "LLM provider is not configured. Check GROQ_API_KEY/GROQ_MODEL "
                "or OLLAMA_URL/OLLAMA_MODEL."
            )
        kwargs: dict[str, Any] = {
            "model": self.model,
            "base_url": self.url,
            "timeout": self.timeout,
        }
        if self.provider == "groq":
            kwargs["api_key"] = self.api_key
        return create_provider(self.provider, **kwargs)


def _as_float(value: Any, default: float) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


# ---------------------------------------------------------------------------
# Abstract base
# ---------------------------------------------------------------------------

class LLMProvider(ABC):
    """Provider-agnostic interface that all LLM backends implement."""

    name: str  # e.g. "groq", "ollama"
    requires_api_key: bool = True

    def __init__(
        self,
        model: str,
        api_key: str | None = None,
        api_key_env: str | None = None,
        timeout: int = 30,
        max_retries: int = 1,
    ) -> None:
        self.model = model
        self.timeout = timeout
        self.max_retries = max(1, max_retries)

        # Resolve API key: explicit > env var > raise
        self.api_key = api_key or os.getenv(api_key_env or "")
        if self.requires_api_key and not self.api_key:
            raise ConfigurationError(
                f"No API key for {self.name}. "
                f"Set {api_key_env!r} or pass api_key explicitly."
            )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def generate(
        self,
        messages: list[dict[str, str]],
        *,
        temperature: float = 0.2,
        max_tokens: int = 400,
        **kwargs: Any,
    ) -> LLMResponse:
        """Generate a response; transport failures raise ``ProviderError``.

        Only ``max_retries`` attempts are made, so the default of one means
        network failures surface immediately.
        """
        last_exc: Exception | None = None
        for attempt in range(1, self.max_retries + 1):
            try:
                start = time.perf_counter()
                response = await self._call_api(
                    messages,
                    temperature=temperature,
                    max_tokens=max_tokens,
                    **kwargs,
                )
                elapsed = (time.perf_counter() - start) * 1000
                response = LLMResponse(
                    text=response["text"],
                    tokens_used=response.get("tokens_used", 0),
                    model=self.model,
                    provider=self.name,
                    latency_ms=round(elapsed, 1),
                    raw=response.get("raw", {}),
                )
                logger.debug(
                    "[%s] %s responded (%d tokens, %.0f ms)",
                    self.name,
                    self.model,
                    response.tokens_used,
                    response.latency_ms,
                )
                return response
            except Exception as exc:  # noqa: BLE001
                last_exc = exc
                if attempt == self.max_retries:
                    break
                wait = min(2**attempt, 16)
                logger.warning(
                    "[%s] Attempt %d/%d failed (%s). Retrying in %ds …",
                    self.name,
                    attempt,
                    self.max_retries,
                    exc,
                    wait,
                )
                await asyncio.sleep(wait)

        raise ProviderError(
            f"[{self.name}] LLM request failed: {last_exc}"
        ) from last_exc

    # ------------------------------------------------------------------
    # Backend-specific implementation (override in subclasses)
    # ------------------------------------------------------------------

    @abstractmethod
    async def _call_api(
        self,
        messages: list[dict[str, str]],
        *,
        temperature: float,
        max_tokens: int,
        **kwargs: Any,
    ) -> dict[str, Any]:
        """Return ``{"text": ..., "tokens_used": ..., "raw": ...}``."""
        ...

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def __repr__(self) -> str:
        return f"{type(self).__name__}(model={self.model!r})"


# ---------------------------------------------------------------------------
# Groq
# ---------------------------------------------------------------------------

class GroqProvider(LLMProvider):
    """Async Groq provider using its OpenAI-compatible API."""

    name = "groq"

    def __init__(
        self,
        model: str = DEFAULT_GROQ_MODEL,
        base_url: str | None = None,
        **kwargs: Any,
    ) -> None:
        kwargs.setdefault("api_key_env", "GROQ_API_KEY")
        super().__init__(model=model, **kwargs)

        import openai
        self._client = openai.AsyncOpenAI(
            base_url=base_url or DEFAULT_GROQ_URL,
            api_key=self.api_key,
            timeout=self.timeout,
            max_retries=0,
        )

    async def _call_api(
        self,
        messages: list[dict[str, str]],
        *,
        temperature: float,
        max_tokens: int,
        **kwargs: Any,
    ) -> dict[str, Any]:
        response = await self._client.chat.completions.create(
            model=self.model,
            messages=messages,
            temperature=temperature,
            max_tokens=max_tokens,
            **kwargs,
        )
        choice = response.choices[0]
        usage = response.usage
        text = choice.message.content or ""
        if not text:
            raise ProviderError("LLM response missing content.")
        return {
            "text": text,
            "tokens_used": usage.total_tokens if usage else 0,
            "raw": response.model_dump(),
        }


# ---------------------------------------------------------------------------
# Ollama
# ---------------------------------------------------------------------------

class OllamaProvider(LLMProvider):
    """Async Ollama provider calling the native ``/api/chat`` endpoint."""

    name = "ollama"
    requires_api_key = False

    def __init__(
        self,
        model: str = "llama3.1",
        base_url: str | None = None,
        json_format: bool = True,
        **kwargs: Any,
    ) -> None:
        super().__init__(model=model, **kwargs)
        self.base_url = (base_url or DEFAULT_OLLAMA_URL).rstrip("/")
        self.json_format = json_format

    async def _call_api(
        self,
        messages: list[dict[str, str]],
        *,
        temperature: float,
        max_tokens: int,
        **kwargs: Any,
    ) -> dict[str, Any]:
        body: dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "stream": False,
            "options": {"temperature": temperature, "num_predict": max_tokens},
            **kwargs,
        }
        if self.json_format:
            body["format"] = "json"

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            resp = await client.post(f"{self.base_url}/api/chat", json=body)
        if resp.status_code != 200:
            raise ProviderError(
                f"LLM request failed ({resp.status_code}): {resp.text[:300]}"
            )

        payload = resp.json()
        text = (payload.get("message") or {}).get("content") or ""
        if not text:
            raise ProviderError("LLM response missing content.")
        tokens = (payload.get("prompt_eval_count") or 0) + (payload.get("eval_count") or 0)
        return {"text": text, "tokens_used": tokens, "raw": payload}


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------

_PROVIDERS: dict[str, type[LLMProvider]] = {
    "groq": GroqProvider,
    "ollama": OllamaProvider,
}


def create_provider(name: str, **kwargs: Any) -> LLMProvider:
    """Instantiate an LLM provider by its short name.

    >>> provider = create_provider("ollama", model="llama3.1")
    """
    cls = _PROVIDERS.get(name.lower())
    if cls is None:
        raise ConfigurationError(
            f"Unknown provider {name!r}. Choose from {list(_PROVIDERS)}"
        )
    return cls(**kwargs)
