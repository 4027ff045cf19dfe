"""Base agent class with provider-agnostic structured-output handling.

Every LLM-backed debate participant inherits from ``BaseAgent`` which provides:
- Provider-agnostic ``generate_response`` and JSON request/repair/retry
- Automatic token tracking

``DebateCapabilities`` is the contract the orchestrator consumes; the
LLM-backed implementation lives in ``agents.council``.
"""

from __future__ import annotations

import logging
import uuid
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, TypeVar

from agents.errors import ValidationError
from agents.llm_provider import LLMProvider, LLMResponse
from agents.parsing import parse_json_object
from data.models import Agent, AgentRole, DebateWeights, FinalSolution, Proposal

logger = logging.getLogger(__name__)

T = TypeVar("T")

STRICT_RETRY_NOTE = (
    "Retry: Output must be strict JSON only with the exact keys. No prose, no markdown."
)


@dataclass(frozen=True)
class VerificationEvidence:
    """Verification output handed to agents as supporting context."""

    summary: str
    output: str

    def excerpt(self, limit: int = 600) -> str:
        if len(self.output) > limit:
            return f"{self.output[:limit]}..."
        return self.output

    def as_prompt_block(self) -> str:
        return "\n".join(
            ["Evidence summary:", self.summary, "Evidence excerpt:", self.excerpt()]
        )


def evidence_block(evidence: VerificationEvidence | None) -> str:
    return evidence.as_prompt_block() if evidence else "No evidence available."


# ---------------------------------------------------------------------------
# Capability contract
# ---------------------------------------------------------------------------

class DebateCapabilities(ABC):
    """External text-generation capabilities a debate run depends on."""

    model: str | None = None
    prompt_version: str | None = None

    @abstractmethod
    async def classify(self, scenario: str) -> str:
        """Return one of the fixed prompt-category labels."""

    @abstractmethod
    async def generate_proposal(
        self,
        agent: Agent,
        scenario: str,
        weights: DebateWeights,
        evidence: VerificationEvidence | None,
        category: str,
    ) -> Proposal:
        """Return a validated proposal for *agent*."""

    @abstractmethod
    async def generate_final_solution(
        self,
        scenario: str,
        proposals: list[Proposal],
        evidence: VerificationEvidence | None,
    ) -> FinalSolution:
        ...

    @abstractmethod
    async def generate_final_response(
        self,
        scenario: str,
        category: str,
        final_solution: FinalSolution,
        proposals: list[Proposal],
        evidence: VerificationEvidence | None,
        code_related: bool,
    ) -> str:
        ...


# ---------------------------------------------------------------------------
# BaseAgent
# ---------------------------------------------------------------------------

class BaseAgent:
    """Provider-agnostic base class for every LLM-backed agent.

    Parameters
    ----------
    role : AgentRole
        The roster role this agent speaks for.
    provider : LLMProvider
        The LLM backend used for generation.
    agent_id : str | None
        Unique identifier; auto-generated if not supplied.
    temperature : float
        Sampling temperature forwarded to the provider.
    max_tokens : int
        Max output tokens forwarded to the provider.
    system_prompt : str
        The root system prompt that defines agent behaviour.
    """

    role: AgentRole

    def __init__(
        self,
        *,
        role: AgentRole,
        provider: LLMProvider,
        agent_id: str | None = None,
        temperature: float = 0.4,
        max_tokens: int = 400,
        system_prompt: str = "",
    ) -> None:
        self.agent_id = agent_id or f"{role.value}_{uuid.uuid4().hex[:8]}"
        self.role = role
        self.provider = provider
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.system_prompt = system_prompt

        self._total_tokens_used: int = 0

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def generate_response(
        self,
        prompt: str,
        *,
        extra_system: str | None = None,
        **kwargs: Any,
    ) -> LLMResponse:
        """Send *prompt* to the LLM and return the raw response.

        Provider failures propagate as ``ProviderError`` without retry.
        """
        messages = self._build_messages(prompt, extra_system)
        llm_resp = await self.provider.generate(
            messages,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
            **kwargs,
        )
        self._total_tokens_used += llm_resp.tokens_used
        return llm_resp

    async def request_json(
        self,
        prompt: str | Callable[[bool], str],
        parse: Callable[[dict[str, Any]], T],
        *,
        attempts: int = 2,
    ) -> T:
        """Ask for a JSON object and convert it with *parse*.

        Unparsable or invalid output is retried with a stricter instruction
        until *attempts* is exhausted, then ``ValidationError`` is raised.
        *prompt* may be a callable receiving ``strict`` for retries that
        change the user message itself.
        """
        last_error: ValidationError | None = None
        for attempt in range(1, attempts + 1):
            strict = attempt > 1
            text = prompt(strict) if callable(prompt) else prompt
            response = await self.generate_response(
                text, extra_system=STRICT_RETRY_NOTE if strict else None
            )
            try:
                return parse(parse_json_object(response.text))
            except ValidationError as exc:
                last_error = exc
                logger.warning(
                    "[%s] Structured output rejected (attempt %d/%d): %s",
                    self.role.value,
                    attempt,
                    attempts,
                    exc,
                )

        raise ValidationError(str(last_error) if last_error else "Invalid structured output.")

    # ------------------------------------------------------------------
    # Message assembly
    # ------------------------------------------------------------------

    def _build_messages(self, prompt: str, extra_system: str | None = None) -> list[dict[str, str]]:
        """Assemble the full message list for the provider."""
        messages: list[dict[str, str]] = []
        if self.system_prompt:
            messages.append({"role": "system", "content": self.system_prompt})
        messages.append({"role": "user", "content": prompt})
        if extra_system:
            messages.append({"role": "system", "content": extra_system})
        return messages

    @property
    def total_tokens_used(self) -> int:
        return self._total_tokens_used

    # ------------------------------------------------------------------
    # Dunder
    # ------------------------------------------------------------------

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(id={self.agent_id!r}, "
            f"role={self.role.value!r}, provider={self.provider})"
        )
