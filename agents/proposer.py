"""Proposer agent – one role's structured proposal for the scenario."""

from __future__ import annotations

import math
import zlib
from typing import Any

from agents.base import BaseAgent, VerificationEvidence, evidence_block
from agents.errors import ValidationError
from agents.llm_provider import LLMProvider
from agents.roster import min_rationale_count
from data.models import Agent, AgentRole, DebateWeights, Proposal
from evaluation.validators import DraftValidator, string_list

_SYSTEM_PROMPT = (
    'Return ONLY JSON: {"summary":"","proposal":"","risk":"","riskSeverity":1,'
    '"rationale":[""],"confidence":0.0}. Do not mention plans.'
)

_STYLE_CUES = (
    "concise and structured",
    "pragmatic and action-oriented",
    "analytical and risk-aware",
    "creative but grounded",
    "skeptical with counterexamples",
)

_FOCUS_AREAS: dict[AgentRole, tuple[str, ...]] = {
    AgentRole.PLANNER: ("steps", "dependencies", "milestones", "resources", "risks"),
    AgentRole.SKEPTIC: ("assumptions", "edge cases", "failure modes", "counterexamples", "trade-offs"),
    AgentRole.SECURITY: ("attack surface", "data handling", "privilege", "compliance", "abuse cases"),
    AgentRole.COST: ("engineering effort", "operational cost", "timeline", "maintenance", "scope"),
    AgentRole.SYNTHESIZER: ("decision", "trade-offs", "next step", "constraints", "confidence"),
}


def _stable_hash(value: str) -> int:
    return zlib.crc32(value.encode("utf-8"))


def detail_tier(weight: float) -> str:
    if weight >= 0.7:
        return "high"
    if weight >= 0.45:
        return "medium"
    return "low"


def style_cue(scenario: str, role: AgentRole) -> str:
    return _STYLE_CUES[_stable_hash(f"{scenario}:{role.value}") % len(_STYLE_CUES)]


def focus_areas(scenario: str, role: AgentRole, weight: float) -> list[str]:
    pool = _FOCUS_AREAS.get(role, ())
    if not pool:
        return []
    count = 3 if weight >= 0.7 else 2 if weight >= 0.4 else 1
    start = _stable_hash(f"{scenario}:{role.value}:focus") % len(pool)
    return [pool[(start + i) % len(pool)] for i in range(count)]


def _number(value: Any, default: float) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    return default if math.isnan(number) or math.isinf(number) else number


class Proposer(BaseAgent):
    """Generates and validates the proposal of a single roster agent."""

    def __init__(
        self,
        provider: LLMProvider,
        agent: Agent,
        *,
        agent_id: str | None = None,
        temperature: float = 0.4,
        max_tokens: int = 400,
        system_prompt: str = _SYSTEM_PROMPT,
        validator: DraftValidator | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(
            role=agent.role,
            provider=provider,
            agent_id=agent_id,
            temperature=temperature,
            max_tokens=max_tokens,
            system_prompt=system_prompt,
        )
        self.agent = agent
        self.validator = validator or DraftValidator()

    async def propose(
        self,
        scenario: str,
        weights: DebateWeights,
        evidence: VerificationEvidence | None = None,
        category: str | None = None,
    ) -> Proposal:
        weight = weights.for_role(self.role)
        min_reasons = min_rationale_count(weight)
        prompt = self._build_prompt(scenario, weight, min_reasons, evidence, category)
        return await self.request_json(
            prompt, lambda draft: self._to_proposal(draft, min_reasons)
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _build_prompt(
        self,
        scenario: str,
        weight: float,
        min_reasons: int,
        evidence: VerificationEvidence | None,
        category: str | None,
    ) -> str:
        areas = focus_areas(scenario, self.role, weight)
        return "\n".join(
            [
                f"Scenario: {scenario}",
                f"Prompt category: {category or 'unknown'}",
                f"Agent role: {self.role.value}. Goal: {self.agent.goal}",
                f"Detail level: {detail_tier(weight)}.",
                f"Style cue: {style_cue(scenario, self.role)}",
                f"Focus areas: {', '.join(areas)}" if areas else "Focus areas: none",
                evidence_block(evidence),
                "Include a one-sentence summary of your proposal.",
                "Include the single highest risk and a severity from 1-5.",
                f"Return rationale array with at least {min_reasons} items.",
            ]
        )

    def _to_proposal(self, draft: dict[str, Any], min_reasons: int) -> Proposal:
        result = self.validator.validate_proposal(draft, min_reasons, role=self.role.value)
        if not result:
            raise ValidationError(result.message)

        raw_severity = _number(draft.get("riskSeverity", draft.get("risk_severity")), 3)
        severity = math.floor(raw_severity + 0.5)
        confidence = _number(draft.get("confidence"), 0.5)
        return Proposal(
            agent=self.role,
            proposal=draft["proposal"].strip(),
            summary=draft["summary"].strip(),
            risk=draft["risk"].strip(),
            risk_severity=min(5, max(1, int(severity))),
            rationale=string_list(draft.get("rationale")),
            confidence=min(1.0, max(0.0, confidence)),
        )
