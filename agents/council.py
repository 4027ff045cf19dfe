"""AgentCouncil – the LLM-backed debate capabilities.

Seats one ``Proposer`` per proposing role plus the scenario classifier and
the synthesizer, all sharing a single provider.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from agents.base import DebateCapabilities, VerificationEvidence
from agents.classifier import ScenarioClassifier
from agents.llm_provider import LLMProvider, LLMSettings
from agents.proposer import Proposer
from agents.roster import PROPOSAL_ROLES, get_agent
from agents.synthesizer import Synthesizer
from data.models import Agent, AgentRole, DebateWeights, FinalSolution, Proposal

logger = logging.getLogger(__name__)

# Proposals never sample hotter than this, whatever the configured value.
MAX_PROPOSAL_TEMPERATURE = 0.4


class AgentCouncil(DebateCapabilities):
    """Debate capabilities backed by a single ``LLMProvider``."""

    def __init__(
        self,
        provider: LLMProvider,
        *,
        temperature: float = 0.2,
        agent_temperature: float = 0.6,
        max_tokens: int = 400,
        model: str | None = None,
        prompt_version: str | None = None,
    ) -> None:
        self.provider = provider
        self.model = model or provider.model
        self.prompt_version = prompt_version

        self.classifier = ScenarioClassifier(provider)
        self.proposers: dict[AgentRole, Proposer] = {
            role: Proposer(
                provider,
                get_agent(role),
                agent_id=f"{role.value}_proposer",
                temperature=min(agent_temperature, MAX_PROPOSAL_TEMPERATURE),
                max_tokens=max_tokens,
            )
            for role in PROPOSAL_ROLES
        }
        self.synthesizer = Synthesizer(
            provider,
            agent_id="synthesizer",
            temperature=temperature,
            max_tokens=max(max_tokens, 500),
        )

    @classmethod
    def from_settings(cls, settings: LLMSettings) -> AgentCouncil:
        """Build the council; raises ``ConfigurationError`` when unconfigured."""
        provider = settings.build_provider()
        logger.info("Using %s provider (model=%s)", settings.provider, settings.model)
        return cls(
            provider,
            temperature=settings.temperature,
            agent_temperature=settings.agent_temperature,
            max_tokens=settings.max_tokens,
            model=settings.model,
            prompt_version=settings.prompt_version,
        )

    @classmethod
    def from_config(
        cls,
        config: Mapping[str, Any] | None = None,
        provider_override: str | None = None,
    ) -> AgentCouncil:
        llm_cfg = (config or {}).get("llm", {})
        return cls.from_settings(LLMSettings.resolve(llm_cfg, provider_override))

    # ------------------------------------------------------------------
    # DebateCapabilities
    # ------------------------------------------------------------------

    async def classify(self, scenario: str) -> str:
        category = await self.classifier.classify(scenario)
        return category.value

    async def generate_proposal(
        self,
        agent: Agent,
        scenario: str,
        weights: DebateWeights,
        evidence: VerificationEvidence | None,
        category: str,
    ) -> Proposal:
        proposer = self.proposers[agent.role]
        return await proposer.propose(scenario, weights, evidence, category)

    async def generate_final_solution(
        self,
        scenario: str,
        proposals: list[Proposal],
        evidence: VerificationEvidence | None,
    ) -> FinalSolution:
        return await self.synthesizer.solve(scenario, proposals, evidence)

    async def generate_final_response(
        self,
        scenario: str,
        category: str,
        final_solution: FinalSolution,
        proposals: list[Proposal],
        evidence: VerificationEvidence | None,
        code_related: bool,
    ) -> str:
        return await self.synthesizer.respond(
            scenario, category, final_solution, proposals, evidence, code_related
        )

    @property
    def total_tokens_used(self) -> int:
        agents = [self.classifier, self.synthesizer, self.synthesizer.writer, *self.proposers.values()]
        return sum(a.total_tokens_used for a in agents)
