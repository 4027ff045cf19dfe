"""DebateManager – runs one Probability Parliament debate end-to-end.

Classify → propose → derive plans → revise beliefs per role → verify →
synthesize → assemble the session → persist. Every collaborator call is
wrapped in a ``CallOutcome``; only a missing provider or a run with zero
usable proposals is fatal.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Mapping
from datetime import datetime, timezone
from typing import Any

from agents.base import DebateCapabilities, VerificationEvidence
from agents.classifier import DEFAULT_CATEGORY
from agents.council import AgentCouncil
from agents.errors import DebateError, ProposalGenerationError
from agents.roster import AGENTS, PROPOSAL_ROLES, get_agent, resolve_weights
from data.database import SessionStore
from data.models import (
    ActionRecommendation,
    Agent,
    AgentRole,
    Belief,
    DebateSession,
    DebateWeights,
    FinalSolution,
    Plan,
    Proposal,
    RunRequest,
)
from evaluation.metrics import belief_variance, uncertainty_summary
from orchestration.belief import BeliefLedger, clamp_unit
from orchestration.evidence import build_diff, build_evidence, build_timeline, build_transcript
from orchestration.outcome import CallOutcome
from orchestration.plans import derive_plans, plan_for_role, role_for_plan
from orchestration.verification import (
    VerificationIntegrator,
    VerificationResult,
    VerificationSettings,
)

logger = logging.getLogger(__name__)

DEFAULT_SCENARIO = "Fix failing test"

PASS_TARGET = 0.82
FAIL_TARGET = 0.18
SKIP_NUDGE = 0.05
SKIP_CEILING = 0.7

FALLBACK_ASSUMPTION = "Assumptions not explicitly generated; use caution."
VERIFICATION_NOTE = "Verification evidence included in the reasoning."


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def select_verified_plan(proposals: list[Proposal]) -> str:
    """Plan of the most confident proposal; ties keep the earlier role."""
    best = max(proposals, key=lambda p: p.confidence)
    return plan_for_role(best.agent)


class DebateManager:
    """High-level controller that turns a ``RunRequest`` into a session.

    Parameters
    ----------
    capabilities : DebateCapabilities | None
        Text-generation collaborators. When *None* an ``AgentCouncil`` is
        built per run from *config*, honouring the request's provider.
    integrator : VerificationIntegrator | None
        Verification decision and invocation; built from *config* if omitted.
    store : SessionStore | None
        Optional persistence; a connected store receives every finished run.
    config : Mapping | None
        Parsed YAML configuration (``llm``, ``verification``, ``debate``).
    clock : callable | None
        Source of the run start time.
    """

    def __init__(
        self,
        capabilities: DebateCapabilities | None = None,
        integrator: VerificationIntegrator | None = None,
        store: SessionStore | None = None,
        config: Mapping[str, Any] | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.config = dict(config or {})
        self.capabilities = capabilities
        self.integrator = integrator or VerificationIntegrator(
            settings=VerificationSettings.from_config(self.config.get("verification"))
        )
        self.store = store
        self.clock = clock or _utcnow

        debate_cfg = self.config.get("debate", {}) or {}
        self.default_scenario: str = debate_cfg.get("default_scenario") or DEFAULT_SCENARIO
        self.default_weights = resolve_weights(debate_cfg.get("weights"))

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def run_debate(self, request: RunRequest | None = None) -> DebateSession:
        """Execute the full pipeline and return the finished session.

        Raises ``ConfigurationError`` when no provider is configured and
        ``ProposalGenerationError`` when every role failed; nothing is
        persisted in either case.
        """
        request = request or RunRequest()
        base_time = self.clock()
        session_id = f"session-{int(base_time.timestamp() * 1000)}"
        scenario = (request.scenario or "").strip() or self.default_scenario
        weights = resolve_weights(request.weights, self.default_weights)

        code_related = self.integrator.is_code_related(scenario)
        decision = self.integrator.decide(code_related, request.run_verification)
        capabilities = self._capabilities_for(request)

        logger.info(
            "Starting %s: '%s' [code_related=%s, verification=%s]",
            session_id,
            scenario,
            code_related,
            decision.execute,
        )

        warnings: list[str] = []

        category_outcome = await self._classify(capabilities, scenario)
        self._collect(category_outcome, warnings)
        category = category_outcome.value or DEFAULT_CATEGORY.value

        if decision.warning:
            warnings.append(decision.warning)

        proposals = await self._collect_proposals(capabilities, scenario, weights, category, warnings)
        if not proposals:
            logger.error("%s: every proposal failed", session_id)
            raise ProposalGenerationError("LLM proposal generation failed for all agents.")

        plans = derive_plans(proposals)

        verification: VerificationResult | None = None
        if decision.execute:
            outcome = await self.integrator.run(
                session_id, select_verified_plan(proposals), code_related
            )
            self._collect(outcome, warnings)
            verification = outcome.value

        evidence = (
            VerificationEvidence(summary=verification.summary, output=verification.output)
            if verification is not None and code_related
            else None
        )

        solution_outcome = await self._final_solution(capabilities, scenario, proposals, evidence)
        self._collect(solution_outcome, warnings)
        final_solution = solution_outcome.value

        response: str | None = None
        if final_solution is not None:
            response_outcome = await self._final_response(
                capabilities, scenario, category, final_solution, proposals, evidence, code_related
            )
            self._collect(response_outcome, warnings)
            response = response_outcome.value
        else:
            final_solution = self._fallback_solution(plans)
        response = response or final_solution.summary

        ledger = self._revise_beliefs(base_time, plans, proposals, weights, verification)
        final_plan_id = ledger.leading_plan_id()
        final_probability = ledger.probability_of(final_plan_id)
        verified = verification is not None
        adapter = verification.adapter if verified else self.integrator.fallback.name

        statement = final_solution.summary
        if code_related:
            statement = f"{statement} {VERIFICATION_NOTE}"

        session = DebateSession(
            id=session_id,
            scenario=scenario,
            created_at=base_time,
            agents=list(AGENTS),
            plans=plans,
            transcript=build_transcript(
                base_time, scenario, proposals, solution_outcome.value, final_plan_id
            ),
            probabilities=list(ledger.snapshots),
            evidence_ledger=build_evidence(
                base_time, plans, final_plan_id, verification, warnings
            )
            if code_related and verified
            else [],
            timeline=build_timeline(base_time, adapter, verified),
            final_plan_id=final_plan_id,
            final_diff=build_diff(),
            adapter=adapter,
            weights=weights,
            run_verification=verified,
            code_related=code_related,
            uncertainty_summary=uncertainty_summary(plans, ledger.current, verified),
            model=capabilities.model,
            prompt_version=capabilities.prompt_version,
            generation_warnings=warnings,
            belief=Belief(
                statement=statement,
                probability=final_probability,
                variance=belief_variance(final_probability),
            ),
            action=ActionRecommendation(
                recommendation=statement,
                assumptions=list(final_solution.assumptions),
                response=response,
            ),
            proposals=proposals,
            final_solution=final_solution,
            prompt_category=category,
            winning_agent=role_for_plan(final_plan_id),
            verification_output=verification.output if verified and code_related else None,
        )

        logger.info(
            "%s completed: %s at %.2f (%d warnings)",
            session_id,
            final_plan_id,
            final_probability,
            len(warnings),
        )

        if self.store is not None:
            await self.store.save_session(session)
        return session

    async def latest_session(self) -> DebateSession | None:
        if self.store is None:
            return None
        return await self.store.latest_session()

    # ------------------------------------------------------------------
    # Collaborator calls
    # ------------------------------------------------------------------

    def _capabilities_for(self, request: RunRequest) -> DebateCapabilities:
        if self.capabilities is not None:
            return self.capabilities
        return AgentCouncil.from_config(self.config, request.llm_provider)

    @staticmethod
    def _collect(outcome: CallOutcome[Any], warnings: list[str]) -> None:
        if outcome.warning:
            warnings.append(outcome.warning)

    async def _classify(
        self, capabilities: DebateCapabilities, scenario: str
    ) -> CallOutcome[str]:
        try:
            return CallOutcome.success(await capabilities.classify(scenario))
        except DebateError as exc:
            logger.warning("Classification failed: %s", exc)
            return CallOutcome.recovered(
                DEFAULT_CATEGORY.value,
                f"Prompt classification failed; defaulting to {DEFAULT_CATEGORY.value}. {exc}",
            )

    async def _propose(
        self,
        capabilities: DebateCapabilities,
        agent: Agent,
        scenario: str,
        weights: DebateWeights,
        category: str,
    ) -> CallOutcome[Proposal]:
        try:
            proposal = await capabilities.generate_proposal(agent, scenario, weights, None, category)
        except DebateError as exc:
            logger.warning("[%s] proposal failed: %s", agent.role.value, exc)
            return CallOutcome.recovered(
                None, f"[{agent.role.value}] Proposal generation failed. {exc}"
            )
        return CallOutcome.success(proposal)

    async def _collect_proposals(
        self,
        capabilities: DebateCapabilities,
        scenario: str,
        weights: DebateWeights,
        category: str,
        warnings: list[str],
    ) -> list[Proposal]:
        """Request every role concurrently, keep results in roster order."""
        agents = [get_agent(role) for role in PROPOSAL_ROLES]
        outcomes = await asyncio.gather(
            *(self._propose(capabilities, agent, scenario, weights, category) for agent in agents)
        )
        proposals: list[Proposal] = []
        for agent, outcome in zip(agents, outcomes):
            self._collect(outcome, warnings)
            if outcome.value is not None:
                # Pin the role; collaborators may not echo it back faithfully.
                proposals.append(outcome.value.model_copy(update={"agent": agent.role}))
        return proposals

    async def _final_solution(
        self,
        capabilities: DebateCapabilities,
        scenario: str,
        proposals: list[Proposal],
        evidence: VerificationEvidence | None,
    ) -> CallOutcome[FinalSolution]:
        try:
            solution = await capabilities.generate_final_solution(scenario, proposals, evidence)
        except DebateError as exc:
            logger.warning("Final solution failed: %s", exc)
            return CallOutcome.recovered(None, f"Final solution generation failed. {exc}")
        return CallOutcome.success(solution)

    async def _final_response(
        self,
        capabilities: DebateCapabilities,
        scenario: str,
        category: str,
        final_solution: FinalSolution,
        proposals: list[Proposal],
        evidence: VerificationEvidence | None,
        code_related: bool,
    ) -> CallOutcome[str]:
        try:
            text = await capabilities.generate_final_response(
                scenario, category, final_solution, proposals, evidence, code_related
            )
        except DebateError as exc:
            logger.warning("Final response failed: %s", exc)
            return CallOutcome.recovered(None, f"Final response generation failed. {exc}")
        return CallOutcome.success(text)

    @staticmethod
    def _fallback_solution(plans: list[Plan]) -> FinalSolution:
        plan = plans[1]
        return FinalSolution(
            summary=plan.summary,
            steps=list(plan.steps),
            risks=list(plan.risks),
            assumptions=[FALLBACK_ASSUMPTION],
        )

    # ------------------------------------------------------------------
    # Belief revision
    # ------------------------------------------------------------------

    @staticmethod
    def _revise_beliefs(
        base_time: datetime,
        plans: list[Plan],
        proposals: list[Proposal],
        weights: DebateWeights,
        verification: VerificationResult | None,
    ) -> BeliefLedger:
        """Replay proposals in roster order, then fold in verification."""
        ledger = BeliefLedger(plans, base_time)
        by_role = {p.agent: p for p in proposals}

        for index, role in enumerate(PROPOSAL_ROLES):
            proposal = by_role.get(role)
            if proposal is None:
                continue
            ledger.revise(
                plan_for_role(role),
                proposal.confidence,
                weights.for_role(role),
                updated_by=role,
                rationale=proposal.rationale[0] if proposal.rationale else "Agent proposal applied.",
                offset_minutes=2 + 2 * index,
                note=f"{role.value} proposal applied.",
            )

        target = ledger.leading_plan_id()
        if verification is not None:
            passed = verification.passed
            ledger.revise(
                target,
                PASS_TARGET if passed else FAIL_TARGET,
                clamp_unit(weights.synthesizer * verification.reliability),
                updated_by=AgentRole.SYNTHESIZER,
                rationale="Verification passed; confidence boosted with damping."
                if passed
                else "Verification failed; confidence reduced with damping.",
                offset_minutes=16,
                note="Verification passed; results applied."
                if passed
                else "Verification failed; results applied.",
            )
        elif proposals:
            ledger.revise(
                target,
                min(SKIP_CEILING, ledger.probability_of(target) + SKIP_NUDGE),
                weights.synthesizer,
                updated_by=AgentRole.SYNTHESIZER,
                rationale="Synthesizer tempered confidence without verification.",
                offset_minutes=16,
                note="Verification skipped; synthesizer adjusted confidence.",
            )
        return ledger
