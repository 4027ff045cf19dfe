"""Assembly of the audit trail: timeline, evidence ledger, transcript and patch."""

from __future__ import annotations

from datetime import datetime, timedelta

from agents.roster import AGENTS
from data.models import (
    AgentRole,
    DebateDiff,
    DebateMessage,
    EvidenceLedgerEntry,
    FinalSolution,
    Plan,
    Proposal,
    TimelineEvent,
)
from orchestration.plans import plan_for_role
from orchestration.verification import VerificationResult

SKIPPED_RELIABILITY = 0.55


def _at(base: datetime, minutes: int) -> datetime:
    return base + timedelta(minutes=minutes)


def build_diff() -> DebateDiff:
    """The demonstration patch attached to every session."""
    return DebateDiff(
        summary="Example patch output (fixture).",
        diff="\n".join(
            [
                "diff --git a/src/services/userService.ts b/src/services/userService.ts",
                "index 1b233d1..56c92fa 100644",
                "--- a/src/services/userService.ts",
                "+++ b/src/services/userService.ts",
                "@@ -14,7 +14,12 @@ export const mapUser = (payload: AuthPayload): User => {",
                "-  const role = payload.role;",
                '+  const role = payload.role ?? "viewer";',
                "   return {",
                "     id: payload.id,",
                "-    role,",
                "+    role,",
                "     name: payload.name,",
                "   };",
                " };",
            ]
        ),
    )


def build_timeline(base: datetime, adapter: str, verified: bool) -> list[TimelineEvent]:
    if verified:
        verification_details = f"Verification run executed via {adapter} adapter."
    else:
        verification_details = "Verification skipped for this run; evidence based on debate only."
    return [
        TimelineEvent(
            id="timeline-plans",
            label="Plans proposed",
            timestamp=_at(base, 0),
            details="Planner proposed four candidate plans.",
        ),
        TimelineEvent(
            id="timeline-debate",
            label="Debate round",
            timestamp=_at(base, 9),
            details="Skeptic, Security, and Cost reviewed the plan set.",
        ),
        TimelineEvent(
            id="timeline-verification",
            label="Verification run",
            timestamp=_at(base, 15),
            details=verification_details,
        ),
        TimelineEvent(
            id="timeline-synthesis",
            label="Synthesized outcome",
            timestamp=_at(base, 18),
            details="Synthesizer produced final recommendation and patch.",
        ),
    ]


def build_evidence(
    base: datetime,
    plans: list[Plan],
    plan_id: str,
    verification: VerificationResult | None,
    warnings: list[str],
    include_patch: bool = True,
) -> list[EvidenceLedgerEntry]:
    """Ledger entries for *plan_id*, oldest first.

    *verification* is ``None`` when no verification was executed.
    """
    selected = next((p for p in plans if p.id == plan_id), None)
    selected_summary = selected.summary if selected else "Selected plan summary unavailable."
    selected_risk = selected.risks[0] if selected and selected.risks else "Primary risk not specified."

    entries = [
        EvidenceLedgerEntry(
            id="evidence-planner",
            plan_id=plan_id,
            agent=AgentRole.PLANNER,
            type="analysis",
            summary="Planner rationale captured for selected plan.",
            details=selected_summary,
            reliability=0.62,
            timestamp=_at(base, 2),
        ),
        EvidenceLedgerEntry(
            id="evidence-security",
            plan_id=plan_id,
            agent=AgentRole.SECURITY,
            type="analysis",
            summary="Security flagged key risk for selected plan.",
            details=selected_risk,
            reliability=0.7,
            timestamp=_at(base, 7),
        ),
    ]
    entries.extend(
        EvidenceLedgerEntry(
            id=f"evidence-generation-warning-{i}",
            plan_id=plan_id,
            agent=AgentRole.SYNTHESIZER,
            type="log",
            summary="Generation warning",
            details=warning,
            reliability=0.35,
            timestamp=_at(base, 5 + i),
        )
        for i, warning in enumerate(warnings)
    )

    if verification is not None:
        entries.append(
            EvidenceLedgerEntry(
                id="evidence-verification",
                plan_id=plan_id,
                agent=AgentRole.SYNTHESIZER,
                type="test",
                summary=verification.summary,
                details=verification.output,
                reliability=verification.reliability,
                timestamp=_at(base, 16),
            )
        )
        if verification.warning:
            entries.append(
                EvidenceLedgerEntry(
                    id="evidence-warning",
                    plan_id=plan_id,
                    agent=AgentRole.SYNTHESIZER,
                    type="log",
                    summary="Verification warning",
                    details=verification.warning,
                    reliability=0.4,
                    timestamp=_at(base, 17),
                )
            )
    else:
        entries.append(
            EvidenceLedgerEntry(
                id="evidence-verification",
                plan_id=plan_id,
                agent=AgentRole.SYNTHESIZER,
                type="analysis",
                summary="Verification skipped.",
                details="Verification was skipped for this run; evidence relies on agent debate.",
                reliability=SKIPPED_RELIABILITY,
                timestamp=_at(base, 16),
            )
        )

    if include_patch:
        entries.append(
            EvidenceLedgerEntry(
                id="evidence-patch",
                plan_id=plan_id,
                agent=AgentRole.SYNTHESIZER,
                type="patch",
                summary="Example patch output.",
                details=build_diff().diff,
                reliability=0.8,
                timestamp=_at(base, 18),
            )
        )
    return entries


def build_transcript(
    base: datetime,
    scenario: str,
    proposals: list[Proposal],
    final_solution: FinalSolution | None,
    final_plan_id: str,
) -> list[DebateMessage]:
    """One message per proposal plus the synthesizer's, in roster order."""
    by_role = {p.agent: p for p in proposals}
    messages: list[DebateMessage] = []

    for index, agent in enumerate(AGENTS):
        timestamp = base + timedelta(minutes=3 * index)
        if agent.role is AgentRole.SYNTHESIZER:
            if final_solution is None:
                continue
            reasons = [f"Step: {step}" for step in final_solution.steps[:3]]
            messages.append(
                DebateMessage(
                    id="msg-synthesizer",
                    agent=agent.role,
                    content=f'Final recommendation for "{scenario}": {final_solution.summary}',
                    preferred_plan_id=final_plan_id,
                    confidence=0.7,
                    reasons=reasons or ["Synthesized from agent proposals."],
                    disconfirming_test=final_solution.risks[0]
                    if final_solution.risks
                    else "Key risk invalidates the recommended path.",
                    timestamp=timestamp,
                )
            )
            continue

        proposal = by_role.get(agent.role)
        if proposal is None:
            continue
        messages.append(
            DebateMessage(
                id=f"msg-{agent.role.value}",
                agent=agent.role,
                content=(
                    f"{proposal.summary}\n{proposal.proposal}\n"
                    f"Risk: {proposal.risk} (severity {proposal.risk_severity})"
                ),
                preferred_plan_id=plan_for_role(agent.role),
                confidence=proposal.confidence,
                reasons=list(proposal.rationale),
                disconfirming_test=f'Validate this proposal for "{scenario}" with a targeted test.',
                timestamp=timestamp,
            )
        )
    return messages
