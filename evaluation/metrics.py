"""Belief metrics for finished debate sessions.

Everything here is computed locally from a ``DebateSession``; no LLM is
involved.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any

from data.models import DebateSession, Plan, ProbabilityEntry, Variance


# ---------------------------------------------------------------------------
# Data container
# ---------------------------------------------------------------------------

@dataclass
class BeliefMetrics:
    """Summary statistics over one session's belief trajectory."""

    # Outcome
    final_plan_id: str = ""
    final_probability: float = 0.0
    variance: Variance = "high"
    runner_up_gap: float = 0.0

    # Trajectory
    initial_probability: float = 0.0
    probability_delta: float = 0.0
    snapshots: int = 0
    entropy: float = 0.0

    # Evidence
    evidence_count: int = 0
    warning_count: int = 0
    proposal_count: int = 0
    max_risk_severity: int = 0
    mean_confidence: float = 0.0
    verification_passed: bool | None = None
    per_plan: dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "outcome": {
                "final_plan_id": self.final_plan_id,
                "final_probability": round(self.final_probability, 3),
                "variance": self.variance,
                "runner_up_gap": round(self.runner_up_gap, 3),
            },
            "trajectory": {
                "initial_probability": round(self.initial_probability, 3),
                "probability_delta": round(self.probability_delta, 3),
                "snapshots": self.snapshots,
                "entropy": round(self.entropy, 3),
                "per_plan": {k: round(v, 3) for k, v in self.per_plan.items()},
            },
            "evidence": {
                "evidence_count": self.evidence_count,
                "warning_count": self.warning_count,
                "proposal_count": self.proposal_count,
                "max_risk_severity": self.max_risk_severity,
                "mean_confidence": round(self.mean_confidence, 3),
                "verification_passed": self.verification_passed,
            },
        }


# ---------------------------------------------------------------------------
# Individual metric functions
# ---------------------------------------------------------------------------

def belief_variance(probability: float) -> Variance:
    """Bucket the winning probability: low >= 0.66, medium >= 0.5, else high."""
    if probability >= 0.66:
        return "low"
    if probability >= 0.5:
        return "medium"
    return "high"


def distribution_entropy(entries: list[ProbabilityEntry]) -> float:
    """Shannon entropy in bits; 2.0 is a uniform spread over four plans."""
    return -sum(e.probability * math.log2(e.probability) for e in entries if e.probability > 0)


def runner_up_gap(entries: list[ProbabilityEntry]) -> float:
    ranked = sorted((e.probability for e in entries), reverse=True)
    if len(ranked) < 2:
        return ranked[0] if ranked else 0.0
    return ranked[0] - ranked[1]


def uncertainty_summary(
    plans: list[Plan], entries: list[ProbabilityEntry], verified: bool
) -> str:
    """One-line account of the leading plan and the mass left elsewhere."""
    leading = max(entries, key=lambda e: e.probability)
    plan = next((p for p in plans if p.id == leading.plan_id), None)
    title = plan.title if plan else leading.plan_id
    remaining = max(0.0, 1 - leading.probability)
    note = "after verification" if verified else "without verification"
    return (
        f"{title} leads at {leading.probability:.2f} {note}; "
        f"remaining uncertainty is {remaining:.2f} across other plans."
    )


def _verification_passed(session: DebateSession) -> bool | None:
    if not session.run_verification:
        return None
    last = session.final_snapshot
    # The verification snapshot is the only one updated by the synthesizer
    # with a pass/fail note.
    if last.note.startswith("Verification passed"):
        return True
    if last.note.startswith("Verification failed"):
        return False
    return None


# ---------------------------------------------------------------------------
# Aggregate
# ---------------------------------------------------------------------------

def compute_session_metrics(session: DebateSession) -> BeliefMetrics:
    """Compute the full suite of belief metrics for *session*."""
    final = session.final_snapshot
    initial = session.probabilities[0]
    final_p = final.probability_of(session.final_plan_id)
    initial_p = initial.probability_of(session.final_plan_id)
    confidences = [p.confidence for p in session.proposals]

    return BeliefMetrics(
        final_plan_id=session.final_plan_id,
        final_probability=final_p,
        variance=belief_variance(final_p),
        runner_up_gap=runner_up_gap(final.entries),
        initial_probability=initial_p,
        probability_delta=final_p - initial_p,
        snapshots=len(session.probabilities),
        entropy=distribution_entropy(final.entries),
        evidence_count=len(session.evidence_ledger),
        warning_count=len(session.generation_warnings),
        proposal_count=len(session.proposals),
        max_risk_severity=max((p.risk_severity for p in session.proposals), default=0),
        mean_confidence=sum(confidences) / len(confidences) if confidences else 0.0,
        verification_passed=_verification_passed(session),
        per_plan={e.plan_id: e.probability for e in final.entries},
    )
