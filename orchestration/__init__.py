"""Orchestration layer – belief revision, verification and the debate pipeline."""

from orchestration.belief import (
    DAMPING_FACTOR,
    BeliefLedger,
    apply_weighted_update,
    damp_and_normalize,
    leading_plan_id,
    normalize,
)
from orchestration.plans import ROLE_PLAN_TABLE, derive_plans, plan_for_role
from orchestration.outcome import CallOutcome, OutcomeStatus
from orchestration.verification import (
    CodeScenarioDetector,
    McpVerifier,
    MockVerifier,
    VerificationIntegrator,
    VerificationResult,
    VerificationSettings,
    Verifier,
)
from orchestration.debate_manager import DebateManager

__all__ = [
    "DAMPING_FACTOR",
    "BeliefLedger",
    "apply_weighted_update",
    "damp_and_normalize",
    "leading_plan_id",
    "normalize",
    "ROLE_PLAN_TABLE",
    "derive_plans",
    "plan_for_role",
    "CallOutcome",
    "OutcomeStatus",
    "CodeScenarioDetector",
    "McpVerifier",
    "MockVerifier",
    "VerificationIntegrator",
    "VerificationResult",
    "VerificationSettings",
    "Verifier",
    "DebateManager",
]
