"""Tests for evaluation metrics."""

from __future__ import annotations

import math

import pytest

from data.models import AgentRole, Plan, ProbabilityEntry, RunRequest
from evaluation.metrics import (
    BeliefMetrics,
    belief_variance,
    compute_session_metrics,
    distribution_entropy,
    runner_up_gap,
    uncertainty_summary,
)
from orchestration.debate_manager import DebateManager
from orchestration.verification import VerificationIntegrator, VerificationSettings
from tests.conftest import FIXED_START, FakeCapabilities, FakeVerifier


def _entries(*values: float) -> list[ProbabilityEntry]:
    return [
        ProbabilityEntry(
            plan_id=f"plan-{chr(97 + i)}",
            probability=v,
            updated_by=AgentRole.SYNTHESIZER,
            rationale="r",
            timestamp=FIXED_START,
        )
        for i, v in enumerate(values)
    ]


async def _run(scenario: str, verifier: FakeVerifier | None = None):
    manager = DebateManager(
        capabilities=FakeCapabilities(),
        integrator=VerificationIntegrator(
            verifier=verifier or FakeVerifier(), settings=VerificationSettings()
        ),
        clock=lambda: FIXED_START,
    )
    return await manager.run_debate(RunRequest(scenario=scenario))


class TestBeliefVariance:
    @pytest.mark.parametrize(
        "p,expected",
        [(0.9, "low"), (0.66, "low"), (0.65, "medium"), (0.5, "medium"), (0.49, "high"), (0.0, "high")],
    )
    def test_buckets(self, p, expected):
        assert belief_variance(p) == expected


class TestDistributionStats:
    def test_uniform_entropy(self):
        assert math.isclose(distribution_entropy(_entries(0.25, 0.25, 0.25, 0.25)), 2.0)

    def test_certain_entropy(self):
        assert distribution_entropy(_entries(1.0, 0.0, 0.0, 0.0)) == 0.0

    def test_runner_up_gap(self):
        assert math.isclose(runner_up_gap(_entries(0.1, 0.5, 0.3, 0.1)), 0.2)
        assert runner_up_gap(_entries(0.7)) == 0.7
        assert runner_up_gap([]) == 0.0


class TestUncertaintySummary:
    def test_format(self):
        plans = [Plan(id="plan-b", title="Skeptic proposal", summary="s")]
        text = uncertainty_summary(plans, _entries(0.2, 0.42, 0.2, 0.18), verified=True)
        assert text == (
            "Skeptic proposal leads at 0.42 after verification; "
            "remaining uncertainty is 0.58 across other plans."
        )

    def test_unknown_plan_falls_back_to_id(self):
        text = uncertainty_summary([], _entries(0.7, 0.1, 0.1, 0.1), verified=False)
        assert text.startswith("plan-a leads at 0.70 without verification")


class TestSessionMetrics:
    @pytest.mark.asyncio
    async def test_verified_session(self):
        session = await _run("Fix failing test", FakeVerifier("pass", 0.9))
        metrics = compute_session_metrics(session)

        assert isinstance(metrics, BeliefMetrics)
        assert metrics.final_plan_id == "plan-b"
        assert metrics.verification_passed is True
        assert metrics.snapshots == 6
        assert metrics.proposal_count == 4
        assert metrics.max_risk_severity == 3
        assert math.isclose(metrics.mean_confidence, 0.6125)
        assert metrics.initial_probability == 0.25
        assert metrics.final_probability == pytest.approx(0.423, abs=0.005)
        assert metrics.variance == "high"
        assert math.isclose(sum(metrics.per_plan.values()), 1.0, abs_tol=1e-9)

    @pytest.mark.asyncio
    async def test_failed_verification(self):
        session = await _run("Fix failing test", FakeVerifier("fail", 0.75))
        assert compute_session_metrics(session).verification_passed is False

    @pytest.mark.asyncio
    async def test_unverified_session(self):
        session = await _run("Plan a team offsite in Lisbon")
        metrics = compute_session_metrics(session)
        assert metrics.verification_passed is None
        assert metrics.evidence_count == 0

    @pytest.mark.asyncio
    async def test_to_dict_sections(self):
        session = await _run("Fix failing test")
        data = compute_session_metrics(session).to_dict()
        assert set(data) == {"outcome", "trajectory", "evidence"}
        assert data["outcome"]["final_plan_id"] == "plan-b"
        assert data["trajectory"]["snapshots"] == 6
