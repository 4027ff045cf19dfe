"""Shared fixtures for the test suite.

Provides a MockProvider that simulates LLM responses without network calls,
scripted debate capabilities and verifiers for pipeline tests, and a
temporary session store.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

import pytest
import pytest_asyncio

from agents.base import DebateCapabilities, VerificationEvidence
from agents.errors import ClassificationError, ProviderError, ValidationError
from agents.llm_provider import LLMProvider
from data.database import SessionStore
from data.models import Agent, AgentRole, DebateWeights, FinalSolution, Proposal, RunRequest
from orchestration.debate_manager import DebateManager
from orchestration.verification import (
    VerificationIntegrator,
    VerificationResult,
    VerificationSettings,
    Verifier,
)


# ---------------------------------------------------------------------------
# Mock LLM provider
# ---------------------------------------------------------------------------

class MockProvider(LLMProvider):
    """Deterministic mock provider for testing – no network calls.

    Replies cycle through *responses*; a *responder* callable receiving the
    message list takes precedence when given.
    """

    name = "mock"
    requires_api_key = False

    def __init__(
        self,
        model: str = "mock-v1",
        responses: list[str] | None = None,
        responder: Callable[[list[dict[str, str]]], str] | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(model=model, **kwargs)
        self._responses = responses or ['{"category": "reasoning-analysis"}']
        self._responder = responder
        self._call_count = 0
        self.call_log: list[dict[str, Any]] = []

    async def _call_api(
        self,
        messages: list[dict[str, str]],
        *,
        temperature: float,
        max_tokens: int,
        **kwargs: Any,
    ) -> dict[str, Any]:
        if self._responder is not None:
            text = self._responder(messages)
        else:
            text = self._responses[self._call_count % len(self._responses)]
        self._call_count += 1
        self.call_log.append(
            {"messages": messages, "temperature": temperature, "max_tokens": max_tokens}
        )
        return {"text": text, "tokens_used": len(text.split()) * 2, "raw": {}}


def proposal_json(**overrides: Any) -> str:
    draft = {
        "summary": "Normalize the auth payload before mapping roles.",
        "proposal": "Add a mapper that fills a default role when the payload has none.",
        "risk": "Could hide upstream data issues.",
        "riskSeverity": 3,
        "rationale": ["Missing roles crash the mapper.", "A default keeps tests green.",
                      "Regression test covers the empty case.", "Change is local."],
        "confidence": 0.7,
    }
    draft.update(overrides)
    return json.dumps(draft)


SOLUTION_JSON = json.dumps(
    {
        "summary": "Default missing roles to viewer in the user mapper.",
        "steps": ["Patch the mapper.", "Add a regression test."],
        "risks": ["Masks upstream data issues."],
        "assumptions": ["The auth service may omit roles."],
    }
)


# ---------------------------------------------------------------------------
# Scripted debate capabilities
# ---------------------------------------------------------------------------

def make_proposal(role: AgentRole, confidence: float = 0.6, **overrides: Any) -> Proposal:
    fields: dict[str, Any] = {
        "agent": role,
        "proposal": f"{role.value} proposal text",
        "summary": f"{role.value} summary",
        "risk": f"{role.value} risk",
        "risk_severity": 3,
        "rationale": [f"{role.value} reason 1", f"{role.value} reason 2"],
        "confidence": confidence,
    }
    fields.update(overrides)
    return Proposal(**fields)


class FakeCapabilities(DebateCapabilities):
    """Scripted collaborator: per-role confidences, optional failures."""

    model = "fake-model"
    prompt_version = "v-test"

    def __init__(
        self,
        confidences: dict[AgentRole, float] | None = None,
        failing_roles: set[AgentRole] | None = None,
        category: str = "reasoning-analysis",
        classify_error: Exception | None = None,
        solution_error: Exception | None = None,
        response_error: Exception | None = None,
        response: str = "Apply the role fallback and ship it.",
    ) -> None:
        self.confidences = confidences or {
            AgentRole.PLANNER: 0.6,
            AgentRole.SKEPTIC: 0.8,
            AgentRole.SECURITY: 0.55,
            AgentRole.COST: 0.5,
        }
        self.failing_roles = failing_roles or set()
        self.category = category
        self.classify_error = classify_error
        self.solution_error = solution_error
        self.response_error = response_error
        self.response = response
        self.calls: list[str] = []
        self.response_calls = 0

    async def classify(self, scenario: str) -> str:
        self.calls.append("classify")
        if self.classify_error:
            raise self.classify_error
        return self.category

    async def generate_proposal(
        self,
        agent: Agent,
        scenario: str,
        weights: DebateWeights,
        evidence: VerificationEvidence | None,
        category: str,
    ) -> Proposal:
        self.calls.append(f"proposal:{agent.role.value}")
        if agent.role in self.failing_roles:
            raise ValidationError(f"{agent.role.value} returned garbage")
        return make_proposal(agent.role, self.confidences.get(agent.role, 0.5))

    async def generate_final_solution(
        self,
        scenario: str,
        proposals: list[Proposal],
        evidence: VerificationEvidence | None,
    ) -> FinalSolution:
        self.calls.append("solution")
        if self.solution_error:
            raise self.solution_error
        return FinalSolution(
            summary="Default missing roles in the mapper.",
            steps=["Patch the mapper.", "Add a regression test."],
            risks=["Masks upstream data issues."],
            assumptions=["Roles can be absent upstream."],
        )

    async def generate_final_response(
        self,
        scenario: str,
        category: str,
        final_solution: FinalSolution,
        proposals: list[Proposal],
        evidence: VerificationEvidence | None,
        code_related: bool,
    ) -> str:
        self.calls.append("response")
        self.response_calls += 1
        if self.response_error:
            raise self.response_error
        return self.response


class FakeVerifier(Verifier):
    """Returns a fixed status, or raises, and records the plans it saw."""

    name = "fake"

    def __init__(
        self,
        status: str = "pass",
        reliability: float = 0.9,
        error: Exception | None = None,
    ) -> None:
        self.status = status
        self.reliability = reliability
        self.error = error
        self.requests: list[tuple[str, str, str]] = []

    async def verify(
        self,
        session_id: str,
        plan_id: str,
        mode: str,
        fixture_path: str | None = None,
        command: str | None = None,
    ) -> VerificationResult:
        self.requests.append((session_id, plan_id, mode))
        if self.error:
            raise self.error
        now = datetime.now(timezone.utc)
        return VerificationResult(
            status=self.status,
            summary=f"fake verification {self.status}",
            logs=("line one", "line two"),
            exit_code=0 if self.status == "pass" else 1,
            started_at=now,
            finished_at=now,
            reliability=self.reliability,
            adapter=self.name,
        )


FIXED_START = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def mock_provider() -> MockProvider:
    return MockProvider()


@pytest.fixture
def capabilities() -> FakeCapabilities:
    return FakeCapabilities()


@pytest.fixture
def fixed_clock() -> Callable[[], datetime]:
    return lambda: FIXED_START


@pytest.fixture
def provider_errors() -> dict[str, Exception]:
    return {
        "classification": ClassificationError("Prompt category is invalid: 'poetry'."),
        "provider": ProviderError("[mock] LLM request failed: connection refused"),
    }


@pytest_asyncio.fixture
async def store(tmp_path) -> SessionStore:
    """Temporary SQLite session store."""
    s = SessionStore(db_path=tmp_path / "test_sessions.db")
    await s.connect()
    yield s
    await s.close()


@pytest_asyncio.fixture
async def sample_session():
    """A finished, verified session for the default scenario."""
    manager = DebateManager(
        capabilities=FakeCapabilities(),
        integrator=VerificationIntegrator(verifier=FakeVerifier(), settings=VerificationSettings()),
        clock=lambda: FIXED_START,
    )
    return await manager.run_debate(RunRequest())
