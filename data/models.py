"""Pydantic models for debate sessions and everything a session binds together."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AgentRole(str, Enum):
    """The five roles seated in every debate."""

    PLANNER = "planner"
    SKEPTIC = "skeptic"
    SECURITY = "security"
    COST = "cost"
    SYNTHESIZER = "synthesizer"


EvidenceType = Literal["test", "log", "analysis", "patch"]
Variance = Literal["low", "medium", "high"]
LLMProviderName = Literal["ollama", "groq"]


class _Record(BaseModel):
    model_config = ConfigDict(frozen=True)


# ---------------------------------------------------------------------------
# Participants and plans
# ---------------------------------------------------------------------------

class Agent(_Record):
    id: str
    name: str
    role: AgentRole
    goal: str


class Plan(_Record):
    id: str
    title: str
    summary: str
    steps: list[str] = Field(default_factory=list)
    risks: list[str] = Field(default_factory=list)


class Proposal(_Record):
    """A role's validated structured assertion about the scenario."""

    agent: AgentRole
    proposal: str
    summary: str
    risk: str
    risk_severity: int = Field(ge=1, le=5)
    rationale: list[str]
    confidence: float = Field(ge=0.0, le=1.0)


class FinalSolution(_Record):
    summary: str
    steps: list[str]
    risks: list[str]
    assumptions: list[str] = Field(default_factory=list)


class DebateWeights(_Record):
    planner: float
    skeptic: float
    security: float
    cost: float
    synthesizer: float

    def for_role(self, role: AgentRole) -> float:
        return getattr(self, role.value)


# ---------------------------------------------------------------------------
# Belief state
# ---------------------------------------------------------------------------

class ProbabilityEntry(_Record):
    plan_id: str
    probability: float
    updated_by: AgentRole
    rationale: str
    timestamp: datetime


class ProbabilitySnapshot(_Record):
    timestamp: datetime
    note: str
    entries: list[ProbabilityEntry]

    def probability_of(self, plan_id: str) -> float:
        for entry in self.entries:
            if entry.plan_id == plan_id:
                return entry.probability
        raise KeyError(plan_id)


# ---------------------------------------------------------------------------
# Audit trail
# ---------------------------------------------------------------------------

class EvidenceLedgerEntry(_Record):
    id: str
    plan_id: str
    agent: AgentRole
    type: EvidenceType
    summary: str
    details: str
    reliability: float = Field(ge=0.0, le=1.0)
    timestamp: datetime


class DebateMessage(_Record):
    id: str
    agent: AgentRole
    content: str
    preferred_plan_id: str
    confidence: float
    reasons: list[str] = Field(default_factory=list)
    disconfirming_test: str = ""
    references: list[str] = Field(default_factory=list)
    timestamp: datetime


class TimelineEvent(_Record):
    id: str
    label: str
    timestamp: datetime
    details: str


class DebateDiff(_Record):
    summary: str
    diff: str


class Belief(_Record):
    statement: str
    probability: float
    variance: Variance


class ActionRecommendation(_Record):
    recommendation: str
    assumptions: list[str] = Field(default_factory=list)
    response: str = ""


# ---------------------------------------------------------------------------
# Aggregate root
# ---------------------------------------------------------------------------

class DebateSession(_Record):
    """Everything produced by one completed run."""

    id: str
    scenario: str
    created_at: datetime = Field(default_factory=_utcnow)
    agents: list[Agent]
    plans: list[Plan]
    transcript: list[DebateMessage] = Field(default_factory=list)
    probabilities: list[ProbabilitySnapshot]
    evidence_ledger: list[EvidenceLedgerEntry] = Field(default_factory=list)
    timeline: list[TimelineEvent]
    final_plan_id: str
    final_diff: DebateDiff
    adapter: str
    weights: DebateWeights
    run_verification: bool
    code_related: bool
    uncertainty_summary: str
    model: str | None = None
    prompt_version: str | None = None
    generation_warnings: list[str] = Field(default_factory=list)
    belief: Belief
    action: ActionRecommendation
    proposals: list[Proposal] = Field(default_factory=list)
    final_solution: FinalSolution | None = None
    prompt_category: str | None = None
    winning_agent: AgentRole | None = None
    verification_output: str | None = None

    @property
    def final_snapshot(self) -> ProbabilitySnapshot:
        return self.probabilities[-1]

    @property
    def final_plan(self) -> Plan:
        return next(p for p in self.plans if p.id == self.final_plan_id)


class RunRequest(BaseModel):
    """Inbound request for a single debate run."""

    scenario: str | None = None
    weights: dict[str, float] | None = None
    run_verification: bool | None = None
    llm_provider: LLMProviderName | None = None
