"""The fixed agent roster and per-role influence weights."""

from __future__ import annotations

from collections.abc import Mapping

from data.models import Agent, AgentRole, DebateWeights

AGENTS: tuple[Agent, ...] = (
    Agent(
        id="agent-planner",
        name="Planner",
        role=AgentRole.PLANNER,
        goal="Propose concrete recovery plans for the scenario.",
    ),
    Agent(
        id="agent-skeptic",
        name="Skeptic",
        role=AgentRole.SKEPTIC,
        goal="Challenge assumptions and stress-test plans.",
    ),
    Agent(
        id="agent-security",
        name="Security",
        role=AgentRole.SECURITY,
        goal="Identify security risks and validation gaps.",
    ),
    Agent(
        id="agent-cost",
        name="Cost",
        role=AgentRole.COST,
        goal="Estimate effort and operational impact.",
    ),
    Agent(
        id="agent-synthesizer",
        name="Synthesizer",
        role=AgentRole.SYNTHESIZER,
        goal="Converge on the most likely fix with evidence.",
    ),
)

# Roles that submit proposals, in the order their updates are applied.
PROPOSAL_ROLES: tuple[AgentRole, ...] = (
    AgentRole.PLANNER,
    AgentRole.SKEPTIC,
    AgentRole.SECURITY,
    AgentRole.COST,
)

DEFAULT_WEIGHTS = DebateWeights(
    planner=0.35,
    skeptic=0.45,
    security=0.5,
    cost=0.4,
    synthesizer=0.6,
)


def get_agent(role: AgentRole) -> Agent:
    return next(a for a in AGENTS if a.role == role)


def clamp_weight(value: float) -> float:
    return min(1.0, max(0.0, float(value)))


def resolve_weights(
    overrides: Mapping[str, float] | DebateWeights | None = None,
    defaults: DebateWeights = DEFAULT_WEIGHTS,
) -> DebateWeights:
    """Clamp caller overrides into [0, 1], filling gaps from *defaults*."""
    if isinstance(overrides, DebateWeights):
        overrides = overrides.model_dump()
    overrides = overrides or {}

    resolved: dict[str, float] = {}
    for agent in AGENTS:
        key = agent.role.value
        value = overrides.get(key)
        resolved[key] = clamp_weight(defaults.for_role(agent.role) if value is None else value)
    return DebateWeights(**resolved)


def min_rationale_count(weight: float) -> int:
    """How many rationale items a role must supply at the given weight."""
    if weight >= 0.7:
        return 4
    if weight >= 0.5:
        return 3
    if weight >= 0.3:
        return 2
    return 1
