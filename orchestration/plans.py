"""Plan derivation: each proposing role owns one fixed plan slot."""

from __future__ import annotations

from data.models import AgentRole, Plan, Proposal

ROLE_PLAN_TABLE: dict[AgentRole, str] = {
    AgentRole.PLANNER: "plan-a",
    AgentRole.SKEPTIC: "plan-b",
    AgentRole.SECURITY: "plan-c",
    AgentRole.COST: "plan-d",
}

PLACEHOLDER_STEPS = ["Gather details", "Draft approach", "Validate outcome"]
PLACEHOLDER_RISKS = ["Requires validation against real-world constraints."]


def plan_for_role(role: AgentRole) -> str:
    """Plan id owned by *role*; the synthesizer owns none."""
    try:
        return ROLE_PLAN_TABLE[role]
    except KeyError:
        raise ValueError(f"Role {role.value!r} has no plan slot") from None


def role_for_plan(plan_id: str) -> AgentRole | None:
    for role, pid in ROLE_PLAN_TABLE.items():
        if pid == plan_id:
            return role
    return None


def derive_plans(proposals: list[Proposal]) -> list[Plan]:
    """Always exactly one plan per slot, in slot order.

    Roles without a proposal get a placeholder plan.
    """
    by_role = {p.agent: p for p in proposals}
    plans: list[Plan] = []
    for index, (role, plan_id) in enumerate(ROLE_PLAN_TABLE.items(), start=1):
        proposal = by_role.get(role)
        if proposal is None:
            plans.append(
                Plan(
                    id=plan_id,
                    title=f"Plan {index}",
                    summary="No proposal available.",
                    steps=list(PLACEHOLDER_STEPS),
                    risks=list(PLACEHOLDER_RISKS),
                )
            )
            continue
        plans.append(
            Plan(
                id=plan_id,
                title=f"{role.value.capitalize()} proposal",
                summary=proposal.proposal,
                steps=list(proposal.rationale) or list(PLACEHOLDER_STEPS),
                risks=[proposal.risk],
            )
        )
    return plans
