"""Tests for the agent roster and weight resolution."""

from __future__ import annotations

import pytest

from agents.roster import (
    AGENTS,
    DEFAULT_WEIGHTS,
    PROPOSAL_ROLES,
    get_agent,
    min_rationale_count,
    resolve_weights,
)
from data.models import AgentRole, DebateWeights


def test_roster_order():
    assert [a.role for a in AGENTS] == [
        AgentRole.PLANNER,
        AgentRole.SKEPTIC,
        AgentRole.SECURITY,
        AgentRole.COST,
        AgentRole.SYNTHESIZER,
    ]
    assert AgentRole.SYNTHESIZER not in PROPOSAL_ROLES


def test_get_agent():
    agent = get_agent(AgentRole.SECURITY)
    assert agent.id == "agent-security"
    assert agent.name == "Security"


class TestResolveWeights:
    def test_defaults(self):
        assert resolve_weights() == DEFAULT_WEIGHTS
        assert resolve_weights({}) == DEFAULT_WEIGHTS

    def test_partial_override(self):
        w = resolve_weights({"skeptic": 0.9})
        assert w.skeptic == 0.9
        assert w.planner == 0.35
        assert w.synthesizer == 0.6

    @pytest.mark.parametrize("raw,expected", [(-0.5, 0.0), (1.7, 1.0), (0.0, 0.0), (1.0, 1.0)])
    def test_clamps(self, raw, expected):
        assert resolve_weights({"cost": raw}).cost == expected

    def test_accepts_weights_model(self):
        custom = DebateWeights(planner=2, skeptic=0.1, security=0.2, cost=0.3, synthesizer=0.4)
        assert resolve_weights(custom).planner == 1.0

    def test_custom_defaults(self):
        defaults = DebateWeights(planner=0.1, skeptic=0.1, security=0.1, cost=0.1, synthesizer=0.1)
        assert resolve_weights({"cost": 0.5}, defaults).planner == 0.1


@pytest.mark.parametrize(
    "weight,count",
    [(0.9, 4), (0.7, 4), (0.69, 3), (0.5, 3), (0.45, 2), (0.3, 2), (0.29, 1), (0.0, 1)],
)
def test_min_rationale_count(weight, count):
    assert min_rationale_count(weight) == count
