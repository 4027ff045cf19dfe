"""Data layer – session models and SQLite storage."""

from data.models import (
    ActionRecommendation,
    Agent,
    AgentRole,
    Belief,
    DebateDiff,
    DebateMessage,
    DebateSession,
    DebateWeights,
    EvidenceLedgerEntry,
    FinalSolution,
    Plan,
    ProbabilityEntry,
    ProbabilitySnapshot,
    Proposal,
    RunRequest,
    TimelineEvent,
)
from data.database import SessionStore

__all__ = [
    "ActionRecommendation",
    "Agent",
    "AgentRole",
    "Belief",
    "DebateDiff",
    "DebateMessage",
    "DebateSession",
    "DebateWeights",
    "EvidenceLedgerEntry",
    "FinalSolution",
    "Plan",
    "ProbabilityEntry",
    "ProbabilitySnapshot",
    "Proposal",
    "RunRequest",
    "SessionStore",
    "TimelineEvent",
]
