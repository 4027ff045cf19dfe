"""Belief revision over the plan set.

Probabilities live in ``ProbabilityEntry`` lists, one entry per plan in plan
order. Every revision is followed by ``damp_and_normalize`` so the
distribution always sums to one and no plan ever collapses to zero.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta

from data.models import AgentRole, Plan, ProbabilityEntry, ProbabilitySnapshot

logger = logging.getLogger(__name__)

DAMPING_FACTOR = 0.08
INITIAL_PRIOR = 0.25


def clamp_unit(value: float) -> float:
    return min(1.0, max(0.0, value))


def normalize(entries: list[ProbabilityEntry]) -> list[ProbabilityEntry]:
    """Rescale to sum to one; an all-zero distribution becomes uniform."""
    total = sum(e.probability for e in entries)
    if total == 0:
        uniform = 1 / len(entries)
        return [e.model_copy(update={"probability": uniform}) for e in entries]
    return [e.model_copy(update={"probability": e.probability / total}) for e in entries]


def damp_and_normalize(
    entries: list[ProbabilityEntry], damping: float = DAMPING_FACTOR
) -> list[ProbabilityEntry]:
    """Normalize, then blend towards uniform: ``p = (1 - d) * p + d / N``."""
    normalized = normalize(entries)
    uniform = 1 / len(normalized)
    return [
        e.model_copy(update={"probability": (1 - damping) * e.probability + damping * uniform})
        for e in normalized
    ]


def apply_weighted_update(
    entries: list[ProbabilityEntry],
    plan_id: str,
    asserted: float,
    weight: float,
    *,
    updated_by: AgentRole,
    rationale: str,
    timestamp: datetime,
) -> list[ProbabilityEntry]:
    """Move only *plan_id* towards *asserted* by *weight*.

    The result is not normalized; callers follow up with
    ``damp_and_normalize``.
    """
    revised: list[ProbabilityEntry] = []
    for entry in entries:
        if entry.plan_id != plan_id:
            revised.append(entry)
            continue
        weighted = entry.probability * (1 - weight) + asserted * weight
        revised.append(
            entry.model_copy(
                update={
                    "probability": clamp_unit(weighted),
                    "updated_by": updated_by,
                    "rationale": rationale,
                    "timestamp": timestamp,
                }
            )
        )
    return revised


def leading_plan_id(entries: list[ProbabilityEntry]) -> str:
    """Highest-probability plan; ties go to the earliest plan."""
    return max(entries, key=lambda e: e.probability).plan_id


def probability_of(entries: list[ProbabilityEntry], plan_id: str) -> float:
    for entry in entries:
        if entry.plan_id == plan_id:
            return entry.probability
    raise KeyError(plan_id)


class BeliefLedger:
    """Append-only sequence of probability snapshots for one run.

    Snapshot timestamps are minute offsets from *base_time*.
    """

    def __init__(self, plans: list[Plan], base_time: datetime) -> None:
        self.base_time = base_time
        self.snapshots: list[ProbabilitySnapshot] = []

        timestamp = self.at(1)
        priors = [
            ProbabilityEntry(
                plan_id=plan.id,
                probability=INITIAL_PRIOR,
                updated_by=AgentRole.PLANNER,
                rationale="Initial prior assigned by Planner.",
                timestamp=timestamp,
            )
            for plan in plans
        ]
        self.current = damp_and_normalize(priors)
        self._record(timestamp, "Initial priors.")

    def at(self, offset_minutes: int) -> datetime:
        return self.base_time + timedelta(minutes=offset_minutes)

    def revise(
        self,
        plan_id: str,
        asserted: float,
        weight: float,
        *,
        updated_by: AgentRole,
        rationale: str,
        offset_minutes: int,
        note: str,
    ) -> ProbabilitySnapshot:
        """Apply one weighted update, damp, and append the snapshot."""
        timestamp = self.at(offset_minutes)
        updated = apply_weighted_update(
            self.current,
            plan_id,
            asserted,
            weight,
            updated_by=updated_by,
            rationale=rationale,
            timestamp=timestamp,
        )
        stamped = [e.model_copy(update={"timestamp": timestamp}) for e in updated]
        self.current = damp_and_normalize(stamped)
        logger.debug(
            "%s: %s -> %.3f", note, plan_id, probability_of(self.current, plan_id)
        )
        return self._record(timestamp, note)

    def leading_plan_id(self) -> str:
        return leading_plan_id(self.current)

    def probability_of(self, plan_id: str) -> float:
        return probability_of(self.current, plan_id)

    def _record(self, timestamp: datetime, note: str) -> ProbabilitySnapshot:
        snapshot = ProbabilitySnapshot(timestamp=timestamp, note=note, entries=list(self.current))
        self.snapshots.append(snapshot)
        return snapshot
