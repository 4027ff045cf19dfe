"""Session visualization – belief charts and formatted text reports.

Generates matplotlib charts of how the probability ledger moved during a
debate and exports a pretty-printed plain-text session report.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

import matplotlib

matplotlib.use("Agg")  # non-interactive backend
import matplotlib.pyplot as plt
import numpy as np

from data.models import DebateSession, ProbabilitySnapshot
from evaluation.metrics import BeliefMetrics, compute_session_metrics

logger = logging.getLogger(__name__)

# Colour palette per plan slot
_PLAN_COLOURS: dict[str, str] = {
    "plan-a": "#4CAF50",
    "plan-b": "#F44336",
    "plan-c": "#2196F3",
    "plan-d": "#FF9800",
}

PLAN_SLOTS = ("plan-a", "plan-b", "plan-c", "plan-d")


@dataclass(frozen=True)
class ProbabilityPoint:
    """One snapshot flattened into a chart row, one field per plan slot."""

    timestamp: datetime
    note: str
    plan_a: float = 0.0
    plan_b: float = 0.0
    plan_c: float = 0.0
    plan_d: float = 0.0

    def value(self, plan_id: str) -> float:
        return getattr(self, plan_id.replace("-", "_"))


def _point(snapshot: ProbabilitySnapshot, plan_ids: list[str]) -> ProbabilityPoint:
    values: dict[str, float] = {}
    for plan_id in plan_ids:
        if plan_id in PLAN_SLOTS:
            values[plan_id.replace("-", "_")] = snapshot.probability_of(plan_id)
    return ProbabilityPoint(timestamp=snapshot.timestamp, note=snapshot.note, **values)


def chart_points(session: DebateSession) -> list[ProbabilityPoint]:
    """One point per snapshot, in snapshot order."""
    plan_ids = [plan.id for plan in session.plans]
    return [_point(snapshot, plan_ids) for snapshot in session.probabilities]


class SessionVisualizer:
    """Generate charts and reports from a stored session."""

    def __init__(self, output_dir: str | Path = "viz/output") -> None:
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def generate_all(self, session: DebateSession) -> list[Path]:
        """Generate all charts and the text report. Returns file paths."""
        metrics = compute_session_metrics(session)
        return [
            self.plot_probability_trajectory(session),
            self.plot_final_distribution(session),
            self.export_report(session, metrics),
        ]

    # ------------------------------------------------------------------
    # Charts
    # ------------------------------------------------------------------

    def plot_probability_trajectory(self, session: DebateSession) -> Path:
        """Line chart of every plan's probability across snapshots."""
        points = chart_points(session)
        steps = np.arange(len(points))

        fig, ax = plt.subplots(figsize=(10, 5))
        for plan in session.plans:
            ax.plot(
                steps,
                [p.value(plan.id) for p in points],
                "o-",
                label=f"{plan.id}: {plan.title}",
                color=_PLAN_COLOURS.get(plan.id, "#607D8B"),
                linewidth=2.5 if plan.id == session.final_plan_id else 1.2,
                markersize=5,
            )

        ax.set_xticks(steps)
        ax.set_xticklabels([_short(p.note) for p in points], rotation=30, ha="right")
        ax.set_ylabel("Probability")
        ax.set_ylim(0, 1)
        ax.set_title(f"{session.id} – Belief Trajectory")
        ax.legend(fontsize="small")
        plt.tight_layout()

        path = self.output_dir / f"{session.id}_trajectory.png"
        fig.savefig(path, dpi=150)
        plt.close(fig)
        logger.info("Saved %s", path)
        return path

    def plot_final_distribution(self, session: DebateSession) -> Path:
        """Bar chart of the final snapshot."""
        final = session.final_snapshot
        plan_ids = [e.plan_id for e in final.entries]
        values = [e.probability for e in final.entries]
        colours = [_PLAN_COLOURS.get(pid, "#607D8B") for pid in plan_ids]

        fig, ax = plt.subplots(figsize=(8, 4))
        bars = ax.bar(plan_ids, values, color=colours)
        for bar, value in zip(bars, values):
            ax.annotate(
                f"{value:.2f}",
                (bar.get_x() + bar.get_width() / 2, value),
                ha="center",
                va="bottom",
            )
        ax.set_ylabel("Probability")
        ax.set_ylim(0, 1)
        ax.set_title(f"{session.id} – Final Distribution ({session.belief.variance} variance)")
        plt.tight_layout()

        path = self.output_dir / f"{session.id}_distribution.png"
        fig.savefig(path, dpi=150)
        plt.close(fig)
        logger.info("Saved %s", path)
        return path

    # ------------------------------------------------------------------
    # Text report
    # ------------------------------------------------------------------

    def export_report(
        self,
        session: DebateSession,
        metrics: BeliefMetrics | None = None,
    ) -> Path:
        """Export a pretty-printed text report of the session."""
        metrics = metrics or compute_session_metrics(session)
        lines = [
            f"{'=' * 72}",
            f"  SESSION {session.id}",
            f"  Scenario: {session.scenario}",
            f"  Category: {session.prompt_category or 'unknown'} | Adapter: {session.adapter}",
            f"{'=' * 72}",
            "",
            "--- Plans " + "─" * 50,
        ]
        final = session.final_snapshot
        for plan in session.plans:
            marker = "*" if plan.id == session.final_plan_id else " "
            lines.append(
                f" {marker} {plan.id} {final.probability_of(plan.id):.3f}  {plan.title}"
            )
        lines.append("")

        lines.append("--- Snapshots " + "─" * 46)
        for point in chart_points(session):
            values = " ".join(f"{point.value(pid):.3f}" for pid in PLAN_SLOTS)
            lines.append(f"  {point.timestamp:%H:%M}  {values}  {point.note}")
        lines.append("")

        lines.append("--- Transcript " + "─" * 45)
        for message in session.transcript:
            lines.append(
                f"  [{message.agent.value.upper()}] -> {message.preferred_plan_id} "
                f"(confidence {message.confidence:.2f})"
            )
            for paragraph in message.content.split("\n"):
                lines.append(f"    {paragraph}")
            lines.append("")

        lines.append("--- Outcome " + "─" * 48)
        lines.append(f"  {session.uncertainty_summary}")
        lines.append(f"  Belief: {session.belief.statement}")
        lines.append(
            f"  Probability: {metrics.final_probability:.3f} | Variance: {metrics.variance} "
            f"| Entropy: {metrics.entropy:.3f} bits"
        )
        if session.generation_warnings:
            lines.append("  Warnings:")
            lines.extend(f"    - {w}" for w in session.generation_warnings)
        lines.append("")
        lines.append(f"{'=' * 72}")
        lines.append("  END OF REPORT")
        lines.append(f"{'=' * 72}")

        path = self.output_dir / f"{session.id}_report.txt"
        path.write_text("\n".join(lines), encoding="utf-8")
        logger.info("Saved %s", path)
        return path


def _short(note: str, limit: int = 24) -> str:
    return note if len(note) <= limit else note[: limit - 1] + "…"
