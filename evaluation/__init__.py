"""Evaluation framework – belief metrics and structured-output validators."""

from evaluation.metrics import (
    BeliefMetrics,
    belief_variance,
    compute_session_metrics,
    distribution_entropy,
    runner_up_gap,
    uncertainty_summary,
)
from evaluation.validators import DraftValidator, ValidationResult, string_list

__all__ = [
    "BeliefMetrics",
    "DraftValidator",
    "ValidationResult",
    "belief_variance",
    "compute_session_metrics",
    "distribution_entropy",
    "runner_up_gap",
    "string_list",
    "uncertainty_summary",
]
