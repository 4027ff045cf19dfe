"""Validators for structured agent drafts before they enter a debate."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)


def string_list(value: Any) -> list[str]:
    """Keep only the non-empty string items of *value* (if it is a list)."""
    if not isinstance(value, list):
        return []
    return [item.strip() for item in value if isinstance(item, str) and item.strip()]


@dataclass
class ValidationResult:
    """Outcome of a validation check."""

    valid: bool
    issues: list[str]

    def __bool__(self) -> bool:
        return self.valid

    @property
    def message(self) -> str:
        return "; ".join(self.issues)


def _text(draft: dict[str, Any], key: str) -> str:
    value = draft.get(key)
    return value.strip() if isinstance(value, str) else ""


class DraftValidator:
    """Checks proposal and final-solution drafts against the debate rules."""

    def __init__(
        self,
        min_solution_steps: int = 2,
        min_solution_risks: int = 1,
        min_solution_assumptions: int = 1,
    ) -> None:
        self.min_solution_steps = min_solution_steps
        self.min_solution_risks = min_solution_risks
        self.min_solution_assumptions = min_solution_assumptions

    def validate_proposal(
        self,
        draft: dict[str, Any],
        min_rationale: int,
        role: str = "",
    ) -> ValidationResult:
        """Required text fields present and enough rationale items."""
        issues: list[str] = []

        missing = [k for k in ("proposal", "summary", "risk") if not _text(draft, k)]
        if missing:
            issues.append(f"Proposal missing {', '.join(missing)}")

        rationale = string_list(draft.get("rationale"))
        if len(rationale) < min_rationale:
            issues.append(
                f"Proposal missing required rationale "
                f"({len(rationale)} items, minimum {min_rationale})"
            )

        if issues:
            logger.warning(
                "Proposal validation failed%s: %s",
                f" for {role}" if role else "",
                "; ".join(issues),
            )
        return ValidationResult(valid=len(issues) == 0, issues=issues)

    def validate_final_solution(self, draft: dict[str, Any]) -> ValidationResult:
        issues: list[str] = []

        if not _text(draft, "summary"):
            issues.append("Final solution missing summary")
        if len(string_list(draft.get("steps"))) < self.min_solution_steps:
            issues.append("Final solution missing steps")
        if len(string_list(draft.get("risks"))) < self.min_solution_risks:
            issues.append("Final solution missing risks")
        if len(string_list(draft.get("assumptions"))) < self.min_solution_assumptions:
            issues.append("Final solution missing assumptions")

        if issues:
            logger.warning("Final solution validation failed: %s", "; ".join(issues))
        return ValidationResult(valid=len(issues) == 0, issues=issues)
