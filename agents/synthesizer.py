"""Synthesizer agent – converges proposals into a final solution and answer."""

from __future__ import annotations

import logging
import re
from typing import Any

from agents.base import STRICT_RETRY_NOTE, BaseAgent, VerificationEvidence, evidence_block
from agents.errors import ValidationError
from agents.llm_provider import LLMProvider
from agents.parsing import parse_json_object
from data.models import AgentRole, FinalSolution, Proposal
from evaluation.validators import DraftValidator, string_list

logger = logging.getLogger(__name__)

_SOLUTION_PROMPT = (
    'Return ONLY JSON: {"summary":"","steps":["",""],"risks":[""],"assumptions":[""]}. '
    "Provide an actionable response tailored to the prompt."
)

_RESPONSE_PROMPT = (
    'Return ONLY JSON: {"response":""}. Produce a direct, user-facing answer. '
    "Do not give meta-recommendations or a plan."
)

_CODE_GUIDANCE = (
    "Return the final deliverable as code. Use a single code block. "
    "Do not add a checklist or steps."
)
_PROSE_GUIDANCE = (
    "Return the final deliverable only as prose. Do not include headings, bullets, "
    "or numbered lists unless the prompt explicitly asks for a list."
)
_STRICT_GUIDANCE = (
    "IMPORTANT: Do not output a plan, checklist, or steps. Provide only the final answer."
)

_LIST_PATTERNS = (
    re.compile(r"^\s*(steps|risks|assumptions)\b", re.IGNORECASE),
    re.compile(r"(^|\n)\s*[-*•]\s+\w+"),
    re.compile(r"(^|\n)\s*\d+\.\s+\w+"),
)


def looks_like_list(text: str) -> bool:
    """True when *text* reads as a checklist rather than a direct answer."""
    return any(p.search(text) for p in _LIST_PATTERNS)


def proposal_block(proposals: list[Proposal]) -> str:
    if not proposals:
        return "No proposals available."
    return "\n".join(f"Agent {i}: {p.proposal}" for i, p in enumerate(proposals, start=1))


class Synthesizer(BaseAgent):
    """Agent that turns the proposal set into a final solution and response."""

    def __init__(
        self,
        provider: LLMProvider,
        *,
        agent_id: str | None = None,
        temperature: float = 0.4,
        max_tokens: int = 500,
        response_temperature: float = 0.5,
        response_max_tokens: int = 600,
        validator: DraftValidator | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(
            role=AgentRole.SYNTHESIZER,
            provider=provider,
            agent_id=agent_id,
            temperature=temperature,
            max_tokens=max_tokens,
            system_prompt=_SOLUTION_PROMPT,
        )
        self.writer = BaseAgent(
            role=AgentRole.SYNTHESIZER,
            provider=provider,
            agent_id=f"{self.agent_id}_writer",
            temperature=response_temperature,
            max_tokens=response_max_tokens,
            system_prompt=_RESPONSE_PROMPT,
        )
        self.validator = validator or DraftValidator()

    # ------------------------------------------------------------------
    # Final solution
    # ------------------------------------------------------------------

    async def solve(
        self,
        scenario: str,
        proposals: list[Proposal],
        evidence: VerificationEvidence | None = None,
    ) -> FinalSolution:
        prompt = "\n".join(
            [
                f"Scenario: {scenario}",
                "Agent proposals:",
                proposal_block(proposals),
                evidence_block(evidence),
            ]
        )
        return await self.request_json(prompt, self._to_solution)

    def _to_solution(self, draft: dict[str, Any]) -> FinalSolution:
        result = self.validator.validate_final_solution(draft)
        if not result:
            raise ValidationError(result.message)
        return FinalSolution(
            summary=draft["summary"].strip(),
            steps=string_list(draft.get("steps")),
            risks=string_list(draft.get("risks")),
            assumptions=string_list(draft.get("assumptions")),
        )

    # ------------------------------------------------------------------
    # Final response
    # ------------------------------------------------------------------

    async def respond(
        self,
        scenario: str,
        category: str | None,
        solution: FinalSolution,
        proposals: list[Proposal],
        evidence: VerificationEvidence | None = None,
        code_related: bool = False,
    ) -> str:
        """Write the user-facing answer.

        Non-code answers that come back as a checklist are retried once with
        a stricter instruction; code answers are expected as a code block and
        are accepted as-is.
        """

        def build(strict: bool) -> str:
            lines = [
                f"Scenario: {scenario}",
                f"Prompt category: {category or 'unknown'}",
                "Recommended action summary:",
                solution.summary,
                f"Steps: {' | '.join(solution.steps)}" if solution.steps else "Steps: none",
                f"Risks: {' | '.join(solution.risks)}" if solution.risks else "Risks: none",
                f"Assumptions: {' | '.join(solution.assumptions)}"
                if solution.assumptions
                else "Assumptions: none",
                "Agent proposals:",
                proposal_block(proposals),
                evidence_block(evidence),
                "Write the final response by executing the recommended action and steps.",
                _CODE_GUIDANCE if code_related else _PROSE_GUIDANCE,
            ]
            if strict:
                lines.append(_STRICT_GUIDANCE)
            return "\n".join(lines)

        last_error: ValidationError | None = None
        for attempt in (1, 2):
            strict = attempt == 2
            response = await self.writer.generate_response(
                build(strict), extra_system=STRICT_RETRY_NOTE if strict else None
            )
            try:
                text = _response_text(parse_json_object(response.text))
            except ValidationError as exc:
                last_error = exc
                continue
            if not strict and not code_related and looks_like_list(text):
                logger.info("Final response looked like a checklist; retrying once")
                continue
            return text

        raise ValidationError(f"LLM final response was not valid JSON. {last_error or ''}".strip())


def _response_text(draft: dict[str, Any]) -> str:
    text = draft.get("response")
    if not isinstance(text, str) or not text.strip():
        raise ValidationError("Final response missing response field.")
    return text.strip()
