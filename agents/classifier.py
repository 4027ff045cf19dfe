"""Scenario classifier – tags a scenario with one fixed prompt category."""

from __future__ import annotations

from enum import Enum
from typing import Any

from agents.base import BaseAgent
from agents.errors import ClassificationError, ValidationError
from agents.llm_provider import LLMProvider
from agents.parsing import parse_json_object
from data.models import AgentRole


class PromptCategory(str, Enum):
    INFORMATION_SEEKING = "information-seeking"
    REASONING_ANALYSIS = "reasoning-analysis"
    INSTRUCTION_FOLLOWING = "instruction-following"
    CREATIVE_GENERATION = "creative-generation"
    TRANSFORMATION = "transformation"
    DECISION_SUPPORT = "decision-support"
    EXPLORATORY_IDEATION = "exploratory-ideation"
    CRITIQUE_ADVERSARIAL = "critique-adversarial"
    META_PROMPT = "meta-prompt"
    SIMULATION_ROLEPLAY = "simulation-roleplay"
    TOOL_USING_AGENTIC = "tool-using-agentic"
    ALIGNMENT_CONSTRAINT = "alignment-constraint"
    LEARNING_TUTORING = "learning-tutoring"
    REFLECTIVE_SENSEMAKING = "reflective-sensemaking"


DEFAULT_CATEGORY = PromptCategory.REASONING_ANALYSIS

_SYSTEM_PROMPT = (
    'Return ONLY JSON: {"category":""}. '
    "Choose exactly one category from the list provided."
)


class ScenarioClassifier(BaseAgent):
    """Maps a scenario onto one ``PromptCategory`` with a single LLM call."""

    def __init__(
        self,
        provider: LLMProvider,
        *,
        agent_id: str | None = None,
        temperature: float = 0.1,
        max_tokens: int = 120,
        system_prompt: str = _SYSTEM_PROMPT,
        **kwargs: Any,
    ) -> None:
        super().__init__(
            role=AgentRole.SYNTHESIZER,
            provider=provider,
            agent_id=agent_id or "scenario_classifier",
            temperature=temperature,
            max_tokens=max_tokens,
            system_prompt=system_prompt,
        )

    async def classify(self, scenario: str) -> PromptCategory:
        """Return the category; raises ``ClassificationError`` on bad output."""
        prompt = "\n".join(
            [
                f"Prompt: {scenario}",
                f"Categories: {', '.join(c.value for c in PromptCategory)}",
            ]
        )
        response = await self.generate_response(prompt)
        try:
            parsed = parse_json_object(response.text)
        except ValidationError as exc:
            raise ClassificationError("Prompt category response was not valid JSON.") from exc

        label = parsed.get("category")
        try:
            return PromptCategory(str(label).strip().lower())
        except ValueError:
            raise ClassificationError(f"Prompt category is invalid: {label!r}.") from None
