"""Probability Parliament - agent roster and LLM-backed capabilities."""

from agents.roster import AGENTS, DEFAULT_WEIGHTS, PROPOSAL_ROLES, get_agent, resolve_weights
from agents.errors import (
    ClassificationError,
    ConfigurationError,
    DebateError,
    IntegrationError,
    ProposalGenerationError,
    ProviderError,
    ValidationError,
)
from agents.base import BaseAgent, DebateCapabilities, VerificationEvidence
from agents.classifier import DEFAULT_CATEGORY, PromptCategory, ScenarioClassifier
from agents.proposer import Proposer
from agents.synthesizer import Synthesizer
from agents.council import AgentCouncil
from agents.llm_provider import (
    GroqProvider,
    LLMProvider,
    LLMSettings,
    OllamaProvider,
    create_provider,
)

__all__ = [
    "AGENTS",
    "DEFAULT_WEIGHTS",
    "PROPOSAL_ROLES",
    "get_agent",
    "resolve_weights",
    "DebateError",
    "ConfigurationError",
    "ProviderError",
    "ValidationError",
    "ClassificationError",
    "IntegrationError",
    "ProposalGenerationError",
    "BaseAgent",
    "DebateCapabilities",
    "VerificationEvidence",
    "PromptCategory",
    "DEFAULT_CATEGORY",
    "ScenarioClassifier",
    "Proposer",
    "Synthesizer",
    "AgentCouncil",
    "LLMProvider",
    "LLMSettings",
    "GroqProvider",
    "OllamaProvider",
    "create_provider",
]
