"""Exception hierarchy shared by agents and the debate orchestrator."""

from __future__ import annotations


class DebateError(Exception):
    """Base class for every error raised by the debate engine."""


class ConfigurationError(DebateError):
    """A required external capability is unknown or not configured."""


class ProviderError(DebateError):
    """The LLM backend could not be reached or returned an unusable reply."""


class ValidationError(DebateError):
    """Structured LLM output was malformed or incomplete."""


class ClassificationError(DebateError):
    """The scenario could not be mapped onto a known category."""


class IntegrationError(DebateError):
    """The verification endpoint failed, timed out, or reported an error."""


class ProposalGenerationError(DebateError):
    """No role produced a usable proposal, so the run cannot continue."""
