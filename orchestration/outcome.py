"""Tagged results for calls to external collaborators."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

T = TypeVar("T")


class OutcomeStatus(str, Enum):
    SUCCESS = "success"
    RECOVERED = "recovered"
    FATAL = "fatal"


@dataclass(frozen=True)
class CallOutcome(Generic[T]):
    """What one external call produced and how its failure, if any, was handled.

    ``RECOVERED`` carries the fallback value plus the warning to record;
    ``FATAL`` carries the error that ends the run.
    """

    status: OutcomeStatus
    value: T | None = None
    warning: str | None = None
    error: Exception | None = None

    @classmethod
    def success(cls, value: T) -> CallOutcome[T]:
        return cls(OutcomeStatus.SUCCESS, value=value)

    @classmethod
    def recovered(cls, value: T | None, warning: str) -> CallOutcome[T]:
        return cls(OutcomeStatus.RECOVERED, value=value, warning=warning)

    @classmethod
    def fatal(cls, error: Exception) -> CallOutcome[T]:
        return cls(OutcomeStatus.FATAL, error=error)

    @property
    def ok(self) -> bool:
        return self.status is OutcomeStatus.SUCCESS

    def unwrap(self) -> T | None:
        """Return the value; re-raise the error of a fatal outcome."""
        if self.status is OutcomeStatus.FATAL and self.error is not None:
            raise self.error
        return self.value
