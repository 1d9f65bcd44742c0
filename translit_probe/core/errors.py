"""
Scenario failure taxonomy.

Every failure that ends a scenario is a ``ScenarioFailure`` carrying a
typed reason and the driver state reached when it was raised. Failures
inside a single resolution strategy never surface as exceptions; only
exhaustion of a whole cascade does.
"""

from enum import Enum
from typing import Any


class FailureReason(str, Enum):
    """Why a scenario did not pass."""

    LOCATOR_ERROR = "locator_error"
    TIMEOUT = "timeout"
    ASSERTION_MISMATCH = "assertion_mismatch"
    ERROR = "error"


class ScenarioFailure(Exception):
    """Base class for failures fatal to one scenario (never to the run)."""

    reason: FailureReason = FailureReason.ERROR

    def __init__(self, message: str, state: str | None = None, **details: Any):
        super().__init__(message)
        self.message = message
        self.state = state
        self.details = details


class LocatorError(ScenarioFailure):
    """No element matched any strategy of a cascade."""

    reason = FailureReason.LOCATOR_ERROR

    def __init__(
        self,
        message: str,
        element_name: str,
        tried_strategies: list[str],
        page_url: str | None = None,
        state: str | None = None,
    ):
        super().__init__(
            message,
            state=state,
            element_name=element_name,
            tried_strategies=tried_strategies,
            page_url=page_url,
        )
        self.element_name = element_name
        self.tried_strategies = tried_strategies
        self.page_url = page_url


class OutputTimeoutError(ScenarioFailure):
    """An expected state transition did not happen within its bound."""

    reason = FailureReason.TIMEOUT

    def __init__(
        self,
        message: str,
        timeout_ms: int,
        last_observed: str | None = None,
        state: str | None = None,
    ):
        super().__init__(
            message, state=state, timeout_ms=timeout_ms, last_observed=last_observed
        )
        self.timeout_ms = timeout_ms
        self.last_observed = last_observed


class AssertionMismatch(ScenarioFailure):
    """Extraction succeeded but the text fails the category predicate."""

    reason = FailureReason.ASSERTION_MISMATCH

    def __init__(
        self,
        message: str,
        actual: str,
        expected: str,
        raw: str | None = None,
        state: str | None = None,
    ):
        super().__init__(message, state=state, actual=actual, expected=expected, raw=raw)
        self.actual = actual
        self.expected = expected
        self.raw = raw
