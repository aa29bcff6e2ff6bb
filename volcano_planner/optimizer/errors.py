"""Planner exceptions."""

from typing import Any, List, Optional


class PlannerError(Exception):
    """Base class for planner failures."""


class RegistrationError(PlannerError):
    """Raised for a registration request the graph cannot honour."""


class PlanningCancelledError(PlannerError):
    """Raised when the cooperative cancellation flag is seen set."""


class RuleFiringError(PlannerError):
    """A rule body, or the registration of its output, failed.

    Carries the rule and the bindings of the call; the original exception
    is chained as ``__cause__``.
    """

    def __init__(self, message: str, rule: Any, bindings: Optional[List[Any]] = None):
        super().__init__(message)
        self.rule = rule
        self.bindings = list(bindings) if bindings is not None else []
