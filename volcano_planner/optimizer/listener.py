"""Planner event stream for tracing and instrumentation."""

from dataclasses import dataclass
from typing import Any, List, Optional

from ..utils.logging import get_contextual_logger


@dataclass
class PlannerEvent:
    """Base event; ``node`` is the expression the event is about."""

    planner: Any
    node: Any


@dataclass
class RuleAttemptedEvent(PlannerEvent):
    """Sent before (``before=True``) and after a rule body runs."""

    rule_call: Any = None
    before: bool = True


@dataclass
class RuleProductionEvent(PlannerEvent):
    """Sent around the registration of an expression produced by a rule."""

    rule_call: Any = None
    before: bool = True


@dataclass
class EquivalenceEvent(PlannerEvent):
    """Sent when a node becomes a member of an equivalence set."""

    set_id: int = -1
    rule_call: Optional[Any] = None


class PlannerListener:
    """Receives planner events. All hooks default to no-ops."""

    def rule_attempted(self, event: RuleAttemptedEvent) -> None:
        pass

    def rule_production_succeeded(self, event: RuleProductionEvent) -> None:
        pass

    def equivalence_found(self, event: EquivalenceEvent) -> None:
        pass


class MulticastListener(PlannerListener):
    """Forwards every event to each registered listener in order."""

    def __init__(self, listeners: Optional[List[PlannerListener]] = None):
        self.listeners: List[PlannerListener] = list(listeners or [])

    def add_listener(self, listener: PlannerListener) -> None:
        self.listeners.append(listener)

    def rule_attempted(self, event: RuleAttemptedEvent) -> None:
        for listener in self.listeners:
            listener.rule_attempted(event)

    def rule_production_succeeded(self, event: RuleProductionEvent) -> None:
        for listener in self.listeners:
            listener.rule_production_succeeded(event)

    def equivalence_found(self, event: EquivalenceEvent) -> None:
        for listener in self.listeners:
            listener.equivalence_found(event)


class LoggingListener(PlannerListener):
    """Writes events to the log, tagged with the rule call id."""

    def __init__(self, logger_name: str = "volcano_planner.events"):
        self.logger_name = logger_name
        self.attempts = 0
        self.productions = 0

    def _logger(self, rule_call):
        context = {}
        if rule_call is not None:
            context = {"call_id": rule_call.id, "rule": rule_call.rule.name}
        return get_contextual_logger(self.logger_name, context)

    def rule_attempted(self, event: RuleAttemptedEvent) -> None:
        if event.before:
            self.attempts += 1
        phase = "begin" if event.before else "end"
        self._logger(event.rule_call).debug(
            f"rule attempt {phase}: {event.rule_call.rule.name} on {event.node!r}"
        )

    def rule_production_succeeded(self, event: RuleProductionEvent) -> None:
        if not event.before:
            self.productions += 1
        phase = "begin" if event.before else "end"
        self._logger(event.rule_call).debug(
            f"rule production {phase}: {event.rule_call.rule.name} produced {event.node!r}"
        )

    def equivalence_found(self, event: EquivalenceEvent) -> None:
        self._logger(event.rule_call).debug(
            f"{event.node!r} registered in set#{event.set_id}"
        )
