"""Helpers shared by planner tests."""

from typing import List, Tuple

from volcano_planner.optimizer import PlannerListener, Rule
from volcano_planner.plan import BinaryOp, BinaryOpType, InputRef, Literal, DataType


class RecordingRule(Rule):
    """Rule whose body only records the ids of the bound nodes."""

    def __init__(self, root, name=None):
        super().__init__(root, name)
        self.bindings: List[Tuple[int, ...]] = []
        self.child_lists = []

    def on_match(self, call):
        self.bindings.append(tuple(node.id for node in call.nodes))
        self.child_lists.append(call.child_nodes(call.node(0)))


class RecordingListener(PlannerListener):
    """Listener keeping every event in arrival order."""

    def __init__(self):
        self.events = []

    def rule_attempted(self, event):
        self.events.append(("attempt", event.before))

    def rule_production_succeeded(self, event):
        self.events.append(("production", event.before))

    def equivalence_found(self, event):
        self.events.append(("equivalence", event.set_id))


def gt(index: int, value: int) -> BinaryOp:
    """Predicate ``$index > value``."""
    return BinaryOp(
        op=BinaryOpType.GT,
        left=InputRef(index),
        right=Literal(value, DataType.BIGINT),
    )
