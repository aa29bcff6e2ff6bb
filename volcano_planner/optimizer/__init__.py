"""Rule matching and firing over the equivalence graph."""

from .equivalence import EquivalenceGraph, EquivalenceSet, Subset
from .errors import (
    PlannerError,
    RegistrationError,
    PlanningCancelledError,
    RuleFiringError,
)
from .listener import (
    PlannerListener,
    MulticastListener,
    LoggingListener,
    RuleAttemptedEvent,
    RuleProductionEvent,
    EquivalenceEvent,
)
from .metadata import MetadataQuery
from .operand import ChildPolicy, Direction, MatchStep, Operand, operand, unordered
from .rule import (
    Rule,
    FilterMergeRule,
    FilterIntoJoinRule,
    JoinCommuteRule,
    ProjectRemoveRule,
    RULES,
    create_rules,
)
from .rule_call import RuleCall
from .planner import VolcanoPlanner, CancelFlag, TraitPropagationVisitor

__all__ = [
    "EquivalenceGraph",
    "EquivalenceSet",
    "Subset",
    "PlannerError",
    "RegistrationError",
    "PlanningCancelledError",
    "RuleFiringError",
    "PlannerListener",
    "MulticastListener",
    "LoggingListener",
    "RuleAttemptedEvent",
    "RuleProductionEvent",
    "EquivalenceEvent",
    "MetadataQuery",
    "ChildPolicy",
    "Direction",
    "MatchStep",
    "Operand",
    "operand",
    "unordered",
    "Rule",
    "FilterMergeRule",
    "FilterIntoJoinRule",
    "JoinCommuteRule",
    "ProjectRemoveRule",
    "RULES",
    "create_rules",
    "RuleCall",
    "VolcanoPlanner",
    "CancelFlag",
    "TraitPropagationVisitor",
]
