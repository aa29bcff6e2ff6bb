"""Rule patterns: operand trees and their precomputed match plans.

A rule's operands are numbered in preorder, root first. For every operand
a match plan is fixed when the rule is built: starting from that operand,
walk up through its ancestors to the root, then visit the remaining
operands in preorder. Each step of the plan either ascends (the next
operand is the parent of the one bound just before) or descends (the next
operand is a child of an operand bound earlier).
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Type, TYPE_CHECKING

from ..plan.traits import Trait

if TYPE_CHECKING:
    from .rule import Rule


class ChildPolicy(Enum):
    """How an operand's children are matched against a node's inputs."""

    ANY = "ANY"  # do not look at the inputs at all
    SOME = "SOME"  # child operand i matches input i
    UNORDERED = "UNORDERED"  # child operands match inputs in any position


class Direction(Enum):
    """Direction of one step of a match plan."""

    ASCEND = "ASCEND"
    DESCEND = "DESCEND"


@dataclass(frozen=True)
class MatchStep:
    """Bind operand ``ordinal`` relative to the bound operand ``reference``.

    When ascending, ``reference`` is the child operand bound by the
    previous step; when descending it is the parent operand.
    """

    direction: Direction
    ordinal: int
    reference: int


class Operand:
    """Describes one node of a rule pattern."""

    def __init__(
        self,
        matched_class: Optional[Type] = None,
        children: Optional[List["Operand"]] = None,
        policy: Optional[ChildPolicy] = None,
        trait: Optional[Trait] = None,
        predicate: Optional[Callable[[object], bool]] = None,
    ):
        self.matched_class = matched_class  # None matches any node
        self.children: List[Operand] = list(children or [])
        if policy is None:
            policy = ChildPolicy.SOME if self.children else ChildPolicy.ANY
        if policy == ChildPolicy.ANY and self.children:
            raise ValueError("An operand with child policy ANY cannot have children")
        self.child_policy = policy
        self.trait = trait
        self.predicate = predicate

        self.parent: Optional[Operand] = None
        self.ordinal_in_parent = 0
        self.ordinal_in_rule = -1
        self.rule: Optional["Rule"] = None
        self.solve_order: List[int] = []
        self.match_plan: List[MatchStep] = []

        for ordinal, child in enumerate(self.children):
            if child.parent is not None:
                raise ValueError(f"{child} already belongs to another operand")
            child.parent = self
            child.ordinal_in_parent = ordinal

    def matches(self, node) -> bool:
        """Whether ``node`` has the shape this operand asks for."""
        if self.matched_class is not None and not isinstance(node, self.matched_class):
            return False
        if self.trait is not None:
            own = node.traits.get(self.trait.trait_def)
            if own is None or not own.satisfies(self.trait):
                return False
        if self.predicate is not None and not self.predicate(node):
            return False
        return True

    def __repr__(self) -> str:
        name = self.matched_class.__name__ if self.matched_class else "*"
        return f"Operand#{self.ordinal_in_rule}({name}, {self.child_policy.value})"


def operand(
    matched_class: Optional[Type],
    *children: Operand,
    policy: Optional[ChildPolicy] = None,
    trait: Optional[Trait] = None,
    predicate: Optional[Callable[[object], bool]] = None,
) -> Operand:
    """Build an operand; children are matched in order unless told otherwise."""
    return Operand(matched_class, list(children), policy, trait, predicate)


def unordered(
    matched_class: Optional[Type],
    *children: Operand,
    trait: Optional[Trait] = None,
    predicate: Optional[Callable[[object], bool]] = None,
) -> Operand:
    """Build an operand whose children may match inputs in any position."""
    return Operand(matched_class, list(children), ChildPolicy.UNORDERED, trait, predicate)


def flatten_operands(root: Operand, rule: "Rule") -> List[Operand]:
    """Number the operand tree in preorder and compute every match plan."""
    operands: List[Operand] = []

    def visit(op: Operand) -> None:
        if op.rule is not None:
            raise ValueError(f"{op} is already used by rule {op.rule}")
        op.rule = rule
        op.ordinal_in_rule = len(operands)
        operands.append(op)
        for child in op.children:
            visit(child)

    visit(root)
    for op in operands:
        op.solve_order = _solve_order(op, len(operands))
        op.match_plan = _match_plan(op.solve_order, operands)
    return operands


def _solve_order(anchor: Operand, count: int) -> List[int]:
    order: List[int] = []
    walker: Optional[Operand] = anchor
    while walker is not None:
        order.append(walker.ordinal_in_rule)
        walker = walker.parent
    for ordinal in range(count):
        if ordinal not in order:
            order.append(ordinal)
    return order


def _match_plan(order: List[int], operands: List[Operand]) -> List[MatchStep]:
    steps: List[MatchStep] = []
    for position in range(1, len(order)):
        current = operands[order[position]]
        previous = operands[order[position - 1]]
        if previous.parent is current:
            steps.append(MatchStep(Direction.ASCEND, current.ordinal_in_rule, previous.ordinal_in_rule))
        else:
            parent = current.parent
            assert parent is not None and parent.ordinal_in_rule in order[:position]
            steps.append(MatchStep(Direction.DESCEND, current.ordinal_in_rule, parent.ordinal_in_rule))
    return steps
