"""Rule base class and a small set of reference rules."""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Type, TYPE_CHECKING

from ..plan.logical import Filter, Join, JoinType, Project
from ..plan.expressions import InputRef, conjunction
from .operand import Operand, flatten_operands, operand

if TYPE_CHECKING:
    from .rule_call import RuleCall


class Rule(ABC):
    """A pattern over the equivalence graph plus a rewrite.

    The operand tree is numbered and its match plans are computed once,
    here; every rule call reuses them.
    """

    def __init__(self, root: Operand, name: Optional[str] = None):
        self.operand = root
        self.name = name or self.__class__.__name__
        self.operands: List[Operand] = flatten_operands(root, self)

    def matches(self, call: "RuleCall") -> bool:
        """Side condition checked once every operand is bound.

        Args:
            call: Rule call holding the bindings

        Returns:
            True if the rule should fire for these bindings
        """
        return True

    @abstractmethod
    def on_match(self, call: "RuleCall") -> None:
        """Rewrite the bound expressions, reporting results via
        ``call.transform_to``."""
        pass

    def __repr__(self) -> str:
        return f"Rule({self.name})"


class FilterMergeRule(Rule):
    """Combine two adjacent filters into one."""

    def __init__(self):
        super().__init__(operand(Filter, operand(Filter)))

    def on_match(self, call: "RuleCall") -> None:
        top = call.node(0)
        bottom = call.node(1)
        merged = conjunction([bottom.predicate, top.predicate])
        call.transform_to(Filter(bottom.input(0), merged))


class FilterIntoJoinRule(Rule):
    """Fold a filter above an inner join into the join condition."""

    def __init__(self):
        super().__init__(
            operand(
                Filter,
                operand(Join, predicate=lambda join: join.join_type == JoinType.INNER),
            )
        )

    def on_match(self, call: "RuleCall") -> None:
        filter_node = call.node(0)
        join = call.node(1)
        condition = conjunction([join.condition, filter_node.predicate])
        call.transform_to(Join(join.left, join.right, JoinType.INNER, condition))


class JoinCommuteRule(Rule):
    """Swap the inputs of an inner join, restoring the column order with a
    projection on top."""

    def __init__(self):
        super().__init__(operand(Join, predicate=lambda join: join.join_type == JoinType.INNER))

    def on_match(self, call: "RuleCall") -> None:
        join = call.node(0)
        left_width = len(join.left.schema())
        right_width = len(join.right.schema())
        swapped = Join(join.right, join.left, JoinType.INNER, join.condition)

        expressions = []
        for ordinal in range(left_width + right_width):
            if ordinal < left_width:
                expressions.append(InputRef(right_width + ordinal))
            else:
                expressions.append(InputRef(ordinal - left_width))
        call.transform_to(Project(swapped, expressions, join.schema()))


def _is_identity_project(project: Project) -> bool:
    input_schema = project.input(0).schema()
    if project.aliases != list(input_schema):
        return False
    if len(project.expressions) != len(input_schema):
        return False
    for ordinal, expr in enumerate(project.expressions):
        if not isinstance(expr, InputRef) or expr.index != ordinal:
            return False
    return True


class ProjectRemoveRule(Rule):
    """Replace a projection that passes its input through unchanged by the
    input itself."""

    def __init__(self):
        super().__init__(operand(Project, predicate=_is_identity_project))

    def on_match(self, call: "RuleCall") -> None:
        project = call.node(0)
        call.transform_to(project.input(0))


RULES: Dict[str, Type[Rule]] = {
    "FilterMergeRule": FilterMergeRule,
    "FilterIntoJoinRule": FilterIntoJoinRule,
    "JoinCommuteRule": JoinCommuteRule,
    "ProjectRemoveRule": ProjectRemoveRule,
}


def create_rules(names: List[str]) -> List[Rule]:
    """Instantiate reference rules by name.

    Raises:
        ValueError: If a name is not a known rule
    """
    rules = []
    for name in names:
        if name not in RULES:
            known = ", ".join(sorted(RULES))
            raise ValueError(f"Unknown rule: {name} (known rules: {known})")
        rules.append(RULES[name]())
    return rules
