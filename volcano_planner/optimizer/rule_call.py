"""Rule calls: matching a rule pattern against the equivalence graph and
firing the rule on every complete binding."""

import itertools
import logging
from typing import Any, Dict, FrozenSet, List, Optional, Tuple, TYPE_CHECKING

from .equivalence import Subset
from .errors import PlanningCancelledError, RuleFiringError
from .listener import RuleAttemptedEvent, RuleProductionEvent
from .operand import ChildPolicy, Direction, MatchStep, Operand

if TYPE_CHECKING:
    from .planner import VolcanoPlanner
    from .rule import Rule

logger = logging.getLogger(__name__)

_call_ids = itertools.count()

# Saved side-table state for one node: (child list, claimed positions)
_ChildState = Tuple[Optional[List[Any]], Optional[FrozenSet[int]]]


class RuleCall:
    """One attempt to match a rule, anchored at one node.

    ``nodes`` holds one binding per operand, indexed by the operand's
    ordinal in the rule. For operands whose children are unordered, the
    call keeps a per-node child list in which every bound child sits at
    the input position it was actually found in; the nodes' own input
    lists are never touched.
    """

    def __init__(self, planner: "VolcanoPlanner", operand: Operand):
        self.id = next(_call_ids)
        self.planner = planner
        self.operand0 = operand
        self.rule: "Rule" = operand.rule
        self.nodes: List[Any] = [None] * len(self.rule.operands)
        self._child_nodes: Dict[int, List[Any]] = {}
        self._claimed: Dict[int, FrozenSet[int]] = {}
        # Only kept while DEBUG logging is on.
        self.generated: Optional[List[Any]] = None

    def node(self, ordinal: int):
        """The expression bound to operand ``ordinal``."""
        return self.nodes[ordinal]

    def child_nodes(self, node) -> Optional[List[Any]]:
        """Input list of ``node`` with bound children in place, if ``node``
        matched an operand with unordered children."""
        return self._child_nodes.get(node.id)

    def match(self, node) -> None:
        """Bind ``node`` to the anchor operand and search for the rest."""
        assert self.operand0.matches(node), "anchor must match its operand"
        self.nodes[self.operand0.ordinal_in_rule] = node
        self._match_recurse(0)

    def _match_recurse(self, step_index: int) -> None:
        plan = self.operand0.match_plan
        if step_index == len(plan):
            # Give the rule a chance to apply side conditions.
            if self.rule.matches(self):
                self.on_match()
            return

        step = plan[step_index]
        if step.direction == Direction.ASCEND:
            self._ascend(step, step_index)
        else:
            self._descend(step, step_index)

    def _ascend(self, step: MatchStep, step_index: int) -> None:
        operands = self.rule.operands
        operand = operands[step.ordinal]
        child_operand = operands[step.reference]
        previous = self.nodes[step.reference]

        subset = self.planner.current_subset(previous)
        if subset is None:
            return

        if isinstance(previous, Subset):
            # Descending to a subset operand offers every subset of the set.
            parents = list(subset.set.parents)
        else:
            parents = subset.parent_nodes()

        for candidate in parents:
            if not operand.matches(candidate):
                continue
            if self.planner.current_subset(candidate) is None:
                continue
            # The previous binding is *an* input of the candidate; check it
            # sits at a position the operand accepts.
            for position in self._positions_holding(candidate, previous, operand, child_operand):
                saved = self._bind_child(candidate, operand, position, previous)
                self.nodes[step.ordinal] = candidate
                self._match_recurse(step_index + 1)
                self._restore(candidate, saved)

    def _positions_holding(self, candidate, previous, operand: Operand, child_operand: Operand) -> List[int]:
        if operand.child_policy == ChildPolicy.UNORDERED:
            positions = range(len(candidate.inputs))
        else:
            positions = [child_operand.ordinal_in_parent]
        result = []
        for position in positions:
            if position < len(candidate.inputs) and self._input_contains(candidate.inputs[position], previous):
                result.append(position)
        return result

    def _input_contains(self, input_ref, previous) -> bool:
        input_subset = self.planner.resolve_input(input_ref)
        if isinstance(previous, Subset):
            return self.planner.graph.find(previous.set) is input_subset.set
        # Only members whose traits satisfy the input subset count.
        for member in input_subset.node_list():
            if member is previous:
                return True
        return False

    def _descend(self, step: MatchStep, step_index: int) -> None:
        operands = self.rule.operands
        operand = operands[step.ordinal]
        parent_operand = operands[step.reference]
        parent = self.nodes[step.reference]

        inputs = getattr(parent, "inputs", None)
        if not inputs:
            return

        if parent_operand.child_policy == ChildPolicy.UNORDERED:
            claimed = self._claimed.get(parent.id, frozenset())
            positions = [p for p in range(len(inputs)) if p not in claimed]
        elif operand.ordinal_in_parent < len(inputs):
            positions = [operand.ordinal_in_parent]
        else:
            # The parent has fewer inputs than the pattern expects.
            positions = []

        wants_subset = operand.matched_class is not None and issubclass(operand.matched_class, Subset)
        for position in positions:
            subset = self.planner.resolve_input(inputs[position])
            if wants_subset:
                candidates = subset.set.subset_list()
            else:
                candidates = subset.node_list()

            for candidate in candidates:
                if not operand.matches(candidate):
                    continue
                if self.planner.current_subset(candidate) is None:
                    continue
                saved = self._bind_child(parent, parent_operand, position, candidate)
                self.nodes[step.ordinal] = candidate
                self._match_recurse(step_index + 1)
                self._restore(parent, saved)

    def _bind_child(self, parent, parent_operand: Operand, position: int, child) -> _ChildState:
        saved = (self._child_nodes.get(parent.id), self._claimed.get(parent.id))
        if parent_operand.child_policy == ChildPolicy.UNORDERED:
            child_list = list(saved[0] if saved[0] is not None else parent.inputs)
            child_list[position] = child
            self._child_nodes[parent.id] = child_list
            self._claimed[parent.id] = (saved[1] or frozenset()) | {position}
        return saved

    def _restore(self, parent, saved: _ChildState) -> None:
        child_list, claimed = saved
        if child_list is None:
            self._child_nodes.pop(parent.id, None)
        else:
            self._child_nodes[parent.id] = child_list
        if claimed is None:
            self._claimed.pop(parent.id, None)
        else:
            self._claimed[parent.id] = claimed

    def on_match(self) -> None:
        """Fire the rule on a complete binding, unless a skip condition holds."""
        self.planner.check_cancelled()
        try:
            if self.planner.is_excluded(self.rule):
                logger.debug(f"Rule [{self.rule.name}] not fired due to exclusion filter")
                return

            for ordinal, node in enumerate(self.nodes):
                subset = self.planner.subset_of(node)
                if subset is None:
                    logger.debug(
                        f"Rule [{self.rule.name}] not fired because operand #{ordinal} "
                        f"({node!r}) has no subset"
                    )
                    return
                if subset.set.is_obsolete:
                    logger.debug(
                        f"Rule [{self.rule.name}] not fired because operand #{ordinal} "
                        f"({node!r}) belongs to obsolete set"
                    )
                    return
                importance = self.planner.importance_of(node)
                if importance is not None and importance == 0.0:
                    logger.debug(
                        f"Rule [{self.rule.name}] not fired because operand #{ordinal} "
                        f"({node!r}) has importance=0"
                    )
                    return

            if not self.planner.record_match(self):
                logger.debug(f"Rule [{self.rule.name}] already fired on {self.nodes}")
                return

            debug = logger.isEnabledFor(logging.DEBUG)
            if debug:
                logger.debug(f"call#{self.id}: Apply rule [{self.rule.name}] to {self.nodes}")

            listener = self.planner.listener
            if listener is not None:
                listener.rule_attempted(RuleAttemptedEvent(self.planner, self.nodes[0], self, True))

            if debug:
                self.generated = []

            self.rule.on_match(self)

            if debug:
                if not self.generated:
                    logger.debug(f"call#{self.id} generated 0 successors.")
                else:
                    logger.debug(
                        f"call#{self.id} generated {len(self.generated)} successors: {self.generated}"
                    )
                self.generated = None

            if listener is not None:
                listener.rule_attempted(RuleAttemptedEvent(self.planner, self.nodes[0], self, False))
        except (PlanningCancelledError, RuleFiringError):
            raise
        except Exception as e:
            raise RuleFiringError(
                f"Error while applying rule {self.rule.name}, args {self.nodes}",
                self.rule,
                self.nodes,
            ) from e

    def transform_to(self, node, equiv: Optional[Dict[Any, Any]] = None) -> None:
        """Declare ``node`` equivalent to the expression bound to operand 0.

        Args:
            node: New expression (or an existing subset) produced by the rule
            equiv: Extra pairs to register first, key equivalent to value
        """
        equiv = equiv or {}
        if logger.isEnabledFor(logging.DEBUG):
            extra = f" with equivalences {equiv}" if equiv else ""
            logger.debug(f"Transform to: {node!r} via {self.rule.name}{extra}")
            if self.generated is not None:
                self.generated.append(node)

        try:
            root = self.nodes[0]
            root_subset = self.planner.subset_of(root)
            root_traits = root_subset.traits if root_subset is not None else root.traits
            # The new tree must not lose traits the search already requires.
            self.planner.propagate_traits(node, root_traits)

            listener = self.planner.listener
            if listener is not None:
                listener.rule_production_succeeded(RuleProductionEvent(self.planner, node, self, True))

            # Registering the new root registers its descendants too; explicit
            # equivalences go first so nothing is registered twice.
            for key, value in equiv.items():
                self.planner.ensure_registered(key, value, self)
            self.planner.ensure_registered(node, root, self)
            root.cluster.invalidate_metadata()

            if listener is not None:
                listener.rule_production_succeeded(RuleProductionEvent(self.planner, node, self, False))
        except PlanningCancelledError:
            raise
        except Exception as e:
            raise RuleFiringError(
                f"Error occurred while applying rule {self.rule.name}",
                self.rule,
                self.nodes,
            ) from e

    def __repr__(self) -> str:
        return f"RuleCall#{self.id}({self.rule.name}, {self.nodes})"
