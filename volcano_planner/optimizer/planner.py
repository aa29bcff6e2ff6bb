"""Volcano-style planner: owns the equivalence graph and the primitives rule
calls depend on (registration, subset lookup, trait propagation,
importance, exclusion and cancellation)."""

import logging
import re
from collections import deque
from dataclasses import dataclass
from typing import Any, Deque, Dict, List, Optional, Set, Tuple

from ..config.config import PlannerConfig
from ..plan.logical import PlanCluster, PlanNode
from ..plan.traits import TraitSet
from .equivalence import EquivalenceGraph, EquivalenceSet, Subset
from .errors import PlanningCancelledError, RegistrationError
from .listener import EquivalenceEvent, PlannerListener
from .operand import Operand
from .rule import Rule
from .rule_call import RuleCall

logger = logging.getLogger(__name__)


class CancelFlag:
    """Cooperative cancellation flag, checked before each rule firing."""

    def __init__(self):
        self._cancelled = False

    def request_cancel(self) -> None:
        self._cancelled = True

    def clear(self) -> None:
        self._cancelled = False

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled


@dataclass
class RuleMatchRequest:
    """A pending attempt to match ``operand``'s rule anchored at ``node``."""

    operand: Operand
    node: PlanNode


class TraitPropagationVisitor:
    """Copies traits of defs a new tree does not declare from a base set.

    Registered nodes and subsets are left alone; only the freshly built
    part of the tree is widened.
    """

    def __init__(self, planner: "VolcanoPlanner", base_traits: TraitSet):
        self.planner = planner
        self.base_traits = base_traits

    def go(self, node) -> None:
        self._visit(node, set())

    def _visit(self, node, seen: Set[int]) -> None:
        if isinstance(node, Subset) or self.planner.is_registered(node):
            return
        if id(node) in seen:
            return
        seen.add(id(node))
        for trait in self.base_traits:
            if not node.traits.contains_def(trait.trait_def):
                node.add_trait(trait)
        for child in node.inputs:
            self._visit(child, seen)


class VolcanoPlanner:
    """Equivalence-graph planner.

    The match queue is drained in FIFO order by ``run``; choosing which
    rules to fire and when to stop based on cost belongs to the caller.
    """

    def __init__(
        self,
        config: Optional[PlannerConfig] = None,
        listener: Optional[PlannerListener] = None,
        cluster: Optional[PlanCluster] = None,
    ):
        """Initialize planner.

        Args:
            config: Planner configuration; defaults are used if omitted
            listener: Optional receiver of planner events
            cluster: Cluster to plan in; a new one is created if omitted
        """
        self.config = config or PlannerConfig()
        self.listener = listener
        self.cluster = cluster or PlanCluster()
        self.graph = EquivalenceGraph(self.cluster)
        self.cancel_flag = CancelFlag()
        self.rules: Dict[str, Rule] = {}
        self.root: Optional[Subset] = None

        self._exclusion = None
        if self.config.rule_exclusion:
            self._exclusion = re.compile(self.config.rule_exclusion)
        self._operands: List[Operand] = []
        self._nodes: Dict[int, PlanNode] = {}
        self._node_subsets: Dict[int, Subset] = {}
        self._digests: Dict[str, PlanNode] = {}
        self._node_digest: Dict[int, str] = {}
        self._importances: Dict[int, float] = {}
        self._queue: Deque[RuleMatchRequest] = deque()
        self._fired: Set[Tuple] = set()

    # Rules

    def add_rule(self, rule: Rule) -> bool:
        """Add a rule and queue it against every node already registered.

        Returns:
            False if a rule with the same name is already present
        """
        if rule.name in self.rules:
            return False
        self.rules[rule.name] = rule
        self._operands.extend(rule.operands)
        for node in list(self._nodes.values()):
            for op in rule.operands:
                if op.matches(node):
                    self._queue.append(RuleMatchRequest(op, node))
        logger.debug(f"Added rule {rule.name}")
        return True

    def remove_rule(self, rule: Rule) -> bool:
        if self.rules.get(rule.name) is not rule:
            return False
        del self.rules[rule.name]
        self._operands = [op for op in self._operands if op.rule is not rule]
        self._queue = deque(r for r in self._queue if r.operand.rule is not rule)
        return True

    def is_excluded(self, rule: Rule) -> bool:
        """Whether the configured exclusion pattern matches the rule name."""
        return self._exclusion is not None and self._exclusion.fullmatch(rule.name) is not None

    # Shared state consulted while firing

    def check_cancelled(self) -> None:
        """Raise ``PlanningCancelledError`` if cancellation was requested."""
        if self.cancel_flag.is_cancelled:
            raise PlanningCancelledError("Planning was cancelled")

    def set_importance(self, node: PlanNode, importance: float) -> None:
        self._importances[node.id] = importance

    def importance_of(self, node) -> Optional[float]:
        if isinstance(node, Subset):
            return None
        return self._importances.get(node.id)

    def record_match(self, call: RuleCall) -> bool:
        """Remember a binding about to fire; False if it already fired."""
        if not self.config.deduplicate_matches:
            return True
        key = (call.rule.name, tuple(self._binding_key(n) for n in call.nodes))
        if key in self._fired:
            return False
        self._fired.add(key)
        return True

    def _binding_key(self, node) -> Tuple:
        if isinstance(node, Subset):
            return ("subset", self.graph.find(node.set).id, node.traits)
        return ("node", node.id)

    # Subset lookup

    def is_registered(self, node) -> bool:
        if isinstance(node, Subset):
            return True
        return self._nodes.get(node.id) is node

    def subset_of(self, node) -> Optional[Subset]:
        """Subset a registered node belongs to; a subset maps to itself."""
        if isinstance(node, Subset):
            return node
        if not self.is_registered(node):
            return None
        return self._node_subsets.get(node.id)

    def current_subset(self, node) -> Optional[Subset]:
        """Like ``subset_of`` but None when the subset's set is obsolete."""
        subset = self.subset_of(node)
        if subset is None or subset.is_obsolete:
            return None
        return subset

    def resolve_input(self, input_ref: Subset) -> Subset:
        return self.graph.resolve_subset(input_ref)

    def get_subset(self, node, traits: TraitSet) -> Optional[Subset]:
        """Existing subset of ``node``'s set for ``traits``, without creating it."""
        subset = self.subset_of(node)
        if subset is None:
            return None
        return self.graph.find(subset.set).subsets.get(traits)

    def change_traits(self, node, traits: TraitSet) -> Subset:
        """Subset of ``node``'s set with ``traits``, created on first request."""
        subset = self.subset_of(node)
        if subset is None:
            raise RegistrationError(f"{node!r} is not registered")
        result, created = self.graph.get_or_create_subset(subset.set, traits)
        if created:
            logger.debug(f"Created {result.describe()}")
        return result

    def set_of(self, node) -> Optional[EquivalenceSet]:
        subset = self.subset_of(node)
        if subset is None:
            return None
        return self.graph.find(subset.set)

    # Registration

    def set_root(self, node) -> Subset:
        self.root = self.ensure_registered(node)
        return self.root

    def get_root(self) -> Optional[Subset]:
        if self.root is None:
            return None
        return self.graph.resolve_subset(self.root)

    def propagate_traits(self, node, base_traits: TraitSet) -> None:
        TraitPropagationVisitor(self, base_traits).go(node)

    def register(self, node: PlanNode, equiv=None) -> Subset:
        """Register a node that must not be registered yet."""
        if self.is_registered(node):
            raise RegistrationError(f"{node!r} is already registered")
        return self.ensure_registered(node, equiv)

    def ensure_registered(self, node, equiv=None, call: Optional[RuleCall] = None) -> Subset:
        """Make sure ``node`` is in the graph, equivalent to ``equiv``.

        Args:
            node: Node (possibly an unregistered tree) or subset
            equiv: Registered node or subset ``node`` is equivalent to
            call: Rule call that produced ``node``, if any

        Returns:
            Current subset holding ``node``
        """
        equiv_set: Optional[EquivalenceSet] = None
        if equiv is not None:
            equiv_subset = self.subset_of(equiv)
            if equiv_subset is None:
                raise RegistrationError(
                    f"{equiv!r} must be registered before it can be used as an equivalent"
                )
            equiv_set = self.graph.find(equiv_subset.set)

        if isinstance(node, Subset):
            subset = self.graph.resolve_subset(node)
        elif self.is_registered(node):
            subset = self._node_subsets[node.id]
        else:
            return self._register_impl(node, equiv_set, call)

        if equiv_set is not None and self.graph.find(subset.set) is not equiv_set:
            self._merge(equiv_set, subset.set)
        return self.graph.resolve_subset(subset)

    def _register_impl(
        self,
        node: PlanNode,
        equiv_set: Optional[EquivalenceSet],
        call: Optional[RuleCall],
    ) -> Subset:
        node.inputs = [self.ensure_registered(i, None, call) for i in node.inputs]

        digest = self._digest(node)
        existing = self._digests.get(digest)
        if existing is not None:
            existing_subset = self._node_subsets[existing.id]
            logger.debug(f"{node.describe()} is identical to {existing.describe()}")
            if equiv_set is not None and self.graph.find(existing_subset.set) is not self.graph.find(equiv_set):
                self._merge(equiv_set, existing_subset.set)
            return self.graph.resolve_subset(existing_subset)

        target = self.graph.find(equiv_set) if equiv_set is not None else self.graph.new_set()
        target.add_member(node)
        subset, _ = self.graph.get_or_create_subset(target, node.traits)
        self._nodes[node.id] = node
        self._node_subsets[node.id] = subset
        self._digests[digest] = node
        self._node_digest[node.id] = digest
        for input_subset in node.inputs:
            self.graph.find(input_subset.set).add_parent(node)

        logger.debug(f"Registered {node.describe()} in set#{target.id}")
        if self.listener is not None:
            self.listener.equivalence_found(EquivalenceEvent(self, node, target.id, call))
        self.fire_rules(node)
        return subset

    def _digest(self, node: PlanNode) -> str:
        input_terms = []
        for input_ref in node.inputs:
            subset = self.graph.resolve_subset(input_ref)
            input_terms.append(f"set#{subset.set.id}{subset.traits}")
        return f"{node.kind}{node.traits}{node.attributes()}[{', '.join(input_terms)}]"

    def _merge(self, set_a: EquivalenceSet, set_b: EquivalenceSet) -> None:
        """Merge two sets, then any sets whose parents became identical."""
        worklist = [(set_a, set_b)]
        while worklist:
            first, second = worklist.pop()
            first = self.graph.find(first)
            second = self.graph.find(second)
            if first is second:
                continue
            survivor, obsolete = (first, second) if first.id < second.id else (second, first)
            logger.debug(f"Merging set#{obsolete.id} into set#{survivor.id}")
            self.graph.merge(obsolete, survivor)

            for member in obsolete.members:
                self._node_subsets[member.id], _ = self.graph.get_or_create_subset(survivor, member.traits)

            for parent in list(obsolete.parents):
                worklist.extend(self._rehash(parent))

            for node in obsolete.members + obsolete.parents:
                self.fire_rules(node)

    def _rehash(self, parent: PlanNode) -> List[Tuple[EquivalenceSet, EquivalenceSet]]:
        old = self._node_digest.get(parent.id)
        new = self._digest(parent)
        if old == new:
            return []
        if old is not None and self._digests.get(old) is parent:
            del self._digests[old]
        self._node_digest[parent.id] = new

        other = self._digests.get(new)
        if other is None or other is parent:
            self._digests[new] = parent
            return []
        parent_set = self.graph.find(self._node_subsets[parent.id].set)
        other_set = self.graph.find(self._node_subsets[other.id].set)
        if parent_set is other_set:
            return []
        logger.debug(f"{parent.describe()} became identical to {other.describe()}")
        return [(parent_set, other_set)]

    # Rule queue

    def fire_rules(self, node: PlanNode) -> None:
        """Queue a match request for every operand that accepts ``node``."""
        for op in self._operands:
            if op.matches(node):
                self._queue.append(RuleMatchRequest(op, node))

    @property
    def pending_matches(self) -> int:
        return len(self._queue)

    def run(self, max_iterations: Optional[int] = None) -> int:
        """Drain the match queue.

        Args:
            max_iterations: Maximum number of rule calls; defaults to config

        Returns:
            Number of rule calls made
        """
        limit = max_iterations if max_iterations is not None else self.config.max_iterations
        calls = 0
        while self._queue and calls < limit:
            request = self._queue.popleft()
            if request.operand.rule.name not in self.rules:
                continue
            if self.current_subset(request.node) is None:
                logger.debug(f"Skipping match on {request.node!r}: no current subset")
                continue
            RuleCall(self, request.operand).match(request.node)
            calls += 1
        if self._queue:
            logger.info(f"Stopped after {calls} rule calls with {len(self._queue)} pending")
        return calls

    # Diagnostics

    def describe_node(self, node: PlanNode) -> str:
        inputs = ", ".join(self.graph.resolve_subset(i).describe() for i in node.inputs)
        text = f"{node.describe()}{node.attributes()}"
        if inputs:
            text += f"({inputs})"
        importance = self._importances.get(node.id)
        if importance is not None:
            text += f" importance={importance}"
        return text

    def dump(self) -> str:
        """Textual dump of every current set, its subsets and members."""
        lines = []
        root = self.get_root()
        for equiv_set in self.graph.current_sets():
            marker = " (root)" if root is not None and root.set is equiv_set else ""
            lines.append(f"Set#{equiv_set.id}{marker}")
            for subset in equiv_set.subset_list():
                lines.append(f"  {subset.describe()}")
            for member in equiv_set.members:
                lines.append(f"    {self.describe_node(member)}")
        return "\n".join(lines)

    def __repr__(self) -> str:
        return f"VolcanoPlanner(rules={len(self.rules)}, sets={len(self.graph)})"
