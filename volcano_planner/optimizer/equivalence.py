"""Equivalence sets and their trait-specific subsets.

Sets live in an arena and are addressed by id. A merged-away set keeps a
forwarding id to the set that superseded it; every lookup goes through
``EquivalenceGraph.find``, which compresses forwarding chains as it walks
them. Sets are never removed from the arena, so stale references can
always be followed to the current set.
"""

from typing import Dict, Iterator, List, Optional, Tuple

from ..plan.logical import PlanCluster, PlanNode
from ..plan.traits import TraitSet


class Subset:
    """View of an equivalence set restricted to one trait combination."""

    def __init__(self, graph: "EquivalenceGraph", equiv_set: "EquivalenceSet", traits: TraitSet):
        self.graph = graph
        self.set = equiv_set
        self.traits = traits
        # Owned by the cost-based search driver.
        self.best: Optional[PlanNode] = None
        self.best_cost: Optional[float] = None

    @property
    def cluster(self) -> PlanCluster:
        return self.graph.cluster

    @property
    def is_obsolete(self) -> bool:
        return self.set.is_obsolete

    def current(self) -> "Subset":
        """Return the subset with these traits on the current set."""
        return self.graph.resolve_subset(self)

    def node_list(self) -> List[PlanNode]:
        """Members of the current set whose traits satisfy this subset's."""
        current = self.graph.find(self.set)
        return [m for m in current.members if m.traits.satisfies(self.traits)]

    def parent_nodes(self) -> List[PlanNode]:
        """Nodes that use this subset (or one it satisfies) as an input."""
        current = self.graph.find(self.set)
        result: List[PlanNode] = []
        for parent in current.parents:
            for input_ref in parent.inputs:
                input_subset = self.graph.resolve_subset(input_ref)
                if input_subset.set is current and self.traits.satisfies(input_subset.traits):
                    result.append(parent)
                    break
        return result

    def schema(self) -> List[str]:
        return self.set.members[0].schema()

    def describe(self) -> str:
        return f"subset#{self.graph.find(self.set).id}{self.traits}"

    def __repr__(self) -> str:
        return self.describe()


class EquivalenceSet:
    """Group of plan nodes known to be logically equivalent."""

    def __init__(self, set_id: int):
        self.id = set_id
        self.members: List[PlanNode] = []
        self.subsets: Dict[TraitSet, Subset] = {}
        self.parents: List[PlanNode] = []
        self.equivalent_id: Optional[int] = None  # set by merge

    @property
    def is_obsolete(self) -> bool:
        return self.equivalent_id is not None

    def add_member(self, node: PlanNode) -> bool:
        if _contains(self.members, node):
            return False
        self.members.append(node)
        return True

    def add_parent(self, node: PlanNode) -> bool:
        if _contains(self.parents, node):
            return False
        self.parents.append(node)
        return True

    def subset_list(self) -> List[Subset]:
        return list(self.subsets.values())

    def __repr__(self) -> str:
        forward = f" -> set#{self.equivalent_id}" if self.is_obsolete else ""
        return f"EquivalenceSet#{self.id}(members={len(self.members)}{forward})"


def _contains(nodes: List[PlanNode], node: PlanNode) -> bool:
    for existing in nodes:
        if existing is node:
            return True
    return False


class EquivalenceGraph:
    """Arena of equivalence sets with union-find resolution."""

    def __init__(self, cluster: PlanCluster):
        self.cluster = cluster
        self.sets: List[EquivalenceSet] = []

    def new_set(self) -> EquivalenceSet:
        equiv_set = EquivalenceSet(len(self.sets))
        self.sets.append(equiv_set)
        return equiv_set

    def find(self, equiv_set: EquivalenceSet) -> EquivalenceSet:
        """Follow forwarding ids to the current set, compressing the path."""
        root = equiv_set
        while root.equivalent_id is not None:
            root = self.sets[root.equivalent_id]

        walker = equiv_set
        while walker.equivalent_id is not None and walker.equivalent_id != root.id:
            next_set = self.sets[walker.equivalent_id]
            walker.equivalent_id = root.id
            walker = next_set
        return root

    def resolve_subset(self, subset: Subset) -> Subset:
        """Map a possibly stale subset onto the current set."""
        current = self.find(subset.set)
        if current is subset.set:
            return subset
        resolved, _ = self.get_or_create_subset(current, subset.traits)
        return resolved

    def get_or_create_subset(
        self,
        equiv_set: EquivalenceSet,
        traits: TraitSet,
    ) -> Tuple[Subset, bool]:
        """Return the subset for ``traits``, creating it on first request."""
        equiv_set = self.find(equiv_set)
        subset = equiv_set.subsets.get(traits)
        if subset is not None:
            return subset, False
        subset = Subset(self, equiv_set, traits)
        equiv_set.subsets[traits] = subset
        return subset, True

    def merge(self, source: EquivalenceSet, target: EquivalenceSet) -> EquivalenceSet:
        """Fold ``source`` into ``target`` and return the surviving set.

        The source keeps its own member, parent and subset lists so that
        anything still holding it sees what it used to contain.
        """
        source = self.find(source)
        target = self.find(target)
        if source is target:
            return target

        source.equivalent_id = target.id
        for member in source.members:
            target.add_member(member)
        for parent in source.parents:
            target.add_parent(parent)
        for traits in source.subsets:
            self.get_or_create_subset(target, traits)
        return target

    def current_sets(self) -> Iterator[EquivalenceSet]:
        for equiv_set in self.sets:
            if not equiv_set.is_obsolete:
                yield equiv_set

    def __len__(self) -> int:
        return sum(1 for _ in self.current_sets())

    def __repr__(self) -> str:
        return f"EquivalenceGraph(sets={len(self)}, total={len(self.sets)})"
