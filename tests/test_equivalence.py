"""Tests for the equivalence-set arena."""

from volcano_planner.optimizer.equivalence import EquivalenceGraph
from volcano_planner.plan import Convention, Collation, PlanCluster, Scan, TraitSet


class TestEquivalenceGraph:
    """Union-find resolution and merging."""

    def test_find_compresses_forwarding_chain(self):
        """find() resolves a chain and points every link at the survivor."""
        graph = EquivalenceGraph(PlanCluster())
        s0, s1, s2 = graph.new_set(), graph.new_set(), graph.new_set()

        graph.merge(s0, s1)
        graph.merge(s1, s2)
        assert s0.equivalent_id == 1
        assert s1.equivalent_id == 2

        assert graph.find(s0) is s2
        assert s0.equivalent_id == 2
        assert graph.find(s2) is s2
        assert s2.is_obsolete is False
        assert len(graph) == 1

    def test_merge_unions_members_parents_and_subsets(self):
        """The survivor sees everything the merged-away set held."""
        cluster = PlanCluster()
        graph = EquivalenceGraph(cluster)
        source, target = graph.new_set(), graph.new_set()
        a = Scan(cluster, "A", ["x"])
        b = Scan(cluster, "B", ["x"])
        parent = Scan(cluster, "P", ["x"])
        source.add_member(a)
        source.add_parent(parent)
        target.add_member(b)

        sorted_traits = TraitSet.of(Convention.NONE, Collation((0,)))
        stale, _ = graph.get_or_create_subset(source, sorted_traits)
        graph.get_or_create_subset(target, TraitSet.of(Convention.NONE))

        survivor = graph.merge(source, target)
        assert survivor is target
        assert source.is_obsolete
        assert target.members == [b, a]
        assert target.parents == [parent]
        assert sorted_traits in target.subsets
        # The obsolete set keeps its own lists.
        assert source.members == [a]

        resolved = graph.resolve_subset(stale)
        assert resolved is target.subsets[sorted_traits]
        assert resolved.current() is resolved
        assert stale.is_obsolete

    def test_merge_same_set_is_noop(self):
        """Merging a set with itself changes nothing."""
        graph = EquivalenceGraph(PlanCluster())
        s0 = graph.new_set()
        assert graph.merge(s0, s0) is s0
        assert s0.is_obsolete is False

    def test_subset_created_once_per_trait_set(self):
        """Exactly one subset exists per (set, traits) pair."""
        graph = EquivalenceGraph(PlanCluster())
        s0 = graph.new_set()
        traits = TraitSet.of(Convention.LOGICAL)
        first, created = graph.get_or_create_subset(s0, traits)
        second, created_again = graph.get_or_create_subset(s0, traits)
        assert created is True
        assert created_again is False
        assert first is second
