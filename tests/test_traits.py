"""Tests for traits and trait sets."""

import pytest

from volcano_planner.plan.traits import (
    Collation,
    CollationTraitDef,
    Convention,
    ConventionTraitDef,
    TraitSet,
)


class TestTraitSet:
    """Trait set construction and comparison."""

    def test_traits_ordered_by_def(self):
        """Traits are kept in trait-def order regardless of input order."""
        traits = TraitSet.of(Collation((1,)), Convention.LOGICAL)
        assert list(traits) == [Convention.LOGICAL, Collation((1,))]
        assert traits == TraitSet.of(Convention.LOGICAL, Collation((1,)))
        assert hash(traits) == hash(TraitSet.of(Convention.LOGICAL, Collation((1,))))

    def test_conflicting_traits_rejected(self):
        """Two different traits of one def cannot share a set."""
        with pytest.raises(ValueError):
            TraitSet.of(Convention.LOGICAL, Convention.PHYSICAL)

    def test_replace_adds_or_swaps(self):
        """replace() adds a missing def and swaps an existing one."""
        base = TraitSet.of(Convention.NONE)
        widened = base.replace(Collation((0,)))
        assert widened.get(CollationTraitDef) == Collation((0,))
        assert widened.get(ConventionTraitDef) == Convention.NONE

        swapped = widened.replace(Convention.PHYSICAL)
        assert swapped.get(ConventionTraitDef) == Convention.PHYSICAL
        assert len(swapped) == 2
        assert base.contains_def(CollationTraitDef) is False

    def test_collation_prefix_satisfies(self):
        """A longer sort order satisfies any of its prefixes."""
        assert Collation((0, 1)).satisfies(Collation((0,)))
        assert not Collation((0,)).satisfies(Collation((0, 1)))
        assert Collation((2,)).satisfies(Collation.EMPTY)

    def test_set_satisfies(self):
        """satisfies() needs every required def present and satisfied."""
        sorted_traits = TraitSet.of(Convention.NONE, Collation((0, 1)))
        assert sorted_traits.satisfies(TraitSet.of(Convention.NONE))
        assert sorted_traits.satisfies(TraitSet.of(Convention.NONE, Collation((0,))))
        assert not TraitSet.of(Convention.NONE).satisfies(sorted_traits)
        assert not sorted_traits.satisfies(TraitSet.of(Convention.PHYSICAL))
