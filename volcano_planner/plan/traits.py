"""Physical and logical properties (traits) of plan nodes."""

from dataclasses import dataclass
from typing import Dict, Iterator, Optional, Tuple


class TraitDef:
    """A kind of trait. A trait set holds at most one trait per def."""

    def __init__(self, name: str, ordinal: int):
        self.name = name
        self.ordinal = ordinal

    def default(self) -> "Trait":
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"TraitDef({self.name})"


class Trait:
    """Base class for traits."""

    trait_def: TraitDef

    def satisfies(self, other: "Trait") -> bool:
        return self == other


class _ConventionTraitDef(TraitDef):
    def default(self) -> "Convention":
        return Convention.NONE


class _CollationTraitDef(TraitDef):
    def default(self) -> "Collation":
        return Collation.EMPTY


ConventionTraitDef = _ConventionTraitDef("convention", 0)
CollationTraitDef = _CollationTraitDef("collation", 1)


@dataclass(frozen=True)
class Convention(Trait):
    """Calling convention of a node."""

    name: str

    @property
    def trait_def(self) -> TraitDef:
        return ConventionTraitDef

    def __repr__(self) -> str:
        return self.name


Convention.NONE = Convention("NONE")
Convention.LOGICAL = Convention("LOGICAL")
Convention.PHYSICAL = Convention("PHYSICAL")


@dataclass(frozen=True)
class Collation(Trait):
    """Sort order, as a tuple of field indexes."""

    keys: Tuple[int, ...] = ()

    @property
    def trait_def(self) -> TraitDef:
        return CollationTraitDef

    def satisfies(self, other: Trait) -> bool:
        if not isinstance(other, Collation):
            return False
        return self.keys[: len(other.keys)] == other.keys

    def __repr__(self) -> str:
        return "[" + ", ".join(str(k) for k in self.keys) + "]"


Collation.EMPTY = Collation(())


class TraitSet:
    """Immutable set of traits, ordered by trait def ordinal."""

    __slots__ = ("_traits",)

    def __init__(self, traits: Tuple[Trait, ...] = ()):
        by_def: Dict[int, Trait] = {}
        for trait in traits:
            ordinal = trait.trait_def.ordinal
            if ordinal in by_def and by_def[ordinal] != trait:
                raise ValueError(
                    f"Conflicting traits for {trait.trait_def.name}: "
                    f"{by_def[ordinal]} and {trait}"
                )
            by_def[ordinal] = trait
        self._traits = tuple(by_def[k] for k in sorted(by_def))

    @classmethod
    def of(cls, *traits: Trait) -> "TraitSet":
        return cls(traits)

    def get(self, trait_def: TraitDef) -> Optional[Trait]:
        for trait in self._traits:
            if trait.trait_def is trait_def:
                return trait
        return None

    def contains_def(self, trait_def: TraitDef) -> bool:
        return self.get(trait_def) is not None

    def replace(self, trait: Trait) -> "TraitSet":
        """Return a copy with ``trait`` added or swapped in for its def."""
        kept = [t for t in self._traits if t.trait_def is not trait.trait_def]
        kept.append(trait)
        return TraitSet(tuple(kept))

    def satisfies(self, other: "TraitSet") -> bool:
        """Whether every trait required by ``other`` is met by this set."""
        for required in other:
            own = self.get(required.trait_def)
            if own is None or not own.satisfies(required):
                return False
        return True

    def __iter__(self) -> Iterator[Trait]:
        return iter(self._traits)

    def __len__(self) -> int:
        return len(self._traits)

    def __eq__(self, other) -> bool:
        return isinstance(other, TraitSet) and self._traits == other._traits

    def __hash__(self) -> int:
        return hash(self._traits)

    def __repr__(self) -> str:
        return "." + ".".join(repr(t) for t in self._traits)
