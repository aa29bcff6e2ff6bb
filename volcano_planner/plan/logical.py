"""Logical plan nodes (expression nodes of the equivalence graph)."""

import itertools
from abc import ABC, abstractmethod
from typing import Any, List, Optional, Tuple, TYPE_CHECKING
from enum import Enum

from .expressions import Expression
from .traits import Collation, Convention, Trait, TraitSet

if TYPE_CHECKING:
    from ..optimizer.metadata import MetadataQuery


class JoinType(Enum):
    """Join types."""

    INNER = "INNER"
    LEFT = "LEFT"
    RIGHT = "RIGHT"
    FULL = "FULL"
    CROSS = "CROSS"
    SEMI = "SEMI"
    ANTI = "ANTI"


class PlanCluster:
    """Query-wide context shared by every node of one planning session."""

    def __init__(self, default_traits: Optional[TraitSet] = None):
        self._ids = itertools.count()
        self.default_traits = default_traits or TraitSet.of(Convention.NONE)
        self._metadata_query: Optional["MetadataQuery"] = None

    def next_id(self) -> int:
        return next(self._ids)

    @property
    def metadata_query(self) -> "MetadataQuery":
        """Return the current metadata query, creating one if needed."""
        if self._metadata_query is None:
            from ..optimizer.metadata import MetadataQuery

            self._metadata_query = MetadataQuery()
        return self._metadata_query

    def invalidate_metadata(self) -> None:
        """Drop cached derived metadata; the next access starts afresh."""
        if self._metadata_query is not None:
            self._metadata_query.invalidate()
        self._metadata_query = None

    def __repr__(self) -> str:
        return f"PlanCluster(traits={self.default_traits})"


def _cluster_of(node) -> PlanCluster:
    return node.cluster


class PlanNode(ABC):
    """Base class for logical plan nodes.

    Inputs are plain nodes while a tree is being built by a caller or a
    rule. Registration replaces every input by the Subset it belongs to,
    after which the node's identity and inputs no longer change; only its
    trait set may still be widened.
    """

    def __init__(
        self,
        cluster: PlanCluster,
        inputs: Optional[List[Any]] = None,
        traits: Optional[TraitSet] = None,
    ):
        self.cluster = cluster
        self.id = cluster.next_id()
        self.inputs: List[Any] = list(inputs or [])
        self.traits = traits if traits is not None else cluster.default_traits

    @property
    def kind(self) -> str:
        return self.__class__.__name__

    def input(self, ordinal: int):
        return self.inputs[ordinal]

    @abstractmethod
    def attributes(self) -> Tuple:
        """Per-kind attribute terms that take part in structural identity."""
        pass

    @abstractmethod
    def accept(self, visitor):
        """Accept a visitor for the visitor pattern."""
        pass

    @abstractmethod
    def schema(self) -> List[str]:
        """Return output column names."""
        pass

    def add_trait(self, trait: Trait) -> None:
        """Widen the trait set with a trait of a def not yet present."""
        current = self.traits.get(trait.trait_def)
        if current is not None and current != trait:
            raise ValueError(
                f"{self.describe()} already has {current} for "
                f"{trait.trait_def.name}; cannot change it to {trait}"
            )
        self.traits = self.traits.replace(trait)

    def describe(self) -> str:
        return f"node#{self.id}:{self.kind}{self.traits}"

    def __repr__(self) -> str:
        return f"{self.describe()}{self.attributes()}"


class Scan(PlanNode):
    """Scan a table."""

    def __init__(
        self,
        cluster: PlanCluster,
        table_name: str,
        columns: List[str],
        row_count: Optional[int] = None,
        traits: Optional[TraitSet] = None,
    ):
        super().__init__(cluster, [], traits)
        self.table_name = table_name
        self.columns = list(columns)
        self.row_count = row_count

    def attributes(self) -> Tuple:
        return (self.table_name, tuple(self.columns))

    def accept(self, visitor):
        return visitor.visit_scan(self)

    def schema(self) -> List[str]:
        return self.columns


class Project(PlanNode):
    """Project (select) specific expressions."""

    def __init__(
        self,
        input,
        expressions: List[Expression],
        aliases: Optional[List[str]] = None,
        traits: Optional[TraitSet] = None,
    ):
        super().__init__(_cluster_of(input), [input], traits)
        self.expressions = list(expressions)
        if aliases is None:
            aliases = [expr.to_sql() for expr in self.expressions]
        self.aliases = list(aliases)

    def attributes(self) -> Tuple:
        return (tuple(repr(e) for e in self.expressions), tuple(self.aliases))

    def accept(self, visitor):
        return visitor.visit_project(self)

    def schema(self) -> List[str]:
        return self.aliases


class Filter(PlanNode):
    """Filter rows based on a predicate."""

    def __init__(self, input, predicate: Expression, traits: Optional[TraitSet] = None):
        super().__init__(_cluster_of(input), [input], traits)
        self.predicate = predicate

    def attributes(self) -> Tuple:
        return (repr(self.predicate),)

    def accept(self, visitor):
        return visitor.visit_filter(self)

    def schema(self) -> List[str]:
        return self.inputs[0].schema()


class Join(PlanNode):
    """Join two inputs."""

    def __init__(
        self,
        left,
        right,
        join_type: JoinType = JoinType.INNER,
        condition: Optional[Expression] = None,
        traits: Optional[TraitSet] = None,
    ):
        super().__init__(_cluster_of(left), [left, right], traits)
        self.join_type = join_type
        self.condition = condition  # None for cross join

    @property
    def left(self):
        return self.inputs[0]

    @property
    def right(self):
        return self.inputs[1]

    def attributes(self) -> Tuple:
        return (self.join_type.value, repr(self.condition))

    def accept(self, visitor):
        return visitor.visit_join(self)

    def schema(self) -> List[str]:
        return self.inputs[0].schema() + self.inputs[1].schema()


class Aggregate(PlanNode):
    """Aggregate with grouping."""

    def __init__(
        self,
        input,
        group_by: List[Expression],
        aggregates: List[Expression],
        output_names: List[str],
        traits: Optional[TraitSet] = None,
    ):
        super().__init__(_cluster_of(input), [input], traits)
        self.group_by = list(group_by)
        self.aggregates = list(aggregates)
        self.output_names = list(output_names)

    def attributes(self) -> Tuple:
        return (
            tuple(repr(g) for g in self.group_by),
            tuple(repr(a) for a in self.aggregates),
            tuple(self.output_names),
        )

    def accept(self, visitor):
        return visitor.visit_aggregate(self)

    def schema(self) -> List[str]:
        return self.output_names


class Sort(PlanNode):
    """Sort rows. The node's collation trait records the sort keys."""

    def __init__(self, input, keys: List[int], traits: Optional[TraitSet] = None):
        cluster = _cluster_of(input)
        if traits is None:
            traits = cluster.default_traits.replace(Collation(tuple(keys)))
        super().__init__(cluster, [input], traits)
        self.keys = list(keys)

    def attributes(self) -> Tuple:
        return (tuple(self.keys),)

    def accept(self, visitor):
        return visitor.visit_sort(self)

    def schema(self) -> List[str]:
        return self.inputs[0].schema()


class Limit(PlanNode):
    """Limit number of rows."""

    def __init__(self, input, limit: int, offset: int = 0, traits: Optional[TraitSet] = None):
        super().__init__(_cluster_of(input), [input], traits)
        self.limit = limit
        self.offset = offset

    def attributes(self) -> Tuple:
        return (self.limit, self.offset)

    def accept(self, visitor):
        return visitor.visit_limit(self)

    def schema(self) -> List[str]:
        return self.inputs[0].schema()


class Union(PlanNode):
    """Union of multiple inputs."""

    def __init__(self, inputs: List[Any], distinct: bool = False, traits: Optional[TraitSet] = None):
        super().__init__(_cluster_of(inputs[0]), inputs, traits)
        self.distinct = distinct  # True for UNION, False for UNION ALL

    def attributes(self) -> Tuple:
        return (self.distinct,)

    def accept(self, visitor):
        return visitor.visit_union(self)

    def schema(self) -> List[str]:
        # All inputs should have same schema
        return self.inputs[0].schema()


class PlanVisitor(ABC):
    """Visitor interface for plan nodes."""

    @abstractmethod
    def visit_scan(self, node: Scan):
        pass

    @abstractmethod
    def visit_project(self, node: Project):
        pass

    @abstractmethod
    def visit_filter(self, node: Filter):
        pass

    @abstractmethod
    def visit_join(self, node: Join):
        pass

    @abstractmethod
    def visit_aggregate(self, node: Aggregate):
        pass

    @abstractmethod
    def visit_sort(self, node: Sort):
        pass

    @abstractmethod
    def visit_limit(self, node: Limit):
        pass

    @abstractmethod
    def visit_union(self, node: Union):
        pass
