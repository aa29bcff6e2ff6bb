"""Plan representation: nodes, scalar expressions and traits."""

from .logical import (
    PlanCluster,
    PlanNode,
    PlanVisitor,
    Scan,
    Project,
    Filter,
    Join,
    JoinType,
    Aggregate,
    Sort,
    Limit,
    Union,
)
from .expressions import (
    Expression,
    ColumnRef,
    InputRef,
    Literal,
    BinaryOp,
    BinaryOpType,
    UnaryOp,
    UnaryOpType,
    DataType,
)
from .traits import (
    TraitDef,
    Trait,
    TraitSet,
    Convention,
    Collation,
    ConventionTraitDef,
    CollationTraitDef,
)
from .loader import build_plan, build_expression, PlanLoadError

__all__ = [
    # Nodes
    "PlanCluster",
    "PlanNode",
    "PlanVisitor",
    "Scan",
    "Project",
    "Filter",
    "Join",
    "JoinType",
    "Aggregate",
    "Sort",
    "Limit",
    "Union",
    # Expressions
    "Expression",
    "ColumnRef",
    "InputRef",
    "Literal",
    "BinaryOp",
    "BinaryOpType",
    "UnaryOp",
    "UnaryOpType",
    "DataType",
    # Traits
    "TraitDef",
    "Trait",
    "TraitSet",
    "Convention",
    "Collation",
    "ConventionTraitDef",
    "CollationTraitDef",
    # Loading
    "build_plan",
    "build_expression",
    "PlanLoadError",
]
