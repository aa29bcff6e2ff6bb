"""Derived metadata (row-count estimates) with a per-cluster cache."""

from typing import Dict, Optional, Set

from ..plan.logical import (
    PlanNode,
    PlanVisitor,
    Scan,
    Project,
    Filter,
    Join,
    Aggregate,
    Sort,
    Limit,
    Union,
    JoinType,
)
from ..plan.expressions import (
    Expression,
    BinaryOp,
    BinaryOpType,
    UnaryOp,
    UnaryOpType,
)

DEFAULT_ROW_COUNT = 1000


class MetadataQuery(PlanVisitor):
    """Estimates row counts and caches them by node id.

    Inputs that are subsets are estimated from the first member of their
    current set. The cache is only valid for one shape of the equivalence
    graph; the cluster drops it whenever a rule changes the graph.
    """

    def __init__(self):
        self.cache: Dict[int, int] = {}
        self._active: Set[int] = set()

    def row_count(self, node) -> int:
        """Estimated number of output rows of a node or subset."""
        if not isinstance(node, PlanNode):
            return self._subset_row_count(node)

        cached = self.cache.get(node.id)
        if cached is not None:
            return cached
        if node.id in self._active:
            # Cycle through an equivalence set.
            return DEFAULT_ROW_COUNT
        self._active.add(node.id)
        try:
            estimate = node.accept(self)
        finally:
            self._active.discard(node.id)
        self.cache[node.id] = estimate
        return estimate

    def _subset_row_count(self, subset) -> int:
        current = subset.current()
        members = current.set.members
        if not members:
            return DEFAULT_ROW_COUNT
        return self.row_count(members[0])

    def invalidate(self) -> None:
        """Clear cached estimates."""
        self.cache.clear()

    def visit_scan(self, node: Scan) -> int:
        if node.row_count is None:
            return DEFAULT_ROW_COUNT
        return node.row_count

    def visit_project(self, node: Project) -> int:
        return self.row_count(node.inputs[0])

    def visit_filter(self, node: Filter) -> int:
        input_card = self.row_count(node.inputs[0])
        selectivity = self.estimate_selectivity(node.predicate)
        return max(1, int(input_card * selectivity))

    def visit_join(self, node: Join) -> int:
        left_card = self.row_count(node.inputs[0])
        right_card = self.row_count(node.inputs[1])
        if node.join_type == JoinType.CROSS or node.condition is None:
            return left_card * right_card

        selectivity = self.estimate_selectivity(node.condition)
        base_card = left_card * right_card
        if node.join_type == JoinType.INNER:
            return max(1, int(base_card * selectivity))
        if node.join_type == JoinType.LEFT:
            return max(left_card, int(base_card * selectivity))
        if node.join_type == JoinType.RIGHT:
            return max(right_card, int(base_card * selectivity))
        if node.join_type == JoinType.FULL:
            inner = int(base_card * selectivity)
            return left_card + right_card - inner
        if node.join_type in (JoinType.SEMI, JoinType.ANTI):
            return max(1, int(left_card * 0.5))
        return int(base_card * selectivity)

    def visit_aggregate(self, node: Aggregate) -> int:
        if not node.group_by:
            return 1
        input_card = self.row_count(node.inputs[0])
        num_groups = max(1, input_card // 10)
        return min(input_card, num_groups)

    def visit_sort(self, node: Sort) -> int:
        return self.row_count(node.inputs[0])

    def visit_limit(self, node: Limit) -> int:
        input_card = self.row_count(node.inputs[0])
        return min(input_card, node.offset + node.limit)

    def visit_union(self, node: Union) -> int:
        total = sum(self.row_count(i) for i in node.inputs)
        if node.distinct:
            return max(1, total // 2)
        return total

    def estimate_selectivity(self, predicate: Optional[Expression]) -> float:
        """Estimate selectivity of a predicate (0.0 to 1.0)."""
        if isinstance(predicate, BinaryOp):
            if predicate.op == BinaryOpType.AND:
                return self.estimate_selectivity(predicate.left) * self.estimate_selectivity(predicate.right)
            if predicate.op == BinaryOpType.OR:
                left_sel = self.estimate_selectivity(predicate.left)
                right_sel = self.estimate_selectivity(predicate.right)
                return 1.0 - ((1.0 - left_sel) * (1.0 - right_sel))
            if predicate.op in (BinaryOpType.LT, BinaryOpType.LTE, BinaryOpType.GT, BinaryOpType.GTE):
                return 0.33
            if predicate.op == BinaryOpType.NEQ:
                return 0.9
            return 0.1
        if isinstance(predicate, UnaryOp):
            if predicate.op == UnaryOpType.NOT:
                return 1.0 - self.estimate_selectivity(predicate.operand)
            if predicate.op == UnaryOpType.IS_NULL:
                return 0.05
            if predicate.op == UnaryOpType.IS_NOT_NULL:
                return 0.95
        return 0.1

    def __repr__(self) -> str:
        return f"MetadataQuery(cached={len(self.cache)})"
