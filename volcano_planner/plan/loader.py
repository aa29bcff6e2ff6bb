"""Build plan trees from plain dict (YAML/JSON) descriptions."""

from typing import Any, Dict, List

from .expressions import (
    BinaryOp,
    BinaryOpType,
    ColumnRef,
    DataType,
    Expression,
    InputRef,
    Literal,
    UnaryOp,
    UnaryOpType,
)
from .logical import (
    Aggregate,
    Filter,
    Join,
    JoinType,
    Limit,
    PlanCluster,
    PlanNode,
    Project,
    Scan,
    Sort,
    Union,
)


class PlanLoadError(ValueError):
    """Raised for malformed plan descriptions."""


def build_plan(cluster: PlanCluster, data: Dict[str, Any]) -> PlanNode:
    """Build a node tree.

    Example::

        type: filter
        predicate: {op: GT, left: {input: 0}, right: {literal: 10}}
        input:
          type: scan
          table: orders
          columns: [amount, customer]
    """
    if not isinstance(data, dict) or "type" not in data:
        raise PlanLoadError(f"Plan node must be a mapping with a 'type': {data!r}")
    node_type = str(data["type"]).lower()

    if node_type == "scan":
        return Scan(
            cluster,
            data["table"],
            data.get("columns", []),
            row_count=data.get("row_count"),
        )

    inputs = [build_plan(cluster, child) for child in _child_specs(data)]

    if node_type == "project":
        _expect_inputs(data, inputs, 1)
        expressions = [build_expression(e) for e in data.get("expressions", [])]
        return Project(inputs[0], expressions, data.get("aliases"))
    if node_type == "filter":
        _expect_inputs(data, inputs, 1)
        return Filter(inputs[0], build_expression(data["predicate"]))
    if node_type == "join":
        _expect_inputs(data, inputs, 2)
        condition = data.get("condition")
        return Join(
            inputs[0],
            inputs[1],
            JoinType(str(data.get("join_type", "INNER")).upper()),
            build_expression(condition) if condition is not None else None,
        )
    if node_type == "aggregate":
        _expect_inputs(data, inputs, 1)
        return Aggregate(
            inputs[0],
            [build_expression(e) for e in data.get("group_by", [])],
            [build_expression(e) for e in data.get("aggregates", [])],
            data.get("output_names", []),
        )
    if node_type == "sort":
        _expect_inputs(data, inputs, 1)
        return Sort(inputs[0], data.get("keys", []))
    if node_type == "limit":
        _expect_inputs(data, inputs, 1)
        return Limit(inputs[0], data["limit"], data.get("offset", 0))
    if node_type == "union":
        if not inputs:
            raise PlanLoadError("union needs at least one input")
        return Union(inputs, data.get("distinct", False))

    raise PlanLoadError(f"Unknown plan node type: {data['type']}")


def _child_specs(data: Dict[str, Any]) -> List[Dict[str, Any]]:
    if "input" in data:
        return [data["input"]]
    return list(data.get("inputs", []))


def _expect_inputs(data: Dict[str, Any], inputs: List[PlanNode], count: int) -> None:
    if len(inputs) != count:
        raise PlanLoadError(f"{data['type']} expects {count} input(s), got {len(inputs)}")


def build_expression(data: Any) -> Expression:
    """Build a scalar expression from its dict form."""
    if not isinstance(data, dict):
        raise PlanLoadError(f"Expression must be a mapping: {data!r}")
    if "input" in data:
        return InputRef(int(data["input"]))
    if "column" in data:
        return ColumnRef(data.get("table"), data["column"])
    if "literal" in data:
        value = data["literal"]
        return Literal(value, DataType(data.get("data_type", _infer_type(value))))
    if "op" in data:
        op_name = str(data["op"]).upper()
        if op_name in BinaryOpType.__members__:
            return BinaryOp(
                op=BinaryOpType[op_name],
                left=build_expression(data["left"]),
                right=build_expression(data["right"]),
            )
        if op_name in UnaryOpType.__members__:
            return UnaryOp(UnaryOpType[op_name], build_expression(data["operand"]))
        raise PlanLoadError(f"Unknown operator: {data['op']}")
    raise PlanLoadError(f"Unrecognised expression: {data!r}")


def _infer_type(value: Any) -> str:
    if value is None:
        return DataType.NULL.value
    if isinstance(value, bool):
        return DataType.BOOLEAN.value
    if isinstance(value, int):
        return DataType.BIGINT.value
    if isinstance(value, float):
        return DataType.DOUBLE.value
    return DataType.VARCHAR.value
