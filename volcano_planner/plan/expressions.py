"""Scalar expressions carried by plan nodes."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, List, Optional
from enum import Enum


class DataType(Enum):
    """SQL data types."""

    INTEGER = "INTEGER"
    BIGINT = "BIGINT"
    DOUBLE = "DOUBLE"
    VARCHAR = "VARCHAR"
    BOOLEAN = "BOOLEAN"
    NULL = "NULL"


class Expression(ABC):
    """Base class for all expressions."""

    @abstractmethod
    def to_sql(self) -> str:
        """Convert expression to SQL string."""
        pass


@dataclass(frozen=True)
class ColumnRef(Expression):
    """Column reference by name."""

    table: Optional[str]  # Can be None for unqualified references
    column: str

    def to_sql(self) -> str:
        if self.table:
            return f"{self.table}.{self.column}"
        return self.column

    def __repr__(self) -> str:
        return f"ColumnRef({self.table}.{self.column})" if self.table else f"ColumnRef({self.column})"


@dataclass(frozen=True)
class InputRef(Expression):
    """Reference to a field of the input row by position."""

    index: int

    def to_sql(self) -> str:
        return f"${self.index}"

    def __repr__(self) -> str:
        return f"${self.index}"


@dataclass(frozen=True)
class Literal(Expression):
    """Literal value expression."""

    value: Any
    data_type: DataType

    def to_sql(self) -> str:
        if self.value is None:
            return "NULL"
        if self.data_type == DataType.VARCHAR:
            return f"'{self.value}'"
        return str(self.value)

    def __repr__(self) -> str:
        return f"Literal({self.value})"


class BinaryOpType(Enum):
    """Binary operator types."""

    # Arithmetic
    ADD = "+"
    SUBTRACT = "-"
    MULTIPLY = "*"

    # Comparison
    EQ = "="
    NEQ = "!="
    LT = "<"
    LTE = "<="
    GT = ">"
    GTE = ">="

    # Logical
    AND = "AND"
    OR = "OR"

    LIKE = "LIKE"


@dataclass(frozen=True)
class BinaryOp(Expression):
    """Binary operation expression."""

    op: BinaryOpType
    left: Expression
    right: Expression

    def to_sql(self) -> str:
        return f"({self.left.to_sql()} {self.op.value} {self.right.to_sql()})"

    def __repr__(self) -> str:
        return f"BinaryOp({self.op.value}, {self.left}, {self.right})"


class UnaryOpType(Enum):
    """Unary operator types."""

    NOT = "NOT"
    IS_NULL = "IS NULL"
    IS_NOT_NULL = "IS NOT NULL"


@dataclass(frozen=True)
class UnaryOp(Expression):
    """Unary operation expression."""

    op: UnaryOpType
    operand: Expression

    def to_sql(self) -> str:
        if self.op in (UnaryOpType.IS_NULL, UnaryOpType.IS_NOT_NULL):
            return f"({self.operand.to_sql()} {self.op.value})"
        return f"({self.op.value} {self.operand.to_sql()})"

    def __repr__(self) -> str:
        return f"UnaryOp({self.op.value}, {self.operand})"


def conjunction(predicates: List[Expression]) -> Optional[Expression]:
    """AND together a list of predicates, left-deep."""
    result: Optional[Expression] = None
    for predicate in predicates:
        if predicate is None:
            continue
        if result is None:
            result = predicate
        else:
            result = BinaryOp(op=BinaryOpType.AND, left=result, right=predicate)
    return result
