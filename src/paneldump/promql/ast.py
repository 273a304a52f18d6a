"""PromQL syntax tree nodes."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, List, Optional


class ValueType(Enum):
    SCALAR = "scalar"
    STRING = "string"
    VECTOR = "instant vector"
    MATRIX = "range vector"


@dataclass
class LabelMatcher:
    name: str
    op: str  # one of =, !=, =~, !~
    value: str

    @property
    def is_equal(self) -> bool:
        return self.op == "="


@dataclass
class Node:
    pos: int

    def children(self) -> List["Node"]:
        return []

    @property
    def type(self) -> ValueType:
        raise NotImplementedError


@dataclass
class NumberLiteral(Node):
    value: float

    @property
    def type(self) -> ValueType:
        return ValueType.SCALAR


@dataclass
class StringLiteral(Node):
    value: str

    @property
    def type(self) -> ValueType:
        return ValueType.STRING


@dataclass
class VectorSelector(Node):
    name: str = ""
    matchers: List[LabelMatcher] = field(default_factory=list)

    @property
    def type(self) -> ValueType:
        return ValueType.VECTOR


@dataclass
class MatrixSelector(Node):
    selector: VectorSelector
    range: str

    def children(self) -> List[Node]:
        return [self.selector]

    @property
    def type(self) -> ValueType:
        return ValueType.MATRIX


@dataclass
class SubqueryExpr(Node):
    expr: Node
    range: str
    step: Optional[str] = None

    def children(self) -> List[Node]:
        return [self.expr]

    @property
    def type(self) -> ValueType:
        return ValueType.MATRIX


@dataclass
class Call(Node):
    func: str
    args: List[Node]
    return_type: ValueType = ValueType.VECTOR

    def children(self) -> List[Node]:
        return list(self.args)

    @property
    def type(self) -> ValueType:
        return self.return_type


@dataclass
class AggregateExpr(Node):
    op: str
    expr: Node
    param: Optional[Node] = None
    grouping: List[str] = field(default_factory=list)
    without: bool = False

    def children(self) -> List[Node]:
        return [self.param, self.expr] if self.param is not None else [self.expr]

    @property
    def type(self) -> ValueType:
        return ValueType.VECTOR


@dataclass
class BinaryExpr(Node):
    op: str
    lhs: Node
    rhs: Node
    return_bool: bool = False

    def children(self) -> List[Node]:
        return [self.lhs, self.rhs]

    @property
    def type(self) -> ValueType:
        if self.lhs.type is ValueType.SCALAR and self.rhs.type is ValueType.SCALAR:
            return ValueType.SCALAR
        return ValueType.VECTOR


@dataclass
class UnaryExpr(Node):
    op: str
    expr: Node

    def children(self) -> List[Node]:
        return [self.expr]

    @property
    def type(self) -> ValueType:
        return self.expr.type


@dataclass
class ParenExpr(Node):
    expr: Node

    def children(self) -> List[Node]:
        return [self.expr]

    @property
    def type(self) -> ValueType:
        return self.expr.type


def walk(node: Node) -> Iterator[Node]:
    """Yield ``node`` and its descendants in depth-first pre-order."""
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(current.children()))
