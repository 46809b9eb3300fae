"""Expression syntax tree.

Nodes are immutable so a parsed expression can be cached and shared by
concurrent evaluations.
"""

from dataclasses import dataclass
from typing import Any, Tuple


@dataclass(frozen=True)
class Node:
    """Base class for syntax tree nodes."""


@dataclass(frozen=True)
class Literal(Node):
    value: Any


@dataclass(frozen=True)
class Root(Node):
    """``payload`` or ``headers``."""

    name: str


@dataclass(frozen=True)
class BeanReference(Node):
    """``@name``."""

    name: str


@dataclass(frozen=True)
class FunctionCall(Node):
    """``jsonPath(payload, '$.a')`` or ``#jsonPath(...)``."""

    name: str
    args: Tuple[Node, ...]


@dataclass(frozen=True)
class PropertyAccess(Node):
    target: Node
    name: str
    null_safe: bool = False


@dataclass(frozen=True)
class IndexAccess(Node):
    target: Node
    index: Node


@dataclass(frozen=True)
class MethodCall(Node):
    target: Node
    name: str
    args: Tuple[Node, ...]
    null_safe: bool = False


@dataclass(frozen=True)
class UnaryOp(Node):
    op: str
    operand: Node


@dataclass(frozen=True)
class BinaryOp(Node):
    op: str
    left: Node
    right: Node


__all__ = [
    "Node",
    "Literal",
    "Root",
    "BeanReference",
    "FunctionCall",
    "PropertyAccess",
    "IndexAccess",
    "MethodCall",
    "UnaryOp",
    "BinaryOp",
]
