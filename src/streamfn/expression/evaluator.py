"""Tree-walking evaluator for parsed message expressions."""

import math
import re
from collections.abc import Mapping
from typing import Any, Callable, Dict, Optional, Sequence

from core.errors import EvaluationError, ExpressionTypeError, UnknownReferenceError
from streamfn.expression.jsonpath import json_path
from streamfn.expression.nodes import (
    BeanReference,
    BinaryOp,
    FunctionCall,
    IndexAccess,
    Literal,
    MethodCall,
    Node,
    PropertyAccess,
    Root,
    UnaryOp,
)
from streamfn.expression.values import as_text, is_number, parse_json, to_text, type_name


def _java_split(text: str, regex: str) -> list:
    parts = re.split(regex, text)
    while parts and parts[-1] == "":
        parts.pop()
    return parts


def _truncated_quotient(left: int, right: int) -> int:
    """Integer division rounding toward zero."""
    quotient = abs(left) // abs(right)
    return quotient if (left >= 0) == (right > 0) else -quotient


def _substring(text: str, start: int, end: Optional[int] = None) -> str:
    end = len(text) if end is None else end
    if not (0 <= start <= end <= len(text)):
        raise IndexError(f"substring({start}, {end}) out of range for length {len(text)}")
    return text[start:end]


# name -> (min args, max args, implementation taking the text first)
_STRING_METHODS: Dict[str, tuple] = {
    "length": (0, 0, len),
    "size": (0, 0, len),
    "toUpperCase": (0, 0, str.upper),
    "toLowerCase": (0, 0, str.lower),
    "trim": (0, 0, str.strip),
    "isEmpty": (0, 0, lambda s: len(s) == 0),
    "substring": (1, 2, _substring),
    "contains": (1, 1, lambda s, sub: to_text(sub) in s),
    "startsWith": (1, 1, lambda s, prefix: s.startswith(to_text(prefix))),
    "endsWith": (1, 1, lambda s, suffix: s.endswith(to_text(suffix))),
    "indexOf": (1, 1, lambda s, sub: s.find(to_text(sub))),
    "replace": (2, 2, lambda s, old, new: s.replace(to_text(old), to_text(new))),
    "split": (1, 1, lambda s, regex: _java_split(s, to_text(regex))),
}

_COLLECTION_METHODS: Dict[str, tuple] = {
    "size": (0, 0, len),
    "length": (0, 0, len),
    "isEmpty": (0, 0, lambda c: len(c) == 0),
    "contains": (1, 1, lambda c, item: item in c),
}

_MAPPING_METHODS: Dict[str, tuple] = {
    "size": (0, 0, len),
    "isEmpty": (0, 0, lambda m: len(m) == 0),
    "containsKey": (1, 1, lambda m, key: key in m),
    "get": (1, 1, lambda m, key: m.get(key)),
}


class Evaluator:
    """Evaluates one syntax tree against one context.

    Instances are cheap and hold no state beyond the current evaluation, so
    a new one is built per call.
    """

    def __init__(self, context: Any, source: Optional[str] = None):
        self.context = context
        self.source = source

    def evaluate(self, node: Node) -> Any:
        handler: Callable[[Any], Any] = getattr(self, f"_eval_{type(node).__name__}")
        return handler(node)

    # -- leaves ------------------------------------------------------------

    def _eval_Literal(self, node: Literal) -> Any:
        return node.value

    def _eval_Root(self, node: Root) -> Any:
        return getattr(self.context, node.name)

    def _eval_BeanReference(self, node: BeanReference) -> Any:
        beans = self.context.beans
        if node.name not in beans:
            raise UnknownReferenceError(node.name, expression=self.source)
        return beans[node.name]

    def _eval_FunctionCall(self, node: FunctionCall) -> Any:
        args = [self.evaluate(arg) for arg in node.args]
        if len(args) != 2:
            raise ExpressionTypeError(
                f"{node.name}() takes 2 arguments, got {len(args)}",
                expression=self.source,
            )
        return json_path(args[0], args[1], self.source)

    # -- member access -----------------------------------------------------

    def _eval_PropertyAccess(self, node: PropertyAccess) -> Any:
        target = self.evaluate(node.target)
        if target is None:
            if node.null_safe:
                return None
            raise ExpressionTypeError(
                f"Cannot read property '{node.name}' of null",
                expression=self.source,
            )

        if isinstance(target, Mapping):
            return target.get(node.name)

        if isinstance(target, (str, bytes, bytearray)):
            data = parse_json(target, self.source)
            if isinstance(data, Mapping):
                return data.get(node.name)
            raise ExpressionTypeError(
                f"Cannot read property '{node.name}' of a JSON {type_name(data)}",
                expression=self.source,
            )

        if not node.name.startswith("_") and hasattr(target, node.name):
            return getattr(target, node.name)

        raise ExpressionTypeError(
            f"Property '{node.name}' not found on {type_name(target)}",
            expression=self.source,
        )

    def _eval_IndexAccess(self, node: IndexAccess) -> Any:
        target = self.evaluate(node.target)
        index = self.evaluate(node.index)

        if isinstance(target, (bytes, bytearray)):
            target = parse_json(target, self.source)

        if isinstance(target, Mapping):
            return target.get(index)

        if isinstance(target, (str, list, tuple)):
            if not isinstance(index, int) or isinstance(index, bool):
                raise ExpressionTypeError(
                    f"Index into {type_name(target)} must be an integer, got {type_name(index)}",
                    expression=self.source,
                )
            if not 0 <= index < len(target):
                raise EvaluationError(
                    f"Index {index} out of bounds for length {len(target)}",
                    expression=self.source,
                )
            return target[index]

        raise ExpressionTypeError(
            f"Cannot index into a value of type {type_name(target)}",
            expression=self.source,
        )

    def _eval_MethodCall(self, node: MethodCall) -> Any:
        target = self.evaluate(node.target)
        if target is None and node.null_safe:
            return None

        args = [self.evaluate(arg) for arg in node.args]

        if node.name == "toString" and not args:
            return to_text(target)
        if node.name == "equals" and len(args) == 1:
            return self._equals(target, args[0])

        if isinstance(target, (str, bytes, bytearray)):
            text = as_text(target, f"{node.name}()", self.source)
            return self._invoke(_STRING_METHODS, node.name, text, args)

        if isinstance(target, Mapping):
            return self._invoke(_MAPPING_METHODS, node.name, target, args)

        if isinstance(target, (list, tuple)):
            return self._invoke(_COLLECTION_METHODS, node.name, target, args)

        if target is not None and not is_number(target) and not isinstance(target, bool):
            method = getattr(target, node.name, None)
            if callable(method) and not node.name.startswith("_"):
                return method(*args)

        raise ExpressionTypeError(
            f"Method {node.name}() not supported on a value of type {type_name(target)}",
            expression=self.source,
        )

    def _invoke(self, table: Dict[str, tuple], name: str, target: Any, args: Sequence[Any]) -> Any:
        if name not in table:
            raise ExpressionTypeError(
                f"Method {name}() not supported on a value of type {type_name(target)}",
                expression=self.source,
            )
        min_args, max_args, impl = table[name]
        if not min_args <= len(args) <= max_args:
            raise ExpressionTypeError(
                f"{name}() takes {min_args}-{max_args} arguments, got {len(args)}",
                expression=self.source,
            )
        return impl(target, *args)

    # -- operators ---------------------------------------------------------

    def _eval_UnaryOp(self, node: UnaryOp) -> Any:
        value = self.evaluate(node.operand)
        if node.op == "not":
            return not self._require_bool(value, "not")
        if not is_number(value):
            raise ExpressionTypeError(
                f"Cannot negate a value of type {type_name(value)}",
                expression=self.source,
            )
        return -value

    def _eval_BinaryOp(self, node: BinaryOp) -> Any:
        op = node.op

        # Short-circuit boolean operators
        if op == "and":
            if not self._require_bool(self.evaluate(node.left), "and"):
                return False
            return self._require_bool(self.evaluate(node.right), "and")
        if op == "or":
            if self._require_bool(self.evaluate(node.left), "or"):
                return True
            return self._require_bool(self.evaluate(node.right), "or")

        left = self.evaluate(node.left)
        right = self.evaluate(node.right)

        if op == "==":
            return self._equals(left, right)
        if op == "!=":
            return not self._equals(left, right)
        if op in (">", ">=", "<", "<="):
            return self._compare(op, left, right)
        if op == "+":
            return self._add(left, right)
        return self._arithmetic(op, left, right)

    def _require_bool(self, value: Any, op: str) -> bool:
        if not isinstance(value, bool):
            raise ExpressionTypeError(
                f"Operator '{op}' requires boolean operands, got {type_name(value)}",
                expression=self.source,
            )
        return value

    @staticmethod
    def _textual_pair(left: Any, right: Any) -> tuple:
        """Decode bytes when compared against text."""
        if isinstance(left, (bytes, bytearray)) and isinstance(right, str):
            left = bytes(left).decode("utf-8", errors="replace")
        elif isinstance(right, (bytes, bytearray)) and isinstance(left, str):
            right = bytes(right).decode("utf-8", errors="replace")
        return left, right

    def _equals(self, left: Any, right: Any) -> bool:
        left, right = self._textual_pair(left, right)
        if isinstance(left, bool) != isinstance(right, bool):
            return False
        return left == right

    def _compare(self, op: str, left: Any, right: Any) -> bool:
        left, right = self._textual_pair(left, right)
        comparable = (is_number(left) and is_number(right)) or (
            isinstance(left, str) and isinstance(right, str)
        )
        if not comparable:
            raise ExpressionTypeError(
                f"Cannot compare {type_name(left)} {op} {type_name(right)}",
                expression=self.source,
            )
        if op == ">":
            return left > right
        if op == ">=":
            return left >= right
        if op == "<":
            return left < right
        return left <= right

    def _add(self, left: Any, right: Any) -> Any:
        if is_number(left) and is_number(right):
            return left + right
        if isinstance(left, (str, bytes, bytearray)) or isinstance(right, (str, bytes, bytearray)):
            return to_text(left) + to_text(right)
        raise ExpressionTypeError(
            f"Cannot add {type_name(left)} and {type_name(right)}",
            expression=self.source,
        )

    def _arithmetic(self, op: str, left: Any, right: Any) -> Any:
        if not (is_number(left) and is_number(right)):
            raise ExpressionTypeError(
                f"Operator '{op}' requires numeric operands, got "
                f"{type_name(left)} and {type_name(right)}",
                expression=self.source,
            )
        if op == "-":
            return left - right
        if op == "*":
            return left * right
        if right == 0:
            raise EvaluationError("Division by zero", expression=self.source)
        if isinstance(left, int) and isinstance(right, int):
            quotient = _truncated_quotient(left, right)
            return quotient if op == "/" else left - right * quotient
        if op == "/":
            return left / right
        return math.fmod(left, right)


__all__ = ["Evaluator"]
