"""Value conversions shared by the evaluator and expression-backed functions."""

import json
from collections.abc import Mapping
from decimal import Decimal
from typing import Any, Optional

from core.errors import ExpressionTypeError
from core.utils.json_serializers import json_serializer


def is_number(value: Any) -> bool:
    return isinstance(value, (int, float, Decimal)) and not isinstance(value, bool)


def type_name(value: Any) -> str:
    if value is None:
        return "null"
    return type(value).__name__


def as_text(value: Any, operation: str, expression: Optional[str] = None) -> str:
    """Return ``value`` as text for a string operation.

    Raw bytes are decoded as UTF-8. Anything that is not text or bytes is a
    type mismatch.

    Raises:
        ExpressionTypeError: If the value is not textual or not valid UTF-8
    """
    if isinstance(value, str):
        return value
    if isinstance(value, (bytes, bytearray)):
        try:
            return bytes(value).decode("utf-8")
        except UnicodeDecodeError as e:
            raise ExpressionTypeError(
                f"Cannot apply {operation} to bytes that are not valid UTF-8",
                expression=expression,
                cause=e,
            ) from e
    raise ExpressionTypeError(
        f"Cannot apply {operation} to a value of type {type_name(value)}",
        expression=expression,
    )


def to_text(value: Any) -> str:
    """Stringify any value (``toString()``, string concatenation, tag values)."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return value
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8", errors="replace")
    if isinstance(value, (Mapping, list, tuple)):
        return json.dumps(value, default=json_serializer, ensure_ascii=False)
    return str(value)


def parse_json(value: Any, expression: Optional[str] = None) -> Any:
    """Return structured data for ``value``.

    Text and bytes are parsed as JSON; mappings and lists are used as-is.

    Raises:
        ExpressionTypeError: If the value is neither structured nor valid JSON
    """
    if isinstance(value, Mapping):
        return dict(value)
    if isinstance(value, (list, tuple)):
        return list(value)
    text = as_text(value, "JSON access", expression)
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise ExpressionTypeError(
            f"Payload is not valid JSON: {e.msg}",
            expression=expression,
            cause=e,
        ) from e


__all__ = ["is_number", "type_name", "as_text", "to_text", "parse_json"]
