"""Tests for expression evaluation."""

import pytest

from core.errors import (
    EvaluationError,
    ExpressionTypeError,
    ParseError,
    UnknownReferenceError,
)
from streamfn.expression import ExpressionContext, ExpressionEngine, get_engine
from streamfn.message import Message


def _make_context(payload="hello", headers=None, beans=None) -> ExpressionContext:
    return ExpressionContext(payload=payload, headers=headers or {}, beans=beans or {})


def _evaluate(source, **kwargs):
    return ExpressionEngine().evaluate(source, _make_context(**kwargs))


class TestExpressionContext:

    def test_for_message(self):
        message = Message("p", {"a": 1})
        context = ExpressionContext.for_message(message, beans={"value": "v"})
        assert context.payload == "p"
        assert context.headers["a"] == 1
        assert context.beans == {"value": "v"}

    def test_for_message_without_beans(self):
        assert len(ExpressionContext.for_message(Message("p")).beans) == 0


class TestStringMethods:

    def test_length_comparison(self):
        assert _evaluate("payload.length() > 5", payload="hello world message") is True
        assert _evaluate("payload.length() > 5", payload="foo") is False

    def test_bytes_payload_decoded(self):
        assert _evaluate("payload.length()", payload=b"abc") == 3

    def test_substring(self):
        assert _evaluate("payload.substring(0, 2)", payload="hello") == "he"
        assert _evaluate("payload.substring(3)", payload="hello") == "lo"

    def test_substring_out_of_range(self):
        with pytest.raises(EvaluationError):
            _evaluate("payload.substring(2, 10)", payload="hello")

    def test_case_and_trim(self):
        assert _evaluate("payload.toUpperCase()", payload="ab") == "AB"
        assert _evaluate("payload.trim()", payload="  ab ") == "ab"

    def test_contains_and_prefix(self):
        assert _evaluate("payload.contains('ll')") is True
        assert _evaluate("payload.startsWith('he') and payload.endsWith('lo')") is True

    def test_split_drops_trailing_empty(self):
        assert _evaluate("payload.split(',')", payload="a,b,,") == ["a", "b"]

    def test_split_invalid_regex(self):
        with pytest.raises(EvaluationError, match="Failed to evaluate") as exc_info:
            _evaluate("payload.split('(')", payload="a(b")
        assert exc_info.value.expression == "payload.split('(')"

    def test_unsupported_method(self):
        with pytest.raises(ExpressionTypeError, match="frobnicate"):
            _evaluate("payload.frobnicate()")

    def test_wrong_argument_count(self):
        with pytest.raises(ExpressionTypeError):
            _evaluate("payload.length(1)")

    def test_string_method_on_number(self):
        with pytest.raises(ExpressionTypeError):
            _evaluate("payload.toUpperCase()", payload=5)

    def test_invalid_utf8(self):
        with pytest.raises(ExpressionTypeError, match="UTF-8"):
            _evaluate("payload.length()", payload=b"\xff")


class TestHeadersAndBeans:

    def test_index_and_property(self):
        headers = {"foo": "bar"}
        assert _evaluate("headers['foo']", headers=headers) == "bar"
        assert _evaluate("headers.foo", headers=headers) == "bar"

    def test_missing_header_is_null(self):
        assert _evaluate("headers['missing']") is None
        assert _evaluate("headers['missing'] == null") is True

    def test_header_equality_with_boolean(self):
        assert _evaluate("headers['bar'] == false", headers={"bar": False}) is True
        assert _evaluate("headers['bar'] == false", headers={"bar": "false"}) is False

    def test_bean_reference(self):
        assert _evaluate("@value", beans={"value": "beanValue"}) == "beanValue"

    def test_unknown_bean(self):
        with pytest.raises(UnknownReferenceError) as exc_info:
            _evaluate("@missing")
        assert exc_info.value.context["reference"] == "missing"

    def test_map_methods(self):
        headers = {"a": 1}
        assert _evaluate("headers.containsKey('a')", headers=headers) is True
        assert _evaluate("headers.size()", headers=headers) == 1


class TestJsonPayload:

    def test_property_of_json_text(self):
        assert _evaluate("payload.name", payload='{"name": "x"}') == "x"

    def test_property_of_mapping(self):
        assert _evaluate("payload.name", payload={"name": "x"}) == "x"

    def test_property_of_invalid_json(self):
        with pytest.raises(ExpressionTypeError, match="not valid JSON"):
            _evaluate("payload.name", payload="plain")

    def test_null_safe_navigation(self):
        assert _evaluate("payload.a?.b", payload='{"a": null}') is None

    def test_property_of_null_raises(self):
        with pytest.raises(ExpressionTypeError, match="of null"):
            _evaluate("payload.a.b", payload='{"a": null}')

    def test_list_index(self):
        assert _evaluate("payload.items[1]", payload='{"items": [1, 2]}') == 2

    def test_list_index_out_of_bounds(self):
        with pytest.raises(EvaluationError, match="out of bounds"):
            _evaluate("payload.items[5]", payload='{"items": [1, 2]}')

    def test_json_path(self):
        assert _evaluate("jsonPath(payload, '$.a.b')", payload='{"a": {"b": 7}}') == 7


class TestOperators:

    def test_arithmetic(self):
        assert _evaluate("1 + 2 * 3") == 7
        assert _evaluate("7 / 2") == 3
        assert _evaluate("-7 / 2") == -3
        assert _evaluate("-7 % 3") == -1
        assert _evaluate("7.0 / 2") == 3.5

    def test_division_by_zero(self):
        with pytest.raises(EvaluationError, match="Division by zero"):
            _evaluate("1 / 0")
        with pytest.raises(EvaluationError):
            _evaluate("1.5 / 0")

    def test_string_concatenation(self):
        assert _evaluate("payload + '-' + 1") == "hello-1"
        assert _evaluate("'x' + null") == "xnull"

    def test_add_incompatible(self):
        with pytest.raises(ExpressionTypeError):
            _evaluate("true + 1")

    def test_string_comparison(self):
        assert _evaluate("'a' < 'b'") is True

    def test_incomparable(self):
        with pytest.raises(ExpressionTypeError, match="Cannot compare"):
            _evaluate("payload > 5")

    def test_bytes_equal_text(self):
        assert _evaluate("payload == 'hi'", payload=b"hi") is True

    def test_short_circuit(self):
        assert _evaluate("false and @missing") is False
        assert _evaluate("true or @missing") is True

    def test_boolean_operator_requires_booleans(self):
        with pytest.raises(ExpressionTypeError, match="boolean"):
            _evaluate("1 and true")

    def test_not(self):
        assert _evaluate("not (payload == 'x')") is True
        with pytest.raises(ExpressionTypeError):
            _evaluate("!payload")

    def test_to_string(self):
        assert _evaluate("headers['n'].toString()", headers={"n": 5}) == "5"
        assert _evaluate("headers['b'].toString()", headers={"b": True}) == "true"


class TestExpressionEngine:

    def test_parse_is_cached(self):
        engine = ExpressionEngine()
        assert engine.parse("payload") is engine.parse("payload")
        assert engine.cache_info().hits == 1

    def test_parse_error_propagates(self):
        with pytest.raises(ParseError):
            ExpressionEngine().parse("payload ==")

    def test_parse_error_is_evaluation_error(self):
        assert issubclass(ParseError, EvaluationError)

    def test_get_engine_is_shared(self):
        assert get_engine() is get_engine()

    def test_expression_reusable(self):
        expression = ExpressionEngine().parse("payload.length()")
        assert expression.evaluate(_make_context(payload="ab")) == 2
        assert expression.evaluate(_make_context(payload="abc")) == 3
