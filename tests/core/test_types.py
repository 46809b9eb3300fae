"""Tests for core.types module."""

from core.types import ErrorCategory, ExpressionEvaluator


class TestErrorCategory:
    def test_values(self):
        assert ErrorCategory.PERMANENT.value == "permanent"
        assert ErrorCategory.UNKNOWN.value == "unknown"

    def test_all_members(self):
        assert set(ErrorCategory.__members__.keys()) == {"PERMANENT", "UNKNOWN"}

    def test_from_value(self):
        assert ErrorCategory("permanent") is ErrorCategory.PERMANENT


class TestExpressionEvaluator:
    def test_is_protocol(self):
        """ExpressionEvaluator is a Protocol with parse and evaluate methods."""
        assert hasattr(ExpressionEvaluator, "parse")
        assert hasattr(ExpressionEvaluator, "evaluate")

    def test_structural_implementation(self):
        class Constant:
            def parse(self, source):
                return source

            def evaluate(self, source, context):
                return source

        evaluator: ExpressionEvaluator = Constant()
        assert evaluator.evaluate("x", None) == "x"
