"""Tests for function definition parsing and startup binding rewrite."""

import logging

import pytest

from config.environment import Environment, PropertySource
from core.errors import EmptyFunctionNameError, ParseError
from streamfn.binding import (
    DEPRECATED_FUNCTION_DEFINITION,
    FUNCTION_BINDINGS_PREFIX,
    FUNCTION_DEFINITION,
    FunctionChain,
    apply_content_type_defaults,
    apply_function_bindings,
    bind,
    binding_content_type,
    parse_function_definition,
    resolve_function_definition,
)
from streamfn.coercion import OCTET_STREAM


def _make_environment(**properties) -> Environment:
    return Environment([PropertySource("test", dict(properties))])


class TestParseFunctionDefinition:

    def test_pipe_separated(self):
        assert parse_function_definition("a|b|c").names == ("a", "b", "c")

    def test_quoted_equals_unquoted(self):
        assert bind("'a|b|c'") == bind("a|b|c")
        chain, composite = bind("'a|b|c'")
        assert chain.names == ("a", "b", "c")
        assert composite == "abc"

    def test_double_quoted(self):
        assert parse_function_definition('"a|b"').names == ("a", "b")

    def test_comma_separated(self):
        chain, composite = bind("firstFunction,secondFunction")
        assert chain.definition == "firstFunction|secondFunction"
        assert composite == "firstFunctionsecondFunction"

    def test_pipe_takes_precedence_over_comma(self):
        assert parse_function_definition("a,b|c").names == ("a,b", "c")

    def test_trims_names(self):
        assert parse_function_definition("  a | b ").names == ("a", "b")

    def test_single_function(self):
        chain, composite = bind("upper")
        assert len(chain) == 1
        assert composite == "upper"

    @pytest.mark.parametrize("definition", ["a||b", "a|", "|a", "a, ,b"])
    def test_empty_element(self, definition):
        with pytest.raises(EmptyFunctionNameError):
            parse_function_definition(definition)

    @pytest.mark.parametrize("definition", [None, "", "   ", "''"])
    def test_empty_definition(self, definition):
        with pytest.raises(ParseError, match="empty"):
            parse_function_definition(definition)

    def test_binding_names(self):
        chain = parse_function_definition("a|b")
        assert chain.input_binding_name == "ab-in-0"
        assert chain.output_binding_name == "ab-out-0"

    def test_empty_chain(self):
        with pytest.raises(ParseError):
            FunctionChain(())


class TestResolveFunctionDefinition:

    def test_current_property(self):
        env = _make_environment(**{FUNCTION_DEFINITION: "a"})
        assert resolve_function_definition(env) == "a"

    def test_deprecated_property_logs_error(self, caplog):
        env = _make_environment(**{DEPRECATED_FUNCTION_DEFINITION: "a|b"})
        with caplog.at_level(logging.ERROR):
            assert resolve_function_definition(env) == "a|b"
        assert "deprecated" in caplog.text

    def test_deprecated_wins_when_both_set(self, caplog):
        env = _make_environment(
            **{FUNCTION_DEFINITION: "a", DEPRECATED_FUNCTION_DEFINITION: "b"}
        )
        with caplog.at_level(logging.ERROR):
            assert resolve_function_definition(env) == "b"
        assert "deprecated" in caplog.text

    def test_missing(self):
        assert resolve_function_definition(Environment()) is None


class TestApplyFunctionBindings:

    def test_maps_input_and_output(self):
        env = _make_environment(
            **{
                FUNCTION_DEFINITION: "'a,b'",
                "spring.cloud.stream.bindings.input.destination": "in-topic",
                "spring.cloud.stream.bindings.output.destination": "out-topic",
            }
        )
        binding = apply_function_bindings(env)
        assert binding.composite_name == "ab"
        assert env.get_property(FUNCTION_DEFINITION) == "a|b"
        assert env.get_property(f"{FUNCTION_BINDINGS_PREFIX}.ab-in-0") == "input"
        assert env.get_property(f"{FUNCTION_BINDINGS_PREFIX}.ab-out-0") == "output"
        assert env.source_names[0] == "functionBindings"

    def test_only_configured_bindings_mapped(self):
        env = _make_environment(
            **{
                FUNCTION_DEFINITION: "a",
                "spring.cloud.stream.bindings.input.destination": "in-topic",
            }
        )
        binding = apply_function_bindings(env)
        assert f"{FUNCTION_BINDINGS_PREFIX}.a-in-0" in binding.properties
        assert f"{FUNCTION_BINDINGS_PREFIX}.a-out-0" not in binding.properties

    def test_deprecated_definition_written_back(self):
        env = _make_environment(
            **{FUNCTION_DEFINITION: "a", DEPRECATED_FUNCTION_DEFINITION: "b,c"}
        )
        binding = apply_function_bindings(env)
        assert binding.chain.definition == "b|c"
        assert env.get_property(FUNCTION_DEFINITION) == "b|c"

    def test_no_definition(self):
        env = Environment()
        assert apply_function_bindings(env) is None
        assert env.source_names == []

    def test_malformed_definition_raises(self):
        with pytest.raises(EmptyFunctionNameError):
            apply_function_bindings(_make_environment(**{FUNCTION_DEFINITION: "a||b"}))


class TestContentTypeDefaults:

    def test_defaults_missing_content_types(self):
        env = Environment()
        defaults = apply_content_type_defaults(env)
        assert defaults == {
            "spring.cloud.stream.bindings.input.contentType": OCTET_STREAM,
            "spring.cloud.stream.bindings.output.contentType": OCTET_STREAM,
        }
        assert binding_content_type(env, "input") == OCTET_STREAM

    def test_explicit_content_type_kept(self):
        env = _make_environment(**{"spring.cloud.stream.bindings.input.content-type": "text/plain"})
        defaults = apply_content_type_defaults(env)
        assert "spring.cloud.stream.bindings.input.contentType" not in defaults
        assert binding_content_type(env, "input") == "text/plain"
        assert binding_content_type(env, "output") == OCTET_STREAM

    def test_defaults_have_lowest_priority(self):
        env = Environment()
        apply_content_type_defaults(env)
        env.add_first("late", {"spring.cloud.stream.bindings.input.contentType": "text/plain"})
        assert binding_content_type(env, "input") == "text/plain"

    def test_nothing_to_default(self):
        env = _make_environment(
            **{
                "spring.cloud.stream.bindings.input.contentType": "text/plain",
                "spring.cloud.stream.bindings.output.contentType": "text/plain",
            }
        )
        assert apply_content_type_defaults(env) == {}
        assert env.source_names == ["test"]
