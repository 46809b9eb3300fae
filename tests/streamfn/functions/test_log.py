import logging

import pytest

from config.environment import Environment, PropertySource
from core.errors import ConfigurationError
from streamfn.functions.base import FunctionContext
from streamfn.functions.log import LogConsumer, log_consumer
from streamfn.message import Message
from streamfn.properties import LogProperties


def _make_context(properties=None) -> FunctionContext:
    return FunctionContext(environment=Environment([PropertySource("test", properties or {})]))


class TestLogConsumer:

    def test_logs_payload_by_default(self, caplog):
        consumer = log_consumer(_make_context())
        with caplog.at_level(logging.INFO, logger="log-consumer"):
            assert consumer(Message("hello")) is None
        assert caplog.records[-1].getMessage() == "hello"
        assert caplog.records[-1].name == "log-consumer"

    def test_configured_expression_level_and_name(self, caplog):
        context = _make_context(
            {
                "log.expression": "headers['id'] + ':' + payload",
                "log.level": "warn",
                "log.name": "audit",
            }
        )
        consumer = log_consumer(context)
        with caplog.at_level(logging.WARNING, logger="audit"):
            consumer(Message("body", {"id": "42"}))
        record = caplog.records[-1]
        assert record.getMessage() == "42:body"
        assert record.levelno == logging.WARNING
        assert record.name == "audit"

    def test_level_below_threshold_not_logged(self, caplog):
        consumer = LogConsumer(LogProperties(level="DEBUG", name="quiet"), _make_context())
        with caplog.at_level(logging.INFO, logger="quiet"):
            consumer(Message("hidden"))
        assert "hidden" not in caplog.text

    def test_structured_result_logged_as_json(self, caplog):
        consumer = LogConsumer(LogProperties(expression="headers", name="hdrs"), _make_context())
        with caplog.at_level(logging.INFO, logger="hdrs"):
            consumer(Message("x", {"a": 1}))
        assert caplog.records[-1].getMessage() == '{"a": 1}'

    def test_flags(self):
        assert LogConsumer.consumer
        assert LogConsumer.accepts_text

    def test_malformed_expression_fails_at_construction(self):
        with pytest.raises(ConfigurationError, match="log.expression"):
            log_consumer(_make_context({"log.expression": "payload +"}))
