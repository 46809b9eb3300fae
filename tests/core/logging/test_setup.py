"""Tests for logging setup and configuration."""

import json
import logging
import sys
from logging.handlers import RotatingFileHandler
from unittest.mock import MagicMock

import pytest

from core.logging.context import clear_log_context, get_log_context
from core.logging.formatters import ConsoleFormatter, JSONFormatter
from core.logging.setup import (
    NOISY_LOGGERS,
    get_logger,
    log_startup_banner,
    setup_logging,
)


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)
    clear_log_context()


class TestSetupLogging:

    def test_console_handler_writes_to_stderr(self):
        setup_logging()

        handlers = logging.getLogger().handlers
        assert len(handlers) == 1
        assert handlers[0].stream is sys.stderr
        assert isinstance(handlers[0].formatter, ConsoleFormatter)

    def test_json_console_format(self):
        setup_logging(json_format=True)

        assert isinstance(logging.getLogger().handlers[0].formatter, JSONFormatter)

    def test_console_level_from_name(self):
        setup_logging(console_level="warning")

        assert logging.getLogger().handlers[0].level == logging.WARNING

    def test_unknown_level_name_falls_back_to_info(self):
        setup_logging(console_level="LOUD")

        assert logging.getLogger().handlers[0].level == logging.INFO

    def test_adds_rotating_json_file_handler(self, tmp_path):
        log_file = tmp_path / "logs" / "streamfn.log"

        logger = setup_logging(log_file=log_file)
        logger.info("hello", extra={"header": "foo"})
        for handler in logging.getLogger().handlers:
            handler.flush()

        file_handlers = [
            h for h in logging.getLogger().handlers if isinstance(h, RotatingFileHandler)
        ]
        assert len(file_handlers) == 1
        lines = log_file.read_text().strip().splitlines()
        entry = json.loads(lines[-1])
        assert entry["message"] == "hello"
        assert entry["header"] == "foo"

    def test_sets_function_and_worker_context(self):
        setup_logging(function="a|b", worker_id="w-1")

        ctx = get_log_context()
        assert ctx["function"] == "a|b"
        assert ctx["worker_id"] == "w-1"

    def test_suppresses_noisy_loggers(self):
        setup_logging()

        for name in NOISY_LOGGERS:
            assert logging.getLogger(name).level == logging.WARNING

    def test_returns_named_logger(self):
        assert setup_logging(name="custom").name == "custom"


class TestGetLogger:

    def test_returns_logger(self):
        assert get_logger("streamfn.test") is logging.getLogger("streamfn.test")


class TestLogStartupBanner:

    def test_logs_definition_bindings_and_config(self):
        logger = MagicMock()

        log_startup_banner(
            logger,
            "my-app",
            definition="a|b",
            bindings={"spring.cloud.stream.function.bindings.ab-in-0": "input"},
            extra_config={"Encode output": True},
        )

        messages = [c.args[0] % c.args[1:] if len(c.args) > 1 else c.args[0] for c in logger.info.call_args_list]
        assert "Starting my-app" in messages
        assert "Function definition: a|b" in messages
        assert "spring.cloud.stream.function.bindings.ab-in-0: input" in messages
        assert "Encode output: True" in messages

    def test_missing_definition(self):
        logger = MagicMock()

        log_startup_banner(logger, "my-app")

        messages = [c.args[0] % c.args[1:] if len(c.args) > 1 else c.args[0] for c in logger.info.call_args_list]
        assert "Function definition: not set" in messages
