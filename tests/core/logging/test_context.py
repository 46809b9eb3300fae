"""Tests for logging context variables."""

import pytest

from core.logging.context import clear_log_context, get_log_context, set_log_context


@pytest.fixture(autouse=True)
def reset_context():
    clear_log_context()
    yield
    clear_log_context()


class TestLogContext:

    def test_defaults_are_empty(self):
        assert get_log_context() == {
            "function": "",
            "stage": "",
            "message_id": "",
            "worker_id": "",
            "trace_id": "",
        }

    def test_set_only_given_fields(self):
        set_log_context(function="ab", message_id="m-1")
        set_log_context(stage="a")

        ctx = get_log_context()
        assert ctx["function"] == "ab"
        assert ctx["stage"] == "a"
        assert ctx["message_id"] == "m-1"

    def test_none_does_not_overwrite(self):
        set_log_context(function="ab")
        set_log_context(function=None)

        assert get_log_context()["function"] == "ab"

    def test_clear(self):
        set_log_context(function="ab", worker_id="w-1", trace_id="t-1")
        clear_log_context()

        assert all(value == "" for value in get_log_context().values())
