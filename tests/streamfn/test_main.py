"""Tests for the command-line entry point."""

import io
import sys
from pathlib import Path
from unittest.mock import patch

import pytest
from prometheus_client import CollectorRegistry

from config.environment import Environment, PropertySource
from streamfn.__main__ import _logging_options, main, parse_args, read_messages, run
from streamfn.app import bootstrap
from streamfn.metrics import MeterCache


def _write_config(tmp_path, text) -> Path:
    config_file = tmp_path / "application.yaml"
    config_file.write_text(text)
    return config_file


def _make_app(properties):
    return bootstrap(
        Environment([PropertySource("test", properties)]),
        meters=MeterCache(CollectorRegistry()),
    )


class TestParseArgs:

    def test_unknown_options_are_properties(self):
        args, extra = parse_args(["--config", "app.yaml", "--filter.function.expression=true", "-v"])
        assert args.config == Path("app.yaml")
        assert args.verbose
        assert extra == ["--filter.function.expression=true"]

    def test_defaults(self):
        args, extra = parse_args([])
        assert args.config is None
        assert args.metrics_port is None
        assert not args.validate
        assert extra == []

    def test_invalid_log_level(self):
        with pytest.raises(SystemExit):
            parse_args(["--log-level", "LOUD"])


class TestLoggingOptions:

    def test_flags_win(self):
        args, _ = parse_args(["--log-level", "ERROR", "--json-logs"])
        env = Environment([PropertySource("s", {"streamfn.logging.level": "DEBUG"})])
        options = _logging_options(args, env)
        assert options["console_level"] == "ERROR"
        assert options["json_format"] is True

    def test_properties_used_without_flags(self):
        args, _ = parse_args([])
        env = Environment(
            [PropertySource("s", {"streamfn.logging.level": "WARNING", "streamfn.logging.file": "x.log"})]
        )
        options = _logging_options(args, env)
        assert options["console_level"] == "WARNING"
        assert options["log_file"] == "x.log"

    def test_verbose(self):
        args, _ = parse_args(["-v"])
        assert _logging_options(args)["console_level"] == "DEBUG"


class TestRun:

    def test_read_messages_strips_line_endings(self):
        assert list(read_messages(io.BytesIO(b"a\r\nb\n\nc"))) == [b"a", b"b", b"", b"c"]

    def test_run_writes_outputs(self):
        app = _make_app(
            {
                "spring.cloud.function.definition": "transformFunction|filterFunction",
                "spring.cloud.stream.bindings.input.contentType": "text/plain",
                "spring.cloud.stream.bindings.output.contentType": "text/plain",
                "transform.function.expression": "payload.toUpperCase()",
                "filter.function.expression": "payload.length() > 5",
            }
        )
        sink = io.BytesIO()
        stats = run(app, io.BytesIO(b"hello world message\nfoo\n"), sink)
        assert sink.getvalue() == b"HELLO WORLD MESSAGE\n"
        assert stats.processed == 2
        assert stats.emitted == 1
        assert stats.filtered == 1

    def test_run_counts_failures(self):
        app = _make_app(
            {
                "spring.cloud.function.definition": "filterFunction",
                "spring.cloud.stream.bindings.input.contentType": "text/plain",
                "filter.function.expression": "payload",
            }
        )
        sink = io.BytesIO()
        stats = run(app, io.BytesIO(b"a\nb\n"), sink)
        assert stats.failed == 2
        assert sink.getvalue() == b""

    def test_run_structured_output(self):
        app = _make_app(
            {
                "spring.cloud.function.definition": "transformFunction",
                "spring.cloud.stream.bindings.input.contentType": "text/plain",
                "streamfn.encode-output": False,
                "transform.function.expression": "payload.length()",
            }
        )
        sink = io.BytesIO()
        run(app, io.BytesIO(b"abc\n"), sink)
        assert sink.getvalue() == b"3\n"

    def test_run_writes_structured_payload_as_json(self):
        app = _make_app(
            {
                "spring.cloud.function.definition": "transformFunction",
                "transform.function.expression": "jsonPath(payload, '$.a')",
            }
        )
        sink = io.BytesIO()
        run(app, io.BytesIO(b'{"a": {"b": 1}}\n'), sink)
        assert sink.getvalue() == b'{"b": 1}\n'


@patch("streamfn.__main__.setup_logging")
class TestMain:

    def test_show_bindings(self, mock_setup, tmp_path, capsys):
        config_file = _write_config(
            tmp_path,
            "spring:\n"
            "  cloud:\n"
            "    function:\n"
            "      definition: transformFunction,filterFunction\n"
            "    stream:\n"
            "      bindings:\n"
            "        input:\n"
            "          destination: in\n",
        )
        assert main(["--config", str(config_file), "--show-bindings"]) == 0
        out = capsys.readouterr().out.splitlines()
        assert out == [
            "spring.cloud.function.definition=transformFunction|filterFunction",
            "spring.cloud.stream.function.bindings.transformFunctionfilterFunction-in-0=input",
        ]
        assert mock_setup.call_count == 2

    def test_validate(self, mock_setup, tmp_path):
        config_file = _write_config(tmp_path, "")
        argv = ["--config", str(config_file), "--validate", "--spring.cloud.function.definition=logConsumer"]
        assert main(argv) == 0

    def test_startup_failure(self, mock_setup, tmp_path, capsys):
        config_file = _write_config(tmp_path, "")
        assert main(["--config", str(config_file)]) == 1
        assert "Startup failed: No function definition" in capsys.readouterr().err

    def test_missing_config_file(self, mock_setup, tmp_path, capsys):
        assert main(["--config", str(tmp_path / "missing.yaml")]) == 1
        assert "Startup failed" in capsys.readouterr().err

    def test_processes_stdin(self, mock_setup, tmp_path, monkeypatch):
        config_file = _write_config(
            tmp_path,
            "spring:\n"
            "  cloud:\n"
            "    function:\n"
            "      definition: transformFunction\n"
            "    stream:\n"
            "      bindings:\n"
            "        input:\n"
            "          contentType: text/plain\n"
            "transform:\n"
            "  function:\n"
            "    expression: payload.toUpperCase()\n",
        )
        stdin = io.TextIOWrapper(io.BytesIO(b"hello\nworld\n"))
        stdout = io.TextIOWrapper(io.BytesIO())
        monkeypatch.setattr(sys, "stdin", stdin)
        monkeypatch.setattr(sys, "stdout", stdout)
        assert main(["--config", str(config_file)]) == 0
        assert stdout.buffer.getvalue() == b"HELLO\nWORLD\n"

    def test_metrics_server_started(self, mock_setup, tmp_path, monkeypatch):
        config_file = _write_config(tmp_path, "")
        monkeypatch.setattr(sys, "stdin", io.TextIOWrapper(io.BytesIO(b"")))
        monkeypatch.setattr(sys, "stdout", io.TextIOWrapper(io.BytesIO()))
        with patch("streamfn.__main__.start_metrics_server", return_value=9999) as mock_server:
            argv = [
                "--config",
                str(config_file),
                "--metrics-port",
                "9090",
                "--spring.cloud.function.definition=counterConsumer",
            ]
            assert main(argv) == 0
        mock_server.assert_called_once_with(9090)
