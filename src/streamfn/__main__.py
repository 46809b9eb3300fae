"""Run a function chain over newline-delimited messages. Use --help for usage."""

import argparse
import logging
import socket
import sys
from pathlib import Path
from typing import BinaryIO, Iterator, List, Optional, Sequence, Tuple

from dotenv import load_dotenv
from prometheus_client import start_http_server

from config import Environment, load_environment
from core.errors import PipelineError
from core.logging import format_pipeline_summary, log_exception, setup_logging
from streamfn.app import Application, bootstrap
from streamfn.expression.values import to_text
from streamfn.metrics import MeterCache, get_registry
from streamfn.pipeline import PipelineStats
from streamfn.properties import LoggingProperties

# Project root directory (where .env file is located)
# __main__.py is at src/streamfn/__main__.py, so root is 3 levels up
PROJECT_ROOT = Path(__file__).parent.parent.parent

logger = logging.getLogger(__name__)

LOGGING_PREFIX = "streamfn.logging"


def parse_args(argv: Optional[Sequence[str]] = None) -> Tuple[argparse.Namespace, List[str]]:
    """Parse known options; anything else is a ``--key=value`` property."""
    parser = argparse.ArgumentParser(
        prog="python -m streamfn",
        description="Run a composed message function over stdin",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Upper-case every line
    echo hello | python -m streamfn \\
        --spring.cloud.function.definition=transformFunction \\
        --transform.function.expression="payload.toUpperCase()"

    # Enrich headers then filter, configured from a YAML file
    python -m streamfn --config application.yaml < messages.txt

    # Check the configuration and print the binding properties
    python -m streamfn --config application.yaml --show-bindings

    # Count messages and expose the counters on port 9090
    python -m streamfn --config counter.yaml --metrics-port 9090 < messages.txt
        """,
    )

    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to the YAML configuration (default: STREAMFN_CONFIG_FILE or ./application.yaml)",
    )
    parser.add_argument(
        "--validate",
        action="store_true",
        help="Run startup only and exit",
    )
    parser.add_argument(
        "--show-bindings",
        action="store_true",
        help="Print the binding properties written at startup and exit",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Logging level (default: streamfn.logging.level or INFO)",
    )
    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Write console logs as JSON",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Also write JSON logs to this rotating file",
    )
    parser.add_argument(
        "--metrics-port",
        type=int,
        default=None,
        help="Serve Prometheus metrics on this port while running",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Shorthand for --log-level DEBUG",
    )
    return parser.parse_known_args(argv)


def start_metrics_server(preferred_port: int) -> int:
    """Start the metrics server, falling back to a free port when taken.

    Returns the port the server is listening on.
    """
    registry = get_registry()
    try:
        start_http_server(preferred_port, registry=registry)
        return preferred_port
    except OSError as e:
        if e.errno == 98:
            logger.info(
                "Port already in use, finding available port",
                extra={"preferred_port": preferred_port},
            )
            with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
                s.bind(("", 0))
                s.listen(1)
                available_port = s.getsockname()[1]
            start_http_server(available_port, registry=registry)
            return available_port
        raise


def read_messages(stream: BinaryIO) -> Iterator[bytes]:
    for line in stream:
        yield line.rstrip(b"\r\n")


def _payload_bytes(payload) -> bytes:
    if isinstance(payload, (bytes, bytearray)):
        return bytes(payload)
    # Mappings and lists are written as JSON
    return to_text(payload).encode("utf-8")


def run(app: Application, source: BinaryIO, sink: BinaryIO) -> PipelineStats:
    """Process every line of ``source``, writing output payloads to ``sink``."""
    stats = PipelineStats()
    for payload in read_messages(source):
        result = app.process(payload)
        stats.record(result)
        if result.output is not None:
            sink.write(_payload_bytes(result.output.payload) + b"\n")
            sink.flush()
    return stats


def _logging_options(args: argparse.Namespace, environment: Optional[Environment] = None) -> dict:
    """Command-line flags win over the streamfn.logging.* properties."""
    options = LoggingProperties()
    if environment is not None:
        options = environment.bind(LOGGING_PREFIX, LoggingProperties)
    return {
        "name": "streamfn",
        "log_file": args.log_file or options.file,
        "json_format": args.json_logs or options.json_format,
        "console_level": "DEBUG" if args.verbose else (args.log_level or options.level),
    }


def main(argv: Optional[Sequence[str]] = None) -> int:
    load_dotenv(PROJECT_ROOT / ".env")
    args, properties = parse_args(argv)
    setup_logging(**_logging_options(args))

    try:
        environment = load_environment(args.config, args=properties)
        setup_logging(**_logging_options(args, environment))
        app = bootstrap(environment, meters=MeterCache(get_registry()))
    except PipelineError as e:
        log_exception(logger, e, "Startup failed", include_traceback=False)
        print(f"Startup failed: {e}", file=sys.stderr)
        return 1

    if args.show_bindings:
        for key, value in sorted(app.binding.properties.items()):
            print(f"{key}={value}")
        return 0

    if args.validate:
        logger.info("Configuration is valid", extra={"function_definition": app.definition})
        return 0

    if args.metrics_port is not None:
        port = start_metrics_server(args.metrics_port)
        logger.info("Metrics server started", extra={"port": port})

    try:
        stats = run(app, sys.stdin.buffer, sys.stdout.buffer)
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")
        return 130

    logger.info(
        format_pipeline_summary(stats.processed, stats.filtered, stats.failed),
        extra=stats.as_dict(),
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
