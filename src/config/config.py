"""Application configuration from YAML, command-line and overrides.

Loads an application YAML file, flattens it into dotted property keys and
layers it into an Environment together with command-line ``--key=value``
arguments and programmatic overrides.

Environment variables ARE supported using ${VAR_NAME} and
${VAR_NAME:-default} syntax in YAML files.

Priority (highest to lowest):

1. Command-line arguments (``--header.enricher.overwrite=true``)
2. Programmatic overrides
3. YAML configuration file
"""

import json
import logging
import os
import re
import sys
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

import yaml

from config.environment import Environment
from core.errors import ConfigurationError

# Configure module logger
logger = logging.getLogger(__name__)

COMMAND_LINE_SOURCE = "commandLineArgs"
OVERRIDES_SOURCE = "overrides"
APPLICATION_CONFIG_SOURCE = "applicationConfig"

CONFIG_FILE_ENV_VAR = "STREAMFN_CONFIG_FILE"
DEFAULT_CONFIG_FILE = Path("application.yaml")

_ENV_VAR_PATTERN = re.compile(r"\$\{([^}:]+)(?::-(([^}]*))?)?\}")
_COMMAND_LINE_PATTERN = re.compile(r"^--([^=\s]+)=(.*)$", re.DOTALL)


def load_yaml(path: Path) -> Dict[str, Any]:
    """Load YAML file and return dict."""
    if not path.exists():
        return {}
    with open(path, "r") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Configuration file {path} must contain a mapping at the top level",
            context={"property": str(path)},
        )
    return data


def _expand_env_vars(data: Any) -> Any:
    """Recursively expand ${VAR_NAME} and ${VAR_NAME:-default} environment variables in config data."""
    if isinstance(data, dict):
        return {key: _expand_env_vars(value) for key, value in data.items()}
    elif isinstance(data, list):
        return [_expand_env_vars(item) for item in data]
    elif isinstance(data, str):

        def replacer(match):
            var_name = match.group(1)
            default_value = match.group(2) if match.group(2) is not None else match.group(0)
            return os.getenv(var_name, default_value)

        return _ENV_VAR_PATTERN.sub(replacer, data)
    else:
        return data


def flatten_properties(data: Dict[str, Any], prefix: str = "") -> Dict[str, Any]:
    """Flatten nested mappings into dotted keys.

    Lists and scalars are kept as values. An empty mapping is kept as an
    empty dict so the key still exists.

    >>> flatten_properties({"header": {"enricher": {"overwrite": True}}})
    {'header.enricher.overwrite': True}
    """
    flat: Dict[str, Any] = {}
    for key, value in data.items():
        full_key = f"{prefix}.{key}" if prefix else str(key)
        if isinstance(value, dict) and value:
            flat.update(flatten_properties(value, full_key))
        else:
            flat[full_key] = value
    return flat


def parse_command_line_properties(args: Optional[Iterable[str]]) -> Dict[str, str]:
    """Parse ``--key=value`` tokens into a property dict.

    Raises:
        ConfigurationError: If a token is not of the form ``--key=value``
    """
    properties: Dict[str, str] = {}
    for token in args or ():
        match = _COMMAND_LINE_PATTERN.match(token)
        if not match:
            raise ConfigurationError(
                f"Invalid command-line property '{token}', expected --key=value",
                context={"property": token},
            )
        properties[match.group(1)] = match.group(2)
    return properties


def resolve_config_path(config_path: Optional[Path] = None) -> Path:
    if config_path is not None:
        return Path(config_path)
    from_env = os.getenv(CONFIG_FILE_ENV_VAR)
    if from_env:
        return Path(from_env)
    return DEFAULT_CONFIG_FILE


def load_environment(
    config_path: Optional[Path] = None,
    args: Optional[Iterable[str]] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> Environment:
    """Build an Environment from YAML, overrides and command-line arguments.

    A missing config file is not an error: the environment then holds only
    the overrides and command-line properties.
    """
    path = resolve_config_path(config_path)
    if path.exists():
        logger.info(f"Loading configuration from file: {path}")
    elif config_path is not None:
        raise ConfigurationError(
            f"Configuration file not found: {path}",
            context={"property": str(path)},
        )

    yaml_data = _expand_env_vars(load_yaml(path))

    environment = Environment()
    environment.add_last(APPLICATION_CONFIG_SOURCE, flatten_properties(yaml_data))

    if overrides:
        logger.debug(f"Applying overrides: {list(overrides.keys())}")
        environment.add_first(OVERRIDES_SOURCE, flatten_properties(overrides))

    command_line = parse_command_line_properties(args)
    if command_line:
        logger.debug(f"Applying command-line properties: {list(command_line.keys())}")
        environment.add_first(COMMAND_LINE_SOURCE, command_line)

    return environment


_environment: Optional[Environment] = None


def get_environment() -> Environment:
    """Get or load the singleton Environment instance."""
    global _environment
    if _environment is None:
        _environment = load_environment()
    return _environment


def set_environment(environment: Environment) -> None:
    """Set the singleton Environment instance (useful for testing)."""
    global _environment
    _environment = environment


def reset_environment() -> None:
    """Reset the singleton instance (forces reload on next get_environment() call)."""
    global _environment
    _environment = None


def _cli_main() -> int:
    """CLI entry point for inspecting the resolved properties."""
    import argparse

    parser = argparse.ArgumentParser(
        description="streamfn configuration tool",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Show resolved properties
  python -m config.config --config application.yaml

  # Override a property
  python -m config.config --config application.yaml --header.enricher.overwrite=true

  # JSON output for automation
  python -m config.config --json
        """,
    )
    parser.add_argument(
        "--config",
        type=Path,
        help="Path to application YAML file (default: ./application.yaml)",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Output in JSON format instead of YAML",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logging",
    )

    args, extra = parser.parse_known_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s: %(message)s",
    )

    try:
        environment = load_environment(config_path=args.config, args=extra)
    except ConfigurationError as e:
        if args.json:
            print(json.dumps({"error": str(e)}))
        else:
            print(f"✗ Error: {e}", file=sys.stderr)
        return 1

    resolved = {key: environment.get_property(key) for key in environment.property_names()}
    if args.json:
        print(json.dumps(resolved, indent=2, default=str))
    else:
        print(yaml.safe_dump(resolved, default_flow_style=False, sort_keys=True))
    return 0


if __name__ == "__main__":
    sys.exit(_cli_main())
