"""Configuration loading for streamfn.

Properties are flat dotted keys held in a layered Environment. Sources are
merged in priority order (highest first):

1. Command-line arguments (``--key=value``)
2. Programmatic overrides
3. Application YAML file (``application.yaml`` or ``$STREAMFN_CONFIG_FILE``)

Startup hooks may add further sources before the environment is frozen.

Usage:
    >>> from config import load_environment
    >>> env = load_environment(args=["--spring.cloud.function.definition=a|b"])
    >>> env.get_property("spring.cloud.function.definition")
    'a|b'
"""

from config.config import (
    flatten_properties,
    get_environment,
    load_environment,
    load_yaml,
    parse_command_line_properties,
    reset_environment,
    set_environment,
)
from config.environment import Environment, PropertySource

__all__ = [
    # Loading
    "load_environment",
    "load_yaml",
    "flatten_properties",
    "parse_command_line_properties",
    # Singleton
    "get_environment",
    "set_environment",
    "reset_environment",
    # Classes
    "Environment",
    "PropertySource",
]
