"""Configuration validation functions for the service container.

Wiring mistakes (bad initiator maps, broken local environment files) are
reported at startup as ``ConfigurationError`` rather than on first use.
"""

import logging
from typing import Any, Dict, Mapping

import yaml

logger = logging.getLogger(__name__)

TRUTHY_VALUES = ("1", "true", "yes", "on")


class ConfigurationError(Exception):
    """Raised when configuration validation fails."""

    pass


def validate_initiator_map(initiators: Mapping[str, Any]) -> None:
    """Validate a service initiator map before it is used by a container.

    Args:
        initiators: Mapping of service name to initiator

    Raises:
        ConfigurationError: If the map or any of its entries is invalid
    """
    if not isinstance(initiators, Mapping):
        raise ConfigurationError(
            f"Service initiators must be a mapping, got {type(initiators).__name__}"
        )

    for name, initiator in initiators.items():
        if not isinstance(name, str) or not name:
            raise ConfigurationError(
                f"Service names must be non-empty strings, got {name!r}"
            )

        if not callable(initiator):
            raise ConfigurationError(
                f'Initiator for service "{name}" must be callable, '
                f"got {type(initiator).__name__}"
            )

    logger.debug(f"Validated {len(initiators)} service initiator(s)")


def load_environment_file(path: str = "env.yaml") -> Dict[str, Any]:
    """Load environment values from a YAML file.

    Used for local runs where the Lambda runtime is not providing the
    process environment.

    Args:
        path: Path to the YAML file

    Returns:
        Mapping of environment keys to values

    Raises:
        ConfigurationError: If the file is empty, invalid, or not a mapping
        FileNotFoundError: If the file doesn't exist
    """
    try:
        with open(path, "r") as f:
            values = yaml.safe_load(f)
    except FileNotFoundError:
        raise FileNotFoundError(
            f"Environment file not found: {path}\n"
            "Create it with one KEY: value pair per line."
        )
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {path}: {e}")

    if values is None:
        raise ConfigurationError(f"Environment file {path} is empty")

    if not isinstance(values, dict):
        raise ConfigurationError(
            f"Environment file {path} must contain a YAML dictionary"
        )

    for key in values:
        if not isinstance(key, str):
            raise ConfigurationError(
                f"Environment keys must be strings, got {key!r} in {path}"
            )

    return values


def get_logging_config(environment: Any) -> Dict[str, Any]:
    """Get logging settings from an environment.

    Missing values fall back to defaults, this never raises for absent keys.

    Args:
        environment: Environment instance (anything supporting ``in``/``get``)

    Returns:
        Dictionary with ``level`` and ``pretty`` keys
    """
    level = "INFO"
    pretty = False

    if "LOG_LEVEL" in environment:
        level = str(environment.get("LOG_LEVEL")).upper()

    if "LOG_PRETTY" in environment:
        pretty = str(environment.get("LOG_PRETTY")).lower() in TRUTHY_VALUES

    return {"level": level, "pretty": pretty}
