"""Environment accessor for Lambda functions.

Wraps a key/value source read once at process start. Lookups of keys that
are not present fail fast with ``MissingEnvironmentVariableError``.
"""

import logging
import os
from types import MappingProxyType
from typing import Any, Iterator, KeysView, Mapping

from core.errors import MISSING_ENVIRONMENT_VARIABLE_ERROR_NAME, NameAwareError
from core.validators import load_environment_file

logger = logging.getLogger(__name__)


class MissingEnvironmentVariableError(NameAwareError):
    """Raised when a key is not found in the environment."""

    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(
            MISSING_ENVIRONMENT_VARIABLE_ERROR_NAME,
            f'Cannot find "{key}" in the environment!',
        )


class Environment:
    """An immutable view over environment values."""

    def __init__(self, search: Mapping[str, Any]) -> None:
        """Initialize the environment.

        Args:
            search: Key/value source. It is copied, later changes to the
                source are not visible.
        """
        self._search = MappingProxyType(dict(search))

    @classmethod
    def create(cls, search: Mapping[str, Any]) -> "Environment":
        """Create an environment using the given mapping."""
        return cls(search)

    @classmethod
    def from_process(cls) -> "Environment":
        """Create an environment from a snapshot of ``os.environ``."""
        return cls(os.environ)

    @classmethod
    def from_yaml(cls, path: str) -> "Environment":
        """Create an environment from a YAML file, for local runs.

        Args:
            path: Path to a YAML file holding a flat mapping

        Raises:
            ConfigurationError: If the file is not a valid YAML mapping
            FileNotFoundError: If the file doesn't exist
        """
        values = load_environment_file(path)
        logger.info(f"Loaded {len(values)} environment values from {path}")
        return cls(values)

    def get(self, key: str) -> Any:
        """Return the value stored for ``key``.

        Raises:
            MissingEnvironmentVariableError: If the key is absent or None
        """
        value = self._search.get(key)

        if value is None:
            raise MissingEnvironmentVariableError(key)

        return value

    def keys(self) -> KeysView:
        return self._search.keys()

    def __contains__(self, key: object) -> bool:
        return self._search.get(key) is not None

    def __iter__(self) -> Iterator[str]:
        return iter(self._search)

    def __len__(self) -> int:
        return len(self._search)
