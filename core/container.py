"""Service container for Lambda functions.

Services are built lazily by their initiators on first request and memoized
for the lifetime of the container, so warm invocations reuse clients that
are expensive to set up.
"""

import asyncio
import contextvars
import inspect
import logging
from types import MappingProxyType
from typing import Any, Dict, Mapping, Tuple

from core.environment import Environment
from core.errors import (
    CONTAINER_CIRCULAR_DEPENDENCY_ERROR_NAME,
    CONTAINER_MISSING_SERVICE_ERROR_NAME,
    NameAwareError,
)
from core.interfaces import ServiceInitiator
from core.validators import validate_initiator_map

logger = logging.getLogger(__name__)

# Names of the services being constructed by the current task, outermost first
_constructing: contextvars.ContextVar[Tuple[str, ...]] = contextvars.ContextVar(
    "constructing", default=()
)


class ContainerMissingServiceInitiatorError(NameAwareError):
    """Raised when a service is requested that has no initiator."""

    def __init__(self, service: str) -> None:
        self.service = service
        message = " ".join(
            [
                f'The service "{service}" has no initiator provided.',
                "Please provide an initiator for this service before calling it.",
            ]
        )
        super().__init__(CONTAINER_MISSING_SERVICE_ERROR_NAME, message)


class ContainerCircularDependencyError(NameAwareError):
    """Raised when a service depends on itself through its initiators."""

    def __init__(self, chain: Tuple[str, ...]) -> None:
        self.chain = chain
        path = " -> ".join(f'"{name}"' for name in chain)
        super().__init__(
            CONTAINER_CIRCULAR_DEPENDENCY_ERROR_NAME,
            f"Circular dependency between service initiators: {path}.",
        )


class Container:
    """Lazily constructs and caches services by name.

    The container:
    - Validates the initiator map when it is created
    - Invokes each initiator at most once, passing itself so initiators can
      depend on other services or on environment values
    - Shares one pending construction between concurrent callers
    - Does not cache failed constructions, a later call retries
    """

    def __init__(
        self,
        environment: Environment,
        initiators: Mapping[str, ServiceInitiator],
    ) -> None:
        """Initialize the container.

        Args:
            environment: Environment used by ``env()``
            initiators: Mapping of service name to initiator

        Raises:
            ConfigurationError: If the initiator map is invalid
        """
        validate_initiator_map(initiators)

        self.environment = environment
        self.initiators = MappingProxyType(dict(initiators))
        self._cache: Dict[str, Any] = {}
        self._pending: Dict[str, asyncio.Future] = {}

    def env(self, key: str) -> Any:
        """Quick access to the environment."""
        return self.environment.get(key)

    def is_resolved(self, name: str) -> bool:
        """Check if the service has already been constructed."""
        return name in self._cache

    async def service(self, name: str) -> Any:
        """Return the service registered under ``name``.

        Args:
            name: Logical service name

        Returns:
            The (possibly cached) service instance

        Raises:
            ContainerMissingServiceInitiatorError: If no initiator exists
            ContainerCircularDependencyError: If the initiator of ``name``
                requests ``name`` again, directly or through other services
            Exception: Whatever the initiator raises
        """
        if name in self._cache:
            return self._cache[name]

        chain = _constructing.get()
        if name in chain:
            raise ContainerCircularDependencyError(chain[chain.index(name):] + (name,))

        pending = self._pending.get(name)
        if pending is not None:
            logger.debug(f"Waiting on in-flight construction of service {name}")
            return await asyncio.shield(pending)

        initiator = self.initiators.get(name)
        if initiator is None:
            raise ContainerMissingServiceInitiatorError(name)

        pending = asyncio.get_running_loop().create_future()
        self._pending[name] = pending

        token = _constructing.set(chain + (name,))
        try:
            constructed = initiator(self)
            if inspect.isawaitable(constructed):
                constructed = await constructed
        except asyncio.CancelledError:
            pending.cancel()
            raise
        except Exception as e:
            logger.error(f"Failed to construct service {name}: {e}")
            pending.set_exception(e)
            # Waiters receive the error through the future; the caller
            # re-raises it directly.
            pending.exception()
            raise
        finally:
            _constructing.reset(token)
            del self._pending[name]

        self._cache[name] = constructed
        pending.set_result(constructed)

        logger.info(
            f"Constructed service {name}",
            extra={"service": name, "service_type": type(constructed).__name__},
        )

        return constructed
