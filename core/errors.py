"""Error base classes for the service container.

Every configuration error raised by the container carries a stable ``name``
so callers can branch on the kind of failure without matching messages.
"""

MISSING_ENVIRONMENT_VARIABLE_ERROR_NAME = "MissingEnvironmentVariableError"
CONTAINER_MISSING_SERVICE_ERROR_NAME = "ContainerMissingServiceInitiatorError"
CONTAINER_CIRCULAR_DEPENDENCY_ERROR_NAME = "ContainerCircularDependencyError"


class NameAwareError(Exception):
    """Exception carrying a stable error name alongside its message.

    Attributes:
        name: Stable identifier for the kind of error
        error: Human-readable message
    """

    def __init__(self, name: str, message: str) -> None:
        super().__init__(message)
        self.name = name
        self.error = message

    def __str__(self) -> str:
        return self.error
