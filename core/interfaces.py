"""Core interfaces and data models for the service container.

Defines the container protocol that handlers are written against, the HTTP
enums, and the request/response models exchanged with handler functions.
"""

from enum import Enum, IntEnum
from typing import Any, Awaitable, Callable, Dict, Optional, Protocol, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


class ContainerInterface(Protocol):
    """A simplistic service container representation."""

    async def service(self, name: str) -> Any:
        """Return the service by the given name."""
        ...

    def env(self, key: str) -> Any:
        """Return the environment value for the given key."""
        ...


# An initiator builds one service given the container. It may be a
# coroutine function or a plain callable.
ServiceInitiator = Callable[[Any], Union[Awaitable[T], T]]


class RequestMethod(str, Enum):
    """HTTP request methods."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"
    HEAD = "HEAD"
    OPTIONS = "OPTIONS"


class ResponseStatusCode(IntEnum):
    """HTTP status codes commonly returned by handlers."""

    OK = 200
    CREATED = 201
    NO_CONTENT = 204

    NOT_FOUND = 404

    INTERNAL_SERVER_ERROR = 500


class ResponseHeader(str, Enum):
    """Response header names."""

    CONTENT_TYPE = "content-type"
    CONTENT_LENGTH = "content-length"

    ACCESS_CONTROL_ALLOW_ORIGIN = "access-control-allow-origin"
    ACCESS_CONTROL_ALLOW_HEADERS = "access-control-allow-headers"
    ACCESS_CONTROL_ALLOW_METHODS = "access-control-allow-methods"
    ACCESS_CONTROL_ALLOW_CREDENTIALS = "access-control-allow-credentials"


class LambdaRequest(BaseModel):
    """A sanitised view of an API Gateway proxy event.

    Event fields are copied as given. Path and query parameters are always
    mappings, and ``body`` holds the parsed JSON payload (or None when there
    was none or it was invalid).
    """

    model_config = ConfigDict(frozen=True)

    http_method: RequestMethod = Field(..., description="HTTP method of the request")
    path: str = Field(..., description="Request path")
    path_parameters: Dict[str, Any] = Field(default_factory=dict)
    query_string_parameters: Dict[str, Any] = Field(default_factory=dict)
    headers: Dict[str, Any] = Field(default_factory=dict)
    body: Any = Field(None, description="Parsed JSON body")

    is_base64_encoded: bool = False
    multi_value_headers: Dict[str, Any] = Field(default_factory=dict)
    multi_value_query_string_parameters: Dict[str, Any] = Field(default_factory=dict)
    request_context: Dict[str, Any] = Field(default_factory=dict)
    resource: Optional[str] = None
    stage_variables: Dict[str, Any] = Field(default_factory=dict)

    @property
    def request_id(self) -> Optional[str]:
        """Request ID assigned by API Gateway, if present."""
        return self.request_context.get("requestId")

    @property
    def stage(self) -> Optional[str]:
        """Deployment stage the request was made against, if present."""
        return self.request_context.get("stage")


class ResponseKind(BaseModel):
    """A handler's response: status code plus a JSON-serializable payload."""

    status: int = Field(..., description="HTTP status code")
    data: Any = Field(None, description="JSON-serializable payload")
    type: Optional[str] = Field(None, description="Optional response type tag")


# A handler given the container, the normalized request and the Lambda
# context, returning a ResponseKind (or a mapping with the same fields).
LambdaRequestHandler = Callable[
    [Any, LambdaRequest, Any],
    Union[Awaitable[Union[ResponseKind, Dict[str, Any]]], ResponseKind, Dict[str, Any]],
]
