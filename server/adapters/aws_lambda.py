"""AWS Lambda adapter for the service container.

Transforms API Gateway proxy events into the sanitised ``LambdaRequest``
handed to handler functions, and handler results back into the proxy
response format expected by API Gateway.
"""

import base64
import binascii
import json
import logging
import traceback
from typing import Any, Dict, Mapping, Optional, Protocol

from pydantic import BaseModel

from core.errors import NameAwareError
from core.interfaces import LambdaRequest, ResponseHeader, ResponseKind, ResponseStatusCode

logger = logging.getLogger(__name__)

JSON_CONTENT_TYPE = "application/json"
INTERNAL_ERROR_TYPE = "internal.error"


class LambdaContext(Protocol):
    """Protocol for AWS Lambda context object.

    This defines the expected interface for Lambda context objects,
    which provide runtime information about the Lambda execution environment.
    """

    aws_request_id: str
    function_name: Optional[str]
    memory_limit_in_mb: Optional[int]


def _header(headers: Mapping[str, Any], name: str) -> Any:
    """Look up a header by name, ignoring case."""
    name = name.lower()
    for key, value in headers.items():
        if key.lower() == name:
            return value
    return None


def _is_json_content_type(content_type: Any) -> bool:
    if not isinstance(content_type, str) or not content_type:
        return False
    media_type = content_type.split(";", 1)[0].strip().lower()
    return media_type == JSON_CONTENT_TYPE


def _parse_body(event: Mapping[str, Any], headers: Mapping[str, Any]) -> Any:
    """Parse the event body as JSON when the request declares it.

    Invalid payloads are not an error: the body is simply left empty.
    """
    if not _is_json_content_type(_header(headers, ResponseHeader.CONTENT_TYPE.value)):
        return None

    raw = event.get("body")
    if not isinstance(raw, str) or raw == "":
        return None

    if event.get("isBase64Encoded", False):
        try:
            raw = base64.b64decode(raw, validate=True).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError) as e:
            logger.debug(f"Ignoring body with invalid base64 encoding: {e}")
            return None

    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        logger.debug(f"Ignoring invalid JSON body: {e}")
        return None


def create_lambda_request(event: Mapping[str, Any]) -> LambdaRequest:
    """Create a sanitised request by transforming the Lambda proxy event.

    Supports API Gateway REST (v1) proxy events, falling back to the HTTP API
    (v2) fields for the method and path.

    Args:
        event: Lambda proxy event

    Returns:
        Normalized request
    """
    request_context = event.get("requestContext") or {}
    headers = event.get("headers") or {}

    http_method = event.get("httpMethod") or (request_context.get("http") or {}).get(
        "method", ""
    )
    path = event.get("path") or event.get("rawPath") or "/"

    return LambdaRequest(
        http_method=http_method,
        path=path,
        path_parameters=event.get("pathParameters") or {},
        query_string_parameters=event.get("queryStringParameters") or {},
        headers=headers,
        body=_parse_body(event, headers),
        is_base64_encoded=event.get("isBase64Encoded", False),
        multi_value_headers=event.get("multiValueHeaders") or {},
        multi_value_query_string_parameters=event.get("multiValueQueryStringParameters") or {},
        request_context=request_context,
        resource=event.get("resource"),
        stage_variables=event.get("stageVariables") or {},
    )


def _json_default(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def create_lambda_proxy_response(response: ResponseKind) -> Dict[str, Any]:
    """Create a Lambda proxy response by transforming a handler response.

    The body must be a string, so the payload is JSON encoded.

    Args:
        response: Handler response

    Returns:
        Proxy response with statusCode, headers and body
    """
    body = json.dumps(
        response.data,
        separators=(",", ":"),
        ensure_ascii=False,
        default=_json_default,
    )

    return {
        "statusCode": int(response.status),
        "headers": {
            ResponseHeader.CONTENT_TYPE.value: JSON_CONTENT_TYPE,
            ResponseHeader.CONTENT_LENGTH.value: str(len(body.encode("utf-8"))),
            ResponseHeader.ACCESS_CONTROL_ALLOW_ORIGIN.value: "*",
            ResponseHeader.ACCESS_CONTROL_ALLOW_HEADERS.value: "*",
            ResponseHeader.ACCESS_CONTROL_ALLOW_METHODS.value: "*",
            ResponseHeader.ACCESS_CONTROL_ALLOW_CREDENTIALS.value: "*",
        },
        "body": body,
    }


def create_error_response(error: BaseException) -> ResponseKind:
    """Describe a caught error as an internal error response.

    Args:
        error: The caught exception

    Returns:
        Response with status 500 and the error name, message and stack
    """
    if isinstance(error, NameAwareError):
        name = error.name
    else:
        name = type(error).__name__

    stack = []
    if error.__traceback__ is not None:
        stack = "".join(
            traceback.format_exception(type(error), error, error.__traceback__)
        ).splitlines()

    return ResponseKind(
        status=ResponseStatusCode.INTERNAL_SERVER_ERROR,
        type=INTERNAL_ERROR_TYPE,
        data={
            "name": name,
            "message": str(error),
            "stack": stack,
        },
    )
