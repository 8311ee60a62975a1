"""Lambda handler wrapper.

Turns handler functions written against the container into functions with
the signature the AWS Lambda runtime invokes, injecting the container and
handling request/response sanitation.
"""

import asyncio
import functools
import inspect
import logging
import time
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, Union

from core.interfaces import ContainerInterface, LambdaRequestHandler, ResponseKind
from core.logging_utils import format_request_log, format_response_log
from server.adapters.aws_lambda import (
    LambdaContext,
    create_error_response,
    create_lambda_proxy_response,
    create_lambda_request,
)

logger = logging.getLogger(__name__)

# Called with (error, event, context) when an invocation fails
ErrorHandler = Callable[[BaseException, Any, Any], Union[Awaitable[None], None]]

# A handler for non-HTTP events, given (container, event, context)
ContainerLambdaHandler = Callable[[Any, Any, Any], Any]


async def _resolve(result: Any) -> Any:
    if inspect.isawaitable(result):
        return await result
    return result


def _request_id(event: Any, context: Any) -> str:
    """Get the request ID from the Lambda context, else from the event."""
    request_id = getattr(context, "aws_request_id", None) if context else None
    if request_id:
        return request_id

    if isinstance(event, Mapping):
        request_context = event.get("requestContext") or {}
        if request_context.get("requestId"):
            return request_context["requestId"]

    return "unknown"


class LambdaWrapper:
    """A Lambda proxy wrapper to enhance handler functions.

    The wrapper holds the container shared by every invocation in the
    execution environment, so services constructed on a cold start are
    reused on warm starts.
    """

    def __init__(
        self,
        container: ContainerInterface,
        error_handler: Optional[ErrorHandler] = None,
    ) -> None:
        """Initialize the wrapper.

        Args:
            container: Container injected into every handler call
            error_handler: Optional callback notified of failed invocations
        """
        self.container = container
        self.error_handler = error_handler

    def on_error(self, error_handler: ErrorHandler) -> ErrorHandler:
        """Register the error handler. Usable as a decorator."""
        self.error_handler = error_handler
        return error_handler

    async def _notify_error(self, error: BaseException, event: Any, context: Any) -> None:
        """Notify the registered error handler.

        Failures of the error handler itself are logged and never change
        what the invocation returns or raises.
        """
        if self.error_handler is None:
            return

        try:
            await _resolve(self.error_handler(error, event, context))
        except Exception as e:
            logger.error(
                f"Error handler failed: {e}",
                extra={"error_type": type(e).__name__},
                exc_info=True,
            )

    async def process_proxy_event(
        self,
        handler: LambdaRequestHandler,
        event: Mapping[str, Any],
        context: Optional[LambdaContext],
    ) -> Dict[str, Any]:
        """Process one API Gateway proxy event.

        Args:
            handler: Request handler given (container, request, context)
            event: Lambda proxy event
            context: Lambda context object

        Returns:
            Proxy response with statusCode, headers and body
        """
        start_time = time.perf_counter()
        request_id = _request_id(event, context)

        logger.info(
            "Lambda invocation started",
            extra={
                "request_id": request_id,
                "function_name": getattr(context, "function_name", None),
            },
        )

        try:
            request = create_lambda_request(event)
            logger.info(
                "Incoming HTTP request",
                extra=format_request_log(request_id, request, context),
            )

            result = await _resolve(handler(self.container, request, context))
            response = create_lambda_proxy_response(ResponseKind.model_validate(result))

        except Exception as e:
            await self._notify_error(e, event, context)

            response = create_lambda_proxy_response(create_error_response(e))
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.error(
                f"Error processing request {request_id}: {e}",
                extra={
                    **format_response_log(request_id, response, duration_ms, success=False),
                    "error_type": type(e).__name__,
                },
                exc_info=True,
            )
            return response

        duration_ms = (time.perf_counter() - start_time) * 1000
        logger.info(
            "HTTP request processed successfully",
            extra=format_response_log(request_id, response, duration_ms),
        )

        return response

    async def process_event(
        self,
        handler: ContainerLambdaHandler,
        event: Any,
        context: Optional[LambdaContext],
    ) -> Any:
        """Process one raw (non-HTTP) event.

        Args:
            handler: Handler given (container, event, context)
            event: Lambda event, passed through unchanged
            context: Lambda context object

        Returns:
            Whatever the handler returns

        Raises:
            Exception: Whatever the handler raises, after the error handler
                has been notified
        """
        request_id = _request_id(event, context)
        logger.info("Lambda invocation started", extra={"request_id": request_id})

        try:
            return await _resolve(handler(self.container, event, context))
        except Exception as e:
            logger.error(
                f"Error processing event {request_id}: {e}",
                extra={"request_id": request_id, "error_type": type(e).__name__},
                exc_info=True,
            )
            await self._notify_error(e, event, context)
            raise

    def rest_api_proxy(self, handler: LambdaRequestHandler) -> Callable[[Any, Any], Dict[str, Any]]:
        """Create an API Gateway proxy handler from a request handler.

        The container is injected and the request/response are sanitised.
        Any error becomes a 500 response.

        Args:
            handler: Request handler given (container, request, context)

        Returns:
            Function to use as the Lambda handler
        """

        @functools.wraps(handler)
        def lambda_handler(event: Dict[str, Any], context: Optional[LambdaContext]) -> Dict[str, Any]:
            return asyncio.run(self.process_proxy_event(handler, event, context))

        return lambda_handler

    def handle(self, handler: ContainerLambdaHandler) -> Callable[[Any, Any], Any]:
        """Wrap a handler for non-HTTP events, injecting the container.

        Errors are propagated to the Lambda runtime.

        Args:
            handler: Handler given (container, event, context)

        Returns:
            Function to use as the Lambda handler
        """

        @functools.wraps(handler)
        def lambda_handler(event: Any, context: Optional[LambdaContext]) -> Any:
            return asyncio.run(self.process_event(handler, event, context))

        return lambda_handler
