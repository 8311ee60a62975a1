"""Cloud provider adapters.

Each adapter handles:
- Event format transformation (cloud-specific -> LambdaRequest)
- Response format transformation (ResponseKind -> cloud-specific)
- Error description for failed invocations
"""

from .aws_lambda import (
    create_error_response,
    create_lambda_proxy_response,
    create_lambda_request,
)

__all__ = [
    "create_error_response",
    "create_lambda_proxy_response",
    "create_lambda_request",
]
