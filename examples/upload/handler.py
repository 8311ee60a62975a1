"""Example Lambda handler setup.

It is recommended that you split this into multiple modules as appropriate
for your project, so the environment and container can be shared by several
Lambda functions.

Requires ``boto3`` (``pip install .[examples]``).
"""

import json
import logging
from typing import Any

from core.container import Container
from core.environment import Environment
from core.interfaces import LambdaRequest, ResponseKind, ResponseStatusCode
from core.logging_utils import configure_json_logging
from core.validators import get_logging_config
from server.lambda_wrapper import LambdaWrapper

# environment.py
environment = Environment.from_process()

configure_json_logging(**get_logging_config(environment))
logger = logging.getLogger(__name__)


# container.py
async def _create_s3_client(container: Container) -> Any:
    import boto3

    return boto3.client("s3")


container = Container(
    environment,
    {
        "aws.s3": _create_s3_client,
    },
)

# The wrapper handles injection of the container and request/response
# sanitation for every function below.
wrapper = LambdaWrapper(container)


@wrapper.on_error
def report_error(error: BaseException, event: Any, context: Any) -> None:
    logger.warning(
        "Reporting failed invocation",
        extra={"error_type": type(error).__name__},
    )


# handlers/get_upload_url.py
async def get_upload_url(
    container: Container, request: LambdaRequest, context: Any
) -> ResponseKind:
    """Create a presigned upload URL.

    Exported so it can be tested in isolation; Lambda invokes ``get_action``.
    """
    s3 = await container.service("aws.s3")

    result = s3.generate_presigned_post(
        Bucket=container.env("MY_S3_BUCKET"),
        Key=request.query_string_parameters.get("key", "upload"),
    )

    return ResponseKind(
        status=ResponseStatusCode.OK,
        data={"upload_url": result["url"], "fields": result["fields"]},
    )


get_action = wrapper.rest_api_proxy(get_upload_url)


# handlers/put_document.py
async def put_document(
    container: Container, request: LambdaRequest, context: Any
) -> ResponseKind:
    """Store the request body's name under the path ``id``."""
    s3 = await container.service("aws.s3")

    s3.put_object(
        Bucket=container.env("MY_S3_BUCKET"),
        Key=f"{request.path_parameters['id']}.json",
        Body=json.dumps({"name": request.body["name"]}),
    )

    return ResponseKind(status=ResponseStatusCode.CREATED, data={})


put_action = wrapper.rest_api_proxy(put_document)


# handlers/on_object_created.py
async def on_object_created(container: Container, event: dict, context: Any) -> dict:
    """Handle S3 notifications; errors propagate to Lambda for retry."""
    s3 = await container.service("aws.s3")

    keys = [record["s3"]["object"]["key"] for record in event.get("Records", [])]
    for key in keys:
        s3.head_object(Bucket=container.env("MY_S3_BUCKET"), Key=key)

    return {"processed": len(keys)}


object_created_action = wrapper.handle(on_object_created)
