"""AWS Lambda handler for the Banana API."""

from typing import Any

from loguru import logger
from mangum import Mangum

from .api import app

# Lifespan builds the mediator and health registry, so it must run
handler = Mangum(app, lifespan="auto")


def lambda_handler(event: dict[str, Any], context: Any) -> dict[str, Any]:
    """AWS Lambda entry point.

    Args:
        event: API Gateway event describing the request.
        context: Lambda context object with runtime information.

    Returns:
        Response dictionary with statusCode, headers, and body.
    """
    logger.debug("Lambda event for path {}", event.get("rawPath") or event.get("path"))

    response = handler(event, context)

    logger.info("Lambda response status: {}", response.get("statusCode"))

    return response  # type: ignore[no-any-return]
