"""Test AWS Lambda handler."""

from typing import Any
from unittest.mock import MagicMock, patch

import pytest

from banana_api.lambda_handler import lambda_handler


@pytest.fixture
def lambda_context() -> MagicMock:
    """Mock Lambda context."""
    context = MagicMock()
    context.request_id = "test-request-id"
    context.function_name = "banana-api"
    context.memory_limit_in_mb = 128
    return context


@pytest.fixture
def api_gateway_event() -> dict[str, Any]:
    """Mock API Gateway event."""
    return {
        "version": "2.0",
        "routeKey": "GET /weatherforecast",
        "rawPath": "/weatherforecast",
        "rawQueryString": "",
        "headers": {"x-request-id": "test-request-123"},
        "requestContext": {
            "http": {
                "method": "GET",
                "path": "/weatherforecast",
                "protocol": "HTTP/1.1",
                "sourceIp": "192.168.1.1",
                "userAgent": "test-agent",
            },
            "requestId": "request-id",
            "routeKey": "GET /weatherforecast",
            "stage": "$default",
        },
        "isBase64Encoded": False,
    }


def test_lambda_handler_delegates(api_gateway_event, lambda_context) -> None:
    """The Mangum adapter receives the event and its response is returned."""
    expected = {"statusCode": 200, "headers": {}, "body": "[]"}

    with patch("banana_api.lambda_handler.handler", return_value=expected) as mock_handler:
        response = lambda_handler(api_gateway_event, lambda_context)

    assert response is expected
    mock_handler.assert_called_once_with(api_gateway_event, lambda_context)


def test_lambda_handler_error_status(api_gateway_event, lambda_context) -> None:
    api_gateway_event["rawPath"] = "/api/error/test"

    with patch(
        "banana_api.lambda_handler.handler",
        return_value={"statusCode": 500, "body": "Internal Server Error"},
    ):
        response = lambda_handler(api_gateway_event, lambda_context)

    assert response["statusCode"] == 500
