"""Unit tests for error classifiers.

Tests cover:
- requests transport and HTTP error classification
- AWS SDK error classification
- Retry-After header extraction
"""

from unittest.mock import Mock

import pytest
import requests
from botocore.exceptions import ClientError, EndpointConnectionError

from infrastructure.operations.classifiers import (
    classify_aws_error,
    classify_http_error,
)
from infrastructure.operations.status import OperationStatus


def http_error(status_code, headers=None, text=""):
    response = Mock(spec=requests.Response)
    response.status_code = status_code
    response.headers = headers or {}
    response.text = text
    return requests.HTTPError(f"{status_code} error", response=response)


def aws_error(code):
    return ClientError({"Error": {"Code": code, "Message": code}}, "UpdateItem")


@pytest.mark.unit
class TestClassifyHttpError:
    """Tests for classify_http_error() function."""

    def test_429_with_retry_after(self):
        result = classify_http_error(http_error(429, {"Retry-After": "120"}), "fcm")

        assert result.status == OperationStatus.TRANSIENT_ERROR
        assert result.error_code == "RATE_LIMITED"
        assert result.retry_after == 120
        assert "rate limited" in result.message

    def test_429_without_retry_after(self):
        result = classify_http_error(http_error(429))

        assert result.retry_after == 60

    def test_429_with_malformed_retry_after(self):
        result = classify_http_error(
            http_error(429, {"Retry-After": "Wed, 21 Oct 2026 07:28:00 GMT"})
        )

        assert result.retry_after == 60

    @pytest.mark.parametrize("status_code", [401, 403])
    def test_unauthorized(self, status_code):
        result = classify_http_error(http_error(status_code), "gc_notify")

        assert result.status == OperationStatus.UNAUTHORIZED
        assert result.error_code == "UNAUTHORIZED"

    def test_404_not_found(self):
        result = classify_http_error(http_error(404), "fcm")

        assert result.status == OperationStatus.NOT_FOUND
        assert result.error_code == "NOT_FOUND"

    @pytest.mark.parametrize("status_code", [500, 502, 503, 504])
    def test_server_errors_are_transient(self, status_code):
        result = classify_http_error(http_error(status_code))

        assert result.status == OperationStatus.TRANSIENT_ERROR
        assert result.error_code == "SERVER_ERROR"
        assert result.is_retryable

    @pytest.mark.parametrize("status_code", [400, 409, 422])
    def test_client_errors_are_permanent(self, status_code):
        result = classify_http_error(http_error(status_code, text="bad phone number"))

        assert result.status == OperationStatus.PERMANENT_ERROR
        assert result.error_code == "CLIENT_ERROR"
        assert "bad phone number" in result.message

    def test_timeout(self):
        result = classify_http_error(requests.Timeout("slow"), "fcm")

        assert result.status == OperationStatus.TRANSIENT_ERROR
        assert result.error_code == "TIMEOUT"

    def test_connection_error(self):
        result = classify_http_error(requests.ConnectionError("refused"))

        assert result.status == OperationStatus.TRANSIENT_ERROR
        assert result.error_code == "CONNECTION_ERROR"

    def test_http_error_without_response(self):
        result = classify_http_error(requests.HTTPError("no response"))

        assert result.status == OperationStatus.PERMANENT_ERROR
        assert result.error_code == "UNKNOWN_ERROR"

    def test_generic_exception(self):
        result = classify_http_error(ValueError("bad json"), "fcm")

        assert result.status == OperationStatus.PERMANENT_ERROR
        assert "ValueError" in result.message


@pytest.mark.unit
class TestClassifyAwsError:
    """Tests for classify_aws_error() function."""

    def test_conditional_check_failed(self):
        result = classify_aws_error(aws_error("ConditionalCheckFailedException"))

        assert result.status == OperationStatus.PERMANENT_ERROR
        assert result.error_code == "ConditionalCheckFailedException"

    @pytest.mark.parametrize(
        "code",
        [
            "ThrottlingException",
            "ProvisionedThroughputExceededException",
            "RequestLimitExceeded",
        ],
    )
    def test_throttling(self, code):
        result = classify_aws_error(aws_error(code))

        assert result.status == OperationStatus.TRANSIENT_ERROR
        assert result.retry_after == 60
        assert result.error_code == code

    def test_resource_not_found(self):
        result = classify_aws_error(aws_error("ResourceNotFoundException"))

        assert result.status == OperationStatus.NOT_FOUND

    def test_validation_exception(self):
        result = classify_aws_error(aws_error("ValidationException"))

        assert result.status == OperationStatus.PERMANENT_ERROR

    def test_unknown_client_error_is_transient(self):
        result = classify_aws_error(aws_error("InternalServerError"))

        assert result.status == OperationStatus.TRANSIENT_ERROR
        assert result.error_code == "InternalServerError"

    def test_missing_error_code(self):
        result = classify_aws_error(ClientError({}, "GetItem"))

        assert result.error_code == "Unknown"

    def test_botocore_error(self):
        result = classify_aws_error(EndpointConnectionError(endpoint_url="http://x"))

        assert result.status == OperationStatus.TRANSIENT_ERROR
        assert result.error_code == "CONNECTION_ERROR"
