"""Error classifiers for provider exceptions.

Converts provider-specific exceptions (requests transport/HTTP errors, AWS
SDK errors) into OperationResult objects so callers never branch on
library exception types.

Usage:
    from infrastructure.operations.classifiers import classify_http_error

    try:
        response = requests.post(url, json=payload, timeout=10)
        response.raise_for_status()
    except requests.RequestException as exc:
        return classify_http_error(exc, provider="fcm")
"""

from typing import Optional

import requests
from botocore.exceptions import ClientError

from infrastructure.operations.result import OperationResult
from infrastructure.operations.status import OperationStatus


def _retry_after_seconds(response: requests.Response, default: int = 60) -> int:
    header_value = response.headers.get("Retry-After")
    if header_value and header_value.isdigit():
        return int(header_value)
    return default


def classify_http_error(exc: Exception, provider: str = "provider") -> OperationResult:
    """Classify a requests exception into an OperationResult.

    Status Code Mapping:
    - Timeout / ConnectionError: TRANSIENT_ERROR
    - 429: TRANSIENT_ERROR with retry_after from the Retry-After header
    - 401 / 403: UNAUTHORIZED
    - 404: NOT_FOUND (FCM answers 404 UNREGISTERED for stale tokens)
    - 5xx: TRANSIENT_ERROR
    - Other 4xx: PERMANENT_ERROR

    Args:
        exc: Exception raised by requests (or any other exception)
        provider: Provider name used in messages

    Returns:
        OperationResult describing the failure
    """
    if isinstance(exc, requests.Timeout):
        return OperationResult.transient_error(
            f"{provider} request timed out", error_code="TIMEOUT"
        )

    if isinstance(exc, requests.ConnectionError):
        return OperationResult.transient_error(
            f"{provider} connection error: {exc}", error_code="CONNECTION_ERROR"
        )

    response: Optional[requests.Response] = getattr(exc, "response", None)
    if not isinstance(exc, requests.HTTPError) or response is None:
        return OperationResult.permanent_error(
            f"{provider} error: {type(exc).__name__}: {exc}",
            error_code="UNKNOWN_ERROR",
        )

    status_code = response.status_code

    if status_code == 429:
        return OperationResult.error(
            OperationStatus.TRANSIENT_ERROR,
            f"{provider} rate limited",
            error_code="RATE_LIMITED",
            retry_after=_retry_after_seconds(response),
        )

    if status_code in (401, 403):
        return OperationResult.error(
            OperationStatus.UNAUTHORIZED,
            f"{provider} rejected credentials ({status_code})",
            error_code="UNAUTHORIZED",
        )

    if status_code == 404:
        return OperationResult.error(
            OperationStatus.NOT_FOUND,
            f"{provider} recipient not found",
            error_code="NOT_FOUND",
        )

    if 500 <= status_code < 600:
        return OperationResult.transient_error(
            f"{provider} server error ({status_code})",
            error_code="SERVER_ERROR",
        )

    return OperationResult.permanent_error(
        f"{provider} client error ({status_code}): {response.text[:200]}",
        error_code="CLIENT_ERROR",
    )


def classify_aws_error(exc: Exception) -> OperationResult:
    """Classify AWS SDK errors into OperationResult.

    Error Code Mapping:
    - ConditionalCheckFailedException: PERMANENT_ERROR (condition not met)
    - ProvisionedThroughputExceededException / ThrottlingException: TRANSIENT_ERROR
    - ResourceNotFoundException: NOT_FOUND (missing table)
    - ValidationException: PERMANENT_ERROR
    - Other: TRANSIENT_ERROR (AWS convention)

    Args:
        exc: Exception raised by boto3/botocore

    Returns:
        OperationResult with the AWS error code preserved in error_code
    """
    if not isinstance(exc, ClientError):
        return OperationResult.transient_error(
            f"AWS connection error: {type(exc).__name__}: {exc}",
            error_code="CONNECTION_ERROR",
        )

    error_code = exc.response.get("Error", {}).get("Code", "Unknown")

    if error_code == "ConditionalCheckFailedException":
        return OperationResult.permanent_error(
            "Conditional check failed", error_code=error_code
        )

    if error_code in (
        "ThrottlingException",
        "ProvisionedThroughputExceededException",
        "RequestLimitExceeded",
    ):
        return OperationResult.error(
            OperationStatus.TRANSIENT_ERROR,
            "AWS API throttled",
            error_code=error_code,
            retry_after=60,
        )

    if error_code == "ResourceNotFoundException":
        return OperationResult.error(
            OperationStatus.NOT_FOUND,
            "DynamoDB table not found",
            error_code=error_code,
        )

    if error_code == "ValidationException":
        return OperationResult.permanent_error(
            f"AWS validation error: {exc}", error_code=error_code
        )

    return OperationResult.transient_error(
        f"AWS error: {error_code}", error_code=error_code
    )
