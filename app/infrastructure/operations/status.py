"""Operation status enumeration.

Status codes used to classify the outcome of provider calls and channel
sends so callers can decide between retrying and giving up.
"""

from enum import Enum


class OperationStatus(Enum):
    """Status codes for operation results.

    Attributes:
        SUCCESS: Operation completed successfully
        TRANSIENT_ERROR: Retryable error (network, timeout, rate limit, 5xx)
        PERMANENT_ERROR: Non-retryable error (missing recipient data, bad request)
        UNAUTHORIZED: Provider rejected our credentials
        NOT_FOUND: Provider does not know the recipient (e.g. stale device token)
    """

    SUCCESS = "success"
    TRANSIENT_ERROR = "transient_error"
    PERMANENT_ERROR = "permanent_error"
    UNAUTHORIZED = "unauthorized"
    NOT_FOUND = "not_found"
