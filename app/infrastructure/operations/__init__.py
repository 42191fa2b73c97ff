"""Operation result types and status enums.

Standardized result types for provider calls and channel sends, plus
classifiers that turn library exceptions into results.
"""

from infrastructure.operations.classifiers import (
    classify_aws_error,
    classify_http_error,
)
from infrastructure.operations.result import OperationResult
from infrastructure.operations.status import OperationStatus

__all__ = [
    "OperationResult",
    "OperationStatus",
    "classify_http_error",
    "classify_aws_error",
]
