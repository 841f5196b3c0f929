"""Operation result types and status enums.

Standardized result types for provider and storage operations, including
status enums, result dataclasses, and error classifiers.
"""

from infrastructure.operations.classifiers import (
    classify_aws_error,
    classify_http_response,
    classify_request_exception,
    is_invalid_endpoint,
)
from infrastructure.operations.result import OperationResult
from infrastructure.operations.status import OperationStatus

__all__ = [
    "OperationResult",
    "OperationStatus",
    "classify_http_response",
    "classify_request_exception",
    "classify_aws_error",
    "is_invalid_endpoint",
]
