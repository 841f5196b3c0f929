"""Operation status enumeration.

Status codes for operation results, used to classify the outcome of provider
calls and storage operations so the delivery core can decide between
retrying, failing permanently, or invalidating an endpoint.
"""

from enum import Enum


class OperationStatus(Enum):
    """Status codes for operation results.

    Attributes:
        SUCCESS: Operation completed successfully
        TRANSIENT_ERROR: Retryable error (timeout, rate limit, provider 5xx)
        PERMANENT_ERROR: Non-retryable error (invalid endpoint, malformed recipient)
        UNAUTHORIZED: Provider rejected our credentials
        NOT_FOUND: Resource or endpoint not found
    """

    SUCCESS = "success"
    TRANSIENT_ERROR = "transient_error"
    PERMANENT_ERROR = "permanent_error"
    UNAUTHORIZED = "unauthorized"
    NOT_FOUND = "not_found"
