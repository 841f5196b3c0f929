"""Error classifiers for provider responses and exceptions.

Converts provider-specific failures (channel gateway HTTP responses,
`requests` exceptions, AWS SDK errors) into standardized OperationResult
objects. Channels use these to decide between retrying and invalidating an
endpoint, so the mapping is centralized here.

Key Functions:
- classify_http_response(): Gateway HTTP response → OperationResult
- classify_request_exception(): requests exception → OperationResult
- classify_aws_error(): AWS SDK errors → OperationResult

Usage:
    from infrastructure.operations.classifiers import classify_http_response

    response = requests.post(url, json=payload, timeout=10)
    result = classify_http_response(response, provider="push")
    if result.is_success:
        message_id = result.data.get("id")
"""

from typing import Any, Optional

import requests
from botocore.exceptions import ClientError

from infrastructure.operations.result import OperationResult
from infrastructure.operations.status import OperationStatus

# Status codes meaning the endpoint itself is gone or invalid.
INVALID_ENDPOINT_STATUS_CODES = frozenset({404, 410})

# Client errors that will not succeed on retry.
PERMANENT_STATUS_CODES = frozenset({400, 401, 403, 404, 410, 413, 422})


def _response_body(response: requests.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return {"raw": response.text}


def _retry_after(response: requests.Response, default: int = 60) -> int:
    header_value = response.headers.get("Retry-After")
    if header_value:
        try:
            return int(header_value)
        except (ValueError, TypeError):
            pass
    return default


def classify_http_response(
    response: requests.Response, provider: str = "provider"
) -> OperationResult:
    """Classify a channel gateway HTTP response into OperationResult.

    Status Code Mapping:
    - 2xx: SUCCESS with parsed JSON body in data
    - 429: Rate limiting → TRANSIENT_ERROR with retry_after
    - 401/403: Credentials rejected → UNAUTHORIZED (not retried)
    - 404/410: Endpoint gone → NOT_FOUND with error_code INVALID_ENDPOINT
    - 400/413/422: Rejected payload or recipient → PERMANENT_ERROR
    - 5xx: Provider error → TRANSIENT_ERROR
    - Other: treated as TRANSIENT_ERROR

    Args:
        response: Response returned by the provider client
        provider: Provider name used in messages

    Returns:
        OperationResult describing the outcome
    """
    status_code = response.status_code
    body = _response_body(response)

    if 200 <= status_code < 300:
        return OperationResult.success(
            data=body if isinstance(body, dict) else {"body": body},
            message=f"{provider} accepted message",
        )

    if status_code == 429:
        return OperationResult.error(
            OperationStatus.TRANSIENT_ERROR,
            f"{provider} rate limited",
            error_code="RATE_LIMITED",
            retry_after=_retry_after(response),
            data=body,
        )

    if status_code in (401, 403):
        return OperationResult.error(
            OperationStatus.UNAUTHORIZED,
            f"{provider} rejected credentials ({status_code})",
            error_code="UNAUTHORIZED",
            data=body,
        )

    if status_code in INVALID_ENDPOINT_STATUS_CODES:
        return OperationResult.error(
            OperationStatus.NOT_FOUND,
            f"{provider} endpoint no longer valid ({status_code})",
            error_code="INVALID_ENDPOINT",
            data=body,
        )

    if status_code in PERMANENT_STATUS_CODES:
        return OperationResult.permanent_error(
            f"{provider} rejected request ({status_code})",
            error_code=f"HTTP_{status_code}",
            data=body,
        )

    if 500 <= status_code < 600:
        return OperationResult.transient_error(
            f"{provider} server error ({status_code})",
            error_code="SERVER_ERROR",
            data=body,
        )

    return OperationResult.transient_error(
        f"{provider} unexpected response ({status_code})",
        error_code=f"HTTP_{status_code}",
        data=body,
    )


def classify_request_exception(
    exc: Exception, provider: str = "provider"
) -> OperationResult:
    """Classify an exception raised while calling a provider.

    Timeouts and connection errors are transient. Anything else raised by
    `requests` is treated as transient as well, since the request may not
    have reached the provider. Non-requests exceptions (bugs, bad payload
    serialization) are permanent.

    Args:
        exc: Exception raised during the provider call
        provider: Provider name used in messages

    Returns:
        OperationResult with TRANSIENT_ERROR or PERMANENT_ERROR status
    """
    if isinstance(exc, requests.Timeout):
        return OperationResult.transient_error(
            f"{provider} request timed out",
            error_code="TIMEOUT",
        )
    if isinstance(exc, requests.ConnectionError):
        return OperationResult.transient_error(
            f"{provider} connection error: {str(exc)}",
            error_code="CONNECTION_ERROR",
        )
    if isinstance(exc, requests.RequestException):
        return OperationResult.transient_error(
            f"{provider} request error: {type(exc).__name__}: {str(exc)}",
            error_code="REQUEST_ERROR",
        )
    return OperationResult.permanent_error(
        f"{provider} call failed: {type(exc).__name__}: {str(exc)}",
        error_code="UNEXPECTED_ERROR",
    )


def classify_aws_error(exc: Exception) -> OperationResult:
    """Classify AWS SDK errors into OperationResult.

    Error Code Mapping:
    - ThrottlingException / ProvisionedThroughputExceededException → TRANSIENT_ERROR
    - ConditionalCheckFailedException → PERMANENT_ERROR (CONDITION_FAILED)
    - AccessDeniedException → PERMANENT_ERROR
    - ResourceNotFoundException → NOT_FOUND
    - ValidationException → PERMANENT_ERROR
    - Other: TRANSIENT_ERROR (AWS convention)

    Args:
        exc: Exception raised by boto3/botocore

    Returns:
        OperationResult with appropriate status and error_code
    """
    if not isinstance(exc, ClientError):
        return OperationResult.transient_error(
            f"AWS connection error: {type(exc).__name__}: {str(exc)}",
            error_code="CONNECTION_ERROR",
        )

    error_code = "Unknown"
    if hasattr(exc, "response") and exc.response:
        error_info = exc.response.get("Error", {})
        error_code = error_info.get("Code", "Unknown")

    if error_code in ("ThrottlingException", "ProvisionedThroughputExceededException"):
        return OperationResult.error(
            OperationStatus.TRANSIENT_ERROR,
            "AWS API throttled",
            error_code="RATE_LIMITED",
            retry_after=5,
        )

    if error_code == "ConditionalCheckFailedException":
        return OperationResult.permanent_error(
            "DynamoDB condition check failed",
            error_code="CONDITION_FAILED",
        )

    if error_code == "AccessDeniedException":
        return OperationResult.permanent_error(
            "AWS API access denied",
            error_code="FORBIDDEN",
        )

    if error_code == "ResourceNotFoundException":
        return OperationResult.error(
            OperationStatus.NOT_FOUND,
            "AWS resource not found",
            error_code="NOT_FOUND",
        )

    if error_code in ("ValidationException", "InvalidParameterException"):
        return OperationResult.permanent_error(
            f"AWS validation error: {error_code}",
            error_code="INVALID_REQUEST",
        )

    return OperationResult.transient_error(
        f"AWS client error: {error_code}",
        error_code="AWS_CLIENT_ERROR",
    )


def is_invalid_endpoint(result: Optional[OperationResult]) -> bool:
    """True if a provider result means the recipient endpoint is dead."""
    if result is None:
        return False
    return result.status == OperationStatus.NOT_FOUND or (
        result.error_code in ("INVALID_ENDPOINT", "INVALID_RECIPIENT")
    )
