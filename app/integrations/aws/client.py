"""
AWS API client helpers.

Centralized error handling, throttling retries and OperationResult responses
for boto3 calls made by the DynamoDB storage backends.

Usage:
    result = execute_aws_api_call(
        service_name="dynamodb",
        method="get_item",
        TableName="notifications",
        Key={"notification_id": {"S": "..."}},
    )
    if result.is_success:
        item = result.data.get("Item")
"""

import time
from functools import lru_cache
from typing import Any, Callable, List, Optional

import boto3  # type: ignore
from botocore.client import BaseClient  # type: ignore
from botocore.exceptions import BotoCoreError, ClientError  # type: ignore

from infrastructure.logging import get_module_logger
from infrastructure.operations import OperationResult, classify_aws_error

logger = get_module_logger()

DEFAULT_MAX_RETRIES = 3
DEFAULT_BACKOFF_FACTOR = 0.5


def _aws_settings():
    # Import here to avoid circular dependency with infrastructure.services
    from infrastructure.services.providers import get_settings

    return get_settings().aws


def _error_code(error: Exception) -> Optional[str]:
    if isinstance(error, ClientError):
        return error.response.get("Error", {}).get("Code")
    return None


def _should_retry(error: Exception, attempt: int, max_attempts: int) -> bool:
    throttling_errs = _aws_settings().THROTTLING_ERRS
    return _error_code(error) in throttling_errs and attempt < max_attempts


def _calculate_retry_delay(attempt: int) -> float:
    return DEFAULT_BACKOFF_FACTOR * (2**attempt)


@lru_cache
def get_aws_client(service_name: str) -> BaseClient:
    """Create (once per service) a boto3 client for the configured region.

    boto3 low-level clients are thread-safe, so one client is shared by
    every dispatch worker.
    """
    aws = _aws_settings()
    session = boto3.Session(region_name=aws.AWS_REGION)
    client_config: dict = {"region_name": aws.AWS_REGION}
    if aws.ENDPOINT_URL:
        client_config["endpoint_url"] = aws.ENDPOINT_URL
    return session.client(service_name, **client_config)


def _paginate_all_results(
    client: BaseClient, method: str, keys: Optional[List[str]] = None, **kwargs
) -> List[dict]:
    paginator = client.get_paginator(method)
    results: List[dict] = []
    for page in paginator.paginate(**kwargs):
        for key in keys or []:
            if key in page:
                results.extend(page[key])
    return results


def execute_api_call(
    func_name: str,
    api_call: Callable[[], Any],
    max_retries: Optional[int] = None,
) -> OperationResult:
    """Run api_call, retrying throttling errors with exponential backoff.

    Args:
        func_name: Name used in logs (service_method).
        api_call: Zero-argument callable performing the boto3 call.
        max_retries: Override default max retries.

    Returns:
        OperationResult: SUCCESS with the raw response as data, or the
        classified error.
    """
    max_attempts = DEFAULT_MAX_RETRIES if max_retries is None else max_retries

    for attempt in range(max_attempts + 1):
        try:
            result = api_call()
            if attempt > 0:
                logger.info("aws_api_retry_success", function=func_name, attempt=attempt + 1)
            return OperationResult.success(data=result)

        except (BotoCoreError, ClientError) as e:
            if _should_retry(e, attempt, max_attempts):
                delay = _calculate_retry_delay(attempt)
                logger.warning(
                    "aws_api_retrying",
                    function=func_name,
                    attempt=attempt + 1,
                    error=str(e),
                    delay=delay,
                )
                time.sleep(delay)
                continue

            classified = classify_aws_error(e)
            # Failed conditions are expected outcomes of conditional writes
            log = logger.debug if classified.error_code == "CONDITION_FAILED" else logger.error
            log(
                "aws_api_error_final",
                function=func_name,
                error=str(e),
                error_code=_error_code(e),
            )
            return classified

    return OperationResult.transient_error(
        f"{func_name} exhausted retries", error_code="RATE_LIMITED"
    )


def execute_aws_api_call(
    service_name: str,
    method: str,
    keys: Optional[List[str]] = None,
    max_retries: Optional[int] = None,
    force_paginate: bool = False,
    **kwargs,
) -> OperationResult:
    """Call method on the service client with centralized error handling.

    Args:
        service_name: The AWS service name (e.g. "dynamodb").
        method: The client method to call.
        keys: Response keys to collect when paginating.
        max_retries: Override default max retries.
        force_paginate: Paginate and return the collected list.
        **kwargs: Arguments for the API call.

    Returns:
        OperationResult
    """

    def api_call():
        client = get_aws_client(service_name)
        if force_paginate and client.can_paginate(method):
            return _paginate_all_results(client, method, keys, **kwargs)
        return getattr(client, method)(**kwargs)

    return execute_api_call(
        f"{service_name}_{method}",
        api_call,
        max_retries=max_retries,
    )
