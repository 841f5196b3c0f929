"""Fixtures for idempotency cache tests."""

import json
import time

import pytest
from infrastructure.idempotency.dynamodb import DynamoDBCache
from infrastructure.operations.result import OperationResult, OperationStatus


@pytest.fixture
def sample_response():
    """Sample response data for caching."""
    return {"notification_id": "7d0c6d2e-5a1f-4f0b-9c1e-0f3a8b6d2c11"}


@pytest.fixture
def cached_item_result(sample_response):
    """get_item result holding an unexpired cache entry."""
    return OperationResult(
        status=OperationStatus.SUCCESS,
        message="ok",
        data={
            "Item": {
                "idempotency_key": {"S": "notifications:submit:abc"},
                "response_json": {"S": json.dumps(sample_response)},
                "ttl": {"N": str(int(time.time()) + 3600)},
            }
        },
    )


@pytest.fixture
def operation_result_failure():
    """Create a failed OperationResult."""
    return OperationResult(
        status=OperationStatus.TRANSIENT_ERROR,
        message="Operation failed",
        error_code="AWS_CLIENT_ERROR",
    )


@pytest.fixture
def dynamodb_cache():
    """DynamoDB cache with a one hour TTL (AWS calls are patched per test)."""
    return DynamoDBCache(table_name="test_idempotency", ttl_seconds=3600)
