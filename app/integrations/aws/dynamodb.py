"""AWS DynamoDB helpers.

Thin wrappers over execute_aws_api_call used by the DynamoDB ledger, queue,
directory stores and idempotency cache. All return OperationResult; data is
the raw boto3 response (get/put/update/delete) or the list of items
(query/scan).

Usage:
    result = get_item(
        table_name="notifications",
        Key={"notification_id": {"S": "..."}},
    )
    if result.is_success:
        item = result.data.get("Item")
"""

from typing import Any, Dict

from integrations.aws.client import execute_aws_api_call
from infrastructure.operations import OperationResult


def get_item(table_name: str, Key: Dict[str, Any], **kwargs) -> OperationResult:
    """Get an item from a DynamoDB table."""
    return execute_aws_api_call(
        service_name="dynamodb",
        method="get_item",
        TableName=table_name,
        Key=Key,
        **kwargs,
    )


def put_item(table_name: str, Item: Dict[str, Any], **kwargs) -> OperationResult:
    """Put an item into a DynamoDB table.

    Pass ConditionExpression for insert-only writes; a failed condition is
    returned as PERMANENT_ERROR with error_code CONDITION_FAILED.
    """
    return execute_aws_api_call(
        service_name="dynamodb",
        method="put_item",
        TableName=table_name,
        Item=Item,
        **kwargs,
    )


def update_item(table_name: str, Key: Dict[str, Any], **kwargs) -> OperationResult:
    """Update an item in a DynamoDB table."""
    return execute_aws_api_call(
        service_name="dynamodb",
        method="update_item",
        TableName=table_name,
        Key=Key,
        **kwargs,
    )


def delete_item(table_name: str, Key: Dict[str, Any], **kwargs) -> OperationResult:
    """Delete an item from a DynamoDB table."""
    return execute_aws_api_call(
        service_name="dynamodb",
        method="delete_item",
        TableName=table_name,
        Key=Key,
        **kwargs,
    )


def query(table_name: str, KeyConditionExpression: str, **kwargs) -> OperationResult:
    """Query a DynamoDB table with automatic pagination."""
    return execute_aws_api_call(
        service_name="dynamodb",
        method="query",
        TableName=table_name,
        KeyConditionExpression=KeyConditionExpression,
        keys=["Items"],
        force_paginate=True,
        **kwargs,
    )


def scan(table_name: str, **kwargs) -> OperationResult:
    """Scan a DynamoDB table with automatic pagination."""
    return execute_aws_api_call(
        service_name="dynamodb",
        method="scan",
        TableName=table_name,
        keys=["Items"],
        force_paginate=True,
        **kwargs,
    )
