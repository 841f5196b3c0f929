"""Fixtures for AWS integration tests."""

from unittest.mock import MagicMock, patch

import pytest
from botocore.exceptions import ClientError


@pytest.fixture
def client_error():
    def _make(code, operation="PutItem"):
        return ClientError({"Error": {"Code": code, "Message": code}}, operation)

    return _make


@pytest.fixture
def mock_boto_client():
    """Patch the cached boto3 client factory with a MagicMock client."""
    with patch("integrations.aws.client.get_aws_client") as mock_get_client:
        client = MagicMock()
        mock_get_client.return_value = client
        yield client


@pytest.fixture(autouse=True)
def no_sleep():
    with patch("integrations.aws.client.time.sleep") as mock_sleep:
        yield mock_sleep
