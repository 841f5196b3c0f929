"""Unit tests for error classifiers.

Tests cover:
- Channel gateway HTTP response classification
- requests exception classification
- AWS SDK error classification
- Retry-After header extraction
- Invalid endpoint detection
"""

import pytest
import requests
from botocore.exceptions import ClientError

from infrastructure.operations.classifiers import (
    classify_aws_error,
    classify_http_response,
    classify_request_exception,
    is_invalid_endpoint,
)
from infrastructure.operations.result import OperationResult
from infrastructure.operations.status import OperationStatus
from tests.factories.notifications import make_response

pytestmark = pytest.mark.unit


def _client_error(code: str) -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": "boom"}}, "PutItem")


class TestClassifyHttpResponse:
    """Tests for classify_http_response() function."""

    @pytest.mark.parametrize("status_code", [200, 201, 202])
    def test_success_carries_body(self, status_code):
        result = classify_http_response(
            make_response(status_code, {"id": "msg-1"}), provider="notify"
        )

        assert result.is_success
        assert result.data == {"id": "msg-1"}

    def test_success_with_non_dict_body(self):
        result = classify_http_response(make_response(200, ["a", "b"]))

        assert result.is_success
        assert result.data == {"body": ["a", "b"]}

    def test_success_with_non_json_body(self):
        response = requests.Response()
        response.status_code = 200
        response._content = b"accepted"

        result = classify_http_response(response)

        assert result.data == {"raw": "accepted"}

    def test_429_with_retry_after(self):
        result = classify_http_response(
            make_response(429, {}, headers={"Retry-After": "120"}), provider="push"
        )

        assert result.status == OperationStatus.TRANSIENT_ERROR
        assert result.error_code == "RATE_LIMITED"
        assert result.retry_after == 120
        assert "push rate limited" == result.message

    @pytest.mark.parametrize("header", [None, "not-a-number"])
    def test_429_defaults_retry_after(self, header):
        headers = {"Retry-After": header} if header else None

        result = classify_http_response(make_response(429, {}, headers=headers))

        assert result.retry_after == 60

    @pytest.mark.parametrize("status_code", [401, 403])
    def test_credentials_rejected(self, status_code):
        result = classify_http_response(make_response(status_code, {}))

        assert result.status == OperationStatus.UNAUTHORIZED
        assert result.error_code == "UNAUTHORIZED"
        assert not result.is_retryable

    @pytest.mark.parametrize("status_code", [404, 410])
    def test_endpoint_gone(self, status_code):
        result = classify_http_response(make_response(status_code, {"error": "gone"}))

        assert result.status == OperationStatus.NOT_FOUND
        assert result.error_code == "INVALID_ENDPOINT"
        assert result.data == {"error": "gone"}

    @pytest.mark.parametrize("status_code", [400, 413, 422])
    def test_rejected_payload(self, status_code):
        result = classify_http_response(make_response(status_code, {}))

        assert result.status == OperationStatus.PERMANENT_ERROR
        assert result.error_code == f"HTTP_{status_code}"

    @pytest.mark.parametrize("status_code", [500, 502, 503, 504])
    def test_server_errors_are_transient(self, status_code):
        result = classify_http_response(make_response(status_code, {}))

        assert result.status == OperationStatus.TRANSIENT_ERROR
        assert result.error_code == "SERVER_ERROR"
        assert str(status_code) in result.message

    def test_unexpected_status_is_transient(self):
        result = classify_http_response(make_response(302, {}))

        assert result.is_retryable
        assert result.error_code == "HTTP_302"


class TestClassifyRequestException:
    """Tests for classify_request_exception() function."""

    def test_timeout(self):
        result = classify_request_exception(requests.Timeout("slow"), provider="chat")

        assert result.is_retryable
        assert result.error_code == "TIMEOUT"
        assert result.message == "chat request timed out"

    def test_connection_error(self):
        result = classify_request_exception(requests.ConnectionError("refused"))

        assert result.is_retryable
        assert result.error_code == "CONNECTION_ERROR"

    def test_other_requests_error(self):
        result = classify_request_exception(requests.TooManyRedirects("loop"))

        assert result.is_retryable
        assert result.error_code == "REQUEST_ERROR"

    def test_non_requests_error_is_permanent(self):
        result = classify_request_exception(TypeError("bad payload"))

        assert result.status == OperationStatus.PERMANENT_ERROR
        assert result.error_code == "UNEXPECTED_ERROR"
        assert "TypeError" in result.message


class TestClassifyAwsError:
    """Tests for classify_aws_error() function."""

    @pytest.mark.parametrize(
        "code", ["ThrottlingException", "ProvisionedThroughputExceededException"]
    )
    def test_throttling(self, code):
        result = classify_aws_error(_client_error(code))

        assert result.status == OperationStatus.TRANSIENT_ERROR
        assert result.error_code == "RATE_LIMITED"
        assert result.retry_after == 5

    def test_conditional_check_failed(self):
        result = classify_aws_error(_client_error("ConditionalCheckFailedException"))

        assert result.status == OperationStatus.PERMANENT_ERROR
        assert result.error_code == "CONDITION_FAILED"

    def test_access_denied(self):
        result = classify_aws_error(_client_error("AccessDeniedException"))

        assert result.error_code == "FORBIDDEN"
        assert not result.is_retryable

    def test_resource_not_found(self):
        result = classify_aws_error(_client_error("ResourceNotFoundException"))

        assert result.status == OperationStatus.NOT_FOUND

    @pytest.mark.parametrize("code", ["ValidationException", "InvalidParameterException"])
    def test_validation(self, code):
        result = classify_aws_error(_client_error(code))

        assert result.status == OperationStatus.PERMANENT_ERROR
        assert result.error_code == "INVALID_REQUEST"

    def test_unknown_client_error_is_transient(self):
        result = classify_aws_error(_client_error("InternalServerError"))

        assert result.is_retryable
        assert result.error_code == "AWS_CLIENT_ERROR"

    def test_non_client_error_is_connection_error(self):
        result = classify_aws_error(ConnectionResetError("reset"))

        assert result.is_retryable
        assert result.error_code == "CONNECTION_ERROR"


class TestIsInvalidEndpoint:
    """Tests for is_invalid_endpoint() helper."""

    @pytest.mark.parametrize(
        "result,expected",
        [
            (None, False),
            (OperationResult.success(), False),
            (OperationResult.not_found("gone", error_code="INVALID_ENDPOINT"), True),
            (OperationResult.permanent_error("bad", error_code="INVALID_RECIPIENT"), True),
            (OperationResult.permanent_error("bad", error_code="HTTP_400"), False),
            (OperationResult.transient_error("slow", error_code="TIMEOUT"), False),
        ],
    )
    def test_is_invalid_endpoint(self, result, expected):
        assert is_invalid_endpoint(result) is expected
