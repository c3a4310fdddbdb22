"""
Module: test_invoker.py
Description: Unit tests for backend invokers.

Tests the Lambda transport with a mocked boto3 client, the HTTP transport
with pytest-httpx, the in-process transport, and transport selection.
"""

import io
import json
from datetime import datetime, timezone
from unittest.mock import MagicMock

import httpx
import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from event_pipeline.config.settings import Settings
from event_pipeline.delivery.invoker import (
    HttpBackendInvoker,
    LambdaBackendInvoker,
    LocalBackendInvoker,
    build_invoker,
)
from event_pipeline.exceptions import InvocationError
from event_pipeline.models.invocation import BackendFailure, BackendSuccess, InvocationRequest
from event_pipeline.models.message import QueueRecord

BACKEND_URL = "https://backend.example.com/process"


@pytest.fixture
def invocation_request(sample_message):
    """Provide an invocation request for the sample message."""
    record = QueueRecord(
        message_id="msg-1",
        receipt="receipt-1",
        body=sample_message.to_body(),
        attributes=sample_message.attributes
    )
    return InvocationRequest.for_message(
        record,
        record.decode(),
        datetime(2024, 1, 15, 10, 30, 5, tzinfo=timezone.utc)
    )


def _proxy_response(status_code: int, body: dict) -> dict:
    return {'statusCode': status_code, 'body': json.dumps(body)}


def _lambda_response(payload: dict, function_error: str = None) -> dict:
    response = {
        'StatusCode': 200,
        'Payload': io.BytesIO(json.dumps(payload).encode('utf-8'))
    }
    if function_error:
        response['FunctionError'] = function_error
    return response


SUCCESS_BODY = {
    "status": "success",
    "message": "Backend processing completed successfully",
    "requestId": "req-1",
    "processingTimeMs": 900,
    "processedEvent": {"source": "consumer"},
    "timestamp": "2024-01-15T10:30:06.000Z",
}

FAILURE_BODY = {
    "status": "failure",
    "message": "Backend processing failed",
    "error": "boom",
    "requestId": "req-2",
}


class TestLambdaBackendInvoker:
    """Test cases for LambdaBackendInvoker."""

    def test_initialization_invalid_function_name(self):
        """Test an empty function name is rejected."""
        with pytest.raises(ValueError, match="function_name must be a non-empty string"):
            LambdaBackendInvoker(function_name="", client=MagicMock())

    def test_invoke_success(self, invocation_request):
        """Test a successful invocation returns the parsed result."""
        client = MagicMock()
        client.invoke.return_value = _lambda_response(_proxy_response(200, SUCCESS_BODY))
        invoker = LambdaBackendInvoker("event-backend", client=client)

        result = invoker.invoke(invocation_request)

        assert isinstance(result, BackendSuccess)
        assert result.processing_time_ms == 900

        kwargs = client.invoke.call_args.kwargs
        assert kwargs['FunctionName'] == "event-backend"
        assert kwargs['InvocationType'] == "RequestResponse"
        sent = json.loads(kwargs['Payload'])
        assert sent['source'] == "consumer"
        assert sent['messageId'] == "msg-1"

    def test_invoke_logical_failure_is_returned(self, invocation_request):
        """Test a failure record is returned, not raised."""
        client = MagicMock()
        client.invoke.return_value = _lambda_response(_proxy_response(500, FAILURE_BODY))
        invoker = LambdaBackendInvoker("event-backend", client=client)

        result = invoker.invoke(invocation_request)

        assert isinstance(result, BackendFailure)
        assert result.error == "boom"

    def test_invoke_function_error(self, invocation_request):
        """Test an unhandled function error raises InvocationError."""
        client = MagicMock()
        client.invoke.return_value = _lambda_response(
            {"errorMessage": "Task timed out after 30.00 seconds"},
            function_error="Unhandled"
        )
        invoker = LambdaBackendInvoker("event-backend", client=client)

        with pytest.raises(InvocationError, match="Backend function error"):
            invoker.invoke(invocation_request)

    def test_invoke_client_error(self, invocation_request):
        """Test client errors raise InvocationError with the error code."""
        client = MagicMock()
        client.invoke.side_effect = ClientError(
            error_response={'Error': {'Code': 'ResourceNotFoundException', 'Message': 'Function not found'}},
            operation_name='Invoke'
        )
        invoker = LambdaBackendInvoker("event-backend", client=client)

        with pytest.raises(InvocationError, match="ResourceNotFoundException") as exc_info:
            invoker.invoke(invocation_request)

        assert isinstance(exc_info.value.__cause__, ClientError)

    def test_invoke_unreachable(self, invocation_request):
        """Test connection failures raise InvocationError."""
        client = MagicMock()
        client.invoke.side_effect = EndpointConnectionError(
            endpoint_url="https://lambda.us-east-1.amazonaws.com"
        )
        invoker = LambdaBackendInvoker("event-backend", client=client)

        with pytest.raises(InvocationError, match="transport error"):
            invoker.invoke(invocation_request)

    def test_invoke_malformed_payload(self, invocation_request):
        """Test an unparseable response raises InvocationError."""
        client = MagicMock()
        client.invoke.return_value = _lambda_response({"unexpected": True})
        invoker = LambdaBackendInvoker("event-backend", client=client)

        with pytest.raises(InvocationError, match="malformed"):
            invoker.invoke(invocation_request)


class TestHttpBackendInvoker:
    """Test cases for HttpBackendInvoker."""

    def test_initialization_invalid_url(self):
        """Test non-HTTP URLs are rejected."""
        with pytest.raises(ValueError, match="valid HTTP/HTTPS URL"):
            HttpBackendInvoker("ftp://backend.example.com")

        with pytest.raises(ValueError, match="non-empty string"):
            HttpBackendInvoker("")

    def test_invoke_success(self, httpx_mock, invocation_request):
        """Test a 200 response is parsed into BackendSuccess."""
        httpx_mock.add_response(url=BACKEND_URL, method="POST", json=SUCCESS_BODY)
        invoker = HttpBackendInvoker(BACKEND_URL)

        result = invoker.invoke(invocation_request)

        assert isinstance(result, BackendSuccess)
        assert result.request_id == "req-1"

        sent = json.loads(httpx_mock.get_request().content)
        assert sent['messageId'] == "msg-1"
        assert sent['message']['data'] == {"order_id": "12345", "amount": 99.99}

    def test_invoke_failure_record_on_500(self, httpx_mock, invocation_request):
        """Test a 500 with a failure record is a logical failure, not a transport error."""
        httpx_mock.add_response(url=BACKEND_URL, method="POST", status_code=500, json=FAILURE_BODY)
        invoker = HttpBackendInvoker(BACKEND_URL)

        result = invoker.invoke(invocation_request)

        assert isinstance(result, BackendFailure)
        assert result.request_id == "req-2"

    def test_invoke_timeout(self, httpx_mock, invocation_request):
        """Test timeouts raise InvocationError."""
        httpx_mock.add_exception(httpx.ReadTimeout("Read timed out"))
        invoker = HttpBackendInvoker(BACKEND_URL, timeout_seconds=1.0)

        with pytest.raises(InvocationError, match="timed out"):
            invoker.invoke(invocation_request)

    def test_invoke_network_error(self, httpx_mock, invocation_request):
        """Test connection errors raise InvocationError."""
        httpx_mock.add_exception(httpx.ConnectError("Connection refused"))
        invoker = HttpBackendInvoker(BACKEND_URL)

        with pytest.raises(InvocationError, match="Connection refused"):
            invoker.invoke(invocation_request)

    def test_invoke_malformed_response(self, httpx_mock, invocation_request):
        """Test a non-result body raises InvocationError with the status."""
        httpx_mock.add_response(url=BACKEND_URL, method="POST", status_code=502, text="Bad Gateway")
        invoker = HttpBackendInvoker(BACKEND_URL)

        with pytest.raises(InvocationError, match="status 502"):
            invoker.invoke(invocation_request)


class TestLocalBackendInvoker:
    """Test cases for LocalBackendInvoker."""

    def test_invoke_calls_backend_in_process(self, local_invoker, invocation_request, sleeps):
        """Test the backend receives the payload and each call gets its own request id."""
        first = local_invoker.invoke(invocation_request)
        second = local_invoker.invoke(invocation_request)

        assert first.ok and second.ok
        assert first.processed_event == invocation_request.to_payload()
        assert first.request_id != second.request_id
        assert sleeps == [0.75, 0.75]


class TestBuildInvoker:
    """Test cases for build_invoker."""

    def test_no_target(self):
        """Test no invoker is built without a backend target."""
        assert build_invoker(Settings(_env_file=None, backend_target=None)) is None

    def test_http_target(self):
        """Test URL targets select the HTTP transport."""
        invoker = build_invoker(Settings(
            _env_file=None,
            backend_target=BACKEND_URL,
            backend_timeout_seconds=10
        ))

        assert isinstance(invoker, HttpBackendInvoker)
        assert invoker.url == BACKEND_URL

    def test_lambda_target(self):
        """Test other targets select the Lambda transport."""
        invoker = build_invoker(Settings(_env_file=None, backend_target="event-backend"))

        assert isinstance(invoker, LambdaBackendInvoker)
        assert invoker.function_name == "event-backend"
        assert invoker.timeout_seconds == 30.0
