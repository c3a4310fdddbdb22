"""
Module: test_invocation.py
Description: Unit tests for backend invocation models.

Tests the tagged backend result union, parsing of raw and Lambda proxy
responses, and derivation of invocation payloads from messages.
"""

import json
from datetime import datetime, timezone

import pytest

from event_pipeline.models.invocation import (
    BackendFailure,
    BackendSuccess,
    InvocationRequest,
    parse_backend_result,
)
from event_pipeline.models.message import QueueRecord


class TestParseBackendResult:
    """Test cases for parse_backend_result."""

    def test_lambda_proxy_success_without_status_tag(self):
        """Test the status tag is inferred from a 200 proxy response."""
        result = parse_backend_result({
            "statusCode": 200,
            "body": json.dumps({
                "message": "Backend processing completed successfully",
                "requestId": "c6af9ac6-7b61-11e6-9a41-93e812345678",
                "processingTimeMs": 812,
                "processedEvent": {"source": "consumer"},
                "timestamp": "2024-01-15T10:30:02.000Z",
            }),
        })

        assert isinstance(result, BackendSuccess)
        assert result.ok
        assert result.request_id == "c6af9ac6-7b61-11e6-9a41-93e812345678"
        assert result.processing_time_ms == 812
        assert result.processed_event == {"source": "consumer"}

    def test_lambda_proxy_error_without_status_tag(self):
        """Test the status tag is inferred from a 500 proxy response."""
        result = parse_backend_result(json.dumps({
            "statusCode": 500,
            "body": json.dumps({
                "message": "Backend processing failed",
                "error": "boom",
                "requestId": "req-1",
            }),
        }))

        assert isinstance(result, BackendFailure)
        assert not result.ok
        assert result.error == "boom"

    def test_bare_tagged_result(self):
        """Test a bare result with an explicit status tag."""
        result = parse_backend_result(
            b'{"status": "failure", "error": "bad input", "requestId": "req-2"}'
        )

        assert isinstance(result, BackendFailure)
        assert result.request_id == "req-2"

    @pytest.mark.parametrize("raw", [
        '"just a string"',
        '{"status": "success", "requestId": "req-3"}',
        '{"status": "unknown", "requestId": "req-3"}',
        '{"statusCode": 200, "body": "[1, 2]"}',
        "not json",
    ])
    def test_malformed_results_raise_value_error(self, raw):
        """Test malformed responses are rejected."""
        with pytest.raises(ValueError):
            parse_backend_result(raw)

    def test_result_payload_round_trips(self):
        """Test a serialized result parses back to an equal result."""
        original = BackendSuccess(
            request_id="req-4",
            processing_time_ms=1000,
            processed_event={"a": 1},
            timestamp=datetime(2024, 1, 15, 10, 30, 2, tzinfo=timezone.utc)
        )

        payload = original.to_payload()

        assert payload["requestId"] == "req-4"
        assert payload["processingTimeMs"] == 1000
        assert payload["status"] == "success"
        assert parse_backend_result(payload) == original


class TestInvocationRequest:
    """Test cases for InvocationRequest."""

    def test_for_message_adds_provenance(self, sample_message):
        """Test the payload carries the originating message id and time."""
        record = QueueRecord(
            message_id="msg-1",
            receipt="receipt-1",
            body=sample_message.to_body(),
            attributes=sample_message.attributes
        )
        received_at = datetime(2024, 1, 15, 10, 30, 5, tzinfo=timezone.utc)

        request = InvocationRequest.for_message(record, record.decode(), received_at)
        payload = request.to_payload()

        assert payload["source"] == "consumer"
        assert payload["messageId"] == "msg-1"
        assert payload["receivedAt"].startswith("2024-01-15T10:30:05")
        assert payload["message"]["id"] == sample_message.id
        assert payload["message"]["data"] == {"order_id": "12345", "amount": 99.99}
        assert payload["message"]["attributes"] == {"messageType": "event"}
        json.dumps(payload)
