"""
Module: conftest.py
Description: Shared pytest fixtures for event pipeline tests.

Provides a controllable clock, in-memory and moto-backed queues, a
backend with deterministic latency, and sample messages. Uses moto for
AWS service mocking to enable fast, isolated tests.
"""

import os

# Fake AWS environment for boto3 clients created during tests
os.environ.setdefault("AWS_DEFAULT_REGION", "us-east-1")
os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")
os.environ.setdefault("AWS_SECURITY_TOKEN", "testing")
os.environ.setdefault("AWS_SESSION_TOKEN", "testing")

from datetime import datetime, timezone

import boto3
import pytest
from moto import mock_aws

from event_pipeline.backend.service import Backend, fixed_delay
from event_pipeline.delivery.invoker import LocalBackendInvoker
from event_pipeline.handlers.publisher import Publisher
from event_pipeline.models.message import Message
from event_pipeline.sqs_queue.memory import SECONDS_PER_DAY, InMemoryQueue


class FakeClock:
    """Manually advanced epoch-seconds clock."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    """Provide a clock that only moves when advanced."""
    return FakeClock()


@pytest.fixture
def memory_queue(clock):
    """
    Provide an in-memory queue with the reference configuration.

    300 second visibility timeout, 14 day retention, fake clock.
    """
    return InMemoryQueue(
        visibility_timeout=300,
        retention_period=14 * SECONDS_PER_DAY,
        clock=clock
    )


@pytest.fixture
def sleeps():
    """Record the sleeps requested by a backend instead of sleeping."""
    return []


@pytest.fixture
def instant_backend(sleeps):
    """Provide a backend reporting 750ms of work without actually sleeping."""
    return Backend(delay=fixed_delay(750), sleep=sleeps.append)


@pytest.fixture
def local_invoker(instant_backend):
    """Provide an in-process invoker around the instant backend."""
    return LocalBackendInvoker(instant_backend)


@pytest.fixture
def publisher(memory_queue):
    """Provide a publisher bound to the in-memory queue."""
    return Publisher(queue=memory_queue)


@pytest.fixture
def sample_message():
    """Provide a typical published message."""
    return Message(
        id="1705314601000-3fa2b1c9",
        timestamp=datetime(2024, 1, 15, 10, 30, 1, tzinfo=timezone.utc),
        source="publisher",
        data='{"order_id": "12345", "amount": 99.99}',
        attributes={"messageType": "event"}
    )


@pytest.fixture
def sqs_queue_url():
    """
    Create a mocked SQS queue.

    Uses moto to mock AWS SQS with the reference visibility timeout and
    retention period. Yields (client, queue_url).
    """
    with mock_aws():
        client = boto3.client('sqs', region_name='us-east-1')
        response = client.create_queue(
            QueueName='test-event-queue',
            Attributes={
                'VisibilityTimeout': '300',
                'MessageRetentionPeriod': str(14 * SECONDS_PER_DAY)
            }
        )
        yield client, response['QueueUrl']
