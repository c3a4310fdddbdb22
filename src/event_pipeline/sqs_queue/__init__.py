"""
Package: sqs_queue
Description: At-least-once message queue for the event pipeline.

Provides the Queue protocol, an SQS-backed implementation used in
deployed environments, and an in-memory implementation with the same
visibility-timeout and retention semantics for local runs and tests.
"""

from .base import Queue
from .memory import InMemoryQueue
from .sqs import SQSQueue

__all__ = ["Queue", "InMemoryQueue", "SQSQueue"]
