"""
Module: base.py
Description: Queue contract shared by all queue implementations.

A queue is a durable at-least-once buffer. Dequeued messages are leased
for the visibility timeout; a message that is not acknowledged before
the lease ends becomes visible again and is redelivered. This is the
only retry mechanism in the pipeline.
"""

from typing import Dict, List, Optional, Protocol, runtime_checkable

from event_pipeline.models.message import Message, QueueRecord

# SQS hard limit on message size
MAX_MESSAGE_BYTES = 256 * 1024


@runtime_checkable
class Queue(Protocol):
    """Protocol for queue operations used by the publisher and consumer."""

    def enqueue(self, message: Message) -> str:
        """
        Durably store a message.

        Returns:
            Queue-assigned message identifier

        Raises:
            EnqueueError: If the message could not be stored
        """
        ...

    def enqueue_body(self, body: str, attributes: Optional[Dict[str, str]] = None) -> str:
        """Durably store an already serialized message body."""
        ...

    def dequeue(self, batch_size: int = 10) -> List[QueueRecord]:
        """
        Lease up to batch_size visible messages (1 <= batch_size <= 10).

        Each returned message stays invisible to other consumers until its
        visibility timeout elapses or it is acknowledged.
        """
        ...

    def acknowledge(self, receipt: str) -> bool:
        """
        Permanently delete a leased message.

        Returns:
            True if the message was deleted, False for an unknown,
            already-deleted or expired receipt
        """
        ...
