"""
Module: memory.py
Description: In-process queue with SQS delivery semantics.

Reproduces visibility-timeout leasing, redelivery and retention purge
without AWS. Used by the local runner and by tests, where an injected
clock makes lease expiry deterministic.
"""

import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional
from uuid import uuid4

from event_pipeline.exceptions import EnqueueError
from event_pipeline.models.message import Message, QueueRecord
from event_pipeline.sqs_queue.base import MAX_MESSAGE_BYTES
from event_pipeline.utils.batch_helpers import validate_batch_size
from event_pipeline.utils.logger import get_logger

logger = get_logger(__name__)

SECONDS_PER_DAY = 86400


@dataclass
class _StoredMessage:
    message_id: str
    body: str
    attributes: Dict[str, str]
    sent_at: float
    visible_at: float
    receipt: Optional[str] = None
    receive_count: int = 0


class InMemoryQueue:
    """
    Thread-safe in-memory queue.

    Attributes:
        visibility_timeout: Seconds a dequeued message stays invisible
        retention_period: Seconds an unacknowledged message is kept
        on_expired: Called with (message_id, receive_count) for every
            message purged at retention expiry
    """

    def __init__(
        self,
        visibility_timeout: float = 300,
        retention_period: float = 14 * SECONDS_PER_DAY,
        clock: Callable[[], float] = time.time,
        on_expired: Optional[Callable[[str, int], None]] = None
    ):
        if visibility_timeout < 0:
            raise ValueError("visibility_timeout must not be negative")
        if retention_period <= 0:
            raise ValueError("retention_period must be positive")

        self.visibility_timeout = visibility_timeout
        self.retention_period = retention_period
        self.on_expired = on_expired
        self._clock = clock
        self._lock = threading.Lock()
        self._messages: "OrderedDict[str, _StoredMessage]" = OrderedDict()
        self._receipts: Dict[str, str] = {}

    def enqueue(self, message: Message) -> str:
        """Store a message and return its queue-assigned id."""
        return self.enqueue_body(message.to_body(), message.attributes)

    def enqueue_body(self, body: str, attributes: Optional[Dict[str, str]] = None) -> str:
        """Store a serialized message body and return its queue-assigned id."""
        size = len(body.encode('utf-8'))
        if size > MAX_MESSAGE_BYTES:
            raise EnqueueError(
                f"Message body of {size} bytes exceeds the {MAX_MESSAGE_BYTES} byte limit",
                error_code="PayloadTooLarge"
            )

        with self._lock:
            now = self._clock()
            message_id = str(uuid4())
            self._messages[message_id] = _StoredMessage(
                message_id=message_id,
                body=body,
                attributes=dict(attributes or {}),
                sent_at=now,
                visible_at=now
            )

        logger.info("Message stored in memory queue", message_id=message_id)
        return message_id

    def dequeue(self, batch_size: int = 10) -> List[QueueRecord]:
        """Lease up to batch_size visible messages."""
        validate_batch_size(batch_size)

        records = []
        with self._lock:
            now = self._clock()
            expired = self._purge_locked(now)
            for stored in self._messages.values():
                if len(records) >= batch_size:
                    break
                if stored.visible_at > now:
                    continue

                if stored.receipt is not None:
                    self._receipts.pop(stored.receipt, None)
                stored.receipt = uuid4().hex
                stored.receive_count += 1
                stored.visible_at = now + self.visibility_timeout
                self._receipts[stored.receipt] = stored.message_id
                records.append(self._to_record(stored))

        self._report_expired(expired)

        if records:
            logger.info("Messages leased from memory queue", count=len(records))
        return records

    def acknowledge(self, receipt: str) -> bool:
        """Delete a leased message; stale or unknown receipts are ignored."""
        with self._lock:
            now = self._clock()
            message_id = self._receipts.get(receipt)
            stored = self._messages.get(message_id) if message_id else None
            if stored is None or stored.receipt != receipt or self._lease_expired(stored, now):
                stale = True
            else:
                stale = False
                del self._messages[message_id]
                del self._receipts[receipt]

        if stale:
            logger.warning("Ignoring acknowledge for stale receipt", message_id=message_id)
            return False

        logger.debug("Message deleted from memory queue", message_id=message_id)
        return True

    def purge_expired(self) -> List[str]:
        """
        Drop every message older than the retention period.

        Returns:
            Ids of the purged messages
        """
        with self._lock:
            expired = self._purge_locked(self._clock())
        self._report_expired(expired)
        return [stored.message_id for stored in expired]

    def approximate_size(self) -> Dict[str, int]:
        """Count visible and in-flight messages."""
        with self._lock:
            now = self._clock()
            in_flight = sum(1 for s in self._messages.values() if s.visible_at > now)
            return {
                'visible': len(self._messages) - in_flight,
                'in_flight': in_flight,
            }

    def _purge_locked(self, now: float) -> List[_StoredMessage]:
        expired = [
            stored for stored in self._messages.values()
            if now - stored.sent_at >= self.retention_period
        ]
        for stored in expired:
            del self._messages[stored.message_id]
            if stored.receipt is not None:
                self._receipts.pop(stored.receipt, None)
        return expired

    def _report_expired(self, expired: List[_StoredMessage]) -> None:
        for stored in expired:
            logger.error(
                "Message retention expired; message permanently lost",
                message_id=stored.message_id,
                receive_count=stored.receive_count,
                retention_period_seconds=self.retention_period
            )
            if self.on_expired is None:
                continue
            try:
                self.on_expired(stored.message_id, stored.receive_count)
            except Exception as e:
                # Hook failures never abort a dequeue
                logger.warning(
                    "Retention expiry hook failed",
                    message_id=stored.message_id,
                    error=str(e),
                    error_type=type(e).__name__
                )

    def _lease_expired(self, stored: _StoredMessage, now: float) -> bool:
        # With a zero visibility timeout the current receipt stays valid
        # until the message is leased again
        return self.visibility_timeout > 0 and stored.visible_at <= now

    @staticmethod
    def _to_record(stored: _StoredMessage) -> QueueRecord:
        return QueueRecord(
            message_id=stored.message_id,
            receipt=stored.receipt,
            body=stored.body,
            attributes=dict(stored.attributes),
            receive_count=stored.receive_count,
            sent_at=datetime.fromtimestamp(stored.sent_at, tz=timezone.utc)
        )
