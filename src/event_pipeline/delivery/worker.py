"""
Module: delivery/worker.py
Description: SQS consumer Lambda for the event pipeline.

Processes batches from the event queue sequentially, optionally invoking
the backend for each message. Acknowledgment is all-or-nothing per
batch: if any message fails, no message of the batch is acknowledged and
every one of them becomes eligible for redelivery once its visibility
timeout elapses, including messages already processed earlier in the
pass. Backend invocations must therefore be safe to repeat.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

from event_pipeline.config.settings import settings
from event_pipeline.delivery.invoker import BackendInvoker, build_invoker
from event_pipeline.exceptions import BackendFailureError, BatchProcessingError
from event_pipeline.models.invocation import BackendFailure, BackendSuccess, InvocationRequest
from event_pipeline.models.message import Message, QueueRecord
from event_pipeline.sqs_queue.base import Queue
from event_pipeline.utils.logger import get_logger
from event_pipeline.utils.metrics import BATCHES_ABORTED, MESSAGES_PROCESSED, MetricsClient

logger = get_logger(__name__)


class BackendFailurePolicy(str, Enum):
    """How the consumer treats a logical backend failure."""

    ACCEPT = "accept"
    ESCALATE = "escalate"


@dataclass(frozen=True)
class MessageOutcome:
    """A successfully processed message."""

    record: QueueRecord
    message: Message
    result: Optional[Union[BackendSuccess, BackendFailure]] = None


@dataclass(frozen=True)
class MessageFailure:
    """The message that aborted its batch."""

    index: int
    message_id: str
    error_type: str
    reason: str
    exception: Exception = field(repr=False, compare=False)


@dataclass(frozen=True)
class BatchOutcome:
    """
    Aggregated result of one batch.

    Attributes:
        records: Every record delivered in the batch
        outcomes: Messages processed before the pass stopped
        failure: The failing message, None if the whole batch succeeded
    """

    records: List[QueueRecord]
    outcomes: List[MessageOutcome] = field(default_factory=list)
    failure: Optional[MessageFailure] = None

    @property
    def succeeded(self) -> bool:
        return self.failure is None

    def acknowledgeable_receipts(self) -> List[str]:
        """Every receipt of the batch if it succeeded, otherwise none."""
        if not self.succeeded:
            return []
        return [record.receipt for record in self.records]


class Consumer:
    """
    Batch consumer for the event queue.

    Example:
        >>> consumer = Consumer(invoker=LocalBackendInvoker(Backend()))
        >>> outcome = consumer.drain(queue, batch_size=10)
        >>> outcome.succeeded
        True
    """

    def __init__(
        self,
        invoker: Optional[BackendInvoker] = None,
        failure_policy: Union[BackendFailurePolicy, str] = BackendFailurePolicy.ACCEPT,
        metrics: Optional[MetricsClient] = None,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc)
    ):
        """
        Initialize consumer.

        Args:
            invoker: Backend transport; None disables backend invocation
            failure_policy: Whether a BackendFailure result aborts the batch
            metrics: Optional CloudWatch metrics client
            clock: Source of processing timestamps
        """
        self.invoker = invoker
        self.failure_policy = BackendFailurePolicy(failure_policy)
        self.metrics = metrics
        self._clock = clock

    def process_message(self, record: QueueRecord) -> MessageOutcome:
        """
        Decode one delivery and forward it to the backend.

        Raises:
            DecodeError: If the body is malformed
            InvocationError: If the backend cannot be reached
            BackendFailureError: For a logical failure under the escalate policy
        """
        logger.info(
            "Processing message",
            message_id=record.message_id,
            receipt=record.receipt,
            body=record.body,
            attributes=record.attributes,
            receive_count=record.receive_count
        )

        message = record.decode()
        result = None

        if self.invoker is not None:
            request = InvocationRequest.for_message(record, message, self._clock())
            result = self.invoker.invoke(request)

            if result.ok:
                logger.info(
                    "Backend invocation succeeded",
                    message_id=record.message_id,
                    request_id=result.request_id,
                    processing_time_ms=result.processing_time_ms
                )
            elif self.failure_policy is BackendFailurePolicy.ESCALATE:
                raise BackendFailureError(result.request_id, result.error)
            else:
                logger.warning(
                    "Backend reported failure; accepting message as processed",
                    message_id=record.message_id,
                    request_id=result.request_id,
                    error=result.error
                )

        logger.info(
            "Message processed successfully",
            message_id=record.message_id,
            id=message.id,
            timestamp=message.to_wire()['timestamp'],
            source=message.source,
            data=message.data
        )

        return MessageOutcome(record=record, message=message, result=result)

    def process_batch(self, records: Sequence[QueueRecord]) -> BatchOutcome:
        """
        Process a batch sequentially, stopping at the first failure.

        Args:
            records: Deliveries in the order received

        Returns:
            BatchOutcome; failure is set if any message failed
        """
        records = list(records)
        outcomes = []

        for index, record in enumerate(records):
            try:
                outcomes.append(self.process_message(record))
            except Exception as e:
                logger.error(
                    "Failed to process message",
                    message_id=record.message_id,
                    error=str(e),
                    error_type=type(e).__name__,
                    body=record.body,
                    exc_info=True
                )
                logger.warning(
                    "Batch processing aborted; no message in the batch will be acknowledged",
                    batch_size=len(records),
                    processed_before_failure=len(outcomes),
                    failed_message_id=record.message_id
                )
                self._put_metric(BATCHES_ABORTED, 1)
                return BatchOutcome(
                    records=records,
                    outcomes=outcomes,
                    failure=MessageFailure(
                        index=index,
                        message_id=record.message_id,
                        error_type=type(e).__name__,
                        reason=str(e),
                        exception=e
                    )
                )

        if outcomes:
            self._put_metric(MESSAGES_PROCESSED, len(outcomes))
        return BatchOutcome(records=records, outcomes=outcomes)

    def drain(self, queue: Queue, batch_size: int = 10) -> BatchOutcome:
        """
        Run one poll cycle against a queue.

        Dequeues a batch, processes it, and acknowledges every message
        only if the whole batch succeeded.
        """
        records = queue.dequeue(batch_size)
        if not records:
            return BatchOutcome(records=[])

        outcome = self.process_batch(records)

        receipts = outcome.acknowledgeable_receipts()
        for receipt in receipts:
            queue.acknowledge(receipt)

        if outcome.succeeded:
            logger.info("Batch acknowledged", count=len(receipts))
        return outcome

    def _put_metric(self, name: str, value: float) -> None:
        if self.metrics is not None:
            self.metrics.put_metric(name, value)


def get_metrics_client() -> MetricsClient:
    """Build the CloudWatch metrics client from settings."""
    return MetricsClient(namespace=settings.metrics_namespace)


def get_consumer() -> Consumer:
    """Build the consumer from settings."""
    return Consumer(
        invoker=build_invoker(settings),
        failure_policy=settings.backend_failure_policy,
        metrics=get_metrics_client()
    )


def handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Lambda handler for SQS event processing.

    Args:
        event: SQS event with batch of messages
        context: Lambda context

    Returns:
        Count of processed messages

    Raises:
        BatchProcessingError: If any message failed; the binding then
            acknowledges none of the batch
    """
    records = [QueueRecord.from_lambda_record(record) for record in event.get('Records', [])]
    logger.info("Received SQS batch", count=len(records))

    outcome = get_consumer().process_batch(records)

    if not outcome.succeeded:
        raise BatchProcessingError(outcome) from outcome.failure.exception

    return {'processed': len(outcome.outcomes)}
