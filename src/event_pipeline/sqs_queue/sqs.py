"""
Module: sqs.py
Description: SQS client for event queue operations.

Handles sending messages to the event queue, receiving batches for
processing, and deleting messages after successful processing.
Retention on SQS is enforced by the service itself.
"""

from typing import Any, Dict, List, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from event_pipeline.exceptions import EnqueueError
from event_pipeline.models.message import Message, QueueRecord
from event_pipeline.sqs_queue.base import MAX_MESSAGE_BYTES
from event_pipeline.utils.batch_helpers import validate_batch_size
from event_pipeline.utils.logger import get_logger

logger = get_logger(__name__)

# Error codes SQS returns for stale or malformed receipt handles
_STALE_RECEIPT_CODES = frozenset({
    'ReceiptHandleIsInvalid',
    'InvalidParameterValue',
    'AWS.SimpleQueueService.ReceiptHandleIsInvalid',
})


class SQSQueue:
    """
    SQS-backed queue.

    Provides methods for sending messages to the event queue,
    receiving leased batches, and acknowledging processed messages.
    """

    def __init__(
        self,
        queue_url: str,
        client: Optional[Any] = None,
        visibility_timeout: int = 300,
        wait_time_seconds: int = 0
    ):
        """
        Initialize SQS queue.

        Args:
            queue_url: URL of the SQS queue
            client: Optional pre-built boto3 SQS client
            visibility_timeout: Seconds a received message stays invisible
            wait_time_seconds: Long-poll wait for receive calls
        """
        if not queue_url or not isinstance(queue_url, str):
            raise ValueError("queue_url must be a non-empty string")

        self.queue_url = queue_url
        self.visibility_timeout = visibility_timeout
        self.wait_time_seconds = wait_time_seconds
        self.client = client or boto3.client('sqs')

        logger.info(
            "SQS queue initialized",
            queue_url=queue_url,
            visibility_timeout=visibility_timeout
        )

    def enqueue(self, message: Message) -> str:
        """
        Send a message to the SQS queue.

        Args:
            message: Message to enqueue

        Returns:
            Message ID from SQS

        Raises:
            EnqueueError: If SQS rejects the message or cannot be reached
        """
        return self.enqueue_body(message.to_body(), message.attributes)

    def enqueue_body(self, body: str, attributes: Optional[Dict[str, str]] = None) -> str:
        """
        Send a serialized message body to the SQS queue.

        Args:
            body: Message body
            attributes: Optional string message attributes

        Returns:
            Message ID from SQS

        Raises:
            EnqueueError: If SQS rejects the message or cannot be reached
        """
        size = len(body.encode('utf-8'))
        if size > MAX_MESSAGE_BYTES:
            logger.error(
                "Message too large for SQS",
                size_bytes=size,
                limit_bytes=MAX_MESSAGE_BYTES
            )
            raise EnqueueError(
                f"Message body of {size} bytes exceeds the {MAX_MESSAGE_BYTES} byte limit",
                error_code="PayloadTooLarge"
            )

        request = {
            'QueueUrl': self.queue_url,
            'MessageBody': body,
        }
        if attributes:
            request['MessageAttributes'] = {
                name: {'StringValue': value, 'DataType': 'String'}
                for name, value in attributes.items()
            }

        try:
            response = self.client.send_message(**request)

        except ClientError as e:
            logger.error(
                "Failed to send message to SQS",
                queue_url=self.queue_url,
                error_code=e.response['Error']['Code'],
                error_message=e.response['Error']['Message']
            )
            raise EnqueueError(
                e.response['Error']['Message'],
                error_code=e.response['Error']['Code']
            ) from e

        except BotoCoreError as e:
            logger.error(
                "Unexpected error sending message to SQS",
                queue_url=self.queue_url,
                error=str(e)
            )
            raise EnqueueError(str(e)) from e

        message_id = response['MessageId']
        logger.info(
            "Message sent to SQS",
            message_id=message_id,
            queue_url=self.queue_url
        )

        return message_id

    def dequeue(self, batch_size: int = 10) -> List[QueueRecord]:
        """
        Receive a batch of messages from SQS.

        Args:
            batch_size: Maximum number of messages to receive (1-10)

        Returns:
            Leased records, possibly empty

        Raises:
            ValueError: If batch_size is out of range
            ClientError: If SQS operation fails
        """
        validate_batch_size(batch_size)

        try:
            response = self.client.receive_message(
                QueueUrl=self.queue_url,
                MaxNumberOfMessages=batch_size,
                VisibilityTimeout=self.visibility_timeout,
                WaitTimeSeconds=self.wait_time_seconds,
                AttributeNames=['All'],
                MessageAttributeNames=['All']
            )

        except ClientError as e:
            logger.error(
                "Failed to receive messages from SQS",
                queue_url=self.queue_url,
                error_code=e.response['Error']['Code'],
                error_message=e.response['Error']['Message']
            )
            raise

        records = [
            QueueRecord.from_sqs_message(message)
            for message in response.get('Messages', [])
        ]

        logger.info(
            "Messages received from SQS",
            count=len(records),
            queue_url=self.queue_url
        )

        return records

    def acknowledge(self, receipt: str) -> bool:
        """
        Delete a message from SQS after successful processing.

        Args:
            receipt: Receipt handle from the delivery

        Returns:
            True if deleted, False if the receipt was stale or invalid

        Raises:
            ClientError: For failures other than a stale receipt
        """
        try:
            self.client.delete_message(
                QueueUrl=self.queue_url,
                ReceiptHandle=receipt
            )

        except ClientError as e:
            error_code = e.response['Error']['Code']
            if error_code in _STALE_RECEIPT_CODES:
                logger.warning(
                    "Ignoring acknowledge for stale receipt",
                    queue_url=self.queue_url,
                    error_code=error_code
                )
                return False

            logger.error(
                "Failed to delete message from SQS",
                queue_url=self.queue_url,
                error_code=error_code,
                error_message=e.response['Error']['Message']
            )
            raise

        logger.debug("Message deleted from SQS", queue_url=self.queue_url)
        return True
