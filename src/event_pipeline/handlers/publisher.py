"""
Module: publisher.py
Description: Event ingress: normalize an inbound body into a Message and enqueue it.

Implements the publish endpoint of the event pipeline:
- POST /events: Publish the raw request body as a message
- Message ID generation and normalization
- Conversion of enqueue failures into structured responses

Key Components:
- Publisher: Builds messages and enqueues them synchronously
- publish_event(): Route handler
- get_queue() / get_publisher(): Dependency injection for the queue and publisher

Dependencies: FastAPI, starlette, datetime, uuid
"""

import time
from datetime import datetime, timezone
from typing import Callable, Optional, Union
from uuid import uuid4

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from event_pipeline.config.settings import settings
from event_pipeline.models.message import Message
from event_pipeline.models.response import PublishFailure, PublishSuccess
from event_pipeline.sqs_queue.base import Queue
from event_pipeline.sqs_queue.sqs import SQSQueue
from event_pipeline.utils.logger import get_logger

router = APIRouter(prefix="/events", tags=["events"])
logger = get_logger(__name__)

MESSAGE_SOURCE = "publisher"
MESSAGE_ATTRIBUTES = {"messageType": "event"}


def generate_message_id() -> str:
    """
    Generate a unique, time-ordered message ID.

    Format: <epoch milliseconds>-<8 hex chars>

    Returns:
        Message ID string
    """
    return f"{int(time.time() * 1000)}-{uuid4().hex[:8]}"


class Publisher:
    """
    Ingress component of the pipeline.

    Publishing is synchronous: publish() returns only after the queue has
    acknowledged the enqueue. Failures are never retried here.
    """

    def __init__(
        self,
        queue: Queue,
        source: str = MESSAGE_SOURCE,
        default_data: str = "Hello from Publisher",
        id_factory: Callable[[], str] = generate_message_id,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc)
    ):
        self.queue = queue
        self.source = source
        self.default_data = default_data
        self._id_factory = id_factory
        self._clock = clock

    def build_message(self, body: Optional[str]) -> Message:
        """Construct the message for an inbound body."""
        return Message(
            id=self._id_factory(),
            timestamp=self._clock(),
            source=self.source,
            data=body or self.default_data,
            attributes=dict(MESSAGE_ATTRIBUTES)
        )

    def publish(self, body: Optional[str]) -> Union[PublishSuccess, PublishFailure]:
        """
        Publish an inbound event body.

        Args:
            body: Raw event body, possibly empty

        Returns:
            PublishSuccess with the queue-assigned id, or PublishFailure
            carrying the reason the enqueue failed
        """
        message = self.build_message(body)

        try:
            message_id = self.queue.enqueue(message)

        except Exception as e:
            logger.error(
                "Failed to publish message",
                id=message.id,
                error=str(e),
                error_type=type(e).__name__
            )
            return PublishFailure(details=str(e) or type(e).__name__)

        logger.info(
            "Message published to queue",
            id=message.id,
            message_id=message_id,
            source=message.source
        )
        return PublishSuccess(message_id=message_id, message=message)


def get_queue() -> Queue:
    """
    Dependency to get the event queue.

    Returns:
        Configured SQSQueue instance
    """
    return SQSQueue(
        queue_url=settings.queue_url,
        visibility_timeout=settings.visibility_timeout,
        wait_time_seconds=settings.wait_time_seconds
    )


def get_publisher(queue: Queue = Depends(get_queue)) -> Publisher:
    """
    Dependency to get the publisher.

    Returns:
        Publisher bound to the configured queue
    """
    return Publisher(queue=queue, default_data=settings.default_message_data)


@router.post("")
async def publish_event(
    request: Request,
    publisher: Publisher = Depends(get_publisher)
) -> JSONResponse:
    """
    Publish the raw request body as a pipeline message.

    Example:
        POST /events
        hello

        Response (200):
        {
            "message": "Event published successfully",
            "messageId": "2f0e7c1a-...",
            "data": {"id": "1705314601000-3fa2b1c9", "timestamp": "2024-01-15T10:30:01.000Z",
                     "source": "publisher", "data": "hello"}
        }
    """
    raw = await request.body()
    try:
        body = raw.decode('utf-8')
    except UnicodeDecodeError as e:
        logger.warning(
            "Rejected request body that is not valid UTF-8",
            size_bytes=len(raw),
            error=str(e)
        )
        result = PublishFailure(details="Request body is not valid UTF-8")
    else:
        result = await run_in_threadpool(publisher.publish, body)

    status_code, content = result.to_response()

    return JSONResponse(status_code=status_code, content=content)
