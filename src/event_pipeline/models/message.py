"""
Module: message.py
Description: Message data models for the event pipeline.

Defines the immutable Message that flows from the publisher through the
queue to the consumer, and the QueueRecord that describes one delivery
of a message (receipt, receive count, raw body).

Key Components:
- Message: Frozen unit of work with JSON body encoding/decoding
- QueueRecord: Delivery metadata for a dequeued message
- format_timestamp(): ISO 8601 UTC rendering with a Z suffix

Dependencies: pydantic, datetime, json
"""

import json
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from event_pipeline.exceptions import DecodeError


def format_timestamp(value: datetime) -> str:
    """Render a datetime as ISO 8601 UTC with millisecond precision and a Z suffix."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _string_attributes(raw: Optional[Mapping[str, Any]], value_key: str) -> Dict[str, str]:
    """Flatten SQS message attributes into a plain name -> string mapping."""
    attributes = {}
    for name, value in (raw or {}).items():
        string_value = value.get(value_key) if isinstance(value, dict) else None
        if string_value is not None:
            attributes[name] = string_value
    return attributes


class Message(BaseModel):
    """
    Message published to the event queue.

    A message is never mutated after creation. Redelivery produces the
    identical body; only the delivery metadata in QueueRecord differs.

    Attributes:
        id: Unique message identifier assigned by the publisher
        timestamp: Creation time (UTC)
        source: Tag of the producing component
        data: Opaque producer-supplied payload
        attributes: Small metadata mapping carried as queue message attributes
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str = Field(..., min_length=1, description="Unique message identifier")
    timestamp: datetime = Field(..., description="Message creation timestamp")
    source: str = Field(..., min_length=1, description="Producing component tag")
    data: str = Field(..., description="Opaque message payload")
    attributes: Dict[str, str] = Field(
        default_factory=dict,
        description="Message metadata attached at publish time"
    )

    @field_validator('timestamp')
    @classmethod
    def validate_timestamp(cls, v: datetime) -> datetime:
        """Normalise timestamps to timezone-aware UTC at millisecond precision."""
        if v.tzinfo is None:
            v = v.replace(tzinfo=timezone.utc)
        v = v.astimezone(timezone.utc)
        # The wire body carries milliseconds only
        return v.replace(microsecond=v.microsecond // 1000 * 1000)

    def to_wire(self) -> Dict[str, Any]:
        """Return the JSON-compatible body fields of the message."""
        return {
            'id': self.id,
            'timestamp': format_timestamp(self.timestamp),
            'source': self.source,
            'data': self.data,
        }

    def to_body(self) -> str:
        """Serialize the message into a queue message body."""
        return json.dumps(self.to_wire())

    def structured_data(self) -> Any:
        """Return data parsed as JSON when possible, otherwise the raw string."""
        try:
            return json.loads(self.data)
        except ValueError:
            return self.data

    @classmethod
    def from_body(
        cls,
        body: str,
        attributes: Optional[Mapping[str, str]] = None
    ) -> 'Message':
        """
        Decode a queue message body into a Message.

        Args:
            body: Raw message body as stored in the queue
            attributes: Message attributes delivered alongside the body

        Returns:
            Decoded Message

        Raises:
            DecodeError: If the body is not a JSON object with the required fields
        """
        try:
            payload = json.loads(body)
        except (TypeError, ValueError) as e:
            raise DecodeError(f"Message body is not valid JSON: {e}") from e

        if not isinstance(payload, dict):
            raise DecodeError("Message body must be a JSON object")

        payload['attributes'] = dict(attributes or {})
        try:
            return cls.model_validate(payload)
        except ValidationError as e:
            raise DecodeError(f"Message body is missing required fields: {e}") from e


class QueueRecord(BaseModel):
    """
    One delivery of a queued message.

    Attributes:
        message_id: Queue-assigned message identifier
        receipt: Lease handle required to acknowledge the delivery
        body: Raw message body
        attributes: Message attributes as a name -> string mapping
        receive_count: Number of times the message has been delivered
        sent_at: When the message was enqueued, if known
    """

    model_config = ConfigDict(frozen=True)

    message_id: str
    receipt: str
    body: str
    attributes: Dict[str, str] = Field(default_factory=dict)
    receive_count: int = Field(default=1, ge=1)
    sent_at: Optional[datetime] = None

    def decode(self) -> Message:
        """Decode the body of this delivery into a Message."""
        return Message.from_body(self.body, self.attributes)

    @classmethod
    def from_lambda_record(cls, record: Dict[str, Any]) -> 'QueueRecord':
        """Build a record from an entry of an SQS Lambda event's Records list."""
        system = record.get('attributes', {})
        sent = system.get('SentTimestamp')
        return cls(
            message_id=record['messageId'],
            receipt=record['receiptHandle'],
            body=record['body'],
            attributes=_string_attributes(record.get('messageAttributes'), 'stringValue'),
            receive_count=int(system.get('ApproximateReceiveCount', 1)),
            sent_at=datetime.fromtimestamp(int(sent) / 1000, tz=timezone.utc) if sent else None
        )

    @classmethod
    def from_sqs_message(cls, message: Dict[str, Any]) -> 'QueueRecord':
        """Build a record from an element of an SQS ReceiveMessage response."""
        system = message.get('Attributes', {})
        sent = system.get('SentTimestamp')
        return cls(
            message_id=message['MessageId'],
            receipt=message['ReceiptHandle'],
            body=message['Body'],
            attributes=_string_attributes(message.get('MessageAttributes'), 'StringValue'),
            receive_count=int(system.get('ApproximateReceiveCount', 1)),
            sent_at=datetime.fromtimestamp(int(sent) / 1000, tz=timezone.utc) if sent else None
        )
