"""
Module: invocation.py
Description: Request/response models for consumer -> backend invocations.

The backend always answers with a well-formed result. Success and logical
failure are two variants of a tagged union discriminated by ``status``;
only transport problems surface as exceptions (see delivery.invoker).

Key Components:
- InvocationRequest: Payload the consumer sends for one message
- BackendSuccess / BackendFailure: Tagged backend outcomes
- parse_backend_result(): Parse raw or Lambda-proxy shaped responses
"""

import json
from datetime import datetime
from typing import Annotated, Any, Dict, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic.alias_generators import to_camel

from event_pipeline.models.message import Message, QueueRecord


class _WireModel(BaseModel):
    """Base for models exchanged as camelCase JSON."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_payload(self) -> Dict[str, Any]:
        """Return the JSON-compatible camelCase representation."""
        return self.model_dump(mode='json', by_alias=True)


class InvocationRequest(_WireModel):
    """
    Payload sent to the backend for one queued message.

    Attributes:
        source: Tag of the invoking component
        message_id: Queue message id of the originating message
        received_at: When the consumer started processing the message
        message: Decoded message body, with data in structured form when possible
    """

    source: str = "consumer"
    message_id: str
    received_at: datetime
    message: Dict[str, Any]

    @classmethod
    def for_message(
        cls,
        record: QueueRecord,
        message: Message,
        received_at: datetime
    ) -> 'InvocationRequest':
        """Derive the invocation payload from a delivery and its decoded message."""
        body = message.to_wire()
        body['data'] = message.structured_data()
        body['attributes'] = dict(message.attributes)
        return cls(message_id=record.message_id, received_at=received_at, message=body)


class BackendSuccess(_WireModel):
    """Backend completed processing."""

    status: Literal["success"] = "success"
    message: str = "Backend processing completed successfully"
    request_id: str
    processing_time_ms: int = Field(..., ge=0)
    processed_event: Dict[str, Any]
    timestamp: datetime

    @property
    def ok(self) -> bool:
        return True


class BackendFailure(_WireModel):
    """Backend caught an internal fault and reported it as data."""

    status: Literal["failure"] = "failure"
    message: str = "Backend processing failed"
    error: str
    request_id: str

    @property
    def ok(self) -> bool:
        return False


BackendResult = Annotated[
    Union[BackendSuccess, BackendFailure],
    Field(discriminator="status")
]

_result_adapter = TypeAdapter(BackendResult)


def parse_backend_result(raw: Union[str, bytes, Dict[str, Any]]) -> Union[BackendSuccess, BackendFailure]:
    """
    Parse a backend response into a tagged result.

    Accepts the bare result object or the Lambda proxy shape
    ``{"statusCode": int, "body": "<json>"}``. When the result carries no
    ``status`` tag it is inferred from the status code.

    Raises:
        ValueError: If the response is not a well-formed backend result
            (pydantic.ValidationError is a ValueError subclass)
    """
    data = json.loads(raw) if isinstance(raw, (str, bytes)) else raw
    if not isinstance(data, dict):
        raise ValueError("Backend response must be a JSON object")

    status_code = data.get('statusCode')
    if 'body' in data and status_code is not None:
        body = data['body']
        data = json.loads(body) if isinstance(body, (str, bytes)) else body
        if not isinstance(data, dict):
            raise ValueError("Backend response body must be a JSON object")
        if 'status' not in data:
            data = dict(data, status="success" if 200 <= int(status_code) < 300 else "failure")

    return _result_adapter.validate_python(data)
