"""
Module: response.py
Description: Publisher result and ingress response models.

The publisher never lets an enqueue failure escape; it returns either a
PublishSuccess or a PublishFailure, each of which knows how to render
itself as the ingress JSON response and status code.

Key Components:
- PublishResponse / ErrorResponse: JSON bodies returned to the caller
- PublishSuccess / PublishFailure: Publisher outcomes
"""

from typing import Any, Dict, Tuple

from pydantic import BaseModel, ConfigDict, Field

from event_pipeline.models.message import Message


class PublishResponse(BaseModel):
    """
    Response body for a successfully published event.

    Attributes:
        message: Human-readable status message
        message_id: Queue-assigned message identifier
        data: The published message
    """

    model_config = ConfigDict(populate_by_name=True)

    message: str = Field(
        default="Event published successfully",
        description="Human-readable status message"
    )
    message_id: str = Field(
        ...,
        alias="messageId",
        description="Queue-assigned message identifier"
    )
    data: Dict[str, Any] = Field(
        ...,
        description="The published message"
    )


class ErrorResponse(BaseModel):
    """
    Response body for a failed publish.

    Attributes:
        error: Short error summary
        details: Failure reason
    """

    error: str = Field(..., description="Short error summary")
    details: str = Field(..., description="Failure reason")


class PublishSuccess(BaseModel):
    """The message was durably enqueued."""

    model_config = ConfigDict(frozen=True)

    message_id: str
    message: Message

    @property
    def ok(self) -> bool:
        return True

    def to_response(self) -> Tuple[int, Dict[str, Any]]:
        """Render the 200 ingress response."""
        body = PublishResponse(message_id=self.message_id, data=self.message.to_wire())
        return 200, body.model_dump(by_alias=True)


class PublishFailure(BaseModel):
    """The message could not be enqueued."""

    model_config = ConfigDict(frozen=True)

    error: str = "Failed to publish message"
    details: str

    @property
    def ok(self) -> bool:
        return False

    def to_response(self) -> Tuple[int, Dict[str, Any]]:
        """Render the 500 ingress response."""
        return 500, ErrorResponse(error=self.error, details=self.details).model_dump()
