"""
Module: exceptions.py
Description: Exception hierarchy for the event pipeline.

Every failure that crosses a component boundary is one of these types.
Logical backend failures are not exceptions; they travel as
BackendFailure results (see models.invocation).
"""

from typing import Optional


class PipelineError(Exception):
    """Base class for all pipeline errors."""


class EnqueueError(PipelineError):
    """Raised when a message cannot be stored in the queue."""

    def __init__(self, reason: str, error_code: Optional[str] = None):
        super().__init__(reason)
        self.reason = reason
        self.error_code = error_code


class DecodeError(PipelineError):
    """Raised when a queued message body cannot be decoded."""


class InvocationError(PipelineError):
    """Raised when the backend cannot be reached or times out."""


class BackendFailureError(PipelineError):
    """Raised for a logical backend failure under the escalate policy."""

    def __init__(self, request_id: str, error: str):
        super().__init__(f"Backend reported failure for request {request_id}: {error}")
        self.request_id = request_id
        self.error = error


class BatchProcessingError(PipelineError):
    """
    Raised by the queue binding to reject an entire batch.

    Carries the BatchOutcome so callers can inspect which message failed
    and which ones had already been processed.
    """

    def __init__(self, outcome):
        failure = outcome.failure
        super().__init__(
            f"Batch aborted at message {failure.message_id} "
            f"({failure.error_type}: {failure.reason})"
        )
        self.outcome = outcome
