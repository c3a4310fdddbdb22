"""
Module: models
Description: Package initialization for Pydantic data models.

This package contains all data models used by the event pipeline:
- Message / QueueRecord: Queued unit of work and one delivery of it
- InvocationRequest / BackendSuccess / BackendFailure: Backend contract
- PublishSuccess / PublishFailure: Publisher outcomes

All models are exported here for convenient importing.
"""

from .message import Message, QueueRecord
from .invocation import (
    BackendFailure,
    BackendResult,
    BackendSuccess,
    InvocationRequest,
    parse_backend_result,
)
from .response import ErrorResponse, PublishFailure, PublishResponse, PublishSuccess

__all__ = [
    "Message",
    "QueueRecord",
    "InvocationRequest",
    "BackendResult",
    "BackendSuccess",
    "BackendFailure",
    "parse_backend_result",
    "PublishResponse",
    "ErrorResponse",
    "PublishSuccess",
    "PublishFailure",
]
