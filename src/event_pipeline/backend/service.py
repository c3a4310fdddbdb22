"""
Module: backend/service.py
Description: Backend Lambda that simulates a unit of downstream work.

The backend is stateless. It delays for a duration drawn from an
injectable delay strategy and answers with a structured result. Internal
faults are returned as BackendFailure records, never raised, so callers
always receive a well-formed response.

Key Components:
- uniform_delay() / fixed_delay(): Delay strategies in milliseconds
- Backend: Simulated processing with injected delay, sleep and clock
- handler(): Lambda entry point returning the Lambda proxy shape
"""

import json
import random
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional, Union

from event_pipeline.config.settings import settings
from event_pipeline.models.invocation import BackendFailure, BackendSuccess
from event_pipeline.utils.logger import get_logger

logger = get_logger(__name__)

DelayStrategy = Callable[[], float]


def uniform_delay(
    min_ms: float,
    max_ms: float,
    rng: Optional[random.Random] = None
) -> DelayStrategy:
    """
    Build a strategy drawing delays uniformly from [min_ms, max_ms].

    Args:
        min_ms: Lower bound in milliseconds
        max_ms: Upper bound in milliseconds
        rng: Optional random generator (seed it for reproducible runs)

    Raises:
        ValueError: If the range is negative or inverted
    """
    if min_ms < 0 or max_ms < 0:
        raise ValueError("delay bounds must not be negative")
    if min_ms > max_ms:
        raise ValueError("min_ms must not exceed max_ms")

    generator = rng or random.Random()

    def draw() -> float:
        return generator.uniform(min_ms, max_ms)

    return draw


def fixed_delay(ms: float) -> DelayStrategy:
    """Build a strategy that always returns the same delay."""
    if ms < 0:
        raise ValueError("delay must not be negative")
    return lambda: ms


class Backend:
    """
    Simulated variable-latency backend.

    Example:
        >>> backend = Backend(delay=fixed_delay(0))
        >>> backend.handle({"source": "consumer"}, request_id="req-1").ok
        True
    """

    def __init__(
        self,
        delay: Optional[DelayStrategy] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc)
    ):
        self.delay = delay or uniform_delay(
            settings.backend_min_delay_ms,
            settings.backend_max_delay_ms
        )
        self._sleep = sleep
        self._clock = clock

    def handle(
        self,
        payload: Dict[str, Any],
        request_id: str
    ) -> Union[BackendSuccess, BackendFailure]:
        """
        Process one invocation payload.

        Args:
            payload: Invocation payload (opaque to the backend)
            request_id: Identifier of this invocation

        Returns:
            BackendSuccess, or BackendFailure if anything went wrong
        """
        logger.info("Backend received invocation", request_id=request_id)

        try:
            processing_time = self.delay()
            self._sleep(processing_time / 1000)

            result = BackendSuccess(
                request_id=request_id,
                processing_time_ms=round(processing_time),
                processed_event=payload,
                timestamp=self._clock()
            )

            logger.info(
                "Backend processing completed",
                request_id=request_id,
                processing_time_ms=result.processing_time_ms
            )
            return result

        except Exception as e:
            logger.error(
                "Backend processing failed",
                request_id=request_id,
                error=str(e),
                error_type=type(e).__name__
            )
            return BackendFailure(error=str(e) or type(e).__name__, request_id=request_id)


def get_backend() -> Backend:
    """Build the backend from the configured delay range."""
    return Backend(delay=uniform_delay(settings.backend_min_delay_ms, settings.backend_max_delay_ms))


def handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Lambda handler for backend invocations.

    Args:
        event: Invocation payload sent by the consumer
        context: Lambda context (provides aws_request_id)

    Returns:
        Lambda proxy response with the serialized result as body
    """
    result = get_backend().handle(event, context.aws_request_id)
    return {
        'statusCode': 200 if result.ok else 500,
        'body': json.dumps(result.to_payload())
    }
