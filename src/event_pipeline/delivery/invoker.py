"""
Module: delivery/invoker.py
Description: Synchronous transports from the consumer to the backend.

Every invoker returns the backend's tagged result, including logical
failures. Only transport problems (unreachable backend, timeout, crashed
function, unparseable response) raise InvocationError.

Key Components:
- BackendInvoker: Protocol implemented by all transports
- LambdaBackendInvoker: boto3 Lambda RequestResponse invocation
- HttpBackendInvoker: httpx POST to a backend URL
- LocalBackendInvoker: In-process call for local runs and tests
- build_invoker(): Select a transport from settings
"""

import json
from typing import Any, Optional, Protocol, Union
from uuid import uuid4

import boto3
import httpx
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from event_pipeline.backend.service import Backend
from event_pipeline.config.settings import Settings
from event_pipeline.exceptions import InvocationError
from event_pipeline.models.invocation import (
    BackendFailure,
    BackendSuccess,
    InvocationRequest,
    parse_backend_result,
)
from event_pipeline.utils.logger import get_logger

logger = get_logger(__name__)

Result = Union[BackendSuccess, BackendFailure]


class BackendInvoker(Protocol):
    """Synchronous request/response call to the backend."""

    def invoke(self, request: InvocationRequest) -> Result:
        ...


class LambdaBackendInvoker:
    """
    Invokes the backend Lambda function synchronously.

    botocore retries are disabled so one call maps to exactly one
    backend invocation within the timeout.
    """

    def __init__(
        self,
        function_name: str,
        client: Optional[Any] = None,
        timeout_seconds: float = 30.0
    ):
        """
        Initialize Lambda invoker.

        Args:
            function_name: Name or ARN of the backend function
            client: Optional pre-built boto3 Lambda client
            timeout_seconds: Read timeout for the invocation
        """
        if not function_name or not isinstance(function_name, str):
            raise ValueError("function_name must be a non-empty string")

        self.function_name = function_name
        self.timeout_seconds = timeout_seconds
        self.client = client or boto3.client(
            'lambda',
            config=Config(
                read_timeout=timeout_seconds,
                connect_timeout=min(timeout_seconds, 5.0),
                retries={'max_attempts': 0}
            )
        )

        logger.info(
            "Lambda backend invoker initialized",
            function_name=function_name,
            timeout_seconds=timeout_seconds
        )

    def invoke(self, request: InvocationRequest) -> Result:
        """
        Invoke the backend function and parse its response.

        Raises:
            InvocationError: If the invocation fails at the transport level
        """
        try:
            response = self.client.invoke(
                FunctionName=self.function_name,
                InvocationType='RequestResponse',
                Payload=json.dumps(request.to_payload()).encode('utf-8')
            )

        except ClientError as e:
            logger.error(
                "Backend invocation failed",
                function_name=self.function_name,
                message_id=request.message_id,
                error_code=e.response['Error']['Code'],
                error_message=e.response['Error']['Message']
            )
            raise InvocationError(
                f"Backend invocation failed: {e.response['Error']['Code']}"
            ) from e

        except BotoCoreError as e:
            logger.error(
                "Backend invocation transport error",
                function_name=self.function_name,
                message_id=request.message_id,
                error=str(e),
                error_type=type(e).__name__
            )
            raise InvocationError(f"Backend invocation transport error: {e}") from e

        raw = response['Payload'].read()

        if response.get('FunctionError'):
            logger.error(
                "Backend function raised an unhandled error",
                function_name=self.function_name,
                message_id=request.message_id,
                function_error=response['FunctionError'],
                response=raw[:500].decode('utf-8', errors='replace')
            )
            raise InvocationError(
                f"Backend function error ({response['FunctionError']})"
            )

        try:
            return parse_backend_result(raw)
        except ValueError as e:
            raise InvocationError("Backend returned a malformed response") from e


class HttpBackendInvoker:
    """
    Invokes a backend exposed over HTTP.

    The response body is parsed regardless of status code: a 500 carrying
    a failure record is a logical failure, not a transport error.
    """

    def __init__(self, url: str, timeout_seconds: float = 30.0):
        """
        Initialize HTTP invoker.

        Args:
            url: Backend endpoint URL
            timeout_seconds: HTTP timeout in seconds

        Raises:
            ValueError: If url is invalid
        """
        if not url or not isinstance(url, str):
            raise ValueError("url must be a non-empty string")
        if not url.startswith(('http://', 'https://')):
            raise ValueError("url must be a valid HTTP/HTTPS URL")

        self.url = url
        self.timeout = httpx.Timeout(timeout_seconds, connect=min(timeout_seconds, 5.0))

        logger.info(
            "HTTP backend invoker initialized",
            url=url,
            timeout_seconds=timeout_seconds
        )

    def invoke(self, request: InvocationRequest) -> Result:
        """
        POST the invocation payload to the backend.

        Raises:
            InvocationError: On timeout, network failure or malformed response
        """
        with httpx.Client(timeout=self.timeout) as client:
            try:
                response = client.post(
                    self.url,
                    json=request.to_payload(),
                    headers={'Content-Type': 'application/json'}
                )

            except httpx.TimeoutException as e:
                logger.warning(
                    "Backend invocation timeout",
                    url=self.url,
                    message_id=request.message_id
                )
                raise InvocationError("Backend invocation timed out") from e

            except httpx.HTTPError as e:
                logger.warning(
                    "Backend invocation network error",
                    url=self.url,
                    message_id=request.message_id,
                    error=str(e)
                )
                raise InvocationError(f"Backend invocation failed: {e}") from e

        try:
            return parse_backend_result(response.content)
        except ValueError as e:
            logger.warning(
                "Backend returned a malformed response",
                url=self.url,
                status_code=response.status_code,
                response=response.text[:500]
            )
            raise InvocationError(
                f"Backend returned a malformed response (status {response.status_code})"
            ) from e


class LocalBackendInvoker:
    """Calls an in-process Backend with a generated request id."""

    def __init__(self, backend: Backend):
        self.backend = backend

    def invoke(self, request: InvocationRequest) -> Result:
        return self.backend.handle(request.to_payload(), request_id=str(uuid4()))


def build_invoker(config: Settings) -> Optional[BackendInvoker]:
    """
    Select a backend transport from settings.

    Returns:
        HttpBackendInvoker for URL targets, LambdaBackendInvoker for any
        other target, None when no backend is configured
    """
    target = config.backend_target
    if not target:
        return None
    if target.startswith(('http://', 'https://')):
        return HttpBackendInvoker(target, timeout_seconds=config.backend_timeout_seconds)
    return LambdaBackendInvoker(target, timeout_seconds=config.backend_timeout_seconds)
